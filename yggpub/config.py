# -*- coding: utf-8 -*-
# yggpub/config.py

from __future__ import annotations

import json
import socket
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import urlsplit

from .admin import DEFAULT_ADMIN_ADDR, DEFAULT_TIMEOUT_S

ROOT_DIR = Path(__file__).resolve().parent.parent
TEMPLATE_PATH = ROOT_DIR / "templates" / "template.html"
STATIC_DIR = ROOT_DIR / "static"

DEFAULT_LISTEN_ADDR = "[::]:80"
FALLBACK_NODENAME = "Unnamed node"


def default_nodename() -> str:
    try:
        return socket.gethostname() or FALLBACK_NODENAME
    except OSError:
        return FALLBACK_NODENAME


@dataclass
class DashboardConfig:
    nodename: str = FALLBACK_NODENAME
    adminaddr: str = DEFAULT_ADMIN_ADDR
    listenaddr: str = DEFAULT_LISTEN_ADDR
    template_path: str = str(TEMPLATE_PATH)
    static_dir: str = str(STATIC_DIR)
    admin_timeout_s: float = DEFAULT_TIMEOUT_S

    @classmethod
    def defaults(cls) -> "DashboardConfig":
        return cls(nodename=default_nodename())

    def merged(self, overrides: Dict[str, Any]) -> "DashboardConfig":
        """Copy with every non-None override applied."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        for k, v in overrides.items():
            if v is not None:
                values[k] = v
        values["admin_timeout_s"] = float(values["admin_timeout_s"])
        return DashboardConfig(**values)


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a JSON config file. Keys are DashboardConfig field names."""
    with Path(path).open("r", encoding="utf-8") as f:
        cfg = json.load(f)

    if not isinstance(cfg, dict):
        raise ValueError(f"{path}: expected a JSON object at top level")

    known = {f.name for f in fields(DashboardConfig)}
    unknown = sorted(k for k in cfg if k not in known)
    if unknown:
        raise ValueError(
            "{}: unknown config keys: {} (allowed: {})".format(path, ", ".join(unknown), ", ".join(sorted(known)))
        )

    for key, value in cfg.items():
        if key == "admin_timeout_s":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{path}: {key} must be a number, got {type(value).__name__}")
        elif not isinstance(value, str):
            raise ValueError(f"{path}: {key} must be a string, got {type(value).__name__}")
    return cfg


def parse_listen_addr(addr: str) -> Tuple[str, int]:
    """
    "[::]:80" -> ("::", 80), "127.0.0.1:8080" -> ("127.0.0.1", 8080),
    ":8080" -> ("::", 8080).
    """
    addr = (addr or "").strip()
    if addr.startswith(":"):
        addr = "[::]" + addr
    try:
        parts = urlsplit("//" + addr)
        host, port = parts.hostname, parts.port
    except ValueError as e:
        raise ValueError(f"invalid listen address {addr!r}: {e}") from e
    if not host or port is None:
        raise ValueError(f"invalid listen address {addr!r}: expected host:port")
    return host, port


def resolve_config(file_path: Optional[str], cli: Dict[str, Any]) -> DashboardConfig:
    cfg = DashboardConfig.defaults()
    if file_path:
        cfg = cfg.merged(load_config(file_path))
    return cfg.merged(cli)
