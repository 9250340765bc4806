# -*- coding: utf-8 -*-
# yggpub/admin.py
"""
Admin socket client — one JSON request, one JSON response per connection.

Endpoint forms:
  unix:///var/run/yggdrasil.sock
  tcp://localhost:9001
  localhost:9001  /  [::1]:9001

The response is read until a complete JSON object has been decoded or the
node closes the connection, so large or fragmented replies are fine.
"""

from __future__ import annotations

import json
import logging
import socket
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import urlsplit

log = logging.getLogger("yggpub.admin")

DEFAULT_ADMIN_ADDR = "unix:///var/run/yggdrasil.sock"
DEFAULT_TIMEOUT_S = 5.0
RECV_CHUNK = 65536


# ---------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------

class AdminError(Exception):
    """Base for everything that can go wrong talking to the admin socket."""

    message = "Admin socket error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.message)
        self.detail = detail


class AdminAddressError(AdminError):
    message = "Invalid admin socket address"


class AdminConnectionError(AdminError):
    message = "Unable to connect to admin socket"


class AdminTimeoutError(AdminConnectionError):
    message = "Timed out waiting for admin socket"


class AdminEncodeError(AdminError):
    message = "Unable to marshal JSON"


class AdminNoResponseError(AdminError):
    message = "No response from admin socket"


class AdminDecodeError(AdminError):
    message = "Unable to unmarshal JSON"


class AdminStatusError(AdminError):
    message = "Non-successful response"


class AdminSchemaError(AdminError):
    message = "Malformed response from admin socket"


# ---------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class AdminEndpoint:
    family: int
    address: Union[str, Tuple[str, int]]

    def __str__(self) -> str:
        if self.family == getattr(socket, "AF_UNIX", None):
            return f"unix://{self.address}"
        host, port = self.address
        if ":" in host:
            return f"tcp://[{host}]:{port}"
        return f"tcp://{host}:{port}"


def _host_port(netloc: str, original: str) -> Tuple[str, int]:
    try:
        parts = urlsplit("//" + netloc)
        host, port = parts.hostname, parts.port
    except ValueError as e:
        raise AdminAddressError(f"{original!r}: {e}") from e
    if not host or port is None:
        raise AdminAddressError(f"{original!r}: expected host:port")
    return host, port


def _tcp_endpoint(addr: Tuple[str, int]) -> AdminEndpoint:
    family = socket.AF_INET6 if ":" in addr[0] else socket.AF_INET
    return AdminEndpoint(family, addr)


def parse_endpoint(text: str) -> AdminEndpoint:
    """Parse an admin address into something ``socket`` can connect to."""
    text = (text or "").strip()
    if not text:
        raise AdminAddressError("empty admin address")

    if "://" not in text:
        return _tcp_endpoint(_host_port(text, text))

    scheme, rest = text.split("://", 1)
    scheme = scheme.lower()

    if scheme == "unix":
        if not hasattr(socket, "AF_UNIX"):
            raise AdminAddressError(f"{text!r}: unix sockets not supported on this platform")
        path = urlsplit(text).path or rest
        if not path:
            raise AdminAddressError(f"{text!r}: missing socket path")
        return AdminEndpoint(socket.AF_UNIX, path)

    if scheme == "tcp":
        return _tcp_endpoint(_host_port(rest.rstrip("/"), text))

    raise AdminAddressError(f"{text!r}: unsupported scheme {scheme!r}")


# ---------------------------------------------------------------------
# Response schema
# ---------------------------------------------------------------------

def _field(obj: Dict[str, Any], key: str, where: str) -> Any:
    if key not in obj:
        raise AdminSchemaError(f"{where}: missing field {key!r}")
    return obj[key]


def _str_field(obj: Dict[str, Any], key: str, where: str) -> str:
    v = _field(obj, key, where)
    if not isinstance(v, str):
        raise AdminSchemaError(f"{where}.{key}: expected string, got {type(v).__name__}")
    return v


def _counter_field(obj: Dict[str, Any], key: str, where: str) -> int:
    v = _field(obj, key, where)
    # bool is an int subclass, JSON true is not a byte count
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise AdminSchemaError(f"{where}.{key}: expected number, got {type(v).__name__}")
    if isinstance(v, float) and not v.is_integer():
        raise AdminSchemaError(f"{where}.{key}: expected whole number, got {v!r}")
    if v < 0:
        raise AdminSchemaError(f"{where}.{key}: negative counter {v!r}")
    return int(v)


@dataclass
class SwitchPeer:
    """One active link as reported by getSwitchPeers."""
    ip: str
    bytes_sent: int
    bytes_recvd: int
    coords: str

    @classmethod
    def from_json(cls, link_id: str, obj: Any) -> "SwitchPeer":
        where = f"switchpeers[{link_id!r}]"
        if not isinstance(obj, dict):
            raise AdminSchemaError(f"{where}: expected object, got {type(obj).__name__}")
        return cls(
            ip=_str_field(obj, "ip", where),
            bytes_sent=_counter_field(obj, "bytes_sent", where),
            bytes_recvd=_counter_field(obj, "bytes_recvd", where),
            coords=_str_field(obj, "coords", where),
        )


@dataclass
class SwitchPeersResponse:
    switchpeers: Dict[str, SwitchPeer] = field(default_factory=dict)

    @classmethod
    def from_json(cls, obj: Dict[str, Any]) -> "SwitchPeersResponse":
        status = obj.get("status")
        if status != "success":
            err = obj.get("error")
            detail = f"status={status!r}"
            if isinstance(err, str) and err:
                detail += f" error={err!r}"
            raise AdminStatusError(detail)

        response = obj.get("response")
        if not isinstance(response, dict):
            raise AdminSchemaError("missing or non-object 'response'")
        raw = response.get("switchpeers")
        if not isinstance(raw, dict):
            raise AdminSchemaError("missing or non-object 'response.switchpeers'")

        return cls(switchpeers={str(k): SwitchPeer.from_json(str(k), v) for k, v in raw.items()})


# ---------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------

class AdminClient:
    def __init__(self, endpoint: Union[str, AdminEndpoint], timeout: Optional[float] = DEFAULT_TIMEOUT_S) -> None:
        if timeout is not None and (isinstance(timeout, bool) or timeout <= 0):
            raise ValueError(f"admin timeout must be > 0, got {timeout!r}")
        self.endpoint = parse_endpoint(endpoint) if isinstance(endpoint, str) else endpoint
        # bounds the whole query, not each recv
        self.timeout = timeout

    def _connect(self) -> socket.socket:
        ep = self.endpoint
        if ep.family == getattr(socket, "AF_UNIX", None):
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                sock.settimeout(self.timeout)
                sock.connect(ep.address)
            except BaseException:
                sock.close()
                raise
            return sock
        sock = socket.create_connection(ep.address, timeout=self.timeout)
        sock.settimeout(self.timeout)
        return sock

    @staticmethod
    def _try_decode(buf: bytes) -> Optional[Any]:
        """Return the decoded object once ``buf`` holds a complete JSON value."""
        try:
            text = buf.decode("utf-8")
        except UnicodeDecodeError:
            # may be a multi-byte sequence split across chunks
            return None
        text = text.lstrip()
        if not text:
            return None
        try:
            obj, _ = json.JSONDecoder().raw_decode(text)
        except json.JSONDecodeError:
            return None
        return obj

    def _remaining(self, deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        left = deadline - time.monotonic()
        if left <= 0:
            raise socket.timeout(f"no complete reply within {self.timeout}s")
        return left

    def _exchange(self, payload: bytes) -> bytes:
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        buf = bytearray()
        with self._connect() as sock:
            sock.settimeout(self._remaining(deadline))
            sock.sendall(payload)
            try:
                sock.shutdown(socket.SHUT_WR)
            except OSError:
                # some nodes close right after reading; the reply may still be there
                pass
            while True:
                sock.settimeout(self._remaining(deadline))
                chunk = sock.recv(RECV_CHUNK)
                if not chunk:
                    break
                buf += chunk
                # a JSON object reply can only be complete on a closing brace
                if bytes(buf[-64:]).rstrip().endswith(b"}") and self._try_decode(bytes(buf)) is not None:
                    break
        return bytes(buf)

    def query(self, request: Dict[str, Any]) -> Dict[str, Any]:
        try:
            payload = json.dumps(request).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise AdminEncodeError(str(e)) from e

        log.debug("-> %s %s", self.endpoint, payload)
        try:
            buf = self._exchange(payload)
        except socket.timeout as e:
            raise AdminTimeoutError(f"{self.endpoint}: {e}") from e
        except OSError as e:
            raise AdminConnectionError(f"{self.endpoint}: {e}") from e

        if not buf.strip():
            raise AdminNoResponseError(str(self.endpoint))
        log.debug("<- %s %d bytes", self.endpoint, len(buf))

        try:
            obj = json.loads(buf.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            # trailing bytes after a complete object are tolerated
            obj = self._try_decode(buf)
            if obj is None:
                raise AdminDecodeError(str(e)) from e

        if not isinstance(obj, dict):
            raise AdminDecodeError(f"expected JSON object, got {type(obj).__name__}")
        return obj

    def get_switch_peers(self) -> SwitchPeersResponse:
        return SwitchPeersResponse.from_json(self.query({"request": "getSwitchPeers"}))


def query(endpoint: Union[str, AdminEndpoint], request: Dict[str, Any], timeout: Optional[float] = DEFAULT_TIMEOUT_S) -> Dict[str, Any]:
    """One-shot query: connect, send ``request``, return the decoded reply."""
    return AdminClient(endpoint, timeout=timeout).query(request)
