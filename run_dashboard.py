# -*- coding: utf-8 -*-
#!/usr/bin/env python3
"""
run_dashboard.py

- liest optional eine JSON-Config (--config), CLI-Flags haben Vorrang
- prüft Admin- und Listen-Adresse vor dem Start (Fehler -> Exit 2)
- startet den Flask-Server (ein Thread pro Request)

Usage:
  python run_dashboard.py --nodename mynode --listenaddr [::]:8080
  python run_dashboard.py --config config/dashboard.json
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from yggpub.admin import AdminAddressError, parse_endpoint
from yggpub.config import DashboardConfig, parse_listen_addr, resolve_config
from yggpub.web_ui import configure

log = logging.getLogger("yggpub.main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve a live peer dashboard for a Yggdrasil node.")
    parser.add_argument("--config", help="JSON config file (keys: nodename, adminaddr, listenaddr, ...)")
    parser.add_argument("--nodename", help="friendly name of the node (default: hostname)")
    parser.add_argument("--adminaddr", help="admin socket address (default: unix:///var/run/yggdrasil.sock)")
    parser.add_argument("--listenaddr", help="address and port to listen on (default: [::]:80)")
    parser.add_argument("--template", dest="template_path", help="page template with %%HOSTNAME%% and %%PEERS%%")
    parser.add_argument("--static-dir", dest="static_dir", help="directory holding style.css and chartist.min.*")
    parser.add_argument("--admin-timeout", dest="admin_timeout_s", type=float, help="admin socket timeout in seconds")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    return parser


def setup(argv: Optional[List[str]] = None):
    """Parse args and validate; returns (config, host, port). Exits on bad config."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    cli = {k: v for k, v in vars(args).items() if k not in ("config", "debug")}
    try:
        cfg: DashboardConfig = resolve_config(args.config, cli)
    except (OSError, ValueError) as e:
        parser.error(f"config: {e}")

    if not cfg.admin_timeout_s > 0:
        parser.error(f"admin-timeout: must be > 0, got {cfg.admin_timeout_s}")

    try:
        parse_endpoint(cfg.adminaddr)
    except AdminAddressError as e:
        parser.error(f"adminaddr: {e}")

    try:
        host, port = parse_listen_addr(cfg.listenaddr)
    except ValueError as e:
        parser.error(f"listenaddr: {e}")

    return cfg, host, port


def main(argv: Optional[List[str]] = None) -> None:
    cfg, host, port = setup(argv)

    log.info("Using node name: %s", cfg.nodename)
    log.info("Using admin socket address: %s", cfg.adminaddr)
    log.info("Listening on address: %s", cfg.listenaddr)

    app = configure(cfg)
    app.run(host=host, port=port, threaded=True, debug=False, use_reloader=False)


if __name__ == "__main__":
    main()
