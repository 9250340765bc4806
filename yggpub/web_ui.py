# -*- coding: utf-8 -*-
# yggpub/web_ui.py
#
# Peer dashboard for a Yggdrasil node.
#
# Every page load runs one fresh cycle:
#   admin socket (getSwitchPeers) -> aggregate per peer address -> HTML
#
# HARD RULE: nothing a single request does may take the server down.
# Admin failures are shown in-page (HTTP 200), missing files are 404/500.
#
# Run:
#   python run_dashboard.py --listenaddr [::]:8080
#
from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict

from flask import Flask, Response, abort, jsonify, make_response

from .admin import AdminClient, AdminError
from .config import DashboardConfig
from .peers import aggregate
from .render import load_template, render, render_message

log = logging.getLogger("yggpub.web")

STATIC_FILES = ("style.css", "chartist.min.css", "chartist.min.js")
CONFIG_KEY = "YGGPUB"

app = Flask(__name__, static_folder=None)
app.config[CONFIG_KEY] = DashboardConfig.defaults()


def configure(cfg: DashboardConfig) -> Flask:
    app.config[CONFIG_KEY] = cfg
    return app


def current_config() -> DashboardConfig:
    return app.config[CONFIG_KEY]


def _client(cfg: DashboardConfig) -> AdminClient:
    return AdminClient(cfg.adminaddr, timeout=cfg.admin_timeout_s)


def _html(body: str, status: int = 200) -> Response:
    resp = make_response(body, status)
    resp.headers["Content-Type"] = "text/html; charset=utf-8"
    resp.headers["Cache-Control"] = "no-store"
    return resp


# -----------------------------
# Routes
# -----------------------------
@app.route("/")
def index():
    cfg = current_config()

    try:
        template = load_template(cfg.template_path)
    except (OSError, UnicodeDecodeError) as e:
        log.error("template %s unreadable: %s", cfg.template_path, e)
        resp = make_response("Dashboard template unavailable\n", 500)
        resp.headers["Content-Type"] = "text/plain; charset=utf-8"
        return resp

    try:
        reply = _client(cfg).get_switch_peers()
    except AdminError as e:
        log.warning("admin query failed (%s): %s", type(e).__name__, e.detail or e.message)
        return _html(render_message(template, cfg.nodename, e.message))

    peers, total_bytes = aggregate(reply.switchpeers)
    log.debug("rendering %d peers over %d links, %d bytes", len(peers), len(reply.switchpeers), total_bytes)
    return _html(render(template, cfg.nodename, peers, total_bytes))


@app.route("/<path:filename>")
def static_file(filename: str):
    name = filename.rsplit("/", 1)[-1]
    if filename != name or name not in STATIC_FILES:
        abort(404)

    cfg = current_config()
    path = Path(cfg.static_dir) / name
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        log.warning("static file missing: %s", path)
        abort(404)
    except OSError as e:
        log.error("static file %s unreadable: %s", path, e)
        abort(500)

    mimetype = mimetypes.guess_type(name)[0] or "application/octet-stream"
    return Response(data, mimetype=mimetype)


@app.route("/api/peers")
def api_peers():
    cfg = current_config()
    try:
        reply = _client(cfg).get_switch_peers()
    except AdminError as e:
        log.warning("admin query failed (%s): %s", type(e).__name__, e.detail or e.message)
        return make_response(jsonify({"error": e.message}), 502)

    peers, total_bytes = aggregate(reply.switchpeers)
    out: Dict[str, Any] = {}
    for ip, p in peers.items():
        out[ip] = {
            "ports": list(p.ports),
            "bytes_sent": p.bytes_sent,
            "bytes_recvd": p.bytes_recvd,
            "coords": p.coords_label,
        }
    return jsonify({"nodename": cfg.nodename, "total_bytes": total_bytes, "peers": out})
