# -*- coding: utf-8 -*-
# yggpub/render.py
#
# Page rendering. The template is a plain HTML file with two tokens:
#   %HOSTNAME%  -> node name (escaped)
#   %PEERS%     -> generated peer blocks, or a notice / error message
#
# Every value that came from the admin socket or the command line is escaped
# before it touches the page.

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Mapping, Union

from markupsafe import escape

from .peers import PeerSummary

HOSTNAME_TOKEN = "%HOSTNAME%"
PEERS_TOKEN = "%PEERS%"
_TOKEN_RE = re.compile(r"%(HOSTNAME|PEERS)%")

NO_PEERS_HTML = "<div>There are no connected peers at this time.</div>"

_BYTE_UNITS = ["B", "kB", "MB", "GB", "TB", "PB", "EB"]

CHART_OPTIONS = "{ donut: true, donutWidth: 25, donutSolid: true, startbytes: 0, showLabel: false }"


def format_bytes(n: int) -> str:
    """SI byte count: 9 B, 82 kB, 1.2 MB."""
    n = int(n)
    if n < 10:
        return f"{n} B"
    e = 0
    while e < len(_BYTE_UNITS) - 1 and n >= 1000 ** (e + 1):
        e += 1
    scale = 1000 ** e
    # round to one decimal in integer math, then format
    tenths = (n * 20 + scale) // (2 * scale)
    val = tenths / 10.0
    if val < 10:
        return f"{val:.1f} {_BYTE_UNITS[e]}"
    return f"{val:.0f} {_BYTE_UNITS[e]}"


def ports_label(ports: List[str]) -> str:
    if len(ports) > 1:
        return "switch ports " + ", ".join(ports)
    return "switch port " + (ports[0] if ports else "")


def _chart_script(chart_id: str, series: List[int]) -> str:
    values = ", ".join(str(int(v)) for v in series)
    return (
        "<script>\n"
        f"new Chartist.Pie('#{chart_id}', {{ series: [{values}] }}, {CHART_OPTIONS});\n"
        "</script>\n"
    )


def render_peers(peers: Mapping[str, PeerSummary], total_bytes: int) -> str:
    """
    One block per peer, in mapping order.

    Each pie shows [bytes of peers already drawn, sent, received, the rest],
    so the slices of consecutive charts line up around the whole.
    """
    if not peers:
        return NO_PEERS_HTML

    out: List[str] = []
    offset = 0
    for count, (ip, peer) in enumerate(peers.items()):
        chart_id = f"ct-{count}"
        rest = total_bytes - offset - peer.bytes_sent - peer.bytes_recvd
        out.append("<div class='node'>\n")
        out.append(f"<div class='ct-chart ct-perfect-fourth' id='{chart_id}'></div>\n")
        out.append(_chart_script(chart_id, [offset, peer.bytes_sent, peer.bytes_recvd, rest]))
        out.append(f"<div id='ipv6'>{escape(ip)}</div>\n")
        out.append(f"<div>{escape(peer.coords_label)} attached to {escape(ports_label(peer.ports))}</div>\n")
        out.append(f"<div>{format_bytes(peer.bytes_sent)} sent</div>\n")
        out.append(f"<div>{format_bytes(peer.bytes_recvd)} received</div>\n")
        out.append("</div>\n")
        offset += peer.total_bytes

    return "".join(out)


def render_page(template: str, nodename: str, peers_html: str) -> str:
    """Fill both tokens in a single pass; ``peers_html`` is inserted as-is."""
    values = {"HOSTNAME": str(escape(nodename)), "PEERS": peers_html}
    return _TOKEN_RE.sub(lambda m: values[m.group(1)], template)


def render_message(template: str, nodename: str, message: str) -> str:
    return render_page(template, nodename, f"<div class='error'>{escape(message)}</div>")


def render(template: str, nodename: str, peers: Mapping[str, PeerSummary], total_bytes: int) -> str:
    return render_page(template, nodename, render_peers(peers, total_bytes))


def load_template(path: Union[str, Path]) -> str:
    return Path(path).read_text(encoding="utf-8")
