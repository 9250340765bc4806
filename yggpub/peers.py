# -*- coding: utf-8 -*-
# yggpub/peers.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

from .admin import SwitchPeer

log = logging.getLogger("yggpub.peers")

ROOT_COORDS = "[]"
ROOT_LABEL = "Root"


@dataclass
class PeerSummary:
    """All links to one remote address, folded together."""
    ports: List[str] = field(default_factory=list)
    bytes_sent: int = 0
    bytes_recvd: int = 0
    coords: str = ROOT_COORDS

    @property
    def total_bytes(self) -> int:
        return self.bytes_sent + self.bytes_recvd

    @property
    def coords_label(self) -> str:
        return coords_label(self.coords)


def coords_label(coords: str) -> str:
    return ROOT_LABEL if coords == ROOT_COORDS else coords


def aggregate(switchpeers: Mapping[str, SwitchPeer]) -> Tuple[Dict[str, PeerSummary], int]:
    """
    Group per-link records by peer address.

    Returns:
        ({ip: PeerSummary}, total_bytes) where total_bytes is the sum of
        sent + received over every link, grouped or not.
    """
    peers: Dict[str, PeerSummary] = {}
    total = 0

    for port, link in switchpeers.items():
        summary = peers.get(link.ip)
        if summary is None:
            summary = PeerSummary(coords=link.coords)
            peers[link.ip] = summary
        elif summary.coords != link.coords:
            # first seen wins
            log.debug(
                "peer %s: port %s reports coords %s, keeping %s",
                link.ip, port, link.coords, summary.coords,
            )

        summary.ports.append(port)
        summary.bytes_sent += link.bytes_sent
        summary.bytes_recvd += link.bytes_recvd
        total += link.bytes_sent + link.bytes_recvd

    return peers, total
