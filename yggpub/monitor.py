# -*- coding: utf-8 -*-
# yggpub/monitor.py
#
# Terminal view of the same peer data the dashboard shows.
#
#   python -m yggpub.monitor --adminaddr unix:///var/run/yggdrasil.sock
#   python -m yggpub.monitor --once

from __future__ import annotations

import argparse
import sys
import time
from typing import Mapping, Optional

from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from .admin import DEFAULT_ADMIN_ADDR, DEFAULT_TIMEOUT_S, AdminAddressError, AdminClient, AdminError
from .peers import PeerSummary, aggregate
from .render import format_bytes

console = Console()


# ------------------------------------------------------------
# Darstellung als Tabelle
# ------------------------------------------------------------

def build_table(
    peers: Mapping[str, PeerSummary],
    total_bytes: int,
    error: Optional[str] = None,
) -> Table:
    table = Table(title="Yggdrasil Switch Peers", expand=True)

    table.add_column("Peer", style="bold")
    table.add_column("Coords")
    table.add_column("Ports")
    table.add_column("Sent", justify="right")
    table.add_column("Received", justify="right")
    table.add_column("Share", justify="right")

    for ip, peer in sorted(peers.items(), key=lambda kv: kv[1].total_bytes, reverse=True):
        share = (100.0 * peer.total_bytes / total_bytes) if total_bytes else 0.0
        table.add_row(
            ip,
            peer.coords_label,
            ", ".join(peer.ports),
            format_bytes(peer.bytes_sent),
            format_bytes(peer.bytes_recvd),
            f"{share:5.1f} %",
        )

    if error is not None:
        table.caption = Text(error, style="red")
    elif not peers:
        table.caption = Text("There are no connected peers at this time.", style="yellow")
    else:
        table.caption = Text(f"{len(peers)} peers, {format_bytes(total_bytes)} total", style="green")

    return table


def poll(client: AdminClient) -> Table:
    try:
        reply = client.get_switch_peers()
    except AdminError as e:
        return build_table({}, 0, error=f"{e.message}: {e.detail}" if e.detail else e.message)
    peers, total_bytes = aggregate(reply.switchpeers)
    return build_table(peers, total_bytes)


# ------------------------------------------------------------
# Main-Loop
# ------------------------------------------------------------

def monitor_loop(client: AdminClient, interval: float) -> None:
    console.print(f"[cyan]Monitoring admin socket:[/cyan] {client.endpoint}")
    with Live(poll(client), refresh_per_second=4, console=console) as live:
        while True:
            time.sleep(interval)
            live.update(poll(client))


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Live Yggdrasil switch peer monitor")
    parser.add_argument("--adminaddr", default=DEFAULT_ADMIN_ADDR, help="admin socket address")
    parser.add_argument("--interval", type=float, default=2.0, help="refresh interval in seconds")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_S, help="admin socket timeout in seconds")
    parser.add_argument("--once", action="store_true", help="print one table and exit")
    args = parser.parse_args(argv)

    try:
        client = AdminClient(args.adminaddr, timeout=args.timeout)
    except AdminAddressError as e:
        console.print(f"[red]{e.message}:[/red] {e.detail}")
        sys.exit(2)
    except ValueError as e:
        console.print(f"[red]Invalid timeout:[/red] {e}")
        sys.exit(2)

    if args.once:
        console.print(poll(client))
        return

    try:
        monitor_loop(client, max(args.interval, 0.2))
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped by user.[/yellow]")


if __name__ == "__main__":
    main()
