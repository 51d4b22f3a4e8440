"""Render an ~/.ssh/config fragment listing every SSH-reachable host."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping

from infrabase.schemas.host import Address, HostRecord

LinkMap = Mapping[tuple[str, str], int]


def reachable_priority(address: Address, source_networks: set[str], links: LinkMap) -> float | None:
    """Lower is better; None means the source cannot reach this address."""
    if address.network is None:
        # Not tied to a network: assume public, but prefer anything more specific
        return math.inf
    if address.network in source_networks:
        return 0
    via = [links[(net, address.network)] for net in source_networks if (net, address.network) in links]
    return min(via) if via else None


def pick_address(host: HostRecord, source_networks: set[str], links: LinkMap) -> Address | None:
    best: tuple[float, int, Address] | None = None
    for position, address in enumerate(host.addresses):
        if address.ssh_port is None:
            continue
        priority = reachable_priority(address, source_networks, links)
        if priority is None:
            continue
        if best is None or (priority, position) < best[:2]:
            best = (priority, position, address)
    return best[2] if best else None


def render_ssh_config(source: HostRecord, hosts: Iterable[HostRecord], links: LinkMap) -> str:
    """``hosts`` should already be in presentation order."""
    source_networks = {a.network for a in source.addresses if a.network is not None}

    out = [f"# infrabase-generated SSH config for {source.hostname}\n"]
    for host in hosts:
        address = pick_address(host, source_networks, links)
        if address is None:
            continue
        block = []
        if host.owner:
            block.append(f"# {host.owner}'s")
        block.append(f"Host {host.hostname}")
        block.append(f"  HostName {address.address}")
        block.append(f"  Port {address.ssh_port}")
        out.append("\n".join(block) + "\n")
    return "\n".join(out)
