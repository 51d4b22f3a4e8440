"""Per-host lookups usable as report columns.

A resolver is ``async def resolver(session, hostname) -> value``. It may only
read; it receives its own session from the query engine.
"""

from __future__ import annotations

import asyncio
import socket
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from infrabase.errors import MalformedInput, NotFound
from infrabase.models import Host, HostAddress, HostMetadata, HostTag
from infrabase.schemas.host import as_utc
from infrabase.services.query import Resolver


async def _host_id(session: AsyncSession, hostname: str) -> int:
    host_id = await session.scalar(select(Host.id).where(func.lower(Host.hostname) == func.lower(hostname)))
    if host_id is None:
        raise NotFound(hostname, operation="resolve")
    return host_id


async def address_count(session: AsyncSession, hostname: str) -> int:
    host_id = await _host_id(session, hostname)
    return await session.scalar(select(func.count()).select_from(HostAddress).where(HostAddress.host_id == host_id)) or 0


async def tag_count(session: AsyncSession, hostname: str) -> int:
    host_id = await _host_id(session, hostname)
    return await session.scalar(select(func.count()).select_from(HostTag).where(HostTag.host_id == host_id)) or 0


def humanize_age(seconds: float) -> str:
    seconds = max(int(seconds), 0)
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
        if seconds >= size:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"


async def updated_age(session: AsyncSession, hostname: str) -> str:
    """How long ago the host was last changed, e.g. ``3d``."""
    updated = await session.scalar(select(Host.updated_at).where(func.lower(Host.hostname) == func.lower(hostname)))
    if updated is None:
        raise NotFound(hostname, operation="resolve")
    return humanize_age((datetime.now(timezone.utc) - as_utc(updated)).total_seconds())


async def reverse_dns(session: AsyncSession, hostname: str) -> str:
    """PTR name of the host's first address, or "" when it has none."""
    host_id = await _host_id(session, hostname)
    address = await session.scalar(
        select(HostAddress.address).where(HostAddress.host_id == host_id).order_by(HostAddress.position).limit(1)
    )
    if address is None:
        return ""
    loop = asyncio.get_running_loop()
    try:
        name, _ = await loop.getnameinfo((address, 0), socket.NI_NAMEREQD)
    except OSError:
        # gaierror, herror and resolver timeouts all mean "no name"
        return ""
    return name


def fact(key: str) -> Resolver:
    """Resolver returning the metadata value stored under ``key`` ("" if unset)."""

    async def _fact(session: AsyncSession, hostname: str) -> str:
        host_id = await _host_id(session, hostname)
        value = await session.scalar(
            select(HostMetadata.value).where(HostMetadata.host_id == host_id, HostMetadata.key == key)
        )
        return value or ""

    return _fact


RESOLVERS: dict[str, Resolver] = {
    "addresses": address_count,
    "tags": tag_count,
    "updated": updated_age,
    "rdns": reverse_dns,
}


def get_resolver(name: str) -> Resolver:
    """Look up a report column: a name from RESOLVERS or ``fact:<key>``."""
    if name.startswith("fact:"):
        key = name[len("fact:"):]
        if not key:
            raise MalformedInput("report column 'fact:' needs a metadata key", operation="report")
        return fact(key)
    try:
        return RESOLVERS[name]
    except KeyError:
        known = ", ".join(sorted(RESOLVERS) + ["fact:<key>"])
        raise MalformedInput(f"unknown report column {name!r} (known: {known})", operation="report") from None
