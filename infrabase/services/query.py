"""
Concurrent query engine — the asynchronous read path.

Bulk listings are a single query. Per-host lookups fan out as one task per
hostname, each on its own AsyncSession, bounded by a semaphore sized to the
connection pool so excess lookups queue instead of opening more connections.
Tasks only write to their own slot of the result mapping.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from infrabase.errors import ConnectionFailure, InventoryError, ResolveFailed, Timeout
from infrabase.models import Host, HostAddress, HostMetadata, HostTag, NetworkLink
from infrabase.schemas.host import HostFilter, HostRecord
from infrabase.utils.logging import get_logger

log = get_logger("query")

Resolver = Callable[[AsyncSession, str], Awaitable[Any]]

_UNREACHABLE = (OperationalError, InterfaceError, OSError)


@dataclass(frozen=True)
class InventorySnapshot:
    """Hosts visible to one listing query. Read-only."""
    hosts: tuple[HostRecord, ...]
    taken_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __iter__(self) -> Iterator[HostRecord]:
        return iter(self.hosts)

    def __len__(self) -> int:
        return len(self.hosts)

    def hostnames(self) -> list[str]:
        return [h.hostname for h in self.hosts]


@dataclass(frozen=True)
class Resolution:
    """Outcome of one per-host lookup: a value or a typed error."""
    hostname: str
    value: Any = None
    error: InventoryError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def apply_filter(stmt: Select, criteria: HostFilter) -> Select:
    for tag in sorted(criteria.tags):
        stmt = stmt.where(Host.tags.any(HostTag.name == tag))
    if criteria.address_prefix:
        stmt = stmt.where(Host.addresses.any(HostAddress.address.startswith(criteria.address_prefix, autoescape=True)))
    if criteria.network:
        stmt = stmt.where(Host.addresses.any(HostAddress.network == criteria.network))
    if criteria.owner:
        stmt = stmt.where(Host.owner == criteria.owner)
    if criteria.search:
        stmt = stmt.where(func.lower(Host.hostname).contains(criteria.search.lower(), autoescape=True))
    for key, value in criteria.metadata_terms():
        if value is None:
            stmt = stmt.where(Host.facts.any(HostMetadata.key == key))
        else:
            stmt = stmt.where(Host.facts.any((HostMetadata.key == key) & (HostMetadata.value == value)))
    return stmt


class QueryEngine:
    """Read-only access over an async session factory."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        concurrency: int = 10,
        timeout: float | None = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._sessions = session_factory
        self.concurrency = concurrency
        self.timeout = timeout

    async def list_hosts(self, criteria: HostFilter | None = None) -> InventorySnapshot:
        stmt = apply_filter(select(Host), criteria or HostFilter())
        try:
            async with self._sessions() as session:
                result = await session.execute(stmt)
                records = tuple(HostRecord.from_model(h) for h in result.scalars().unique().all())
        except _UNREACHABLE as exc:
            log.error("store_unreachable", operation="list", error=str(exc))
            raise ConnectionFailure(f"cannot reach the inventory store: {exc}", operation="list") from exc

        log.debug("hosts_listed", count=len(records))
        return InventorySnapshot(records)

    async def network_links(self) -> dict[tuple[str, str], int]:
        """Map of (network, other_network) -> priority."""
        try:
            async with self._sessions() as session:
                result = await session.execute(select(NetworkLink))
                return {(row.network, row.other_network): row.priority for row in result.scalars().all()}
        except _UNREACHABLE as exc:
            raise ConnectionFailure(f"cannot reach the inventory store: {exc}", operation="links") from exc

    async def _resolve_one(
        self,
        hostname: str,
        resolver: Resolver,
        semaphore: asyncio.Semaphore,
        results: dict[str, Resolution],
    ) -> None:
        async with semaphore:
            try:
                async with self._sessions() as session:
                    value = await resolver(session, hostname)
            except InventoryError as exc:
                results[hostname] = Resolution(hostname, error=exc)
            except _UNREACHABLE as exc:
                results[hostname] = Resolution(hostname, error=ConnectionFailure(
                    f"cannot reach the inventory store: {exc}", hostname=hostname, operation="resolve",
                ))
            except Exception as exc:
                results[hostname] = Resolution(hostname, error=ResolveFailed(hostname, exc, operation="resolve"))
            else:
                results[hostname] = Resolution(hostname, value=value)

    async def resolve_all(
        self,
        hostnames: Iterable[str],
        resolver: Resolver,
        timeout: float | None = None,
    ) -> dict[str, Resolution]:
        """Run ``resolver(session, hostname)`` for every distinct hostname concurrently.

        The result has exactly one entry per distinct hostname. Failures are
        captured per host; lookups still running when ``timeout`` expires are
        cancelled and reported as Timeout while finished ones are kept.
        """
        names = list(dict.fromkeys(hostnames))
        if not names:
            return {}
        timeout = self.timeout if timeout is None else timeout

        semaphore = asyncio.Semaphore(self.concurrency)
        results: dict[str, Resolution] = {}
        tasks = [asyncio.create_task(self._resolve_one(n, resolver, semaphore, results)) for n in names]

        done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            for task in pending:
                task.cancel()
            # Let cancelled lookups close their sessions before returning
            await asyncio.gather(*pending, return_exceptions=True)
            log.warning("resolve_timeout", timeout=timeout, pending=len(pending), completed=len(done))

        out = {}
        for name in names:
            res = results.get(name)
            out[name] = res if res is not None else Resolution(name, error=Timeout(name, timeout or 0, operation="resolve"))

        failed = sum(1 for r in out.values() if not r.ok)
        log.info("resolve_complete", total=len(out), failed=failed)
        return out
