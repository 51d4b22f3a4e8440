"""
Inventory repository — the synchronous, transactional write path.

Every public method runs in exactly one transaction on its own Session:
either all of its rows are written or, on any failure, none are. Typed
errors (DuplicateKey, NotFound, ConnectionFailure) are raised after the
rollback has happened.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from infrabase.database import init_db
from infrabase.errors import ConnectionFailure, DuplicateKey, InventoryError, NotFound
from infrabase.models import Host, HostAddress, HostMetadata, HostTag, NetworkLink
from infrabase.schemas.host import Address, HostCreate, HostPatch, HostRecord, as_utc
from infrabase.utils.logging import get_logger

log = get_logger("repository")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _address_rows(addresses: list[Address]) -> list[HostAddress]:
    return [
        HostAddress(position=i, address=a.address, network=a.network, ssh_port=a.ssh_port)
        for i, a in enumerate(addresses)
    ]


class HostRepository:
    """CRUD for hosts (and network links) over a blocking session factory."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._sessions = session_factory

    # ── Plumbing ────────────────────────────────

    @contextmanager
    def _transaction(self, operation: str, hostname: str | None = None) -> Iterator[Session]:
        try:
            with self._sessions.begin() as session:
                yield session
        except InventoryError:
            raise
        except IntegrityError as exc:
            # The unique index catches adds/renames that raced past the pre-check
            log.warning("integrity_error", operation=operation, hostname=hostname, error=str(exc.orig))
            if hostname is None:
                raise InventoryError(f"conflicting concurrent write: {exc.orig}", operation=operation) from exc
            raise DuplicateKey(hostname, operation=operation) from exc
        except (OperationalError, InterfaceError, OSError) as exc:
            log.error("store_unreachable", operation=operation, hostname=hostname, error=str(exc))
            raise ConnectionFailure(f"cannot reach the inventory store: {exc}", hostname=hostname, operation=operation) from exc

    @staticmethod
    def _find(session: Session, hostname: str, lock: bool = False) -> Host | None:
        stmt = select(Host).where(func.lower(Host.hostname) == func.lower(hostname))
        if lock:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def create_schema(self) -> None:
        """Create missing tables (fresh installs; Alembic manages upgrades)."""
        with self._transaction("init-db") as session:
            init_db(session.connection())
        log.info("schema_created")

    # ── Hosts ───────────────────────────────────

    def add_host(self, data: HostCreate) -> HostRecord:
        """Insert a new host; DuplicateKey if the hostname is taken (case-insensitively)."""
        with self._transaction("add", data.hostname) as session:
            if self._find(session, data.hostname) is not None:
                raise DuplicateKey(data.hostname, operation="add")

            now = utcnow()
            host = Host(hostname=data.hostname, owner=data.owner, created_at=now, updated_at=now)
            host.addresses = _address_rows(data.addresses)
            host.tags = [HostTag(name=name) for name in sorted(data.tags)]
            host.facts = [HostMetadata(key=k, value=v) for k, v in data.metadata.items()]
            session.add(host)
            session.flush()
            record = HostRecord.from_model(host)

        log.info("host_added", hostname=record.hostname, addresses=len(record.addresses))
        return record

    def update_host(self, hostname: str, patch: HostPatch) -> HostRecord:
        """Apply the fields set on ``patch``; NotFound (and no write) if the host is absent."""
        with self._transaction("update", hostname) as session:
            host = self._find(session, hostname, lock=True)
            if host is None:
                raise NotFound(hostname, operation="update")

            fields = patch.model_fields_set
            if "hostname" in fields and patch.hostname != host.hostname:
                # A case-only rename is still the same host
                if patch.hostname.lower() != host.hostname.lower() and self._find(session, patch.hostname) is not None:
                    raise DuplicateKey(patch.hostname, operation="update")
                host.hostname = patch.hostname
            if "owner" in fields:
                host.owner = patch.owner
            if patch.addresses is not None:
                host.addresses = _address_rows(patch.addresses)

            self._apply_tags(host, patch)
            self._apply_metadata(host, patch)

            # Clock skew between processes must not make updated_at go backwards
            host.updated_at = max(utcnow(), as_utc(host.created_at), as_utc(host.updated_at))
            session.flush()
            record = HostRecord.from_model(host)

        log.info("host_updated", hostname=record.hostname, fields=sorted(fields))
        return record

    @staticmethod
    def _apply_tags(host: Host, patch: HostPatch) -> None:
        current = {t.name for t in host.tags}
        wanted = set(current) if patch.tags is None else set(patch.tags)
        wanted |= patch.add_tags
        wanted -= patch.remove_tags
        if wanted == current:
            return
        # Keep surviving rows so unchanged (host_id, name) keys are never re-inserted
        host.tags = [t for t in host.tags if t.name in wanted] + [
            HostTag(name=name) for name in sorted(wanted - current)
        ]

    @staticmethod
    def _apply_metadata(host: Host, patch: HostPatch) -> None:
        current = {m.key: m.value for m in host.facts}
        wanted = dict(current) if patch.metadata is None else dict(patch.metadata)
        wanted.update(patch.set_metadata)
        for key in patch.unset_metadata:
            wanted.pop(key, None)
        if wanted == current:
            return
        kept = []
        for fact in host.facts:
            if fact.key in wanted:
                fact.value = wanted[fact.key]
                kept.append(fact)
        host.facts = kept + [HostMetadata(key=k, value=v) for k, v in wanted.items() if k not in current]

    def remove_host(self, hostname: str) -> None:
        """Delete the host with its addresses, tags and metadata."""
        with self._transaction("remove", hostname) as session:
            host = self._find(session, hostname, lock=True)
            if host is None:
                raise NotFound(hostname, operation="remove")
            stored = host.hostname
            session.delete(host)
        log.info("host_removed", hostname=stored)

    def get_host(self, hostname: str) -> HostRecord:
        with self._transaction("get", hostname) as session:
            host = self._find(session, hostname)
            if host is None:
                raise NotFound(hostname, operation="get")
            return HostRecord.from_model(host)

    # ── Network links ───────────────────────────

    def set_network_link(self, network: str, other_network: str, priority: int = 0) -> None:
        """Record that ``network`` can reach ``other_network`` (upsert)."""
        with self._transaction("link") as session:
            link = session.get(NetworkLink, (network, other_network))
            if link is None:
                session.add(NetworkLink(network=network, other_network=other_network, priority=priority))
            else:
                link.priority = priority
        log.info("network_linked", network=network, other_network=other_network, priority=priority)

    def remove_network_link(self, network: str, other_network: str) -> None:
        with self._transaction("unlink") as session:
            link = session.get(NetworkLink, (network, other_network))
            if link is None:
                raise NotFound(f"{network} -> {other_network}", operation="unlink", what="network link")
            session.delete(link)
        log.info("network_unlinked", network=network, other_network=other_network)
