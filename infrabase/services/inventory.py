"""
Inventory service — the operations the CLI dispatches.

Writes go straight to the synchronous repository. Listings and reports read
through the asynchronous query engine, are put in natural hostname order, and
come back as rendered text. Typed errors from either side propagate unchanged.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

import orjson
from pydantic import BaseModel, ValidationError

from infrabase.errors import MalformedInput, NotFound
from infrabase.schemas.host import HostCreate, HostFilter, HostPatch, HostRecord
from infrabase.services.query import QueryEngine, Resolution
from infrabase.services.repository import HostRepository
from infrabase.services.resolvers import get_resolver
from infrabase.services.ssh_config import render_ssh_config
from infrabase.utils.logging import get_logger
from infrabase.utils.natsort import natsorted
from infrabase.utils.nix import to_nix
from infrabase.utils.tabular import RIGHT, render_table

log = get_logger("inventory")

M = TypeVar("M", bound=BaseModel)

LIST_HEADER = ["HOSTNAME", "OWNER", "ADDRESSES", "TAGS", "UPDATED"]
EXPORT_FORMATS = ("json", "nix")


def validate(model: type[M], data: M | Mapping[str, Any] | None, operation: str) -> M:
    """Turn caller input into ``model``; MalformedInput on validation failure."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data or {})
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}" for err in exc.errors()
        )
        raise MalformedInput(problems, operation=operation) from exc


def format_timestamp(record: HostRecord) -> str:
    return record.updated_at.strftime("%Y-%m-%d %H:%M")


def host_row(record: HostRecord) -> list[str]:
    return [
        record.hostname,
        record.owner or "-",
        ",".join(a.address for a in record.addresses) or "-",
        ",".join(natsorted(record.tags)) or "-",
        format_timestamp(record),
    ]


def export_dict(record: HostRecord) -> dict[str, Any]:
    return {
        "hostname": record.hostname,
        "owner": record.owner,
        "addresses": [a.model_dump() for a in record.addresses],
        "tags": natsorted(record.tags),
        "metadata": {k: record.metadata[k] for k in natsorted(record.metadata)},
        "created_at": record.created_at.isoformat(),
        "updated_at": record.updated_at.isoformat(),
    }


def render_record(record: HostRecord) -> str:
    """Two-column detail view of one host."""
    rows = [["hostname", record.hostname], ["owner", record.owner or "-"]]
    for address in record.addresses:
        details = [d for d in (address.network, f"ssh {address.ssh_port}" if address.ssh_port else None) if d]
        rows.append(["address", address.address + (f" ({', '.join(details)})" if details else "")])
    rows.append(["tags", ", ".join(natsorted(record.tags)) or "-"])
    for key in natsorted(record.metadata):
        rows.append([f"meta.{key}", record.metadata[key]])
    rows.append(["created", record.created_at.isoformat(timespec="seconds")])
    rows.append(["updated", record.updated_at.isoformat(timespec="seconds")])
    return render_table(rows)


def resolution_cell(res: Resolution) -> str:
    if res.ok:
        return "" if res.value is None else str(res.value)
    return f"!{res.error.kind}"


class InventoryService:
    def __init__(self, repository: HostRepository, query: QueryEngine):
        self.repository = repository
        self.query = query

    # ── Write path ──────────────────────────────

    def add(self, data: HostCreate | Mapping[str, Any]) -> HostRecord:
        return self.repository.add_host(validate(HostCreate, data, "add"))

    def update(self, hostname: str, patch: HostPatch | Mapping[str, Any]) -> HostRecord:
        patch = validate(HostPatch, patch, "update")
        if patch.is_empty():
            raise MalformedInput("nothing to update", hostname=hostname, operation="update")
        return self.repository.update_host(hostname, patch)

    def remove(self, hostname: str) -> None:
        self.repository.remove_host(hostname)

    def get(self, hostname: str) -> HostRecord:
        return self.repository.get_host(hostname)

    def show(self, hostname: str) -> str:
        return render_record(self.repository.get_host(hostname))

    def link(self, network: str, other_network: str, priority: int = 0) -> None:
        if not network.strip() or not other_network.strip():
            raise MalformedInput("network names must not be empty", operation="link")
        self.repository.set_network_link(network.strip(), other_network.strip(), priority)

    def unlink(self, network: str, other_network: str) -> None:
        self.repository.remove_network_link(network, other_network)

    # ── Read path ───────────────────────────────

    async def sorted_hosts(self, criteria: HostFilter | Mapping[str, Any] | None = None) -> list[HostRecord]:
        snapshot = await self.query.list_hosts(validate(HostFilter, criteria, "list"))
        return natsorted(snapshot, key=lambda h: h.hostname)

    async def list_sorted(self, criteria: HostFilter | Mapping[str, Any] | None = None) -> str:
        hosts = await self.sorted_hosts(criteria)
        return render_table((host_row(h) for h in hosts), header=LIST_HEADER)

    async def report(
        self,
        criteria: HostFilter | Mapping[str, Any] | None = None,
        columns: Sequence[str] = (),
        timeout: float | None = None,
    ) -> str:
        """Hostnames plus one resolved column per entry of ``columns``.

        ``timeout`` bounds the whole report; columns still unresolved when it
        runs out show ``!timeout``.
        """
        resolvers = [(name, get_resolver(name)) for name in columns]
        hosts = await self.sorted_hosts(criteria)
        names = [h.hostname for h in hosts]

        timeout = self.query.timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        resolved: list[dict[str, Resolution]] = []
        for name, resolver in resolvers:
            remaining = None if deadline is None else max(deadline - loop.time(), 0)
            resolved.append(await self.query.resolve_all(names, resolver, timeout=remaining))

        rows = [[h] + [resolution_cell(col[h]) for col in resolved] for h in names]
        align = {}
        for i, col in enumerate(resolved, start=1):
            values = [r.value for r in col.values() if r.ok]
            if values and all(isinstance(v, int) for v in values):
                align[i] = RIGHT
        header = ["HOSTNAME"] + [name.upper() for name, _ in resolvers]
        return render_table(rows, header=header, align=align)

    async def export(self, criteria: HostFilter | Mapping[str, Any] | None = None, fmt: str = "json") -> str:
        if fmt not in EXPORT_FORMATS:
            raise MalformedInput(f"unknown export format {fmt!r}", operation="export")
        hosts = [export_dict(h) for h in await self.sorted_hosts(criteria)]
        if fmt == "json":
            return orjson.dumps(hosts, option=orjson.OPT_INDENT_2).decode() + "\n"
        attrs = {h["hostname"]: {k: v for k, v in h.items() if k != "hostname"} for h in hosts}
        return to_nix(attrs) + "\n"

    async def ssh_config(self, for_hostname: str) -> str:
        hosts = await self.sorted_hosts()
        source = next((h for h in hosts if h.hostname.lower() == for_hostname.lower()), None)
        if source is None:
            raise NotFound(for_hostname, operation="ssh-config", what="source machine")
        links = await self.query.network_links()
        log.debug("ssh_config_rendered", source=source.hostname, hosts=len(hosts), links=len(links))
        return render_ssh_config(source, hosts, links)
