"""
Command-line entry point: ``infrabase <command> ...``

Exit status is 0 on success, 1 when the inventory reports an error (the
message goes to stderr) and 2 for usage errors.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import ValidationError
from sqlalchemy import Engine
from sqlalchemy.ext.asyncio import AsyncEngine

from infrabase.config import Settings, load_settings
from infrabase.database import make_async_engine, make_async_session_factory, make_session_factory, make_sync_engine
from infrabase.errors import InventoryError
from infrabase.services.inventory import EXPORT_FORMATS, InventoryService, render_record
from infrabase.services.query import QueryEngine
from infrabase.services.repository import HostRepository
from infrabase.services.resolvers import RESOLVERS
from infrabase.utils.logging import configure_logging, get_logger, level_for

log = get_logger("cli")

T = TypeVar("T")

ADDRESS_KEYS = ("network", "ssh_port")


@dataclass
class Runtime:
    """The service plus the engines it runs on, when this process owns them."""
    service: InventoryService
    engine: Engine | None = None
    async_engine: AsyncEngine | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> Runtime:
        engine = make_sync_engine(settings)
        async_engine = make_async_engine(settings)
        service = InventoryService(
            HostRepository(make_session_factory(engine)),
            QueryEngine(
                make_async_session_factory(async_engine),
                concurrency=settings.db_pool_size,
                timeout=settings.resolve_timeout,
            ),
        )
        return cls(service, engine, async_engine)

    def run(self, coro: Awaitable[T]) -> T:
        async def _main() -> T:
            try:
                return await coro
            finally:
                if self.async_engine is not None:
                    await self.async_engine.dispose()
        return asyncio.run(_main())

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()


# ── Argument types ──────────────────────────────

def address_spec(text: str) -> dict[str, Any]:
    """``ADDR[,network=NET][,ssh_port=N]`` -> Address fields."""
    address, *options = text.split(",")
    spec: dict[str, Any] = {"address": address.strip()}
    for option in options:
        key, sep, value = option.partition("=")
        key = key.strip()
        if not sep or key not in ADDRESS_KEYS:
            raise argparse.ArgumentTypeError(
                f"bad address option {option!r}; expected one of {', '.join(k + '=...' for k in ADDRESS_KEYS)}"
            )
        spec[key] = value.strip()
    return spec


def key_value(text: str) -> tuple[str, str]:
    key, sep, value = text.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {text!r}")
    return key.strip(), value


# ── Commands ────────────────────────────────────

def _criteria(args: argparse.Namespace) -> dict[str, Any]:
    criteria: dict[str, Any] = {
        "tags": args.tag or [],
        "metadata": args.meta or [],
    }
    for field in ("address_prefix", "network", "owner", "search"):
        value = getattr(args, field)
        if value is not None:
            criteria[field] = value
    return criteria


def cmd_init_db(rt: Runtime, args: argparse.Namespace) -> str:
    rt.service.repository.create_schema()
    return "schema ready\n"


def cmd_add(rt: Runtime, args: argparse.Namespace) -> str:
    record = rt.service.add({
        "hostname": args.hostname,
        "owner": args.owner,
        "addresses": args.address or [],
        "tags": args.tag or [],
        "metadata": dict(args.meta or []),
    })
    return render_record(record)


def cmd_update(rt: Runtime, args: argparse.Namespace) -> str:
    patch: dict[str, Any] = {}
    if args.rename is not None:
        patch["hostname"] = args.rename
    if args.clear_owner:
        patch["owner"] = None
    elif args.owner is not None:
        patch["owner"] = args.owner
    if args.clear_addresses:
        patch["addresses"] = []
    elif args.address:
        patch["addresses"] = args.address
    if args.tag:
        patch["add_tags"] = args.tag
    if args.untag:
        patch["remove_tags"] = args.untag
    if args.meta:
        patch["set_metadata"] = dict(args.meta)
    if args.unset_meta:
        patch["unset_metadata"] = args.unset_meta
    return render_record(rt.service.update(args.hostname, patch))


def cmd_remove(rt: Runtime, args: argparse.Namespace) -> str:
    rt.service.remove(args.hostname)
    return ""


def cmd_show(rt: Runtime, args: argparse.Namespace) -> str:
    return rt.service.show(args.hostname)


def cmd_list(rt: Runtime, args: argparse.Namespace) -> str:
    return rt.run(rt.service.list_sorted(_criteria(args)))


def cmd_report(rt: Runtime, args: argparse.Namespace) -> str:
    return rt.run(rt.service.report(_criteria(args), args.column, timeout=args.timeout))


def cmd_export(rt: Runtime, args: argparse.Namespace) -> str:
    return rt.run(rt.service.export(_criteria(args), fmt=args.format))


def cmd_ssh_config(rt: Runtime, args: argparse.Namespace) -> str:
    return rt.run(rt.service.ssh_config(args.machine))


def cmd_link(rt: Runtime, args: argparse.Namespace) -> str:
    rt.service.link(args.network, args.other_network, args.priority)
    return ""


def cmd_unlink(rt: Runtime, args: argparse.Namespace) -> str:
    rt.service.unlink(args.network, args.other_network)
    return ""


# ── Parser ──────────────────────────────────────

def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("filters")
    group.add_argument("--tag", action="append", metavar="TAG",
            help="Only hosts carrying this tag (repeatable, all must match)")
    group.add_argument("--address-prefix", metavar="PREFIX",
            help="Only hosts with an address starting with PREFIX")
    group.add_argument("--network", metavar="NET",
            help="Only hosts with an address on network NET")
    group.add_argument("--owner", help="Only hosts owned by OWNER")
    group.add_argument("--search", metavar="TEXT",
            help="Only hosts whose name contains TEXT (case-insensitive)")
    group.add_argument("--meta", action="append", metavar="KEY[=VALUE]",
            help="Only hosts with this metadata key (and value); repeatable")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="infrabase", description="the machine inventory system")
    parser.add_argument("-v", "--verbose", dest="verbose", action="count", default=0,
            help="Increase logging verbosity. Can be given multiple times.")
    sub = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    p = sub.add_parser("init-db", help="Create the inventory tables")
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser("add", help="Add a host")
    p.add_argument("hostname")
    p.add_argument("--owner")
    p.add_argument("--address", action="append", type=address_spec, metavar="ADDR[,network=NET][,ssh_port=N]",
            help="Network address (repeatable, order is kept)")
    p.add_argument("--tag", action="append", help="Tag (repeatable)")
    p.add_argument("--meta", action="append", type=key_value, metavar="KEY=VALUE", help="Metadata (repeatable)")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("update", help="Change an existing host")
    p.add_argument("hostname")
    p.add_argument("--rename", metavar="NEW_HOSTNAME")
    owner = p.add_mutually_exclusive_group()
    owner.add_argument("--owner")
    owner.add_argument("--clear-owner", action="store_true")
    addresses = p.add_mutually_exclusive_group()
    addresses.add_argument("--address", action="append", type=address_spec, metavar="ADDR[,network=NET][,ssh_port=N]",
            help="Replace the address list with these (repeatable)")
    addresses.add_argument("--clear-addresses", action="store_true")
    p.add_argument("--tag", action="append", help="Add a tag (repeatable)")
    p.add_argument("--untag", action="append", metavar="TAG", help="Remove a tag (repeatable)")
    p.add_argument("--meta", action="append", type=key_value, metavar="KEY=VALUE", help="Set metadata (repeatable)")
    p.add_argument("--unset-meta", action="append", metavar="KEY", help="Remove a metadata key (repeatable)")
    p.set_defaults(func=cmd_update)

    p = sub.add_parser("remove", help="Remove a host and everything attached to it")
    p.add_argument("hostname")
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("show", help="Show one host")
    p.add_argument("hostname")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("list", help="List hosts in natural order")
    _add_filter_args(p)
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("report", help="List hosts with per-host resolved columns")
    _add_filter_args(p)
    p.add_argument("--column", "-c", action="append", default=[], metavar="COLUMN",
            help=f"One of {', '.join(sorted(RESOLVERS))} or fact:KEY (repeatable)")
    p.add_argument("--timeout", type=float, default=None,
            help="Seconds to wait for all lookups (default: RESOLVE_TIMEOUT)")
    p.set_defaults(func=cmd_report)

    p = sub.add_parser("export", help="Dump hosts as JSON or a Nix attribute set")
    _add_filter_args(p)
    p.add_argument("--format", choices=EXPORT_FORMATS, default="json")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("ssh-config", help="Print an ~/.ssh/config that lists all machines")
    p.add_argument("--for", dest="machine", required=True, metavar="MACHINE",
            help="Machine to generate SSH config for")
    p.set_defaults(func=cmd_ssh_config)

    p = sub.add_parser("link", help="Declare that NETWORK can reach OTHER_NETWORK")
    p.add_argument("network")
    p.add_argument("other_network")
    p.add_argument("--priority", type=int, default=0, help="Lower is preferred (default: 0)")
    p.set_defaults(func=cmd_link)

    p = sub.add_parser("unlink", help="Remove a network link")
    p.add_argument("network")
    p.add_argument("other_network")
    p.set_defaults(func=cmd_unlink)

    return parser


def main(argv: list[str] | None = None, runtime: Runtime | None = None) -> int:
    args = build_parser().parse_args(argv)

    owned = runtime is None
    if owned:
        try:
            settings = load_settings()
        except ValidationError as exc:
            print(f"error: invalid configuration:\n{exc}", file=sys.stderr)
            return 1
        configure_logging(level_for(settings.log_level, args.verbose), settings.log_format)
        runtime = Runtime.from_settings(settings)

    command: Callable[[Runtime, argparse.Namespace], str] = args.func
    try:
        output = command(runtime, args)
    except InventoryError as exc:
        log.debug("command_failed", command=args.command, error=str(exc), kind=exc.kind)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        if owned:
            runtime.close()

    if output:
        sys.stdout.write(output)
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
