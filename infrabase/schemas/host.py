"""Host Pydantic schemas."""

from __future__ import annotations

import ipaddress
from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator

from infrabase.models.host import Host

HOSTNAME_MAX = 253


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _check_hostname(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("hostname must not be empty")
    if len(value) > HOSTNAME_MAX:
        raise ValueError(f"hostname longer than {HOSTNAME_MAX} characters")
    if any(ch.isspace() for ch in value):
        raise ValueError("hostname must not contain whitespace")
    return value


def _check_label(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("labels must not be empty")
    return value


def _check_owner(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _check_metadata(value: dict[str, str]) -> dict[str, str]:
    return {_check_label(k): v for k, v in value.items()}


def _dedupe_addresses(addresses: list[Address]) -> list[Address]:
    seen: set[str] = set()
    result = []
    for addr in addresses:
        if addr.address not in seen:
            seen.add(addr.address)
            result.append(addr)
    return result


class Address(BaseModel):
    """One network address of a host."""
    address: str
    network: str | None = None
    ssh_port: int | None = Field(None, ge=1, le=65535)

    model_config = {"from_attributes": True, "frozen": True}

    @field_validator("address")
    @classmethod
    def _canonical(cls, value: str) -> str:
        try:
            return str(ipaddress.ip_address(value.strip()))
        except ValueError:
            raise ValueError(f"{value!r} is not an IP address") from None

    @field_validator("network")
    @classmethod
    def _network(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _check_label(value)


class HostCreate(BaseModel):
    """Fields accepted when adding a host."""
    hostname: Annotated[str, AfterValidator(_check_hostname)]
    owner: Annotated[str | None, AfterValidator(_check_owner)] = None
    addresses: list[Address] = []
    tags: set[str] = set()
    metadata: dict[str, str] = {}

    @field_validator("addresses")
    @classmethod
    def _addresses(cls, value: list[Address]) -> list[Address]:
        return _dedupe_addresses(value)

    @field_validator("tags")
    @classmethod
    def _tags(cls, value: set[str]) -> set[str]:
        return {_check_label(t) for t in value}

    @field_validator("metadata")
    @classmethod
    def _metadata(cls, value: dict[str, str]) -> dict[str, str]:
        return _check_metadata(value)


class HostPatch(BaseModel):
    """Editable fields for a host. Only fields explicitly set are applied.

    Whole-field replacements (``addresses``, ``tags``, ``metadata``) apply
    before the incremental edits (``add_tags``, ``set_metadata`` ...).
    """
    hostname: str | None = None
    owner: Annotated[str | None, AfterValidator(_check_owner)] = None
    addresses: list[Address] | None = None
    tags: set[str] | None = None
    add_tags: set[str] = set()
    remove_tags: set[str] = set()
    metadata: dict[str, str] | None = None
    set_metadata: dict[str, str] = {}
    unset_metadata: set[str] = set()

    @field_validator("hostname")
    @classmethod
    def _hostname(cls, value: str | None) -> str | None:
        if value is None:
            raise ValueError("hostname cannot be cleared")
        return _check_hostname(value)

    @field_validator("addresses")
    @classmethod
    def _addresses(cls, value: list[Address] | None) -> list[Address] | None:
        return None if value is None else _dedupe_addresses(value)

    @field_validator("tags", "add_tags", "remove_tags")
    @classmethod
    def _tags(cls, value: set[str] | None) -> set[str] | None:
        return None if value is None else {_check_label(t) for t in value}

    @field_validator("metadata", "set_metadata")
    @classmethod
    def _metadata(cls, value: dict[str, str] | None) -> dict[str, str] | None:
        return None if value is None else _check_metadata(value)

    @field_validator("unset_metadata")
    @classmethod
    def _unset_metadata(cls, value: set[str]) -> set[str]:
        return {_check_label(k) for k in value}

    @model_validator(mode="after")
    def _consistent(self) -> HostPatch:
        both = self.add_tags & self.remove_tags
        if both:
            raise ValueError(f"tags both added and removed: {', '.join(sorted(both))}")
        both = set(self.set_metadata) & self.unset_metadata
        if both:
            raise ValueError(f"metadata keys both set and unset: {', '.join(sorted(both))}")
        return self

    def is_empty(self) -> bool:
        return not self.model_fields_set


class HostRecord(BaseModel):
    """Host as returned by the repository and query engine."""
    hostname: str
    owner: str | None = None
    addresses: list[Address] = []
    tags: set[str] = set()
    metadata: dict[str, str] = {}
    created_at: datetime
    updated_at: datetime

    model_config = {"frozen": True}

    @classmethod
    def from_model(cls, host: Host) -> HostRecord:
        return cls(
            hostname=host.hostname,
            owner=host.owner,
            addresses=[Address.model_validate(a) for a in host.addresses],
            tags={t.name for t in host.tags},
            metadata={m.key: m.value for m in host.facts},
            created_at=as_utc(host.created_at),
            updated_at=as_utc(host.updated_at),
        )


class HostFilter(BaseModel):
    """Criteria for listing hosts. Every given criterion must match."""
    tags: set[str] = set()
    address_prefix: str | None = None
    network: str | None = None
    owner: str | None = None
    search: str | None = None
    metadata: list[str] = []   # "key" or "key=value"

    @field_validator("metadata")
    @classmethod
    def _metadata(cls, value: list[str]) -> list[str]:
        for item in value:
            if not item.partition("=")[0].strip():
                raise ValueError(f"metadata filter {item!r} has no key")
        return value

    def metadata_terms(self) -> list[tuple[str, str | None]]:
        terms = []
        for item in self.metadata:
            key, sep, val = item.partition("=")
            terms.append((key.strip(), val if sep else None))
        return terms
