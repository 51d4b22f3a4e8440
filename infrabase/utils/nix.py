"""Serialise plain Python values as Nix expressions."""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Mapping, Sequence

# Attribute names that need no quoting
_BARE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_'-]*$")
_KEYWORDS = {"assert", "else", "if", "in", "inherit", "let", "or", "rec", "then", "with"}


def nix_string(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("${", "\\${")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def nix_name(name: str) -> str:
    if _BARE_NAME.match(name) and name not in _KEYWORDS:
        return name
    return nix_string(name)


def _list_item(value, indent: int) -> str:
    # Unary minus is not a valid bare list element
    text = to_nix(value, indent)
    return f"({text})" if text.startswith("-") else text


def to_nix(value, indent: int = 0) -> str:
    pad = "  " * indent
    inner = "  " * (indent + 1)

    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return nix_string(str(value))
    if isinstance(value, str):
        return nix_string(value)
    if isinstance(value, Mapping):
        if not value:
            return "{ }"
        body = "".join(f"{inner}{nix_name(str(k))} = {to_nix(v, indent + 1)};\n" for k, v in value.items())
        return "{\n" + body + pad + "}"
    if isinstance(value, (Sequence, set, frozenset)):
        if not value:
            return "[ ]"
        body = "".join(f"{inner}{_list_item(v, indent + 1)}\n" for v in value)
        return "[\n" + body + pad + "]"
    raise TypeError(f"cannot express {type(value).__name__} in Nix")
