"""Natural ("human") ordering of identifiers: host2 sorts before host10.

A string is split into maximal runs of digits and non-digits and compared run
by run. Digit runs compare by numeric value, and on equal value by their raw
text, so ``"v01"`` sorts before ``"v1"`` (and ``"v01b"`` before ``"v1a"``).
Non-digit runs compare case-insensitively first and by raw text second, so
``"A"`` sorts before ``"a"`` and both before ``"b"``. At the same position a
digit run sorts before a non-digit run, and a string sorts before any string
it is a prefix of.

Every run keeps its raw text in the key, so two keys are equal only for equal
strings: the order is total and safe to use with stable sorts.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")

_RUNS = re.compile(r"(\d+)|(\D+)", re.ASCII)

_DIGITS = 0
_TEXT = 1

NaturalKey = tuple[tuple[int, int, str, str], ...]


def natural_key(value: str) -> NaturalKey:
    key = []
    for digits, text in _RUNS.findall(value):
        if digits:
            # (length, text) of the zero-stripped run orders like int() without its size limit
            significant = digits.lstrip("0")
            key.append((_DIGITS, len(significant), significant, digits))
        else:
            key.append((_TEXT, 0, text.casefold(), text))
    return tuple(key)


def natural_cmp(a: str, b: str) -> int:
    """Three-way comparison: -1, 0 or 1."""
    ka, kb = natural_key(a), natural_key(b)
    return (ka > kb) - (ka < kb)


def natsorted(
    items: Iterable[T],
    key: Callable[[T], str] | None = None,
    reverse: bool = False,
) -> list[T]:
    """sorted() in natural order; ``key`` extracts the string to compare."""
    if key is None:
        return sorted(items, key=natural_key, reverse=reverse)  # type: ignore[arg-type]
    extract: Callable[[Any], str] = key
    return sorted(items, key=lambda item: natural_key(extract(item)), reverse=reverse)
