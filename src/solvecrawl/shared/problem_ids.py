"""Problem id helpers.

A problem id is a category prefix made of letters followed by an ordinal
suffix, e.g. ``P1001``, ``CF1234A`` or ``UVA100``. Suffixes are compared
as strings after left-padding the shorter one with zeros, so ids of any
length order the same way the judge lists them.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from solvecrawl.shared.errors import DomainError, ErrorCode, ErrorContext

_PID_PATTERN = re.compile(r"^([A-Za-z]+)(.+)$")


def split_pid(pid: str) -> tuple[str, str]:
    """Split a problem id into ``(category, suffix)``.

    Raises:
        DomainError: If the id has no letter prefix or no suffix
    """
    match = _PID_PATTERN.match(pid)
    if match is None:
        raise DomainError(
            ErrorCode.VALIDATION_ERROR,
            f"Malformed problem id: {pid!r}",
            ErrorContext(operation="split_pid", additional_data={"pid": pid}),
        )
    return match.group(1), match.group(2)


def category_of(pid: str) -> str:
    return split_pid(pid)[0]


def suffix_of(pid: str) -> str:
    return split_pid(pid)[1]


def compare_suffix(a: str, b: str) -> int:
    """Compare two suffixes as equal-length zero-padded strings.

    Returns:
        Negative if ``a`` sorts first, zero if equal, positive otherwise
    """
    width = max(len(a), len(b))
    left, right = a.zfill(width), b.zfill(width)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def suffix_key(pid: str, width: int) -> str:
    """Sort key for ids of one category, padded to ``width``."""
    return suffix_of(pid).zfill(width)


def sort_pids(pids: Iterable[str]) -> list[str]:
    """Return ids of a single category in listing order."""
    pids = list(pids)
    if not pids:
        return []
    width = max(len(suffix_of(pid)) for pid in pids)
    return sorted(pids, key=lambda pid: suffix_key(pid, width))


def group_by_category(pids: Iterable[str]) -> dict[str, list[str]]:
    """Group ids by category, keeping first-seen category order.

    Malformed ids are grouped under an empty category so the caller can
    still fall back to fetching them one by one.
    """
    groups: dict[str, list[str]] = {}
    for pid in pids:
        try:
            category = category_of(pid)
        except DomainError:
            category = ""
        groups.setdefault(category, []).append(pid)
    return groups
