"""Decide which file survives for every distinct content.

The keeper of a group is the file already carrying its canonical name, if
there is one, otherwise the first file in scan order. Everything else in the
group is discarded. Scan order is sorted by path, so the same directory state
always keeps the same file.
"""

from __future__ import annotations

from beartype import beartype

from .common import is_canonical
from .models import DuplicateGroup, FileEntry


@beartype
def resolve(hashed: list[tuple[FileEntry, bytes]]) -> list[DuplicateGroup]:
    """Group (entry, digest) pairs by digest and pick one keeper per group."""
    buckets: dict[bytes, list[FileEntry]] = {}
    for entry, digest in hashed:
        buckets.setdefault(digest, []).append(entry)

    groups: list[DuplicateGroup] = []
    for digest, entries in buckets.items():
        keeper = next((e for e in entries if is_canonical(e.path, digest)), entries[0])
        discards = [e for e in entries if e is not keeper]
        groups.append(DuplicateGroup(digest=digest, keeper=keeper, discards=discards))
    return groups


@beartype
def duplicate_groups(groups: list[DuplicateGroup]) -> list[DuplicateGroup]:
    """Only the groups that have something to delete."""
    return [g for g in groups if g.discards]
