from __future__ import annotations

from pathlib import Path


class OrganiseError(Exception):
    """Base error, always tied to the path it happened on."""

    kind = "error"

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ScanError(OrganiseError):
    """The root directory cannot be used. Aborts the run before any mutation."""

    kind = "scan"


class ReadError(OrganiseError):
    kind = "read"


class NameConflict(OrganiseError):
    kind = "conflict"

    def __init__(self, path: Path, target: Path) -> None:
        super().__init__(path, f"{target.name} already exists, left unrenamed")
        self.target = target


class WriteError(OrganiseError):
    kind = "write"
