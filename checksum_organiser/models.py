from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .common import canonical_name
from .errors import OrganiseError, ReadError


class Mode(str, Enum):
    shallow = "shallow"
    full = "full"


@dataclass(frozen=True)
class FileEntry:
    path: Path
    size: int
    extension: str

    @property
    def name(self) -> str:
        return self.path.name


@dataclass
class DuplicateGroup:
    """One distinct content: the file that survives and the copies to delete."""

    digest: bytes
    keeper: FileEntry
    discards: list[FileEntry] = field(default_factory=list)

    @property
    def canonical_name(self) -> str:
        return canonical_name(self.digest, self.keeper.extension)

    @property
    def canonical_path(self) -> Path:
        return self.keeper.path.with_name(self.canonical_name)

    @property
    def needs_rename(self) -> bool:
        return self.keeper.path != self.canonical_path


@dataclass
class RunSummary:
    root: Path
    mode: Mode
    dry_run: bool = False
    scanned: int = 0
    renamed: int = 0
    deleted: int = 0
    unchanged: int = 0
    failures: list[OrganiseError] = field(default_factory=list)

    def record(self, error: OrganiseError) -> None:
        self.failures.append(error)

    @property
    def skipped(self) -> int:
        return sum(1 for f in self.failures if isinstance(f, ReadError))

    @property
    def errors(self) -> int:
        return len(self.failures) - self.skipped
