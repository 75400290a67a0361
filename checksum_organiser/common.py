from __future__ import annotations

import re
import shutil
from pathlib import Path

from beartype import beartype

# Stem of a file that is already named after its SHA-256 digest
DIGEST_STEM_RE = re.compile(r"^[0-9a-f]{64}$")


@beartype
def canonical_name(digest: bytes, extension: str) -> str:
    """Return the digest-derived file name, keeping the original extension."""
    return f"{digest.hex()}{extension}"


@beartype
def is_canonical(path: Path, digest: bytes) -> bool:
    return path.name == canonical_name(digest, path.suffix)


@beartype
def digest_from_name(path: Path) -> bytes | None:
    """Return the digest a file's name claims, or None if it isn't digest-named."""
    if not DIGEST_STEM_RE.match(path.stem):
        return None
    return bytes.fromhex(path.stem)


@beartype
def backup_file(file_path: Path, backup_dir: Path) -> Path:
    """Copies a file into the backup directory without overwriting earlier backups."""
    backup_file_path = backup_dir / file_path.name
    counter = 1
    while backup_file_path.exists():
        backup_file_path = backup_dir / f"{file_path.stem} ({counter}){file_path.suffix}"
        counter += 1
    shutil.copy2(file_path, backup_file_path)
    return backup_file_path
