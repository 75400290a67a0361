"""Enumerate the candidate files of a directory.

Only regular files are candidates. Symbolic links are never followed, so a
full scan cannot loop through a linked directory. Problems with individual
entries are recorded on the run summary and the scan carries on; only a root
directory that cannot be listed stops it.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

from beartype import beartype
from loguru import logger

from .errors import ReadError, ScanError
from .models import FileEntry, Mode, RunSummary


@beartype
def validate_root(root: Path, writable: bool = True) -> Path:
    """Resolve *root* and make sure it is a directory the run can use."""
    try:
        root = root.expanduser().resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise ScanError(root, f"directory does not exist ({e})") from e

    if not root.is_dir():
        raise ScanError(root, "path is not a directory")

    if not os.access(root, os.R_OK | os.X_OK):
        raise ScanError(root, "directory is not readable")

    if writable and not os.access(root, os.W_OK):
        raise ScanError(root, "directory is not writable")

    return root


def _reason(e: OSError) -> str:
    return e.strerror or str(e)


@beartype
def scan(
    root: Path,
    mode: Mode,
    summary: RunSummary,
    exclude: frozenset[Path] = frozenset(),
) -> Iterator[FileEntry]:
    """Yield every regular file under *root* that *mode* reaches.

    Each directory's children are visited in name order. Directories in
    *exclude* are never entered.
    """
    stack = [root]
    while stack:
        directory = stack.pop()
        try:
            with os.scandir(directory) as it:
                children = sorted(it, key=lambda d: d.name)
        except OSError as e:
            if directory == root:
                raise ScanError(root, f"cannot list directory ({_reason(e)})") from e
            logger.warning(f"Cannot list {directory}: {_reason(e)}")
            summary.record(ReadError(Path(directory), f"cannot list directory ({_reason(e)})"))
            continue

        subdirs: list[Path] = []
        for child in children:
            path = Path(child.path)
            try:
                if child.is_symlink():
                    if not path.exists():
                        logger.warning(f"Skipping broken symbolic link {path}")
                        summary.record(ReadError(path, "broken symbolic link"))
                    else:
                        logger.debug(f"Skipping symbolic link {path}")
                    continue

                if child.is_dir(follow_symlinks=False):
                    if mode is Mode.full and path not in exclude:
                        subdirs.append(path)
                    continue

                if not child.is_file(follow_symlinks=False):
                    logger.debug(f"Skipping special file {path}")
                    continue

                size = child.stat(follow_symlinks=False).st_size
            except OSError as e:
                logger.warning(f"Skipping {path}: {_reason(e)}")
                summary.record(ReadError(path, _reason(e)))
                continue

            yield FileEntry(path=path, size=size, extension=path.suffix)

        # Depth-first, in name order
        stack.extend(reversed(subdirs))
