from __future__ import annotations

import hashlib
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from beartype import beartype
from loguru import logger

from .common import digest_from_name
from .errors import ReadError
from .models import FileEntry, RunSummary

CHUNK_SIZE = 1024 * 1024
DEFAULT_WORKERS = min(8, os.cpu_count() or 1)


@beartype
def compute_digest(path: Path) -> bytes:
    """Return the SHA-256 digest of a file's bytes, read in bounded chunks."""
    h = hashlib.sha256()
    try:
        with path.open("rb") as f:
            while chunk := f.read(CHUNK_SIZE):
                h.update(chunk)
    except OSError as e:
        raise ReadError(path, e.strerror or str(e)) from e
    return h.digest()


@beartype
def hash_entries(
    entries: list[FileEntry],
    summary: RunSummary,
    workers: int = DEFAULT_WORKERS,
    trust_names: bool = False,
) -> list[tuple[FileEntry, bytes]]:
    """Hash entries on a bounded thread pool. Returns pairs in input order.

    Unreadable files are recorded on *summary* and left out of the result.
    With *trust_names*, files already named after a digest are not read.
    """
    digests: dict[Path, bytes] = {}
    to_hash: list[FileEntry] = []
    for entry in entries:
        claimed = digest_from_name(entry.path) if trust_names else None
        if claimed is not None:
            digests[entry.path] = claimed
        else:
            to_hash.append(entry)

    if trust_names:
        logger.info(f"Trusting {len(digests)} digest-named files without hashing.")

    logger.info(f"Hashing {len(to_hash)} files with {workers} workers...")
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(compute_digest, entry.path): entry for entry in to_hash}
        for future in as_completed(futures):
            entry = futures[future]
            try:
                digests[entry.path] = future.result()
            except ReadError as e:
                logger.warning(f"Skipping unreadable file {entry.path}: {e.reason}")
                summary.record(e)
            else:
                logger.debug(f"Hashed {entry.path}")

    return [(entry, digests[entry.path]) for entry in entries if entry.path in digests]
