"""Organise a directory by file content.

Usage:
    checksum-organiser --dir /path/to/dir                 # top-level files only
    checksum-organiser --dir /path/to/dir --mode full     # include subdirectories
    checksum-organiser --dir /path/to/dir --dry-run       # preview, change nothing

Every file is renamed to the hex SHA-256 digest of its content, keeping its
extension, and every other file with the same content is deleted. Of several
copies, the one already carrying its digest name survives; failing that, the
first one in path order does.

Example (shallow mode):
    a.jpg  b.jpg  c.jpg     (a and b identical)
becomes
    <digest of a>.jpg  <digest of c>.jpg

Running it again on the result changes nothing.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

import typer
from beartype import beartype
from loguru import logger

from .committer import commit
from .errors import ScanError
from .hasher import DEFAULT_WORKERS, hash_entries
from .logging_utils import setup_logging
from .models import Mode, RunSummary
from .resolver import duplicate_groups, resolve
from .scanner import scan, validate_root


@beartype
def organise(
    root: Path,
    mode: Mode = Mode.shallow,
    *,
    workers: int = DEFAULT_WORKERS,
    dry_run: bool = False,
    trust_names: bool = False,
    backup_dir: Path | None = None,
    preserve_mtime: bool = True,
) -> RunSummary:
    """Scan, hash, resolve and commit. Raises ScanError before touching anything."""
    root = validate_root(root, writable=not dry_run)
    summary = RunSummary(root=root, mode=mode, dry_run=dry_run)
    logger.info(f"Discovering files in {root} ({mode.value} mode)...")

    exclude: frozenset[Path] = frozenset()
    if backup_dir is not None:
        backup_dir = backup_dir.expanduser().resolve()
        if root.is_relative_to(backup_dir):
            raise ScanError(backup_dir, "backup directory must not be the directory being organised or contain it")
        exclude = frozenset({backup_dir})
        if not dry_run:
            try:
                backup_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ScanError(backup_dir, f"cannot create backup directory ({e.strerror or e})") from e

    start = time.perf_counter()
    entries = sorted(scan(root, mode, summary, exclude), key=lambda e: e.path)
    summary.scanned = len(entries)
    logger.info(f"Discovered {len(entries)} files in {time.perf_counter() - start:.2f}s.")
    if not entries:
        return summary

    hashed = hash_entries(entries, summary, workers=workers, trust_names=trust_names)
    groups = resolve(hashed)
    dups = duplicate_groups(groups)
    logger.info(
        f"Found {len(groups)} distinct contents, {len(dups)} of them duplicated "
        f"({sum(len(g.discards) for g in dups)} files to delete)."
    )

    commit(groups, summary, dry_run=dry_run, backup_dir=backup_dir, preserve_mtime=preserve_mtime)
    return summary


@beartype
def log_summary(summary: RunSummary) -> None:
    logger.info("=" * 50)
    logger.info("SUMMARY STATISTICS")
    logger.info("=" * 50)
    logger.info(f"Directory: {summary.root} ({summary.mode.value} mode)")
    logger.info(f"Files scanned: {summary.scanned}")
    logger.info(f"Files renamed: {summary.renamed}")
    logger.info(f"Files removed: {summary.deleted}")
    logger.info(f"Files already organised: {summary.unchanged}")
    logger.info(f"Files skipped: {summary.skipped}")
    logger.info(f"Errors: {summary.errors}")
    if summary.dry_run:
        logger.info("Mode: DRY RUN (nothing was changed)")
    logger.info("=" * 50)
    for failure in summary.failures:
        logger.warning(f"[{failure.kind}] {failure.path}: {failure.reason}")


app = typer.Typer()


@app.command()
def main(
    directory: Path = typer.Option(
        ...,
        "--dir",
        "-d",
        help="Directory to organise.",
    ),
    mode: Mode = typer.Option(
        Mode.shallow,
        "--mode",
        "-m",
        case_sensitive=False,
        help="shallow: top-level files only. full: descend into subdirectories.",
    ),
    workers: int = typer.Option(
        DEFAULT_WORKERS,
        "--workers",
        "-w",
        min=1,
        help="Number of files hashed in parallel.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Only report what would be renamed and deleted.",
    ),
    trust_names: bool = typer.Option(
        False,
        "--trust-names",
        help="Don't re-hash files that are already named after a SHA-256 digest.",
    ),
    backup_dir: Optional[Path] = typer.Option(
        None,
        "--backup-dir",
        file_okay=False,
        help="Copy every duplicate here before deleting it.",
    ),
    preserve_mtime: bool = typer.Option(
        True,
        "--preserve-mtime/--no-preserve-mtime",
        help="Give the kept file the newest modification time of its deleted duplicates.",
    ),
    log_dir: Path = typer.Option(
        Path("logs"),
        "--log-dir",
        file_okay=False,
        help="Where to write the debug log.",
    ),
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Console log level (DEBUG, INFO, WARNING, ...). The log file always gets DEBUG.",
    ),
):
    """Rename files to their content hash and remove duplicates."""
    try:
        setup_logging("organise", log_dir, log_level.upper())
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level")
    if dry_run:
        logger.info("Running in dry-run mode. No files will be modified.")

    try:
        summary = organise(
            directory,
            mode,
            workers=workers,
            dry_run=dry_run,
            trust_names=trust_names,
            backup_dir=backup_dir,
            preserve_mtime=preserve_mtime,
        )
    except ScanError as e:
        logger.error(f"Failed to organise directory: {e}")
        raise typer.Exit(1)

    log_summary(summary)
    logger.info("Organising finished.")


if __name__ == "__main__":
    app()
