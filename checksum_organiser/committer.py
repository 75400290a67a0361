"""Apply resolution decisions to the filesystem.

Keepers are renamed first, then discards are deleted, and a discard is only
deleted once its keeper has been found on disk. A run is not transactional:
if it is interrupted, some keepers may be renamed and others not, but no
content ever loses its last copy.
"""

from __future__ import annotations

import errno
import os
from pathlib import Path

from beartype import beartype
from loguru import logger

from .common import backup_file
from .errors import NameConflict, WriteError
from .models import DuplicateGroup, RunSummary

# link() failures meaning the filesystem can't hard-link, not that the move is wrong
NO_HARD_LINKS = {errno.EPERM, errno.EXDEV, errno.EMLINK, errno.ENOTSUP, errno.EOPNOTSUPP}


def _reason(e: OSError) -> str:
    return e.strerror or str(e)


@beartype
def move_no_clobber(source: Path, target: Path) -> None:
    """Move *source* to *target*, raising FileExistsError rather than overwriting."""
    try:
        os.link(source, target)
    except FileExistsError:
        raise
    except OSError as e:
        if e.errno not in NO_HARD_LINKS:
            raise
        if os.path.lexists(target):
            raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), str(target)) from e
        source.rename(target)
        return

    try:
        source.unlink()
    except OSError:
        target.unlink()
        raise


class Committer:
    def __init__(
        self,
        groups: list[DuplicateGroup],
        summary: RunSummary,
        dry_run: bool = False,
        backup_dir: Path | None = None,
        preserve_mtime: bool = True,
    ) -> None:
        self.groups = groups
        self.summary = summary
        self.dry_run = dry_run
        self.backup_dir = backup_dir
        self.preserve_mtime = preserve_mtime
        # Current location of each group's keeper
        self.locations: dict[bytes, Path] = {g.digest: g.keeper.path for g in groups}
        # Paths this run still intends to move away or delete
        self.in_flight: set[Path] = {g.keeper.path for g in groups if g.needs_rename}
        self.in_flight.update(d.path for g in groups for d in g.discards)
        # Paths this run has already emptied (for real or, in a dry run, on paper)
        self.vacated: set[Path] = set()

    def run(self) -> None:
        pending = [g for g in self.groups if g.needs_rename]
        self.summary.unchanged += len(self.groups) - len(pending)

        pending = self.rename_all(pending)
        for group in self.groups:
            self.delete_discards(group)
        # Targets held by deleted duplicates are free now
        pending = self.rename_all(pending)
        while pending and self.break_cycle(pending):
            pending = self.rename_all(pending)

        for group in pending:
            self.conflict(group)

    def vacate(self, path: Path) -> None:
        self.in_flight.discard(path)
        self.vacated.add(path)

    def occupied(self, path: Path) -> bool:
        return path not in self.vacated and os.path.lexists(path)

    def conflict(self, group: DuplicateGroup) -> None:
        source, target = self.locations[group.digest], group.canonical_path
        logger.warning(f"Skipping rename of {source} -> {target.name}: destination exists.")
        self.summary.record(NameConflict(source, target))

    def rename_all(self, pending: list[DuplicateGroup]) -> list[DuplicateGroup]:
        """Rename keepers until no more progress is possible. Returns the deferred ones."""
        progress = True
        while pending and progress:
            progress = False
            deferred: list[DuplicateGroup] = []
            for group in pending:
                target = group.canonical_path
                if target in self.in_flight:
                    deferred.append(group)
                elif self.occupied(target):
                    self.conflict(group)
                else:
                    self.rename(group)
                    progress = True
            pending = deferred
        return pending

    def break_cycle(self, pending: list[DuplicateGroup]) -> bool:
        """Park one keeper of a rename cycle under a temporary name.

        Keepers form a cycle when each one's target is the current name of the
        next, e.g. two files named after each other's digest.
        """
        holders = {self.locations[g.digest]: g for g in pending}
        for group in pending:
            seen: set[bytes] = set()
            current: DuplicateGroup | None = group
            while current is not None and current.digest not in seen:
                seen.add(current.digest)
                current = holders.get(current.canonical_path)
            if current is group:
                return self.park(group)
        return False

    def park(self, group: DuplicateGroup) -> bool:
        source = self.locations[group.digest]
        counter = 0
        temporary = source.with_name(f".{source.name}.organising")
        while self.occupied(temporary):
            counter += 1
            temporary = source.with_name(f".{source.name}.organising{counter}")

        if self.dry_run:
            logger.info(f"- Would move {source.name} aside to {temporary.name}")
        else:
            try:
                move_no_clobber(source, temporary)
            except OSError as e:
                logger.error(f"Failed to move {source} aside: {_reason(e)}")
                return False
            logger.debug(f"Moved {source.name} aside to {temporary.name}")

        self.vacate(source)
        self.locations[group.digest] = temporary
        return True

    def rename(self, group: DuplicateGroup) -> None:
        source, target = self.locations[group.digest], group.canonical_path
        if self.dry_run:
            logger.info(f"- Would rename: {source.name} -> {target.name}")
        else:
            try:
                move_no_clobber(source, target)
            except FileExistsError:
                # Appeared after the occupancy check
                self.conflict(group)
                return
            except OSError as e:
                logger.error(f"Failed to rename {source} -> {target.name}: {_reason(e)}")
                self.summary.record(WriteError(source, f"rename to {target.name} failed ({_reason(e)})"))
                return
            logger.info(f"Renamed {source.name} -> {target.name}")

        self.vacate(source)
        self.locations[group.digest] = target
        self.summary.renamed += 1

    def delete_discards(self, group: DuplicateGroup) -> None:
        if not group.discards:
            return

        keeper_path = self.locations[group.digest]
        if not self.dry_run and not keeper_path.is_file():
            logger.error(f"Kept copy {keeper_path} is missing; keeping its duplicates.")
            for discard in group.discards:
                self.summary.record(
                    WriteError(discard.path, f"kept copy {keeper_path} could not be confirmed, not deleted")
                )
            return

        newest: int | None = None
        for discard in group.discards:
            if self.dry_run:
                logger.info(f"- Would delete: {discard.path}")
            else:
                try:
                    mtime = discard.path.stat().st_mtime_ns
                    if self.backup_dir is not None:
                        backup_path = backup_file(discard.path, self.backup_dir)
                        logger.debug(f"Backed up {discard.path} to {backup_path}")
                    discard.path.unlink()
                except OSError as e:
                    logger.error(f"Failed to delete {discard.path}: {_reason(e)}")
                    self.summary.record(WriteError(discard.path, f"delete failed ({_reason(e)})"))
                    continue
                logger.info(f"Deleted {discard.path} (duplicate of {keeper_path.name})")
                newest = mtime if newest is None else max(newest, mtime)

            self.vacate(discard.path)
            self.summary.deleted += 1

        if self.preserve_mtime and newest is not None:
            self.touch(keeper_path, newest)

    def touch(self, path: Path, mtime_ns: int) -> None:
        """Carry the newest duplicate's modification time over to the kept copy."""
        try:
            stat = path.stat()
            if mtime_ns > stat.st_mtime_ns:
                os.utime(path, ns=(stat.st_atime_ns, mtime_ns))
        except OSError as e:
            logger.error(f"Failed to update modification time of {path}: {_reason(e)}")
            self.summary.record(WriteError(path, f"cannot update modification time ({_reason(e)})"))


@beartype
def commit(
    groups: list[DuplicateGroup],
    summary: RunSummary,
    dry_run: bool = False,
    backup_dir: Path | None = None,
    preserve_mtime: bool = True,
) -> None:
    """Rename keepers to their canonical names and delete their duplicates."""
    Committer(groups, summary, dry_run, backup_dir, preserve_mtime).run()
