"""Database sync pipeline between two environments.

Fixed order per run:
  preflight -> backup destination -> export source -> transfer ->
  import at destination -> rewrite URLs -> clean up -> done

Each step returns a bool; the first False moves the run to FAILED and no
later step executes. Backups are never removed. Snapshots are removed only
after a fully successful run, so a failed run leaves them for inspection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from modules import remote
from modules.environments import Environment, url_mapping
from modules.snapshot import Snapshot, new_backup, new_snapshot, relocate
from modules.utils import log, status_fail, status_pass
from modules.wordpress import db


class SyncState(str, Enum):
    IDLE = "idle"
    BACKING_UP_DEST = "backing_up_dest"
    EXPORTING_SOURCE = "exporting_source"
    TRANSFERRING = "transferring"
    IMPORTING = "importing"
    REWRITING_URLS = "rewriting_urls"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


class WpCliOps:
    """Operations backed by WP-CLI, ssh and scp."""

    check = staticmethod(db.check_site)
    export = staticmethod(db.export_db)
    import_snapshot = staticmethod(db.import_db)
    count = staticmethod(db.count_replacements)
    rewrite = staticmethod(db.search_replace)
    flush_cache = staticmethod(db.flush_cache)
    transfer = staticmethod(remote.transfer)
    exists = staticmethod(remote.file_exists)
    ensure_dir = staticmethod(remote.ensure_dir)
    remove = staticmethod(remote.remove_file)


@dataclass
class SyncRun:
    direction: str
    source: Environment
    dest: Environment
    old: str
    new: str
    state: SyncState = SyncState.IDLE
    history: list[SyncState] = field(default_factory=lambda: [SyncState.IDLE])
    failed_at: SyncState | None = None
    error: str = ""
    expected: int | None = None
    backup: Snapshot | None = None
    snapshot: Snapshot | None = None
    dest_snapshot: Snapshot | None = None

    @property
    def ok(self) -> bool:
        return self.state == SyncState.DONE

    def advance(self, state: SyncState) -> None:
        self.state = state
        self.history.append(state)
        log(f"{self.direction}: -> {state.value}")

    def fail(self, message: str) -> bool:
        self.failed_at = self.state
        self.error = message
        self.state = SyncState.FAILED
        self.history.append(SyncState.FAILED)
        logging.error("%s failed at %s: %s", self.direction, self.failed_at.value, message)
        status_fail(f"{self.direction}: {message}")
        return False


class SyncPipeline:
    def __init__(
        self,
        run: SyncRun,
        ops=None,
        allow_zero: bool = False,
        expect_count: int | None = None,
    ):
        self.run = run
        self.ops = ops or WpCliOps
        self.allow_zero = allow_zero
        self.expect_count = expect_count

    def _same_file(self, dest_snap: Snapshot) -> bool:
        """True when source and destination share this host and the snapshot path."""
        run = self.run
        return (
            not run.source.is_remote
            and not run.dest.is_remote
            and dest_snap.path == run.snapshot.path
        )

    # ─── Steps ────────────────────────────────────────────────────────────
    def preflight(self) -> bool:
        run, ops = self.run, self.ops
        if run.source.name == run.dest.name:
            return run.fail("source and destination are the same environment")
        if not run.old or not run.new:
            return run.fail("URL mapping has an empty domain")
        for env in (run.source, run.dest):
            if not ops.check(env):
                return run.fail(f"{env.label()} unreachable")
        # wp-cli writes exports as the site user; copies land as the operator
        for env, directory, as_site_user in (
            (run.source, run.source.tmp_dir, True),
            (run.dest, run.dest.tmp_dir, False),
            (run.dest, run.dest.backup_dir, True),
        ):
            if not ops.ensure_dir(env, directory, as_site_user=as_site_user):
                return run.fail(f"cannot create {directory} on {env.name}")
        found = ops.count(run.source, run.old, run.new)
        if found is None:
            return run.fail(f"could not count {run.old} on {run.source.name}")
        run.expected = found
        log(f"Preflight: {found} occurrence(s) of {run.old} on {run.source.name}")
        if found == 0 and not self.allow_zero:
            return run.fail(
                f"{run.old} not found on {run.source.name}; wrong URL mapping?"
            )
        if self.expect_count is not None and found != self.expect_count:
            return run.fail(
                f"expected {self.expect_count} occurrence(s) of {run.old}, found {found}"
            )
        status_pass(f"preflight {run.old} -> {run.new} ({found} to rewrite)")
        return True

    def backup_dest(self) -> bool:
        run, ops = self.run, self.ops
        backup = new_backup(run.dest)
        if ops.exists(run.dest, backup.path, as_site_user=True):
            return run.fail(f"backup {backup.path} already exists; refusing to overwrite")
        if not ops.export(run.dest, backup.path):
            return run.fail(f"backup of {run.dest.name} failed")
        if not ops.exists(run.dest, backup.path, as_site_user=True):
            return run.fail(f"backup {backup.path} missing on {run.dest.name}")
        run.backup = backup
        status_pass(f"backup {run.dest.name} -> {backup.path}")
        return True

    def export_source(self) -> bool:
        run, ops = self.run, self.ops
        snap = new_snapshot(run.source)
        if not ops.export(run.source, snap.path):
            return run.fail(f"export of {run.source.name} failed")
        run.snapshot = snap
        status_pass(f"export {run.source.name} -> {snap.path}")
        return True

    def transfer(self) -> bool:
        run, ops = self.run, self.ops
        dest_snap = relocate(run.snapshot, run.dest)
        if not self._same_file(dest_snap) and not ops.transfer(
            run.source, run.snapshot.path, run.dest, dest_snap.path
        ):
            return run.fail(f"transfer to {run.dest.name} failed")
        run.dest_snapshot = dest_snap
        status_pass(f"transfer {run.source.name} -> {run.dest.name}")
        return True

    def import_dest(self) -> bool:
        run, ops = self.run, self.ops
        if run.backup is None or not ops.exists(run.dest, run.backup.path, as_site_user=True):
            return run.fail(f"no backup of {run.dest.name}; refusing to import")
        if not ops.import_snapshot(run.dest, run.dest_snapshot.path):
            return run.fail(
                f"import into {run.dest.name} failed; restore from {run.backup.path}"
            )
        status_pass(f"import {run.dest.name}")
        return True

    def rewrite_urls(self) -> bool:
        run, ops = self.run, self.ops
        if not ops.rewrite(run.dest, run.old, run.new):
            return run.fail(
                f"rewrite {run.old} -> {run.new} failed on {run.dest.name}"
            )
        # a new domain containing the old one always matches again
        if run.old not in run.new:
            left = ops.count(run.dest, run.old, run.new)
            if left is None:
                return run.fail(
                    f"could not count {run.old} on {run.dest.name} after rewrite"
                )
            if left != 0:
                return run.fail(
                    f"{left} occurrence(s) of {run.old} remain on {run.dest.name}"
                )
        if not ops.flush_cache(run.dest):
            logging.warning("cache flush failed on %s", run.dest.name)
        status_pass(f"rewrite {run.old} -> {run.new}")
        return True

    def cleanup(self) -> bool:
        run, ops = self.run, self.ops
        # the source copy was written by wp-cli, the destination copy by cp/scp
        targets = [(run.source, run.snapshot.path, True)]
        if not self._same_file(run.dest_snapshot):
            targets.append((run.dest, run.dest_snapshot.path, False))
        for env, path, as_site_user in targets:
            if not ops.remove(env, path, as_site_user=as_site_user):
                return run.fail(f"could not remove {path} on {env.name}")
        status_pass("cleanup")
        return True

    def steps(self) -> list[tuple[SyncState, Callable[[], bool]]]:
        return [
            (SyncState.BACKING_UP_DEST, self.backup_dest),
            (SyncState.EXPORTING_SOURCE, self.export_source),
            (SyncState.TRANSFERRING, self.transfer),
            (SyncState.IMPORTING, self.import_dest),
            (SyncState.REWRITING_URLS, self.rewrite_urls),
            (SyncState.CLEANING_UP, self.cleanup),
        ]

    def execute(self, dry_run: bool = False) -> SyncRun:
        run = self.run
        if run.state != SyncState.IDLE:
            raise ValueError(f"run already {run.state.value}; start a new run")
        if not self.preflight():
            return run
        if dry_run:
            log(f"{run.direction}: dry run stops after preflight")
            return run
        for state, step in self.steps():
            run.advance(state)
            if not step():
                if run.snapshot is not None:
                    logging.error("Snapshot kept for inspection: %s", run.snapshot.path)
                return run
        run.advance(SyncState.DONE)
        status_pass(f"{run.direction} complete; backup at {run.backup.path}")
        return run


def new_run(direction: str, source: Environment, dest: Environment) -> SyncRun:
    old, new = url_mapping(source, dest)
    return SyncRun(direction=direction, source=source, dest=dest, old=old, new=new)


def sync(
    direction: str,
    source: Environment,
    dest: Environment,
    ops=None,
    dry_run: bool = False,
    allow_zero: bool = False,
    expect_count: int | None = None,
) -> SyncRun:
    run = new_run(direction, source, dest)
    pipeline = SyncPipeline(run, ops=ops, allow_zero=allow_zero, expect_count=expect_count)
    return pipeline.execute(dry_run=dry_run)
