"""Snapshot records and file naming.

A snapshot is a date-stamped SQL dump of one environment. Files are named
<kind>-<env>-<YYYYmmdd-HHMMSS-ffffff>.sql so repeated runs never overwrite
earlier backups, even within the same second.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from datetime import datetime

from modules.environments import Environment

KIND_SNAPSHOT = "snapshot"
KIND_BACKUP = "backup"
STAMP_FORMAT = "%Y%m%d-%H%M%S-%f"
SUFFIX = ".sql"


@dataclass(frozen=True)
class Snapshot:
    env_name: str
    created: datetime
    path: str
    kind: str = KIND_SNAPSHOT

    @property
    def filename(self) -> str:
        return posixpath.basename(self.path)


def snapshot_name(env_name: str, created: datetime, kind: str = KIND_SNAPSHOT) -> str:
    return f"{kind}-{env_name}-{created.strftime(STAMP_FORMAT)}{SUFFIX}"


def new_snapshot(env: Environment, created: datetime | None = None) -> Snapshot:
    stamp = created or datetime.now()
    path = posixpath.join(env.tmp_dir, snapshot_name(env.name, stamp))
    return Snapshot(env.name, stamp, path, KIND_SNAPSHOT)


def new_backup(env: Environment, created: datetime | None = None) -> Snapshot:
    stamp = created or datetime.now()
    path = posixpath.join(env.backup_dir, snapshot_name(env.name, stamp, KIND_BACKUP))
    return Snapshot(env.name, stamp, path, KIND_BACKUP)


def relocate(snap: Snapshot, env: Environment) -> Snapshot:
    """Same snapshot file, placed in env's staging directory."""
    return Snapshot(
        snap.env_name, snap.created, posixpath.join(env.tmp_dir, snap.filename), snap.kind
    )


def parse_name(filename: str) -> tuple[str, str, datetime] | None:
    """Return (kind, env, created) for a file written by this tool, else None."""
    if not filename.endswith(SUFFIX):
        return None
    stem = filename[: -len(SUFFIX)]
    kind, sep, rest = stem.partition("-")
    if not sep or kind not in (KIND_SNAPSHOT, KIND_BACKUP):
        return None
    # stamp is the last three dash-separated fields; env names may contain dashes
    parts = rest.rsplit("-", 3)
    if len(parts) != 4:
        return None
    env_name, day, clock, micro = parts
    try:
        created = datetime.strptime(f"{day}-{clock}-{micro}", STAMP_FORMAT)
    except ValueError:
        return None
    return kind, env_name, created
