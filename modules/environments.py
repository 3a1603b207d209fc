"""Environment records and sync directions.

Records start from config.ENVIRONMENTS and may be overridden per key from
the JSON file named by AUTOSYNC_ENV_FILE. Every operation receives an
Environment explicitly; no module reads host/path/domain literals.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from config import DIRECTIONS, ENV_FILE, ENVIRONMENTS, WP_CLI_PATH
from modules.utils import url_domain

ACCESS_LOCAL = "local"
ACCESS_SSH = "ssh"
REQUIRED_FIELDS = ("base_url", "root_path")


@dataclass(frozen=True)
class Environment:
    name: str
    base_url: str
    root_path: str
    access: str = ACCESS_LOCAL
    ssh_host: str = ""
    ssh_port: int = 22
    wp_cli: str = WP_CLI_PATH
    tmp_dir: str = "/tmp"
    backup_dir: str = "/tmp"

    @property
    def is_remote(self) -> bool:
        return self.access == ACCESS_SSH

    @property
    def domain(self) -> str:
        return url_domain(self.base_url)

    def label(self) -> str:
        if self.is_remote:
            return f"{self.name} ({self.ssh_host})"
        return f"{self.name} (local)"


def _build(name: str, record: dict[str, Any]) -> Environment:
    for field in REQUIRED_FIELDS:
        if not str(record.get(field) or "").strip():
            raise ValueError(f"environment {name!r} is missing {field!r}")
    access = record.get("access", ACCESS_LOCAL)
    if access not in (ACCESS_LOCAL, ACCESS_SSH):
        raise ValueError(f"environment {name!r} has unknown access {access!r}")
    if access == ACCESS_SSH and not record.get("ssh_host"):
        raise ValueError(f"environment {name!r} uses ssh but has no ssh_host")
    tmp_dir = record.get("tmp_dir", "/tmp")
    return Environment(
        name=name,
        base_url=str(record["base_url"]).strip(),
        root_path=str(record["root_path"]).rstrip("/") or "/",
        access=access,
        ssh_host=str(record.get("ssh_host", "")),
        ssh_port=int(record.get("ssh_port", 22)),
        wp_cli=str(record.get("wp_cli", WP_CLI_PATH)),
        tmp_dir=tmp_dir,
        backup_dir=record.get("backup_dir", tmp_dir),
    )


def _read_overrides(path: str) -> dict[str, dict[str, Any]]:
    if not path:
        return {}
    file = Path(path)
    if not file.exists():
        raise ValueError(f"environment file not found: {file}")
    data = json.loads(file.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"environment file must hold an object: {file}")
    logging.debug("Loaded environment overrides from %s", file)
    return data


def load_environments(
    records: dict[str, dict[str, Any]] | None = None,
    env_file: str | None = None,
) -> dict[str, Environment]:
    merged: dict[str, dict[str, Any]] = {}
    for name, record in (records if records is not None else ENVIRONMENTS).items():
        merged[name] = dict(record)
    overrides = _read_overrides(ENV_FILE if env_file is None else env_file)
    for name, record in overrides.items():
        merged.setdefault(name, {}).update(record)
    return {name: _build(name, record) for name, record in merged.items()}


def resolve_direction(
    direction: str,
    envs: dict[str, Environment],
    directions: dict[str, tuple[str, str]] | None = None,
) -> tuple[Environment, Environment]:
    table = DIRECTIONS if directions is None else directions
    if direction not in table:
        raise ValueError(f"unknown direction {direction!r}")
    src_name, dst_name = table[direction]
    for name in (src_name, dst_name):
        if name not in envs:
            raise ValueError(f"direction {direction!r} needs environment {name!r}")
    return envs[src_name], envs[dst_name]


def url_mapping(source: Environment, dest: Environment) -> tuple[str, str]:
    """(old, new) domain pair applied to the destination after import."""
    return source.domain, dest.domain
