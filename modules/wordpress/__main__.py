"""Operator helpers for one environment at a time.

usage: python -m modules.wordpress check|export|import|search-replace|backups <env> [args]
"""

from __future__ import annotations

import sys

from modules import remote
from modules.environments import load_environments
from modules.snapshot import KIND_BACKUP, new_snapshot, parse_name
from modules.utils import init_logging, status_fail, status_pass
from .db import check_site, count_replacements, export_db, import_db, search_replace

USAGE = (
    "usage: check <env> | export <env> [path] | import <env> <path> | "
    "search-replace <env> <old> <new> [--dry-run] | backups <env>"
)


def _list_backups(env) -> int:
    names = remote.list_files(env, env.backup_dir, prefix=f"{KIND_BACKUP}-{env.name}-")
    for name in names:
        parsed = parse_name(name)
        if parsed is None:
            continue
        print(f"{parsed[2].isoformat()}  {env.backup_dir.rstrip('/')}/{name}")
    status_pass(f"{len(names)} backup(s) on {env.name}")
    return 0


def main(argv: list[str] | None = None) -> int:
    init_logging(None)
    argv = sys.argv[1:] if argv is None else argv
    flags = [a for a in argv if a.startswith("--")]
    args = [a for a in argv if not a.startswith("--")]
    if len(args) < 2:
        status_fail(USAGE)
        return 1
    cmd, env_name = args[0], args[1]
    try:
        envs = load_environments()
    except ValueError as err:
        status_fail(str(err))
        return 1
    env = envs.get(env_name)
    if env is None:
        status_fail(f"unknown environment {env_name}")
        return 1

    if cmd == "check":
        return 0 if check_site(env) else 1
    if cmd == "export":
        path = args[2] if len(args) > 2 else new_snapshot(env).path
        if not export_db(env, path):
            status_fail(f"export {env.name}")
            return 1
        status_pass(f"export {env.name} -> {path}")
        return 0
    if cmd == "import":
        if len(args) < 3:
            status_fail("missing snapshot path")
            return 1
        if not import_db(env, args[2]):
            status_fail(f"import {env.name}")
            return 1
        status_pass(f"import {args[2]} -> {env.name}")
        return 0
    if cmd == "search-replace":
        if len(args) < 4:
            status_fail("missing old/new strings")
            return 1
        old, new = args[2], args[3]
        if "--dry-run" in flags:
            found = count_replacements(env, old, new)
            if found is None:
                status_fail(f"dry-run on {env.name}")
                return 1
            print(found)
            return 0
        if not search_replace(env, old, new):
            status_fail(f"search-replace on {env.name}")
            return 1
        status_pass(f"search-replace {old} -> {new} on {env.name}")
        return 0
    if cmd == "backups":
        return _list_backups(env)
    status_fail("unknown subcommand")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
