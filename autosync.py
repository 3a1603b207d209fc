#!/usr/bin/env python3
"""CLI to synchronize a WordPress database between environments.

Inputs: one direction per run (local-to-staging, staging-to-production,
production-to-local), optional --dry-run, --yes, --allow-zero and
--expect=N flags.
Side effects: backs up the destination database, replaces it with the
source's, rewrites the source domain to the destination domain, and removes
the intermediate snapshot files. Backups are kept.
"""
import sys

from config import DIRECTIONS, PROTECTED_ENVIRONMENTS
from modules.environments import load_environments, resolve_direction
from modules.pipeline import SyncState, sync
from modules.utils import init_logging, log, status_fail

# ─── CONFIG ──────────────────────────────────────────────────────────────
FLAG_DRY_RUN = "--dry-run"
FLAG_YES = "--yes"
FLAG_ALLOW_ZERO = "--allow-zero"
FLAG_EXPECT = "--expect"
USAGE = "usage: {} [--dry-run] [--yes] [--allow-zero] [--expect=N]".format(
    "|".join(DIRECTIONS)
)
KNOWN_FLAGS = (FLAG_DRY_RUN, FLAG_YES, FLAG_ALLOW_ZERO)


# ─── CLI ──────────────────────────────────────────────────────────────
def _confirm(dest_name: str, dest_url: str) -> bool:
    prompt = f"This replaces the {dest_name} database ({dest_url}). Type '{dest_name}' to continue: "
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.strip() == dest_name


def _unknown_flags(flags: list[str]) -> list[str]:
    return [
        f for f in flags
        if f not in KNOWN_FLAGS and not f.startswith(f"{FLAG_EXPECT}=")
    ]


def _expect_value(flags: list[str]) -> tuple[bool, int | None]:
    for f in flags:
        if f.startswith(f"{FLAG_EXPECT}="):
            raw = f.split("=", 1)[1]
            if not raw.isdigit():
                return False, None
            return True, int(raw)
    return True, None


def main(argv: list[str] | None = None) -> int:
    init_logging(None)
    argv = sys.argv[1:] if argv is None else argv
    flags = [a for a in argv if a.startswith("--")]
    args = [a for a in argv if not a.startswith("--")]
    if len(args) != 1:
        status_fail(USAGE)
        return 1
    unknown = _unknown_flags(flags)
    if unknown:
        status_fail(f"unknown flag {unknown[0]}; {USAGE}")
        return 1
    direction = args[0]
    ok, expect = _expect_value(flags)
    if not ok:
        status_fail(f"{FLAG_EXPECT} needs a number")
        return 1
    try:
        source, dest = resolve_direction(direction, load_environments())
    except ValueError as err:
        status_fail(str(err))
        return 1

    dry_run = FLAG_DRY_RUN in flags
    if dest.name in PROTECTED_ENVIRONMENTS and not dry_run and FLAG_YES not in flags:
        if not _confirm(dest.name, dest.base_url):
            status_fail("aborted by operator")
            return 1

    log(f"{direction}: {source.label()} -> {dest.label()}")
    run = sync(
        direction,
        source,
        dest,
        dry_run=dry_run,
        allow_zero=FLAG_ALLOW_ZERO in flags,
        expect_count=expect,
    )
    if run.state == SyncState.FAILED:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
