"""Database snapshot operations driven through WP-CLI."""

from __future__ import annotations

import logging

from modules.environments import Environment
from modules.utils import log
from .cli import wp_cmd, wp_cmd_capture, wp_cmd_json


def site_url(env: Environment) -> str:
    ok, data = wp_cmd_json(env, ["option", "get", "siteurl"])
    if not ok or not isinstance(data, str):
        return ""
    return data


def check_site(env: Environment) -> bool:
    url = site_url(env)
    if not url:
        logging.error("%s unreachable or not a WordPress install", env.label())
        return False
    log(f"PASS: {env.name} reachable, siteurl={url}")
    return True


def export_db(env: Environment, path: str) -> bool:
    if not wp_cmd(env, ["db", "export", path, "--add-drop-table"]):
        logging.error("Export failed on %s -> %s", env.name, path)
        return False
    log(f"PASS: Exported {env.name} database to {path}")
    return True


def import_db(env: Environment, path: str) -> bool:
    if not wp_cmd(env, ["db", "import", path]):
        logging.error("Import failed on %s <- %s", env.name, path)
        return False
    log(f"PASS: Imported {path} into {env.name}")
    return True


def count_replacements(env: Environment, old: str, new: str) -> int | None:
    """Dry-run search-replace; number of replacements it would make."""
    ok, out, _ = wp_cmd_capture(
        env,
        ["search-replace", old, new, "--all-tables", "--dry-run", "--format=count"],
    )
    if not ok:
        return None
    for line in reversed(out.splitlines()):
        text = line.strip()
        if text.isdigit():
            return int(text)
    logging.error("search-replace dry-run on %s printed no count", env.name)
    return None


def search_replace(env: Environment, old: str, new: str) -> bool:
    if not old:
        logging.error("Refusing search-replace with empty search string")
        return False
    if old == new:
        log(f"SKIP: search-replace on {env.name}: {old} unchanged")
        return True
    if not wp_cmd(env, ["search-replace", old, new, "--all-tables", "--precise"]):
        return False
    log(f"PASS: Replaced {old} -> {new} on {env.name}")
    return True


def flush_cache(env: Environment) -> bool:
    return wp_cmd(env, ["cache", "flush"])
