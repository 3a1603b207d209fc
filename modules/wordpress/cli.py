# cli.py
# Invariants:
# - All WP-CLI access goes through these wrappers; callers never build --path.
# - Every call targets an Environment; local sites run wp directly (or as the
#   http user), ssh sites run the same argv through modules.remote.
# - Read-ish commands are coerced to JSON at the source by appending:
#     --format=json --skip-plugins --skip-themes
# - Parsing strips ANSI and PHP/WP noise and extracts real JSON when present.
# - Logs: one PASS/FAIL per call; console stays minimal; file logs keep details.

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Tuple

from config import SYNC_TIMEOUT
from modules.environments import Environment
from modules.remote import run_on, site_user_prefix
from modules.utils import _normalize_parts, _strip_ansi, parse_json_relaxed

os.environ.setdefault("WP_CLI_DISABLE_AUTO_CHECK_UPDATE", "1")

# ── Noise filters ───────────────────────────────────────────────────────────────
NOISE_PREFIXES = (
    "PHP Warning:", "PHP Notice:", "PHP Deprecated:", "PHP Fatal error:",
    "Warning:", "Notice:", "Deprecated:", "Fatal error:", "PHP:"
)
NOISE_PATTERNS = (
    re.compile(r"^#\d+:"),               # stack frames
    re.compile(r"^'trace'\s*=>"),        # array trace header
)


def _drop_noise_lines(text: str) -> list[str]:
    out: list[str] = []
    for ln in (x.strip() for x in text.splitlines()):
        if not ln:
            continue
        if any(ln.startswith(p) for p in NOISE_PREFIXES):
            continue
        if any(p.search(ln) for p in NOISE_PATTERNS):
            continue
        out.append(ln)
    return out


def _unquote_token(tok: str) -> str:
    if len(tok) >= 2 and tok[0] == tok[-1] and tok[0] in "\"'":
        return tok[1:-1]
    return tok


# ── Internal helpers ────────────────────────────────────────────────────────────
def _wp_base_argv(env: Environment) -> list[str]:
    return site_user_prefix(env) + [env.wp_cli, f"--path={env.root_path}"]


def _sanitize_parts(parts: list[str]) -> list[str]:
    # drop any leading 'wp' or explicit binary tokens
    while parts and (parts[0] == "wp" or os.path.basename(parts[0]) == "wp"):
        parts = parts[1:]
    # drop any --path passed by caller (we provide our own)
    cleaned: list[str] = []
    skip_next = False
    for i, p in enumerate(parts):
        if skip_next:
            skip_next = False
            continue
        if p.startswith("--path="):
            continue
        if p == "--path":
            if i + 1 < len(parts) and not parts[i + 1].startswith("-"):
                skip_next = True
            continue
        cleaned.append(p)
    return cleaned


def _ensure_quiet_flags(parts: list[str]) -> list[str]:
    if "--no-color" not in parts:
        parts.append("--no-color")
    return parts


def build_wp_argv(env: Environment, command) -> list[str]:
    parts = _normalize_parts(command)
    if not parts:
        return []
    parts = _ensure_quiet_flags(_sanitize_parts(parts))
    return _wp_base_argv(env) + parts


def _wp_run(env: Environment, command, timeout: int = SYNC_TIMEOUT) -> Tuple[bool, str, str, int]:
    args = build_wp_argv(env, command)
    if not args:
        return False, "", "Invalid command", 1
    ok, out, err, code = run_on(env, args, timeout=timeout)
    if not ok and err:
        logging.error("wp on %s failed: %s", env.name, "\n".join(_drop_noise_lines(err)))
    return ok, out, err, code


# ── Parsing ─────────────────────────────────────────────────────────────────────
def _parse_json_loose(text: str) -> Any | None:
    """
    Best-effort JSON parse with noise scrubbing.
    Order:
      1) Strip ANSI; drop PHP/WP noise lines.
      2) Single clean line: json.loads, else the unquoted token.
      3) Otherwise relaxed parse of the embedded container.
    """
    cleaned = "\n".join(_drop_noise_lines(_strip_ansi(text))).strip()
    if not cleaned:
        return None
    lines = cleaned.splitlines()
    if len(lines) == 1:
        one = lines[0]
        try:
            return json.loads(one)
        except ValueError:
            return _unquote_token(one)
    return parse_json_relaxed(cleaned, default=lines[0])


def _looks_like_read_cmd(parts: list[str]) -> bool:
    s = set(parts)
    if "list" in s or "get" in s:
        return True
    return any(p.startswith("--fields=") for p in parts)


def _append_format_json(parts: list[str]) -> list[str]:
    if not any(p.startswith("--format=") for p in parts):
        parts = parts[:] + ["--format=json"]
    if "--skip-plugins" not in parts:
        parts.append("--skip-plugins")
    if "--skip-themes" not in parts:
        parts.append("--skip-themes")
    return parts


# ── Public API ──────────────────────────────────────────────────────────────────
def wp_cmd_json(env: Environment, command: Any, timeout: int = SYNC_TIMEOUT) -> Tuple[bool, Any]:
    parts = _sanitize_parts(_normalize_parts(command))
    if parts and _looks_like_read_cmd(parts):
        parts = _append_format_json(parts)
    ok, out, _, _ = _wp_run(env, parts, timeout=timeout)
    data = _parse_json_loose(out or "")
    if data is None:
        data = []
    return ok, data


def wp_cmd(env: Environment, command, timeout: int = SYNC_TIMEOUT) -> bool:
    ok, _, _, _ = _wp_run(env, command, timeout=timeout)
    return ok


def wp_cmd_capture(env: Environment, command, timeout: int = SYNC_TIMEOUT) -> Tuple[bool, str, str]:
    ok, out, err, _ = _wp_run(env, command, timeout=timeout)
    return ok, out, err
