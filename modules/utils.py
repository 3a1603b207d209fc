"""Utility helpers kept dependency-free.

- init_logging: configure console + file logging with run-id.
- status_pass/status_fail: concise console status lines (with run-id).
- log: debug-level logger for normal status lines (file-oriented).
- url_domain: domain (with port) of a base URL, used for URL rewrites.
- _http_uid: resolve uid for the "http" user or -1 if missing.
- _normalize_parts: parse a command into argv parts.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
import pwd
import shlex
import re
import json
from typing import Any, Sequence
from urllib.parse import urlsplit

from config import HTTP_USER, LOG_DIR_NAME


_RUN_ID = ""


def _gen_run_id() -> str:
    try:
        import uuid

        return uuid.uuid4().hex[:8]
    except Exception:
        return "00000000"


def init_logging(run_id: str | None = None) -> str:
    """Initialize logging with console + rotating file handlers.

    - Console: minimal, INFO+, intended for terse status only.
    - File: DEBUG+, rich format, written to log/autosync-<rid>.log
    Returns the run-id used.
    """
    global _RUN_ID
    if _RUN_ID:
        return _RUN_ID

    rid = run_id or os.environ.get("AUTOSYNC_RID") or _gen_run_id()
    _RUN_ID = rid

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    try:
        # Project root = parent of 'modules'
        root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
        log_dir = os.path.join(root_dir, LOG_DIR_NAME)
        os.makedirs(log_dir, exist_ok=True)
        logfile = os.path.join(log_dir, f"autosync-{rid}.log")
    except OSError:
        logfile = os.path.abspath(f"autosync-{rid}.log")

    # Quiet any pre-existing console handlers
    for h in root.handlers:
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
            h.setLevel(logging.CRITICAL)

    has_file = False
    for h in root.handlers:
        if isinstance(h, RotatingFileHandler) and getattr(h, "baseFilename", "").endswith(
            os.path.basename(logfile)
        ):
            has_file = True
            break
    if not has_file:
        fh = RotatingFileHandler(logfile, maxBytes=5 * 1024 * 1024, backupCount=3)
        fh.setLevel(logging.DEBUG)
        ffmt = logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
        fh.setFormatter(ffmt)
        root.addHandler(fh)

    # Add a super-quiet console handler if none exist
    if not any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in root.handlers
    ):
        ch = logging.StreamHandler()
        ch.setLevel(logging.CRITICAL)
        cfmt = logging.Formatter("%(levelname)s: %(message)s")
        ch.setFormatter(cfmt)
        root.addHandler(ch)

    logging.debug("Logging initialized. run_id=%s file=%s", rid, logfile)
    os.environ["AUTOSYNC_RID"] = rid
    return rid


def _rid() -> str:
    return _RUN_ID or os.environ.get("AUTOSYNC_RID", "--------")


def status_pass(msg: str) -> None:
    print(f"PASS: {msg} [{_rid()}]")


def status_fail(msg: str) -> None:
    print(f"FAIL: {msg} [{_rid()}]", flush=True)


def log(msg: str) -> None:
    # File-oriented normal progress; stays out of console noise.
    logging.debug(msg)


def url_domain(base_url: str) -> str:
    """Return host[:port] of a base URL; bare domains are returned as-is."""
    text = (base_url or "").strip()
    if not text:
        return ""
    if "//" not in text:
        text = "//" + text
    return urlsplit(text).netloc


def _http_uid() -> int:
    try:
        return pwd.getpwnam(HTTP_USER).pw_uid
    except KeyError:
        return -1


def _normalize_parts(command: str | Sequence[str]) -> list[str]:
    """Normalize command into argv parts.
    Accepts str (parsed with shlex) or sequence of strings.
    Returns a list; empty list indicates an error already reported.
    """
    if command is None:
        logging.error("called with None command")
        return []
    if isinstance(command, str):
        text = command.strip()
        if not text:
            logging.error("called with empty command")
            return []
        try:
            return shlex.split(text)
        except ValueError as err:
            logging.error("Could not parse command: %s", err)
            return []
    if isinstance(command, (list, tuple)):
        parts = [str(p) for p in command]
        if not parts:
            logging.error("called with empty argv list")
            return []
        return parts
    logging.error("Unsupported command type: %s", type(command).__name__)
    return []


def _strip_ansi(text: str) -> str:
    return re.sub(r"\x1b\[[0-9;]*[A-Za-z]", "", text)


def parse_json_relaxed(text: str, default: Any) -> Any:
    """Parse JSON with basic tolerance for noise.

    - Strips BOM and ANSI codes
    - Extracts substring between first '[' and last ']' or first '{' and last '}'
    - Returns default on failure
    """
    if text is None:
        return default
    s = _strip_ansi(text.lstrip("\ufeff").strip())
    try:
        return json.loads(s)
    except ValueError:
        pass
    for open_c, close_c in (("[", "]"), ("{", "}")):
        lb = s.find(open_c)
        rb = s.rfind(close_c)
        if lb != -1 and rb > lb:
            try:
                return json.loads(s[lb : rb + 1])
            except ValueError:
                continue
    return default
