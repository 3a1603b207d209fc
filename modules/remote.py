"""Command execution and file transfer across environments.

SRP: this module only knows how to reach a host. Local environments run
argv directly, or as the site user for files that wp-cli reads or writes; ssh environments wrap the shell-quoted argv in
`ssh -p PORT HOST`. File copies use cp, scp or `scp -3` (remote->remote).
All wrappers return status instead of raising on non-zero exit.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from typing import Tuple

from config import HTTP_USER, SCP_PATH, SSH_PATH, SYNC_TIMEOUT
from modules.environments import Environment
from modules.utils import _http_uid, log

SSH_OPTIONS = ["-o", "BatchMode=yes"]
EXIT_TIMEOUT = 124
EXIT_UNREACHABLE = 255


def site_user_prefix(env: Environment) -> list[str]:
    """sudo prefix for local commands that touch files owned by the site user."""
    if env.is_remote:
        return []
    http_uid = _http_uid()
    if http_uid <= 0:
        return []
    if os.geteuid() == http_uid:
        return []
    return ["sudo", "-u", HTTP_USER]


def shell_argv(env: Environment, argv: list[str], as_site_user: bool = False) -> list[str]:
    if not env.is_remote:
        if as_site_user:
            return site_user_prefix(env) + list(argv)
        return list(argv)
    return [
        SSH_PATH, "-p", str(env.ssh_port), *SSH_OPTIONS, env.ssh_host,
        shlex.join(argv),
    ]


def _fmt_cmd_for_log(args: list[str]) -> str:
    return " ".join(shlex.quote(a) for a in args)


def run_argv(args: list[str], timeout: int = SYNC_TIMEOUT) -> Tuple[bool, str, str, int]:
    t0 = time.monotonic()
    try:
        proc = subprocess.run(
            args,
            text=True,
            capture_output=True,
            timeout=timeout,
            encoding="utf-8",
            errors="replace",
        )
    except subprocess.TimeoutExpired:
        dt = time.monotonic() - t0
        logging.error("%s timeout after %.1fs", _fmt_cmd_for_log(args), dt)
        return False, "", f"timeout after {dt:.1f}s", EXIT_TIMEOUT
    except OSError as err:
        logging.error("%s could not start: %s", _fmt_cmd_for_log(args), err)
        return False, "", str(err), 127

    dt = time.monotonic() - t0
    ok = proc.returncode == 0
    if ok:
        log(f"PASS: {_fmt_cmd_for_log(args)} ({dt:.1f}s)")
    else:
        logging.error(
            "%s exit=%s\nSTDERR: %s",
            _fmt_cmd_for_log(args),
            proc.returncode,
            (proc.stderr or "").strip(),
        )
        if proc.returncode == EXIT_UNREACHABLE and args and args[0] == SSH_PATH:
            logging.error("ssh could not reach host; check connectivity and keys")
    return ok, (proc.stdout or ""), (proc.stderr or ""), proc.returncode


def run_on(
    env: Environment,
    argv: list[str],
    timeout: int = SYNC_TIMEOUT,
    as_site_user: bool = False,
) -> Tuple[bool, str, str, int]:
    return run_argv(shell_argv(env, argv, as_site_user=as_site_user), timeout=timeout)


def _scp_target(env: Environment, path: str) -> str:
    if env.is_remote:
        return f"{env.ssh_host}:{path}"
    return path


def transfer_argv(src: Environment, src_path: str, dst: Environment, dst_path: str) -> list[str]:
    if not src.is_remote and not dst.is_remote:
        return ["cp", src_path, dst_path]
    args = [SCP_PATH, *SSH_OPTIONS]
    if src.is_remote and dst.is_remote:
        # both ends remote: route through this host, each end keeps its own port
        args.append("-3")
        if src.ssh_port == dst.ssh_port:
            args += ["-P", str(src.ssh_port)]
            return args + [_scp_target(src, src_path), _scp_target(dst, dst_path)]
        return args + [
            f"scp://{src.ssh_host}:{src.ssh_port}/{src_path}",
            f"scp://{dst.ssh_host}:{dst.ssh_port}/{dst_path}",
        ]
    remote = src if src.is_remote else dst
    args += ["-P", str(remote.ssh_port)]
    return args + [_scp_target(src, src_path), _scp_target(dst, dst_path)]


def transfer(src: Environment, src_path: str, dst: Environment, dst_path: str) -> bool:
    ok, _, _, _ = run_argv(transfer_argv(src, src_path, dst, dst_path))
    if ok:
        log(f"PASS: copied {src.name}:{src_path} -> {dst.name}:{dst_path}")
    return ok


def file_exists(env: Environment, path: str, as_site_user: bool = False) -> bool:
    """True when path exists on env and is non-empty."""
    ok, _, _, _ = run_on(env, ["test", "-s", path], as_site_user=as_site_user)
    return ok


def ensure_dir(env: Environment, path: str, as_site_user: bool = False) -> bool:
    ok, _, _, _ = run_on(env, ["mkdir", "-p", path], as_site_user=as_site_user)
    return ok


def remove_file(env: Environment, path: str, as_site_user: bool = False) -> bool:
    ok, _, _, _ = run_on(env, ["rm", "-f", path], as_site_user=as_site_user)
    if ok:
        log(f"PASS: removed {env.name}:{path}")
    return ok


def list_files(env: Environment, directory: str, prefix: str = "") -> list[str]:
    ok, out, _, _ = run_on(env, ["ls", "-1", directory])
    if not ok:
        return []
    names = [ln.strip() for ln in out.splitlines() if ln.strip()]
    return sorted(n for n in names if n.startswith(prefix))
