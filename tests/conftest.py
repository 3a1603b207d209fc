"""
Shared test fixtures for the sync pipeline.

FakeOps stands in for WP-CLI/ssh/scp: local environments share one host
directory under tmp_path, each ssh environment gets its own, and every
environment keeps its database as a dict.
"""

import copy
import json
import shutil
from pathlib import Path

import pytest

from modules.environments import Environment


def _replace_strings(value, old, new):
    if isinstance(value, str):
        return value.replace(old, new)
    if isinstance(value, list):
        return [_replace_strings(v, old, new) for v in value]
    if isinstance(value, dict):
        return {k: _replace_strings(v, old, new) for k, v in value.items()}
    return value


class FakeOps:
    def __init__(self, root: Path, states: dict):
        self.root = root
        self.states = copy.deepcopy(states)
        self.calls = []
        self.failures = set()
        self.unreachable = set()

    def host_dir(self, env: Environment) -> Path:
        return self.root / (env.name if env.is_remote else "localhost")

    def host_path(self, env: Environment, path: str) -> Path:
        return self.host_dir(env) / path.lstrip("/")

    def files(self, env: Environment) -> list[str]:
        base = self.host_dir(env)
        if not base.exists():
            return []
        return sorted(p.name for p in base.rglob("*") if p.is_file())

    def _failing(self, op: str, env: Environment) -> bool:
        return (op, env.name) in self.failures

    def check(self, env):
        self.calls.append(("check", env.name))
        return env.name not in self.unreachable

    def ensure_dir(self, env, directory, as_site_user=False):
        self.calls.append(("ensure_dir", env.name, directory, as_site_user))
        self.host_path(env, directory).mkdir(parents=True, exist_ok=True)
        return True

    def export(self, env, path):
        self.calls.append(("export", env.name, path))
        if self._failing("export", env):
            return False
        target = self.host_path(env, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(self.states[env.name]), encoding="utf-8")
        return True

    def exists(self, env, path, as_site_user=False):
        self.calls.append(("exists", env.name, path, as_site_user))
        target = self.host_path(env, path)
        return target.exists() and target.stat().st_size > 0

    def transfer(self, src, src_path, dst, dst_path):
        self.calls.append(("transfer", src.name, dst.name))
        if self._failing("transfer", dst):
            return False
        target = self.host_path(dst, dst_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.host_path(src, src_path), target)
        return True

    def import_snapshot(self, env, path):
        self.calls.append(("import", env.name, path))
        if self._failing("import", env):
            return False
        text = self.host_path(env, path).read_text(encoding="utf-8")
        self.states[env.name] = json.loads(text)
        return True

    def count(self, env, old, new):
        self.calls.append(("count", env.name))
        return json.dumps(self.states[env.name]).count(old)

    def rewrite(self, env, old, new):
        self.calls.append(("rewrite", env.name))
        if self._failing("rewrite", env):
            return False
        self.states[env.name] = _replace_strings(self.states[env.name], old, new)
        return True

    def flush_cache(self, env):
        self.calls.append(("flush_cache", env.name))
        return True

    def remove(self, env, path, as_site_user=False):
        self.calls.append(("remove", env.name, path, as_site_user))
        self.host_path(env, path).unlink(missing_ok=True)
        return True

    def ops_named(self, name):
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def local_env():
    return Environment(
        name="local",
        base_url="http://a.local",
        root_path="/srv/http/a.local",
        access="local",
        tmp_dir="/tmp",
        backup_dir="/backups",
    )


@pytest.fixture
def staging_env():
    return Environment(
        name="staging",
        base_url="http://staging.example.com",
        root_path="/var/www/staging",
        access="ssh",
        ssh_host="deploy@staging.example.com",
        tmp_dir="/tmp",
        backup_dir="/var/backups/wordpress",
    )


@pytest.fixture
def source_state():
    return {
        "siteurl": "http://a.local",
        "posts": [{"content": "visit http://a.local/page"}],
    }


@pytest.fixture
def staging_state():
    return {
        "siteurl": "http://staging.example.com",
        "posts": [{"content": "old staging post"}],
    }


@pytest.fixture
def fake_ops(tmp_path, source_state, staging_state):
    return FakeOps(tmp_path, {"local": source_state, "staging": staging_state})


@pytest.fixture
def production_env():
    return Environment(
        name="production",
        base_url="https://example.com",
        root_path="/var/www/production",
        access="ssh",
        ssh_host="deploy@example.com",
        tmp_dir="/tmp",
        backup_dir="/var/backups/wordpress",
    )


@pytest.fixture
def sandbox_env():
    """Second site on the operator's machine with its own scratch dir."""
    return Environment(
        name="sandbox",
        base_url="http://b.local",
        root_path="/srv/http/b.local",
        access="local",
        tmp_dir="/scratch",
        backup_dir="/backups",
    )


@pytest.fixture
def all_ops(tmp_path, source_state, staging_state):
    return FakeOps(tmp_path, {
        "local": source_state,
        "staging": staging_state,
        "production": {
            "siteurl": "https://example.com",
            "posts": [{"content": "see https://example.com/shop"}],
        },
        "sandbox": {"siteurl": "http://b.local"},
    })
