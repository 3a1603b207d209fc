"""
Tests for WP-CLI argv construction, output parsing and db operations.
"""

import pytest

from modules.environments import Environment
from modules import remote
from modules.wordpress import cli, db


LOCAL = Environment("local", "http://a.local", "/srv/http/a.local")
STAGING = Environment(
    "staging", "https://staging.example.com", "/var/www/staging",
    access="ssh", ssh_host="deploy@staging.example.com",
)


@pytest.fixture
def no_http_user(monkeypatch):
    monkeypatch.setattr(remote, "_http_uid", lambda: -1)


@pytest.fixture
def recorder(monkeypatch):
    """Replace run_on; returns list of (env name, argv) and lets tests set output."""
    calls = []
    result = {"ok": True, "out": "", "err": "", "code": 0}

    def fake_run_on(env, argv, timeout=None):
        calls.append((env.name, argv))
        return result["ok"], result["out"], result["err"], result["code"]

    monkeypatch.setattr(cli, "run_on", fake_run_on)
    return calls, result


class TestBuildArgv:
    def test_local_path_and_flags(self, no_http_user):
        argv = cli.build_wp_argv(LOCAL, "option get siteurl")
        assert argv == [
            "wp", "--path=/srv/http/a.local", "option", "get", "siteurl", "--no-color",
        ]

    def test_caller_wp_and_path_dropped(self, no_http_user):
        argv = cli.build_wp_argv(LOCAL, ["wp", "--path", "/elsewhere", "db", "export", "x.sql"])
        assert argv.count("wp") == 1
        assert "/elsewhere" not in argv
        assert argv[2:5] == ["db", "export", "x.sql"]

    def test_local_runs_as_http_user(self, monkeypatch):
        monkeypatch.setattr(remote, "_http_uid", lambda: 33)
        monkeypatch.setattr(remote.os, "geteuid", lambda: 1000)
        argv = cli.build_wp_argv(LOCAL, "cache flush")
        assert argv[:3] == ["sudo", "-u", "http"]

    def test_remote_never_uses_sudo(self, monkeypatch):
        monkeypatch.setattr(remote, "_http_uid", lambda: 33)
        argv = cli.build_wp_argv(STAGING, "cache flush")
        assert argv[0] == "wp"
        assert argv[1] == "--path=/var/www/staging"

    def test_empty_command(self):
        assert cli.build_wp_argv(LOCAL, "  ") == []


class TestParse:
    def test_scalar_line(self):
        assert cli._parse_json_loose('"http://a.local"') == "http://a.local"

    def test_bare_token(self):
        assert cli._parse_json_loose("http://a.local\n") == "http://a.local"

    def test_noise_dropped(self):
        text = "PHP Warning: something odd\n[{\"name\": \"akismet\"}]"
        assert cli._parse_json_loose(text) == [{"name": "akismet"}]

    def test_empty(self):
        assert cli._parse_json_loose("PHP Notice: x\n") is None

    def test_color_codes_stripped(self):
        assert cli._parse_json_loose('\x1b[32m"http://a.local"\x1b[0m') == "http://a.local"


class TestDb:
    def test_site_url(self, no_http_user, recorder):
        calls, result = recorder
        result["out"] = '"https://staging.example.com"\n'
        assert db.site_url(STAGING) == "https://staging.example.com"
        assert "--format=json" in calls[0][1]

    def test_check_site_fails_when_unreachable(self, no_http_user, recorder):
        _, result = recorder
        result.update(ok=False, code=255, err="ssh: connect to host")
        assert not db.check_site(STAGING)

    def test_count_replacements(self, no_http_user, recorder):
        calls, result = recorder
        result["out"] = "7\n"
        assert db.count_replacements(LOCAL, "a.local", "b.example.com") == 7
        argv = calls[0][1]
        assert "--dry-run" in argv
        assert "--all-tables" in argv
        assert "--format=count" in argv

    def test_count_without_number(self, no_http_user, recorder):
        _, result = recorder
        result["out"] = "Success: nothing\n"
        assert db.count_replacements(LOCAL, "a", "b") is None

    def test_search_replace_argv(self, no_http_user, recorder):
        calls, _ = recorder
        assert db.search_replace(STAGING, "a.local", "staging.example.com")
        argv = calls[0][1]
        assert argv[2:5] == ["search-replace", "a.local", "staging.example.com"]
        assert "--all-tables" in argv
        assert "--dry-run" not in argv

    def test_search_replace_rejects_empty(self, recorder):
        calls, _ = recorder
        assert not db.search_replace(STAGING, "", "x")
        assert not calls

    def test_search_replace_same_pair_is_noop(self, recorder):
        calls, _ = recorder
        assert db.search_replace(STAGING, "a.local", "a.local")
        assert not calls

    def test_export_and_import(self, no_http_user, recorder):
        calls, _ = recorder
        assert db.export_db(LOCAL, "/tmp/s.sql")
        assert db.import_db(STAGING, "/tmp/s.sql")
        assert calls[0][1][2:4] == ["db", "export"]
        assert calls[1] == ("staging", ["wp", "--path=/var/www/staging", "db", "import", "/tmp/s.sql", "--no-color"])

    def test_export_failure(self, no_http_user, recorder):
        _, result = recorder
        result.update(ok=False, code=1, err="mysqldump: Got error 28")
        assert not db.export_db(LOCAL, "/tmp/s.sql")
