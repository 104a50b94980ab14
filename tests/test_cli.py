"""Tests for the command line entry point and health report."""

import json
import sys

import pytest

from ideapile import __version__
from ideapile.cli import main
from ideapile.db import Database
from ideapile.health import check_connection, format_health_report, run_health_check


def run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["ideapile", *args])
    return main()


@pytest.fixture
def captured_id(monkeypatch, capsys):
    assert run(monkeypatch, "Plan", "a", "#trip", "to", "Japan") == 0
    return capsys.readouterr().out.strip()


class TestCapture:
    def test_capture_prints_id_and_stores(self, captured_id):
        idea = Database().get_by_id(captured_id)
        assert idea.content == "Plan a #trip to Japan"
        assert idea.tags == ["trip"]

    def test_list_shows_idea(self, monkeypatch, capsys, captured_id):
        assert run(monkeypatch, "list") == 0
        out = capsys.readouterr().out
        assert "Today" in out
        assert "Plan a #trip to Japan" in out

    def test_find(self, monkeypatch, capsys, captured_id):
        assert run(monkeypatch, "find", "japan") == 0
        assert captured_id in capsys.readouterr().out

    def test_find_nothing(self, monkeypatch, capsys, captured_id):
        assert run(monkeypatch, "find", "kayak") == 0
        assert "No ideas matching" in capsys.readouterr().out


class TestCommands:
    def test_fav(self, monkeypatch, capsys, captured_id):
        assert run(monkeypatch, "fav", captured_id) == 0
        assert "Favorited" in capsys.readouterr().out
        assert Database().get_by_id(captured_id).is_favorite is True

    def test_missing_id_exits_nonzero(self, monkeypatch, capsys):
        assert run(monkeypatch, "fav", "missing") == 1
        assert "Error:" in capsys.readouterr().err

    def test_edit_keeps_identity(self, monkeypatch, capsys, captured_id):
        assert run(monkeypatch, "edit", captured_id, "Plan", "a", "#ski", "trip") == 0
        idea = Database().get_by_id(captured_id)
        assert idea.content == "Plan a #ski trip"
        assert idea.tags == ["trip", "ski"]

    def test_expand_without_key_fails_cleanly(self, monkeypatch, capsys, captured_id):
        assert run(monkeypatch, "expand", captured_id) == 1
        assert "API key" in capsys.readouterr().err
        assert Database().get_enrichments(captured_id) == []

    def test_combine_needs_two(self, monkeypatch, capsys, captured_id):
        assert run(monkeypatch, "combine", captured_id) == 1
        assert "At least 2" in capsys.readouterr().err

    def test_export(self, monkeypatch, capsys, captured_id):
        assert run(monkeypatch, "export") == 0
        data = json.loads(capsys.readouterr().out)
        assert [idea["id"] for idea in data["ideas"]] == [captured_id]

    def test_stats(self, monkeypatch, capsys, captured_id):
        assert run(monkeypatch, "stats") == 0
        assert "Total ideas: 1" in capsys.readouterr().out

    def test_rm(self, monkeypatch, capsys, captured_id):
        assert run(monkeypatch, "rm", captured_id) == 0
        assert Database().get_by_id(captured_id) is None

    def test_version(self, monkeypatch, capsys):
        assert run(monkeypatch, "--version") == 0
        assert __version__ in capsys.readouterr().out


class TestHealth:
    def test_offline_report(self, monkeypatch, capsys):
        assert run(monkeypatch, "health", "--offline") == 0
        out = capsys.readouterr().out
        assert "Credentials: No API key" in out
        assert "Connection" not in out

    def test_checks_with_credentials(self, monkeypatch, captured_id):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        checks = run_health_check(online=False)

        assert checks["Database"] == ("✓", "OK (1 ideas)")
        assert checks["Config"][0] == "-"
        assert checks["Credentials"][0] == "✓"
        assert "✓ Database: OK (1 ideas)" in format_health_report(checks)

    def test_health_never_creates_store(self, isolated_env, monkeypatch, capsys):
        for _ in range(2):
            assert run(monkeypatch, "health") == 0

        out = capsys.readouterr().out
        assert out.count("Database: Not found") == 2
        assert "Connection: Skipped (no API key)" in out
        assert not (isolated_env / "home" / "ideapile.db").exists()

    def test_connection_check_with_credentials(self, isolated_env, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setattr("ideapile.enrichment.ping", lambda client: True)

        assert check_connection() == ("✓", "OK")
        assert not (isolated_env / "home" / "ideapile.db").exists()


class TestShowAndConnect:
    def test_show(self, monkeypatch, capsys, captured_id):
        assert run(monkeypatch, "show", captured_id) == 0
        out = capsys.readouterr().out
        assert captured_id in out
        assert "#trip" in out

    def test_connect_and_disconnect(self, monkeypatch, capsys, captured_id):
        other = Database().create("Learn Japanese").id

        assert run(monkeypatch, "connect", captured_id, other) == 0
        assert Database().get_by_id(other).connections == [captured_id]

        assert run(monkeypatch, "disconnect", other, captured_id) == 0
        assert Database().get_by_id(captured_id).connections == []

    def test_connect_self_fails(self, monkeypatch, capsys, captured_id):
        assert run(monkeypatch, "connect", captured_id, captured_id) == 1
        assert "itself" in capsys.readouterr().err
