"""Pytest configuration and shared fixtures."""

import pytest

from ideapile.db import Database
from ideapile.enrichment import Enricher


class FakeClient:
    """Stands in for CompletionClient: scripted replies, records every call."""

    def __init__(self, replies=None, error=None, configured=True):
        self.replies = list(replies or [])
        self.error = error
        self.configured = configured
        self.calls = []

    @property
    def is_configured(self):
        return self.configured

    def complete(self, prompt, max_tokens, temperature=None):
        self.calls.append({
            "prompt": prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.error is not None:
            raise self.error
        if not self.replies:
            return "default reply"
        return self.replies.pop(0)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point config and data dirs at tmp_path and clear credentials."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("IDEAPILE_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    return tmp_path


@pytest.fixture
def db(tmp_path):
    """Fresh database in a temp directory."""
    return Database(tmp_path / "ideapile.db")


@pytest.fixture
def llm_config():
    return {
        "llm": {
            "provider": "openai",
            "temperature": 0.7,
            "openai_api_key": "test-key",
        },
        "features": {
            "speech_to_text": True,
            "auto_tagging": False,
        },
    }


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def enricher(db, llm_config, client):
    return Enricher(db, config=llm_config, client=client)
