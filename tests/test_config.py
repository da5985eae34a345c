"""Tests for configuration loading, env overrides and history storage."""

import json
import os
from datetime import datetime, timedelta

import pytest

from aiask.cli import config
from aiask.cli.config import AppConfig, ConfigError, ProviderName, load_config, save_config, set_value
from aiask.cli.history import MAX_HISTORY_ENTRIES, History, HistoryEntry, add_entry, history_file, load_history


def _write_config(home, **data):
    home.mkdir(parents=True, exist_ok=True)
    (home / "config.json").write_text(json.dumps(data), encoding="utf-8")


class TestLoadConfig:
    def test_missing_file_without_env_raises(self):
        with pytest.raises(ConfigError, match="config not found"):
            load_config(env={})

    def test_env_only(self):
        cfg = load_config(env={"AIASK_PROVIDER": "OpenAI", "AIASK_API_KEY": "sk-test"})
        assert cfg.provider == ProviderName.OPENAI
        assert cfg.model == "gpt-4o"
        assert cfg.api_key == "sk-test"

    def test_env_only_ollama_needs_no_key(self):
        cfg = load_config(env={"AIASK_PROVIDER": "ollama", "AIASK_OLLAMA_URL": "http://gpu:11434/"})
        assert cfg.base_url == "http://gpu:11434/v1"
        assert cfg.model == "llama3.2"

    def test_env_provider_without_key_falls_back_to_file(self, isolated_home):
        _write_config(isolated_home, provider="anthropic", api_key="file-key", model="claude-x")
        cfg = load_config(env={"AIASK_PROVIDER": "anthropic"})
        assert cfg.api_key == "file-key"
        assert cfg.model == "claude-x"

    def test_env_overrides_file(self, isolated_home):
        _write_config(isolated_home, provider="grok", api_key="k", model="grok-3", timeout=30)
        cfg = load_config(env={"AIASK_MODEL": "grok-4", "AIASK_TIMEOUT": "90", "AIASK_SYSTEM_PROMPT_SUFFIX": "be terse"})
        assert cfg.model == "grok-4"
        assert cfg.timeout == 90
        assert cfg.system_prompt_suffix == "be terse"

    def test_bad_timeout_env_is_ignored(self, isolated_home):
        _write_config(isolated_home, provider="grok", api_key="k", timeout=30)
        assert load_config(env={"AIASK_TIMEOUT": "soon"}).timeout == 30

    def test_malformed_file(self, isolated_home):
        isolated_home.mkdir(parents=True)
        (isolated_home / "config.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="failed to read config file"):
            load_config(env={})

    def test_unknown_provider(self):
        with pytest.raises(ConfigError, match="unsupported provider"):
            load_config(env={"AIASK_PROVIDER": "skynet", "AIASK_API_KEY": "x"})

    def test_timeout_defaults_when_not_positive(self):
        assert AppConfig(timeout=0).timeout_seconds == 60.0

    @pytest.mark.parametrize(
        "provider,url",
        [
            (ProviderName.GROK, "https://api.x.ai/v1"),
            (ProviderName.OPENAI, "https://api.openai.com/v1"),
            (ProviderName.OLLAMA, "http://localhost:11434/v1"),
            (ProviderName.ANTHROPIC, "https://api.anthropic.com"),
            (ProviderName.GEMINI, "https://generativelanguage.googleapis.com"),
        ],
    )
    def test_base_urls(self, provider, url):
        assert AppConfig(provider=provider).base_url == url


class TestSaveConfig:
    def test_round_trip_and_permissions(self, isolated_home):
        save_config(AppConfig(provider=ProviderName.GEMINI, api_key="g", model="gemini-2.0-flash"))
        path = config.config_file()
        assert json.loads(path.read_text(encoding="utf-8"))["provider"] == "gemini"
        if os.name == "posix":
            assert oct(path.stat().st_mode & 0o777) == oct(0o600)
        assert [p.name for p in isolated_home.iterdir()] == ["config.json"]
        assert load_config(env={}).provider == ProviderName.GEMINI

    def test_set_provider_resets_model(self):
        cfg = set_value(AppConfig(), "provider", "anthropic")
        assert cfg.provider == ProviderName.ANTHROPIC
        assert cfg.model == "claude-sonnet-4-20250514"

    def test_set_rejects_unknown_key_and_bad_timeout(self):
        with pytest.raises(ConfigError, match="unknown config key"):
            set_value(AppConfig(), "colour", "blue")
        with pytest.raises(ConfigError, match="timeout must be an integer"):
            set_value(AppConfig(), "timeout", "soon")


class TestHistory:
    def test_add_entry_persists_newest_first(self):
        add_entry("list files", "ls -la", "bash", True)
        add_entry("disk usage", "du -sh .", "bash", False)
        entries = load_history().entries
        assert [e.command for e in entries] == ["du -sh .", "ls -la"]
        assert entries[1].executed is True
        assert history_file().exists()

    def test_capped(self):
        history = History()
        for i in range(MAX_HISTORY_ENTRIES + 5):
            history.add(HistoryEntry(prompt=f"p{i}", command=f"c{i}", shell="bash"))
        assert len(history.entries) == MAX_HISTORY_ENTRIES
        assert history.entries[0].command == f"c{MAX_HISTORY_ENTRIES + 4}"

    def test_recent_and_search(self):
        now = datetime.now()
        history = History(
            entries=[
                HistoryEntry(timestamp=now, prompt="Find PDFs", command="find . -name '*.pdf'", shell="bash"),
                HistoryEntry(timestamp=now - timedelta(minutes=1), prompt="count lines", command="wc -l x", shell="zsh"),
            ]
        )
        assert len(history.recent(1)) == 1
        assert len(history.recent(0)) == 2
        assert len(history.recent(50)) == 2
        assert [e.prompt for e in history.search("pdf")] == ["Find PDFs"]
        assert [e.prompt for e in history.search("WC -L")] == ["count lines"]
        history.clear()
        assert history.entries == []

    def test_corrupt_history_is_logged_not_raised(self, isolated_home, caplog):
        isolated_home.mkdir(parents=True)
        history_file().write_text("[", encoding="utf-8")
        with caplog.at_level("WARNING", logger="aiask.cli.history"):
            add_entry("p", "c", "bash", False)
        assert "could not record history" in caplog.text
