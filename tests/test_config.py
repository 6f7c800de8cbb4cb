"""Tests for environment-driven configuration."""

from __future__ import annotations

import os
import unittest
from unittest.mock import patch

import pytest

from marksync.config import (
    SyncDataConfig,
    SyncStrategyConfig,
    WebDAVConfig,
    load_config,
    validate_webdav_config,
)

VALID_ENV = {
    "WEBDAV_URL": "https://dav.example.com/dav/",
    "WEBDAV_USERNAME": "alice",
    "WEBDAV_PASSWORD": "s3cret",
}


class TestLoadConfig(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, VALID_ENV, clear=True):
            cfg = load_config()

        assert cfg.webdav.url == "https://dav.example.com/dav"
        assert cfg.webdav.folder == "/bookmarks"
        assert cfg.webdav.timeout_sec == 30.0
        assert cfg.sync_data.bookmarks and cfg.sync_data.config_enabled
        assert cfg.strategy.mechanism == "merge"
        assert cfg.strategy.interval_minutes == 15
        assert cfg.runtime.log_level == "INFO"
        assert cfg.validate_sync_setup() == []

    def test_flat_environment_populates_nested_sections(self):
        env = {
            **VALID_ENV,
            "WEBDAV_FOLDER": "marks",
            "SYNC_FILTERS": "false",
            "SYNC_MECHANISM": "Remote-First",
            "SYNC_AUTO": "yes",
            "SYNC_INTERVAL_MINUTES": "60",
            "DEVICE_NAME": "laptop",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = load_config()

        assert cfg.webdav.folder == "/marks"
        assert cfg.sync_data.filters is False
        assert cfg.strategy.mechanism == "remote-first"
        assert cfg.strategy.auto_sync is True
        assert cfg.strategy.interval_minutes == 60
        assert cfg.runtime.device_name == "laptop"

    def test_overrides_win_over_environment(self):
        with patch.dict(os.environ, {**VALID_ENV, "SYNC_MECHANISM": "merge"}, clear=True):
            cfg = load_config(strategy={"mechanism": "local-first"}, runtime={"db_path": "x.db"})

        assert cfg.strategy.mechanism == "local-first"
        assert cfg.runtime.db_path == "x.db"

    def test_unknown_mechanism_falls_back_to_merge(self):
        with patch.dict(os.environ, {**VALID_ENV, "SYNC_MECHANISM": "newest"}, clear=True):
            assert load_config().strategy.mechanism == "merge"

    def test_invalid_values_raise_runtime_error(self):
        with patch.dict(os.environ, {**VALID_ENV, "WEBDAV_URL": "ftp://nope"}, clear=True):
            with pytest.raises(RuntimeError, match="Configuration validation failed"):
                load_config()

    def test_invalid_log_level_raises(self):
        with patch.dict(os.environ, {**VALID_ENV, "LOG_LEVEL": "LOUD"}, clear=True):
            with pytest.raises(RuntimeError):
                load_config()

    def test_folder_rejects_parent_segments(self):
        with pytest.raises(ValueError):
            WebDAVConfig(url="https://x", folder="/a/../b")


class TestValidateWebDAVConfig(unittest.TestCase):
    def test_missing_credentials(self):
        problems = validate_webdav_config(
            WebDAVConfig(url="https://x"), SyncDataConfig(), SyncStrategyConfig()
        )
        assert problems == ["WebDAV url, username and password are required"]

    def test_interval_checked_only_with_auto_sync(self):
        server = WebDAVConfig(url="https://x", username="u", password="p")
        assert validate_webdav_config(
            server, SyncDataConfig(), SyncStrategyConfig(interval_minutes=1)
        ) == []
        problems = validate_webdav_config(
            server, SyncDataConfig(), SyncStrategyConfig(auto_sync=True, interval_minutes=2000)
        )
        assert len(problems) == 1
        assert "between 5 and 1440" in problems[0]

    def test_at_least_one_category_required(self):
        server = WebDAVConfig(url="https://x", username="u", password="p")
        nothing = SyncDataConfig(bookmarks=False, settings=False, filters=False, services=False)
        problems = validate_webdav_config(server, nothing, SyncStrategyConfig())
        assert problems == ["At least one data category must be selected for sync"]


if __name__ == "__main__":
    unittest.main()
