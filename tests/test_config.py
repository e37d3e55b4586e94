"""Tests for config loading and saving."""

import stat

import pytest

from bsky_crosspost.config import AppConfig, CrosspostLimits, load_config, save_config
from bsky_crosspost.errors import ConfigError
from bsky_crosspost.models import Credentials


class TestConfig:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "config.toml"
        config = AppConfig(
            pds_domain="pds.example.com",
            credentials=Credentials(handle="bob.pds.example.com", password="pw", did="did:plc:x"),
            admin_password="admin",
        )
        save_config(config, path)

        loaded = load_config(path)
        assert loaded.pds_domain == "pds.example.com"
        assert loaded.credentials == config.credentials
        assert loaded.admin_password == "admin"
        assert loaded.limits == CrosspostLimits()

    def test_file_is_private(self, tmp_path):
        path = tmp_path / "config.toml"
        save_config(AppConfig(pds_domain="p", credentials=Credentials("h", "pw")), path)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_limits_override(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[bluesky]\npds_domain = "p"\n\n[limits]\nimage_limit = 2\n')
        config = load_config(path)
        assert config.limits.image_limit == 2
        assert config.limits.char_budget == 300
        assert config.credentials.did is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")

    def test_missing_pds_domain(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[bluesky]\nhandle = "bob"\n')
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_limit(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[bluesky]\npds_domain = "p"\n\n[limits]\nimage_limit = "many"\n')
        with pytest.raises(ConfigError):
            load_config(path)
