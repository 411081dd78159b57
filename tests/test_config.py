"""Tests for registration configuration."""

from pathlib import Path

import pytest

from namewallet.features.names.policy import CENT, MIN_FIRSTUPDATE_DEPTH
from namewallet.shared.config import RegistrationConfig, resolve_storage_dir


class TestRegistrationConfig:
    def test_defaults(self):
        config = RegistrationConfig()
        assert config.maturity_depth == MIN_FIRSTUPDATE_DEPTH == 12
        assert config.fee_unit == CENT
        assert config.name_amount == CENT
        assert config.poll_interval_seconds == 5.0
        assert config.testnet is False

    @pytest.mark.parametrize(
        "kwargs", [{"maturity_depth": 0}, {"fee_unit": 0}, {"name_amount": -1}]
    )
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RegistrationConfig(**kwargs)

    def test_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NAMEWALLET_MATURITY_DEPTH", "3")
        monkeypatch.setenv("NAMEWALLET_POLL_INTERVAL", "0.5")
        monkeypatch.setenv("NAMEWALLET_TESTNET", "true")
        monkeypatch.setenv("NAMEWALLET_DIR", str(tmp_path))

        config = RegistrationConfig.from_environment()

        assert config.maturity_depth == 3
        assert config.poll_interval_seconds == 0.5
        assert config.testnet is True
        assert config.storage_dir == tmp_path

    def test_from_environment_ignores_garbage(self, monkeypatch):
        monkeypatch.setenv("NAMEWALLET_MATURITY_DEPTH", "soon")
        monkeypatch.setenv("NAMEWALLET_POLL_INTERVAL", "")
        monkeypatch.delenv("NAMEWALLET_TESTNET", raising=False)

        config = RegistrationConfig.from_environment()

        assert config.maturity_depth == MIN_FIRSTUPDATE_DEPTH
        assert config.poll_interval_seconds == 5.0
        assert config.testnet is False

    def test_from_environment_rejects_zero_depth(self, monkeypatch):
        monkeypatch.setenv("NAMEWALLET_MATURITY_DEPTH", "0")
        assert RegistrationConfig.from_environment().maturity_depth == MIN_FIRSTUPDATE_DEPTH


class TestResolveStorageDir:
    def test_explicit_dir_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NAMEWALLET_DIR", "/elsewhere")
        assert resolve_storage_dir(tmp_path) == tmp_path

    def test_default_dir(self, monkeypatch):
        monkeypatch.delenv("NAMEWALLET_DIR", raising=False)
        assert resolve_storage_dir() == Path.home() / ".config" / "namewallet"
