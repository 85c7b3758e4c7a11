"""
Tests for configuration.
"""

import logging

import pytest
import yaml

from horizon.config import HorizonConfig, configure_logging
from horizon.core.consensus import Network
from horizon.exceptions import ConfigurationError


class TestHorizonConfig:
    """Tests for HorizonConfig."""

    def test_defaults(self):
        """Test default values."""
        config = HorizonConfig()

        assert config.network == "localnet"
        assert config.network_id is Network.LOCALNET
        assert config.header_chunk_size == 50
        assert config.check_mmr_roots is False
        assert config.log_level == "INFO"
        assert config.log_file is None

    def test_env_overrides(self, monkeypatch):
        """Test HORIZON_* variables override values."""
        monkeypatch.setenv("HORIZON_NETWORK", "testnet")
        monkeypatch.setenv("HORIZON_HEADER_CHUNK_SIZE", "8")
        monkeypatch.setenv("HORIZON_CHECK_MMR_ROOTS", "true")
        monkeypatch.setenv("HORIZON_LOG_LEVEL", "debug")

        config = HorizonConfig(header_chunk_size=20)

        assert config.network_id is Network.TESTNET
        assert config.header_chunk_size == 8
        assert config.check_mmr_roots is True
        assert config.log_level == "DEBUG"

    def test_invalid_env_value(self, monkeypatch):
        """Test invalid environment values raise ConfigurationError."""
        monkeypatch.setenv("HORIZON_HEADER_CHUNK_SIZE", "0")

        with pytest.raises(ConfigurationError, match="HORIZON_HEADER_CHUNK_SIZE"):
            HorizonConfig()

    @pytest.mark.parametrize("field,value", [
        ("network", "mainnet"),
        ("header_chunk_size", 0),
        ("log_level", "LOUD"),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValueError):
            HorizonConfig(**{field: value})

    def test_presets(self):
        assert HorizonConfig.development().check_mmr_roots is True
        assert HorizonConfig.production().network_id is Network.TESTNET


class TestConfigFiles:
    """Tests for loading and saving config files."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "horizon.yaml"
        path.write_text("network: testnet\nheader_chunk_size: 25\ncheck_mmr_roots: yes\n")

        config = HorizonConfig.load(path)

        assert config.network == "testnet"
        assert config.header_chunk_size == 25
        assert config.check_mmr_roots is True

    def test_load_json(self, tmp_path):
        """Test JSON files load through the YAML parser."""
        path = tmp_path / "horizon.json"
        path.write_text('{"header_chunk_size": 5}')

        assert HorizonConfig.load(path).header_chunk_size == 5

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert HorizonConfig.load(path) == HorizonConfig()

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "saved.yaml"
        HorizonConfig(network="testnet", check_mmr_roots=True).save(path)

        assert yaml.safe_load(path.read_text())["network"] == "testnet"
        assert HorizonConfig.load(path).check_mmr_roots is True

    @pytest.mark.parametrize("content", [
        "unknown_key: 1\n",
        "header_chunk_size: -3\n",
        "- a list\n",
        "network: [unclosed\n",
    ])
    def test_invalid_files(self, tmp_path, content):
        path = tmp_path / "bad.yaml"
        path.write_text(content)

        with pytest.raises(ConfigurationError):
            HorizonConfig.load(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            HorizonConfig.load(tmp_path / "missing.yaml")


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_sets_level(self):
        configure_logging(HorizonConfig(log_level="WARNING"))
        assert logging.getLogger().level == logging.WARNING

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "horizon.log"
        configure_logging(HorizonConfig(log_file=str(log_file)))

        logging.getLogger("horizon.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "hello" in log_file.read_text()
