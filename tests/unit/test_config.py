"""
Unit tests for configuration and logging setup.

Tests cover:
- Defaults and YAML loading
- Environment variable lookup
- Invalid configuration handling
- JSON and text log formatting
"""

import json
import logging
from pathlib import Path

import pytest

from ledgerstore.config import (
    CONFIG_ENV_VAR,
    EnvSettings,
    StoreConfig,
    load_config,
    load_config_from_string,
)
from ledgerstore.errors import ConfigError
from ledgerstore.observability import JSONFormatter, setup_logging


class TestStoreConfig:
    """Tests for StoreConfig loading."""

    def test_defaults(self) -> None:
        config = StoreConfig()
        assert config.latest_default == 100
        assert config.page_default == 10000
        assert config.verbose is False
        assert config.log_format == "text"

    def test_load_from_string(self) -> None:
        config = load_config_from_string(
            """
transaction_db_path: ":memory:"
receipt_db_path: ":memory:"
verbose: true
latest_default: 25
"""
        )
        assert config.transaction_db_path == ":memory:"
        assert config.verbose is True
        assert config.latest_default == 25
        assert config.page_default == 10000

    def test_empty_string_gives_defaults(self) -> None:
        assert load_config_from_string("") == StoreConfig()

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(ConfigError):
            load_config_from_string("databse_path: typo.sqlite3")

    def test_invalid_value_rejected(self) -> None:
        with pytest.raises(ConfigError):
            load_config_from_string("page_default: 0")

    def test_malformed_yaml(self) -> None:
        with pytest.raises(ConfigError):
            load_config_from_string("verbose: [unclosed")

    def test_non_mapping(self) -> None:
        with pytest.raises(ConfigError):
            load_config_from_string("- a\n- b\n")

    def test_load_from_file(self, temp_dir: Path) -> None:
        path = temp_dir / "archive.yaml"
        path.write_text("log_format: json\n")
        assert load_config(path).log_format == "json"

    def test_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_config(temp_dir / "absent.yaml")
        assert exc_info.value.suggestion is not None

    def test_env_var(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = temp_dir / "env.yaml"
        path.write_text("latest_default: 7\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert load_config().latest_default == 7

    def test_no_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert load_config() == StoreConfig()

    def test_env_settings_reads_prefixed_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, "/etc/ledgerstore.yaml")
        assert EnvSettings().config == "/etc/ledgerstore.yaml"


class TestLogging:
    """Tests for log formatting."""

    def test_json_formatter_includes_extras(self) -> None:
        record = logging.LogRecord(
            name="ledgerstore.store.base",
            level=logging.ERROR,
            pathname=__file__,
            lineno=1,
            msg="Transaction insert failed for %s",
            args=("tx-1",),
            exc_info=None,
        )
        record.record_id = "tx-1"
        record.table = "transactions"
        payload = json.loads(JSONFormatter().format(record))
        assert payload["level"] == "ERROR"
        assert payload["message"] == "Transaction insert failed for tx-1"
        assert payload["record_id"] == "tx-1"
        assert payload["table"] == "transactions"
        assert "operation" not in payload

    def test_setup_logging_is_idempotent(self) -> None:
        root = logging.getLogger()
        level = root.level
        first = setup_logging("DEBUG", "json")
        second = setup_logging("WARNING", "text")
        try:
            assert first is second
            assert root.handlers.count(first) == 1
            assert root.level == logging.WARNING
            assert not isinstance(second.formatter, JSONFormatter)
        finally:
            root.removeHandler(first)
            root.setLevel(level)
