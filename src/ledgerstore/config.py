"""
Configuration for ledgerstore.

StoreConfig is a Pydantic model loaded from YAML:

    transaction_db_path: archive/transactions.sqlite3
    receipt_db_path: archive/receipts.sqlite3
    verbose: false
    latest_default: 100
    page_default: 10000
    log_level: INFO
    log_format: text

Every key is optional. The LEDGERSTORE_CONFIG environment variable names
the file the CLI loads when no --config option is given.
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledgerstore.errors import ConfigError

CONFIG_ENV_VAR = "LEDGERSTORE_CONFIG"


class EnvSettings(BaseSettings):
    """Settings read from LEDGERSTORE_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="LEDGERSTORE_", case_sensitive=False, extra="ignore")

    config: str | None = Field(default=None, description="Path of the YAML configuration file")


class StoreConfig(BaseModel):
    """
    Settings for the archive databases and their stores.

    Attributes:
        transaction_db_path: SQLite file for the transactions table (or ":memory:")
        receipt_db_path: SQLite file for the receipts table (or ":memory:")
        verbose: Log successful single writes and read results at DEBUG
        latest_default: Row count used by get_latest when none is given
        page_default: Page size used by get_page when none is given
        log_level: Root log level
        log_format: "text" or "json"
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    transaction_db_path: str = Field(
        default="archive/transactions.sqlite3",
        description="SQLite file for transactions",
        min_length=1,
    )
    receipt_db_path: str = Field(
        default="archive/receipts.sqlite3",
        description="SQLite file for receipts",
        min_length=1,
    )
    verbose: bool = Field(default=False, description="Verbose store logging")
    latest_default: int = Field(default=100, gt=0, description="Default latest count")
    page_default: int = Field(default=10000, gt=0, description="Default page size")
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: Literal["text", "json"] = Field(default="text", description="Log format")


def load_config_from_string(content: str, source: str = "<string>") -> StoreConfig:
    """
    Load a configuration from a YAML string.

    Raises:
        ConfigError: If the YAML is malformed or does not match StoreConfig
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(path=source, message=f"Malformed YAML in {source}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(path=source, message=f"Configuration in {source} must be a mapping")
    try:
        return StoreConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(path=source, message=f"Invalid configuration in {source}: {e}") from e


def load_config(path: Path | str | None = None) -> StoreConfig:
    """
    Load a configuration from a YAML file.

    Args:
        path: File to read. When None, LEDGERSTORE_CONFIG is consulted;
              if that is unset too, the defaults are returned.

    Raises:
        ConfigError: If the file is missing or invalid
    """
    if path is None:
        path = EnvSettings().config
        if not path:
            return StoreConfig()
    path = Path(path)
    try:
        content = path.read_text()
    except OSError as e:
        raise ConfigError(
            path=str(path),
            message=f"Cannot read configuration file {path}: {e}",
            suggestion="Check the --config path or the LEDGERSTORE_CONFIG variable",
        ) from e
    return load_config_from_string(content, source=str(path))
