"""
Configuration management for the soulbound ledger service.

Loads a JSON config file when one exists, falls back to defaults otherwise,
and applies SBT_* environment overrides on top of either.
"""

import json
import logging
import os
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .core.identity import is_zero_address


class ConfigurationError(Exception):
    """Raised when the configuration cannot be used to build the service."""

    pass


@dataclass
class LedgerConfig:
    """Ledger construction parameters."""

    base_uri: str = "https://ipfs.io/ipfs/"
    issuer_address: Optional[str] = None  # Must be set before a host is built
    ledger_name: str = "default"  # Scopes persisted transactions and events


@dataclass
class DatabaseConfig:
    """Database configuration."""

    url: str = "sqlite:///soulbound_ledger.db"
    echo: bool = False
    log_queries: bool = False  # Enable query logging for performance analysis


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False


@dataclass
class AppConfig:
    """Main application configuration."""

    app_name: str = "Soulbound Ledger"
    version: str = "1.0.0"
    description: str = "Soulbound multi-token ledger with gated single-unit transfers"

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"  # Directory for log files

    # Request size limits (bytes)
    max_request_bytes: int = 16 * 1024
    max_batch_request_bytes: int = 64 * 1024


@dataclass
class SoulboundLedgerConfig:
    """Complete configuration for the soulbound ledger service."""

    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    app: AppConfig = field(default_factory=AppConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ledger": asdict(self.ledger),
            "app": asdict(self.app),
            "server": asdict(self.server),
            "database": asdict(self.database),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SoulboundLedgerConfig":
        """Create from dictionary."""
        return cls(
            ledger=LedgerConfig(**data.get("ledger", {})),
            app=AppConfig(**data.get("app", {})),
            server=ServerConfig(**data.get("server", {})),
            database=DatabaseConfig(**data.get("database", {})),
        )


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# env var -> (section, field, converter)
ENV_OVERRIDES = {
    "SBT_BASE_URI": ("ledger", "base_uri", str),
    "SBT_ISSUER_ADDRESS": ("ledger", "issuer_address", str),
    "SBT_LEDGER_NAME": ("ledger", "ledger_name", str),
    "SBT_DATABASE_URL": ("database", "url", str),
    "SBT_LOG_LEVEL": ("app", "log_level", str),
    "SBT_LOG_TO_FILE": ("app", "log_to_file", _env_flag),
    "SBT_LOG_DIR": ("app", "log_dir", str),
    "SBT_HOST": ("server", "host", str),
    "SBT_PORT": ("server", "port", int),
    "SBT_DEBUG": ("server", "debug", _env_flag),
}


class ConfigManager:
    """Manages configuration loading, saving, and environment overrides."""

    def __init__(self):
        self.config_file: Optional[Path] = None
        self.config: Optional[SoulboundLedgerConfig] = None

    def get_config_file_path(self) -> Path:
        """Get the path for the config file."""
        config_file = os.getenv("SBT_CONFIG_FILE")
        if config_file:
            return Path(config_file)

        data_dir = os.getenv("SBT_DATA_DIR")
        config_dir = Path(data_dir) if data_dir else Path.cwd() / "data"
        return config_dir / "config.json"

    def apply_environment(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Overlay SBT_* environment variables onto a config dict."""
        for env_name, (section, field_name, convert) in ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if raw is None or raw == "":
                continue
            try:
                data.setdefault(section, {})[field_name] = convert(raw)
            except ValueError:
                logging.warning(f"Ignoring invalid value for {env_name}: {raw!r}")
        if data.get("server", {}).get("debug"):
            data.setdefault("app", {})["log_level"] = "DEBUG"
        return data

    def create_default_config(self) -> SoulboundLedgerConfig:
        """Create default configuration with environment overrides."""
        data = self.apply_environment(SoulboundLedgerConfig().to_dict())
        return SoulboundLedgerConfig.from_dict(data)

    def load_config(self) -> SoulboundLedgerConfig:
        """Load configuration from file or create default."""
        self.config_file = self.get_config_file_path()

        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    data = json.load(f)

                self.config = SoulboundLedgerConfig.from_dict(self.apply_environment(data))
                logging.info(f"Loaded configuration from {self.config_file}")

            except Exception as e:
                logging.warning(f"Failed to load config from {self.config_file}: {e}")
                logging.info("Creating default configuration")
                self.config = self.create_default_config()
        else:
            logging.info("No config file found, creating default configuration")
            self.config = self.create_default_config()

        return self.config

    def save_config(self, config: Optional[SoulboundLedgerConfig] = None) -> bool:
        """Save configuration to file."""
        if config is None:
            config = self.config

        if config is None:
            logging.error("No configuration to save")
            return False

        try:
            if self.config_file is None:
                self.config_file = self.get_config_file_path()

            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)

            logging.info(f"Saved configuration to {self.config_file}")
            return True

        except OSError as e:
            logging.error(f"Failed to save config to {self.config_file}: {e}")
            return False

    def update_config(self, updates: Dict[str, Any]) -> bool:
        """Update configuration with new values and save it."""
        if self.config is None:
            self.load_config()

        try:
            config_dict = self.config.to_dict()

            for key, value in updates.items():
                if "." in key:
                    # Handle nested keys like "server.port"
                    section, field_name = key.split(".", 1)
                    if section in config_dict:
                        config_dict[section][field_name] = value
                elif key in config_dict and isinstance(value, dict):
                    config_dict[key].update(value)

            self.config = SoulboundLedgerConfig.from_dict(config_dict)
            return self.save_config()

        except TypeError as e:
            logging.error(f"Failed to update configuration: {e}")
            return False

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues."""
        if self.config is None:
            self.load_config()

        issues = []

        if is_zero_address(self.config.ledger.issuer_address):
            issues.append("Issuer address is not set (SBT_ISSUER_ADDRESS)")

        if not self.config.ledger.ledger_name:
            issues.append("Ledger name must not be empty")

        if not 0 < self.config.server.port < 65536:
            issues.append(f"Server port out of range: {self.config.server.port}")

        db_url = self.config.database.url
        if db_url.startswith("sqlite:///") and db_url != "sqlite:///:memory:":
            db_dir = Path(db_url.replace("sqlite:///", "")).parent
            if db_dir.exists() and not os.access(db_dir, os.W_OK):
                issues.append(f"Database directory is not writable: {db_dir}")

        return issues

    def require_valid(self) -> SoulboundLedgerConfig:
        """
        Return the configuration, raising if it cannot build a ledger host.

        Raises:
            ConfigurationError: If validate_config reports any issue
        """
        issues = self.validate_config()
        if issues:
            raise ConfigurationError("; ".join(issues))
        return self.config


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> SoulboundLedgerConfig:
    """Get the current configuration, loading it on first use."""
    if config_manager.config is None:
        return config_manager.load_config()
    return config_manager.config


def reset_config() -> None:
    """Forget the loaded configuration so the next get_config() reloads it."""
    config_manager.config = None
    config_manager.config_file = None


def get_database_url() -> str:
    """Get the database URL."""
    return get_config().database.url
