"""
Environment Variable Configuration with Validation

Provides centralized environment variable management with:
- Type validation (str, int, bool, path)
- Default values
- Validation rules (min/max, choices)
- Startup validation with clear error messages

Usage:
    from config.env_config import Config, validate_config

    # Access validated config
    db_path = get_database_path()
    port = Config.PORT

    # Validate all at startup (raises ConfigError if invalid)
    validate_config()
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

# Base directory for relative paths
BASE_DIR = Path(__file__).resolve().parent.parent

DEFAULT_DB_FILENAME = "perscom.db"


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class EnvVar:
    """Environment variable definition with validation."""

    name: str
    default: Any = None
    var_type: str = "str"  # str, int, bool, path
    required: bool = False
    description: str = ""
    min_value: Optional[Union[int, float]] = None
    max_value: Optional[Union[int, float]] = None
    choices: Optional[List[Any]] = None
    sensitive: bool = False  # Don't log value if True

    def parse(self, value: str) -> Any:
        """Parse string value to target type."""
        if value is None:
            return None

        if self.var_type == "int":
            try:
                return int(value)
            except ValueError:
                raise ConfigError(f"{self.name}: '{value}' is not a valid integer")
        elif self.var_type == "bool":
            return value.lower() in ("true", "1", "yes", "on")
        elif self.var_type == "path":
            path = Path(value)
            if not path.is_absolute():
                path = BASE_DIR / path
            return path
        return value

    def validate(self, value: Any) -> tuple:
        """Validate parsed value. Returns (is_valid, error_message)."""
        if value is None:
            if self.required:
                return False, f"{self.name} is required but not set"
            return True, ""

        if self.var_type == "int":
            if self.min_value is not None and value < self.min_value:
                return False, f"{self.name}: value {value} is below minimum {self.min_value}"
            if self.max_value is not None and value > self.max_value:
                return False, f"{self.name}: value {value} exceeds maximum {self.max_value}"

        if self.choices is not None and value not in self.choices:
            return (
                False,
                f"{self.name}: '{value}' is not a valid choice. Must be one of: {self.choices}",
            )

        return True, ""

    def get_value(self) -> Any:
        """Get validated value from environment."""
        raw_value = os.environ.get(self.name)

        if raw_value is None or raw_value == "":
            if self.required:
                raise ConfigError(f"Required environment variable {self.name} is not set")
            return self.default

        parsed = self.parse(raw_value)
        is_valid, error = self.validate(parsed)

        if not is_valid:
            raise ConfigError(error)

        return parsed


ENV_VARS: Dict[str, EnvVar] = {
    # Application settings
    "APP_ENV": EnvVar(
        name="APP_ENV",
        default="prod",
        choices=["dev", "prod", "test"],
        description="Application environment",
    ),
    "DEBUG": EnvVar(name="DEBUG", default=False, var_type="bool", description="Enable debug mode"),
    "HOST": EnvVar(name="HOST", default="0.0.0.0", description="Server host"),
    "PORT": EnvVar(
        name="PORT",
        default=3001,
        var_type="int",
        min_value=1,
        max_value=65535,
        description="Server port",
    ),
    "LOG_LEVEL": EnvVar(
        name="LOG_LEVEL",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        description="Root log level for entry points",
    ),
    # Database settings
    "DATA_DIR": EnvVar(
        name="DATA_DIR",
        default=None,  # Computed: BASE_DIR/data
        var_type="path",
        description="Directory holding the store file and its backups",
    ),
    "DATABASE_PATH": EnvVar(
        name="DATABASE_PATH",
        default=None,  # Computed: DATA_DIR/perscom.db
        var_type="path",
        description="SQLite store path (overrides DATA_DIR)",
    ),
    "BACKUP_ON_MIGRATE": EnvVar(
        name="BACKUP_ON_MIGRATE",
        default=True,
        var_type="bool",
        description="Back up an existing store before applying migrations",
    ),
    # Security settings
    "SECRET_KEY": EnvVar(
        name="SECRET_KEY",
        default="perscom-secret-key-change-in-production",
        sensitive=True,
        description="Flask secret key for sessions",
    ),
    "PERSCOM_ADMIN_PASSWORD": EnvVar(
        name="PERSCOM_ADMIN_PASSWORD",
        default="Admin@1234",
        sensitive=True,
        description="Password given to the 'command' account on reset",
    ),
    "PERSCOM_MODERATOR_PASSWORD": EnvVar(
        name="PERSCOM_MODERATOR_PASSWORD",
        default="Mod@1234",
        sensitive=True,
        description="Password given to the 'drillsgt' account on reset",
    ),
}


class ConfigMeta(type):
    """Metaclass to provide attribute access to config values."""

    _cache: Dict[str, Any] = {}
    _validated: bool = False

    def __getattr__(cls, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)

        if name in cls._cache:
            return cls._cache[name]

        if name in ENV_VARS:
            value = ENV_VARS[name].get_value()
            cls._cache[name] = value
            return value

        raise AttributeError(f"Unknown config variable: {name}")


class Config(metaclass=ConfigMeta):
    """
    Configuration class with environment variable access.

    Access config values as class attributes:
        Config.PORT  # Returns int
        Config.DEBUG  # Returns bool
        Config.APP_ENV  # Returns str
    """

    @classmethod
    def to_dict(cls, include_sensitive: bool = False) -> Dict[str, Any]:
        """Get all config values as dictionary."""
        result = {}
        for name, env_var in ENV_VARS.items():
            try:
                value = env_var.get_value()
                if env_var.sensitive and not include_sensitive:
                    value = "***" if value else None
                result[name] = value
            except ConfigError:
                result[name] = None
        return result

    @classmethod
    def clear_cache(cls) -> None:
        """Clear the config cache (useful for testing)."""
        cls._cache.clear()
        cls._validated = False


def get_data_dir() -> Path:
    """Data directory: DATA_DIR if set, else <repo>/data."""
    return Config.DATA_DIR or BASE_DIR / "data"


def get_database_path() -> Path:
    """Store path: DATABASE_PATH if set, else <data dir>/perscom.db."""
    return Config.DATABASE_PATH or get_data_dir() / DEFAULT_DB_FILENAME


def validate_config(strict: bool = False) -> Dict[str, Any]:
    """
    Validate all environment variables at startup.

    Args:
        strict: If True, raise on any validation error.
                If False, log warnings for optional vars.

    Returns:
        Dict of validated config values

    Raises:
        ConfigError: If required variables are missing or invalid
    """
    errors = []
    warnings = []
    validated = {}

    for name, env_var in ENV_VARS.items():
        try:
            value = env_var.get_value()
            validated[name] = value

            if env_var.sensitive:
                log_value = "***" if value else "not set"
            else:
                log_value = value
            logger.debug(f"Config: {name} = {log_value}")

        except ConfigError as e:
            if env_var.required or strict:
                errors.append(str(e))
            else:
                warnings.append(str(e))

    # Apply computed defaults
    if validated.get("DATA_DIR") is None:
        validated["DATA_DIR"] = BASE_DIR / "data"

    if validated.get("DATABASE_PATH") is None:
        validated["DATABASE_PATH"] = validated["DATA_DIR"] / DEFAULT_DB_FILENAME

    for warning in warnings:
        logger.warning(f"Config warning: {warning}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        logger.error(error_msg)
        raise ConfigError(error_msg)

    logger.info(f"Configuration validated: {len(validated)} variables loaded")
    Config._validated = True

    return validated


def is_production() -> bool:
    """Check if running in production environment."""
    return Config.APP_ENV == "prod"


def require_production_secret() -> None:
    """Raise error if using default secret key in production."""
    if is_production() and Config.SECRET_KEY == ENV_VARS["SECRET_KEY"].default:
        raise ConfigError(
            "Using default SECRET_KEY in production is not allowed. "
            "Set the SECRET_KEY environment variable."
        )
