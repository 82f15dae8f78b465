# Configuration module
from .env_config import (
    ENV_VARS,
    Config,
    ConfigError,
    EnvVar,
    get_data_dir,
    get_database_path,
    is_production,
    require_production_secret,
    validate_config,
)

__all__ = [
    "Config",
    "ConfigError",
    "EnvVar",
    "ENV_VARS",
    "get_data_dir",
    "get_database_path",
    "validate_config",
    "is_production",
    "require_production_secret",
]
