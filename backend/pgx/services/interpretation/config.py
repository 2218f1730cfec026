"""
Configuration for the interpretation service.
Centralizes where rule tables come from and how strictly they are validated.
"""

import os
from typing import Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv, find_dotenv

from .models import Locale


class InterpretationConfig(BaseModel):
    """Main configuration for the interpretation service."""

    # Data paths
    rule_table_path: Optional[str] = Field(
        default=None,
        description="Path to a rule table JSON file; None uses the bundled rule_tables.json"
    )

    default_locale: Locale = Field(
        default=Locale.EN,
        description="Locale used when a caller does not pass one"
    )

    # Validation
    strict_validation: bool = Field(
        default=True,
        description="Reject rule tables with ambiguous or malformed rules at load time"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level configured by pgx.core.logging"
    )

    verbose_logging: bool = Field(
        default=False,
        description="Log every resolution at DEBUG level"
    )


# Global configuration instance
_config: InterpretationConfig = InterpretationConfig()


def get_config() -> InterpretationConfig:
    """Get the global configuration instance."""
    return _config


def update_config(**kwargs):
    """Update configuration parameters; unknown keys raise ValueError."""
    global _config
    unknown = sorted(k for k in kwargs if k not in InterpretationConfig.model_fields)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    current_dict = _config.model_dump()
    current_dict.update(kwargs)

    _config = InterpretationConfig(**current_dict)
    return _config


def reset_config():
    """Restore default configuration."""
    global _config
    _config = InterpretationConfig()
    return _config


def load_config_from_file(filepath: str):
    """Load configuration from a JSON file."""
    import json
    global _config

    with open(filepath, 'r') as f:
        config_dict = json.load(f)

    _config = InterpretationConfig(**config_dict)
    return _config


def save_config_to_file(filepath: str):
    """Save current configuration to a JSON file."""
    import json

    with open(filepath, 'w') as f:
        json.dump(_config.model_dump(mode="json"), f, indent=2)


def load_config_from_env():
    """Overlay PGX_* environment variables (and a .env file, if any) on the current config."""
    load_dotenv(find_dotenv(usecwd=True))

    overrides = {}
    if os.getenv("PGX_RULE_TABLE_PATH"):
        overrides["rule_table_path"] = os.environ["PGX_RULE_TABLE_PATH"]
    if os.getenv("PGX_DEFAULT_LOCALE"):
        overrides["default_locale"] = os.environ["PGX_DEFAULT_LOCALE"]
    if os.getenv("PGX_STRICT_VALIDATION"):
        overrides["strict_validation"] = os.environ["PGX_STRICT_VALIDATION"].lower() in ("1", "true", "yes")
    if os.getenv("PGX_LOG_LEVEL"):
        overrides["log_level"] = os.environ["PGX_LOG_LEVEL"]

    return update_config(**overrides)
