"""
CLARK Entities - Configuration

Centralized configuration for the entity library.
Uses environment variables with sensible defaults.
"""
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_path(name: str) -> Optional[Path]:
    value = os.getenv(name, "")
    return Path(value) if value else None


class Environment(Enum):
    """Deployment environments."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class TaxonomyConfig:
    """Where the Bloom taxonomy tables come from."""
    # Bundled defaults are used when unset
    file: Optional[Path] = field(default_factory=lambda: _env_path("CLARK_TAXONOMY_FILE"))


@dataclass
class ReconstructionConfig:
    """Behavior of instantiate() when reading persisted documents."""
    # Keep legacy alias values that disagree with the chosen field in extensions
    preserve_shadowed_fields: bool = field(
        default_factory=lambda: _env_flag("CLARK_PRESERVE_SHADOWED_FIELDS", "true")
    )
    # Log when a persisted published flag contradicts the persisted status
    warn_published_mismatch: bool = field(
        default_factory=lambda: _env_flag("CLARK_WARN_PUBLISHED_MISMATCH", "true")
    )


@dataclass
class LoggingConfig:
    """Logging configuration."""
    service_name: str = field(default_factory=lambda: os.getenv("CLARK_SERVICE_NAME", "clark-entities"))
    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    json_format: bool = field(default_factory=lambda: _env_flag("LOG_JSON", "false"))
    log_to_console: bool = field(default_factory=lambda: _env_flag("LOG_TO_CONSOLE", "true"))


@dataclass
class Config:
    """Main configuration class combining all sub-configs."""
    env: Environment = field(default_factory=lambda: Environment(os.getenv("ENVIRONMENT", "development")))
    debug: bool = field(default_factory=lambda: _env_flag("DEBUG", "false"))

    taxonomy: TaxonomyConfig = field(default_factory=TaxonomyConfig)
    reconstruction: ReconstructionConfig = field(default_factory=ReconstructionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.env == Environment.DEVELOPMENT

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "env": self.env.value,
            "debug": self.debug,
            "taxonomy": {
                "file": str(self.taxonomy.file) if self.taxonomy.file else None,
            },
            "reconstruction": {
                "preserve_shadowed_fields": self.reconstruction.preserve_shadowed_fields,
                "warn_published_mismatch": self.reconstruction.warn_published_mismatch,
            },
            "logging": {
                "level": self.logging.level,
                "json_format": self.logging.json_format,
            },
        }


# Singleton configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create configuration singleton."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment."""
    global _config
    load_dotenv(override=True)
    _config = Config()
    return _config
