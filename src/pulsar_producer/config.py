"""
Producer configuration and executable location using Pydantic Settings.
"""

import logging
import sys
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings

from pulsar_producer.exceptions import MissingExecutableError

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent
BIN_NAME = "pulsar-publish"


class ProducerSettings(BaseSettings):
    """Process-wide settings read from the environment or a .env file."""

    bin_path: Optional[Path] = Field(
        default=None,
        description="Override for the pulsar-publish executable location",
    )
    timeout: int = Field(default=30, ge=0, description="Default producer timeout in seconds")
    name: str = Field(default="manual-producer", description="Default producer name")
    log_level: str = Field(default="INFO", description="Log level used by the command line tool")

    model_config = {
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "PULSAR_PRODUCER_",
        "extra": "ignore",
    }


global _settings
_settings = ProducerSettings()


def get_settings() -> ProducerSettings:
    return _settings


class ProducerConfig(BaseModel):
    """Producer settings forwarded to pulsar-publish on every publish."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timeout_seconds: int = Field(
        default=30,
        ge=0,
        validation_alias=AliasChoices("timeout_seconds", "timeoutSeconds", "timeout"),
        description="Publish timeout in seconds, enforced by the executable",
    )
    name: str = Field(default="manual-producer", description="Producer name")
    properties: Dict[str, str] = Field(
        default_factory=dict,
        description="Producer properties sent as --producer-property key=value",
    )

    @field_validator("properties", mode="before")
    @classmethod
    def stringify_properties(cls, v: Any) -> Any:
        """Coerce property values to strings."""
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v

    @classmethod
    def from_settings(cls, settings: Optional[ProducerSettings] = None) -> "ProducerConfig":
        """Build the default producer config from the process settings."""
        settings = settings or get_settings()
        return cls(timeout_seconds=settings.timeout, name=settings.name)


def default_executable_path() -> Path:
    suffix = ".exe" if sys.platform == "win32" else ""
    return PACKAGE_DIR / "bin" / f"{BIN_NAME}{suffix}"


@lru_cache(maxsize=1)
def resolve_executable_path() -> Path:
    """
    Resolve the pulsar-publish location once per process.

    Returns:
        Configured bin_path if set, otherwise the executable bundled in the package's bin directory
    """
    configured = get_settings().bin_path
    path = configured if configured is not None else default_executable_path()
    logger.debug(f"Resolved pulsar-publish executable: {path}")
    return path


def ensure_executable(path: Optional[Path] = None) -> Path:
    """
    Check that the pulsar-publish executable exists.

    Args:
        path: Executable to check, defaults to the resolved process-wide path

    Returns:
        The checked path

    Raises:
        MissingExecutableError: If nothing exists at the path
    """
    path = Path(path) if path is not None else resolve_executable_path()
    if not path.is_file():
        logger.error(f"pulsar-publish not found at {path}")
        raise MissingExecutableError(path)
    return path
