"""Configuration management for booklify.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from dotenv import load_dotenv

from .reading.cfi import DEFAULT_MAX_CFI_LENGTH
from .reading.position import DEFAULT_STEP_CEILING
from .reading.reconciler import DEFAULT_CFI_WEIGHT, DEFAULT_COMPLETION_WEIGHT

# Load .env file if present
load_dotenv()

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _read_number(name: str, default, cast: Callable, errors: list[str]):
    """Read a numeric env var, recording unparsable values in ``errors``."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        errors.append(f"{name} must be a number (got {raw!r})")
        return default


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Progress blending
    cfi_weight: float
    completion_weight: float

    # CFI handling
    step_ceiling: int
    max_cfi_length: int

    # Logging
    log_level: str

    # Env values that could not be parsed
    parse_errors: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "BOOKLIFY_DB_PATH",
            str(Path.home() / ".booklify" / "booklify.db"),
        )

        parse_errors: list[str] = []
        return cls(
            db_path=Path(db_path_str).expanduser(),
            cfi_weight=_read_number("BOOKLIFY_CFI_WEIGHT", DEFAULT_CFI_WEIGHT, float, parse_errors),
            completion_weight=_read_number(
                "BOOKLIFY_COMPLETION_WEIGHT", DEFAULT_COMPLETION_WEIGHT, float, parse_errors
            ),
            step_ceiling=_read_number("BOOKLIFY_STEP_CEILING", DEFAULT_STEP_CEILING, int, parse_errors),
            max_cfi_length=_read_number(
                "BOOKLIFY_MAX_CFI_LENGTH", DEFAULT_MAX_CFI_LENGTH, int, parse_errors
            ),
            log_level=os.environ.get("BOOKLIFY_LOG_LEVEL", "WARNING").upper(),
            parse_errors=parse_errors,
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = list(self.parse_errors)

        if self.cfi_weight < 0 or self.completion_weight < 0:
            errors.append("Progress weights must be non-negative")
        if abs(self.cfi_weight + self.completion_weight - 1.0) > 1e-9:
            errors.append(
                f"Progress weights must sum to 1 (got {self.cfi_weight} + {self.completion_weight})"
            )
        if self.step_ceiling < 2:
            errors.append(f"BOOKLIFY_STEP_CEILING must be at least 2 (got {self.step_ceiling})")
        if self.max_cfi_length < 1:
            errors.append(f"BOOKLIFY_MAX_CFI_LENGTH must be positive (got {self.max_cfi_length})")
        if self.log_level not in LOG_LEVELS:
            errors.append(f"Unknown log level: {self.log_level}")

        # Check database directory is writable
        if not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
