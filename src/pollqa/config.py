"""
Settings for polling scenario runs.

Provides Pydantic-validated configuration loaded from (highest priority first):
1. Explicit overrides
2. Environment variables with the POLLQA_ prefix (and a .env file)
3. An optional YAML config file
4. Defaults
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Self

import structlog
import yaml
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

DEFAULT_MEDIA_DIR = Path(__file__).parent / "media"

STANDARD_CONFIG_PATHS = (
    Path(".pollqa.yaml"),
    Path(".pollqa.yml"),
    Path("pollqa.yaml"),
    Path("pollqa.yml"),
)


@dataclass(frozen=True, slots=True)
class WaitPolicy:
    """Bounds and pacing for a single convergence wait."""

    timeout_ms: int
    """Total time allowed for the wait."""

    interval_ms: int
    """Delay before the second probe."""

    backoff: float = 1.0
    """Multiplier applied to the delay after every probe."""

    max_interval_ms: int | None = None
    """Upper bound for the delay between probes."""

    def __post_init__(self) -> None:
        if self.timeout_ms < 0:
            raise ValueError("timeout_ms must be non-negative")
        if self.interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if self.backoff < 1.0:
            raise ValueError("backoff must be at least 1.0")

    def next_interval(self, current_ms: float) -> float:
        """Delay to use after a probe that slept ``current_ms``."""
        grown = current_ms * self.backoff
        if self.max_interval_ms is not None:
            return min(grown, self.max_interval_ms)
        return grown


class PollQASettings(BaseSettings):
    """
    Environment-based settings for scenario runs.

    Loads configuration from environment variables with POLLQA_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="POLLQA_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Meeting server
    server_url: str = "http://localhost/bigbluebutton/"
    shared_secret: SecretStr = SecretStr("")

    # Browser
    headless: bool = True
    slow_mo_ms: int = Field(default=0, ge=0)

    # Implicit bounds for primitives and assertions
    element_wait_ms: int = Field(default=5000, gt=0)
    element_wait_longer_ms: int = Field(default=10000, gt=0)
    element_wait_extra_long_ms: int = Field(default=15000, gt=0)

    # Retry-with-backoff pacing
    poll_interval_ms: int = Field(default=100, gt=0)
    poll_backoff: float = Field(default=1.5, ge=1.0)
    max_poll_interval_ms: int = Field(default=1000, gt=0)

    # Files
    media_dir: Path = DEFAULT_MEDIA_DIR
    artifacts_dir: Path = Path("./artifacts")
    screenshot_on_failure: bool = True

    @field_validator("server_url")
    @classmethod
    def normalize_server_url(cls, v: str) -> str:
        """Ensure the server URL ends with a slash so API calls can be appended."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("server_url must start with http:// or https://")
        return v if v.endswith("/") else f"{v}/"

    @model_validator(mode="after")
    def validate_bounds(self) -> Self:
        """Longer bounds must not be shorter than the default bound."""
        if self.element_wait_longer_ms < self.element_wait_ms:
            raise ValueError("element_wait_longer_ms cannot be shorter than element_wait_ms")
        if self.element_wait_extra_long_ms < self.element_wait_longer_ms:
            raise ValueError(
                "element_wait_extra_long_ms cannot be shorter than element_wait_longer_ms"
            )
        if self.max_poll_interval_ms < self.poll_interval_ms:
            raise ValueError("max_poll_interval_ms cannot be shorter than poll_interval_ms")
        return self

    @property
    def has_secret(self) -> bool:
        """Check if a shared secret is configured."""
        return bool(self.shared_secret.get_secret_value())

    def wait_policy(self, timeout_ms: int | None = None) -> WaitPolicy:
        """Build the wait policy for one wait, defaulting to ``element_wait_ms``."""
        return WaitPolicy(
            timeout_ms=self.element_wait_ms if timeout_ms is None else timeout_ms,
            interval_ms=self.poll_interval_ms,
            backoff=self.poll_backoff,
            max_interval_ms=self.max_poll_interval_ms,
        )


def _read_config_file(config_file: Path | str | None) -> dict[str, Any]:
    """Read the explicit config file, or the first standard one that exists."""
    candidates = [Path(config_file)] if config_file else list(STANDARD_CONFIG_PATHS)
    for path in candidates:
        if path.exists():
            with path.open() as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"Config file {path} must contain a mapping")
            logger.debug("Loaded config file", path=str(path), keys=sorted(data))
            return data
        if config_file:
            raise FileNotFoundError(f"Config file not found: {path}")
    return {}


def load_settings(
    config_file: Path | str | None = None,
    **overrides: Any,
) -> PollQASettings:
    """
    Load settings from file, environment and explicit overrides.

    Args:
        config_file: Optional path to YAML config file
        **overrides: Field values that take precedence over everything else

    Returns:
        Validated PollQASettings instance
    """
    file_config = _read_config_file(config_file)
    env_settings = PollQASettings()

    # Environment wins over the file: only keep file values for fields the
    # environment left unset.
    env_fields = env_settings.model_fields_set
    merged = {k: v for k, v in file_config.items() if k not in env_fields}
    merged.update({k: v for k, v in overrides.items() if v is not None})

    if not merged:
        return env_settings
    return PollQASettings(**{**env_settings.model_dump(include=env_fields), **merged})
