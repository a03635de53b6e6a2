"""Race coordinator configuration settings."""

import logging
import re
from functools import lru_cache
from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import FailurePolicy, SourceDescriptor
from .normalizer import BRASIL_API, VIACEP

logger = logging.getLogger(__name__)

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str | int | float) -> float:
    """Parse a duration into seconds.

    Accepts plain numbers (seconds) and unit strings such as ``"1s"``,
    ``"500ms"``, ``"1.5s"`` or ``"1m30s"``.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    if isinstance(value, (int, float)):
        return float(value)

    text = value.strip().lower()
    try:
        return float(text)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ValueError(f"Invalid duration: {value!r}")
    return total


class RaceSettings(BaseSettings):
    """CEP race settings with validation, read from the environment or `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ============================================================================
    # SOURCES
    # ============================================================================

    brasil_api_url: str = Field(
        default="https://brasilapi.com.br/api/cep/v1/",
        description="BrasilAPI base URL; the CEP is appended",
    )
    viacep_url: str = Field(
        default="https://viacep.com.br/ws/",
        description="ViaCEP base URL; the CEP and '/json' are appended",
    )

    # ============================================================================
    # RACE BEHAVIOUR
    # ============================================================================

    api_timeout: float = Field(
        default=1.0, gt=0, description="Overall race deadline in seconds"
    )
    max_attempts: int = Field(
        default=3, ge=1, le=10, description="Attempts per source, including the first"
    )
    retry_backoff: float = Field(
        default=0.1,
        ge=0,
        description="Linear backoff step in seconds (attempt n waits n * step)",
    )
    failure_policy: FailurePolicy = Field(
        default=FailurePolicy.SHORT_CIRCUIT,
        description="short_circuit: first exhausted source ends the race; "
        "wait_all: fail only when every source has failed",
    )

    # ============================================================================
    # HTTP TRANSPORT
    # ============================================================================

    max_connections: int = Field(
        default=10, ge=1, description="Total connection pool size"
    )
    keepalive_timeout: float = Field(
        default=30.0, ge=0, description="Idle keep-alive timeout in seconds"
    )
    request_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-request transport timeout in seconds (None: race deadline only)",
    )

    # ============================================================================
    # LOGGING CONFIGURATION
    # ============================================================================

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    @field_validator("api_timeout", "retry_backoff", "keepalive_timeout", mode="before")
    @classmethod
    def parse_durations(cls, v):
        """Accept duration strings like '1s' or '500ms' for time settings."""
        if isinstance(v, str):
            return parse_duration(v)
        return v

    @field_validator("request_timeout", mode="before")
    @classmethod
    def parse_request_timeout(cls, v):
        if isinstance(v, str):
            if v.strip() == "":
                return None
            return parse_duration(v)
        return v

    @field_validator("brasil_api_url", "viacep_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Require absolute http(s) base URLs with a host."""
        try:
            parts = urlsplit(v)
        except ValueError as e:
            raise ValueError(f"Source URL is malformed: {v} ({e})") from e
        if parts.scheme not in ("http", "https"):
            raise ValueError(f"Source URL must start with http:// or https://: {v}")
        if not parts.netloc:
            raise ValueError(f"Source URL has no host: {v}")
        return v

    @field_validator("failure_policy", mode="before")
    @classmethod
    def normalize_policy(cls, v):
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    def source_descriptors(self) -> list[SourceDescriptor]:
        """Sources in dispatch order."""
        return [
            SourceDescriptor(name=BRASIL_API, url_template=f"{self.brasil_api_url}{{query}}"),
            SourceDescriptor(name=VIACEP, url_template=f"{self.viacep_url}{{query}}/json"),
        ]

    def log_configuration(self) -> None:
        """Log current configuration for debugging."""
        logger.info("CEP race configuration:")
        logger.info(f"  Sources: {[s.name for s in self.source_descriptors()]}")
        logger.info(f"  Timeout: {self.api_timeout}s")
        logger.info(f"  Attempts: {self.max_attempts} (backoff step {self.retry_backoff}s)")
        logger.info(f"  Failure policy: {self.failure_policy.value}")


@lru_cache
def get_settings() -> RaceSettings:
    """Get cached settings instance."""
    return RaceSettings()
