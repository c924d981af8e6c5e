from typing import Literal
import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    xtream_request_timeout_sec: float = 30.0
    xtream_connect_timeout_sec: float = 10.0
    xtream_follow_redirects: bool = True
    xtream_verify_tls: bool = True

    live_stream_extension: str = "ts"
    movie_stream_extension: str = "mp4"
    series_stream_extension: str = "mp4"

    # "random" keeps ids unstable across refreshes when the panel omits them
    synthetic_id_strategy: Literal["random", "stable"] = "random"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @field_validator("api_port")
    @classmethod
    def validate_api_port(cls, value: int) -> int:
        """Validate facade listen port."""
        if not 0 < value < 65536:
            raise ValueError("api_port must be between 1 and 65535")
        return value

    @field_validator("xtream_request_timeout_sec", "xtream_connect_timeout_sec")
    @classmethod
    def validate_positive_timeouts(cls, value: float, info) -> float:
        """Ensure HTTP timeouts are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator(
        "live_stream_extension",
        "movie_stream_extension",
        "series_stream_extension",
    )
    @classmethod
    def validate_extension(cls, value: str, info) -> str:
        """Strip a leading dot and require a plain alphanumeric extension."""
        normalized = value.strip().lstrip(".")
        if not normalized or not normalized.isalnum():
            raise ValueError(f"{info.field_name} must be a non-empty alphanumeric extension")
        return normalized.lower()

    @model_validator(mode="after")
    def validate_timeout_configuration(self):
        """Validate cross-field configuration."""
        if self.xtream_connect_timeout_sec > self.xtream_request_timeout_sec:
            raise ValueError(
                "xtream_connect_timeout_sec must be <= xtream_request_timeout_sec"
            )

        if self.synthetic_id_strategy == "random":
            logger.debug(
                "Synthetic ids are random - records without stream_id change id on every refresh"
            )

        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Log Level: %s", self.log_level)
        logger.info("  API Listen: %s:%s", self.api_host, self.api_port)
        logger.info(
            "  Request Timeout: %ss (connect %ss)",
            self.xtream_request_timeout_sec,
            self.xtream_connect_timeout_sec,
        )
        logger.info("  Follow Redirects: %s", self.xtream_follow_redirects)
        logger.info("  Verify TLS: %s", self.xtream_verify_tls)
        logger.info(
            "  Default Extensions: live=%s movie=%s series=%s",
            self.live_stream_extension,
            self.movie_stream_extension,
            self.series_stream_extension,
        )
        logger.info("  Synthetic Id Strategy: %s", self.synthetic_id_strategy)


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
