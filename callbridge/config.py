"""Configuration management for Callbridge using Pydantic."""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Twilio Configuration
    twilio_account_sid: str | None = Field(None, description="Twilio account SID")
    twilio_auth_token: str | None = Field(None, description="Twilio auth token")
    twilio_caller_id: str | None = Field(
        None, description="Verified caller ID presented on PSTN calls"
    )

    # Server Configuration
    server_host: str = Field(default="0.0.0.0", description="Server host")
    server_port: int = Field(default=3000, description="Server port")
    server_url: str = Field(
        default="http://localhost:3000",
        description="Public base URL, used for Twilio status callbacks and by the CLI",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"], description="Allowed CORS origins"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./callbridge.db", description="SQLAlchemy database URL"
    )

    # Call Routing Configuration
    dial_timeout_seconds: int = Field(
        default=20, gt=0, description="Seconds to ring the target before giving up"
    )
    fallback_language: str = Field(
        default="en-US", description="Language of spoken fallback messages"
    )
    fallback_voice: str = Field(
        default="alice", description="Voice of spoken fallback messages"
    )

    # Reservation Configuration
    reservation_timezone: str = Field(
        default="UTC",
        description="Timezone used to decide whether a reservation has expired",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    def has_twilio_config(self) -> bool:
        """Check if Twilio is properly configured."""
        return bool(
            self.twilio_account_sid and self.twilio_auth_token and self.twilio_caller_id
        )

    def model_post_init(self, __context) -> None:
        """Validate configuration after initialization."""
        if not self.twilio_caller_id:
            logger.warning(
                "TWILIO_CALLER_ID not set - calls to phone numbers may be rejected"
            )

        if not self.twilio_account_sid or not self.twilio_auth_token:
            logger.warning("Twilio credentials not set - status callbacks are unsigned")


# Global config instance
config: Config | None = None


def get_config() -> Config:
    """Get or create the global configuration instance."""
    global config
    if config is None:
        config = Config()
    return config


def setup_logging(cfg: Config | None = None) -> None:
    """Configure logging for the application."""
    if cfg is None:
        cfg = get_config()

    log_level = getattr(logging, cfg.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("twilio").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
