from pydantic_settings import BaseSettings
from pydantic import field_validator, ConfigDict
from functools import lru_cache
import logging

from shared_utils.constants import Defaults, Environment, EvaluationShape

logger = logging.getLogger(__name__)


_ENV_ALIASES = {
    Environment.DEV.value: Environment.DEVELOPMENT.value,
    Environment.STAGE.value: Environment.STAGING.value,
    Environment.PROD.value: Environment.PRODUCTION.value,
}


class Settings(BaseSettings):
    """Application configuration with environment variable precedence.

    Precedence: 1) Environment Variables > 2) .env file > 3) Class defaults
    (required fields have no defaults).
    """
    # Application metadata
    app_name: str = "Toastmasters Feedback"
    app_version: str = "1.0.0"
    app_description: str = "Speaker evaluations and functionary reports for club meetings"

    # API Base URL Configuration
    api_host: str = "localhost"
    api_port: int = 8000
    api_protocol: str = "http"  # "http" or "https"

    # Public URL of the Streamlit client; evaluation links (QR codes) point here
    ui_base_url: str = "http://localhost:8501"

    # Database (any SQLAlchemy URL: sqlite:///..., postgresql+psycopg://...)
    database_uri: str
    database_echo: bool = False

    # Evaluation intake
    evaluation_shape: str = EvaluationShape.TAGGED.value
    recent_meeting_window_days: int = Defaults.RECENT_MEETING_WINDOW_DAYS
    recent_meeting_limit: int = Defaults.RECENT_MEETING_LIMIT
    submission_rate_limit: str = Defaults.SUBMISSION_RATE_LIMIT

    # Environment
    environment: str

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator('evaluation_shape')
    @classmethod
    def validate_evaluation_shape(cls, v: str) -> str:
        """Validate the active evaluation shape."""
        valid_shapes = {s.value for s in EvaluationShape}
        if v.lower() not in valid_shapes:
            raise ValueError(f"evaluation_shape must be one of {valid_shapes}, got {v}")
        return v.lower()

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is recognized (short aliases are normalized)."""
        value = _ENV_ALIASES.get(v.lower(), v.lower())
        valid_envs = {"development", "staging", "production"}
        if value not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}, got {v}")
        return value

    @field_validator('recent_meeting_window_days', 'recent_meeting_limit')
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    def get_api_base_url(self) -> str:
        """Get full API base URL constructed from host, port and protocol.

        Returns:
            Full API base URL (e.g., "http://localhost:8000")
        """
        # Don't add port if it's standard (80 for http, 443 for https)
        port_str = "" if (
            (self.api_protocol == "http" and self.api_port == 80) or
            (self.api_protocol == "https" and self.api_port == 443)
        ) else f":{self.api_port}"

        return f"{self.api_protocol}://{self.api_host}{port_str}"

    def get_evaluation_url(self, meeting_id: int) -> str:
        """Shareable link encoded in the meeting's QR code."""
        return f"{self.ui_base_url.rstrip('/')}/?meeting_id={meeting_id}"


@lru_cache()
def get_settings() -> Settings:
    """Load and cache application settings.

    Returns:
        Validated Settings instance

    Raises:
        ValueError: If required settings are missing or invalid
    """
    settings = Settings()

    logger.info(
        "configuration_loaded",
        extra={
            "environment": settings.environment,
            "evaluation_shape": settings.evaluation_shape,
            "database_dialect": settings.database_uri.split(":", 1)[0],
        },
    )

    return settings
