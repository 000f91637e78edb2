"""Application configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "safetrail"
    debug: bool = False
    database_url: str = "sqlite:///./safetrail.db"

    # Public tracking page (web client)
    web_base_url: str = "https://safetrail.app"
    allowed_origins: list[str] = ["http://localhost:5173"]

    # Sessions
    default_session_minutes: int = 60
    max_session_minutes: int = 24 * 60
    track_limit: int = 200
    pin_hash_rounds: int = 12

    # Alert dispatch
    alert_send_delay_seconds: float = 0.2

    # Rate limits (per client IP)
    rate_limit_enabled: bool = True
    rate_limit_default: str = "100/15 minutes"
    rate_limit_session_create: str = "5/hour"
    rate_limit_alert_send: str = "10/hour"

    # Expiry sweep
    expiry_sweep_enabled: bool = True
    expiry_sweep_interval_minutes: int = 60

    # Twilio
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""
    twilio_whatsapp_number: str = ""  # whatsapp:+14155238886
    whatsapp_template_sid: str = ""
    twilio_lookup_enabled: bool = True
    twilio_timeout_seconds: float = 10.0


settings = Settings()


def build_tracking_url(session_id: str) -> str:
    """Public link contacts open to follow a session."""
    return f"{settings.web_base_url.rstrip('/')}/s/{session_id}"
