"""Client configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Client settings loaded from SAFETRAIL_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SAFETRAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_base_url: str = "http://localhost:8000"
    socket_url: str = "ws://localhost:8000/ws"
    web_base_url: str = "https://safetrail.app"
    request_timeout_seconds: float = 10.0

    # Grace period between trigger and notifying contacts
    countdown_seconds: int = 10

    # Realtime reconnection
    reconnect_attempts: int = 10
    reconnect_delay_seconds: float = 2.0
    max_reconnect_delay_seconds: float = 30.0

    state_file: str = "~/.safetrail/state.json"


client_settings = ClientSettings()
