"""Konfigurationsmodul für das Termin-Chat-Widget: lädt zentrale
Umgebungsvariablen (Redis, OpenAI, Kalender-API, Polling) via Pydantic-Settings."""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Hält alle konfigurierbaren Werte, die das Widget zur Laufzeit
    benötigt (z.B. Redis-Endpunkt, API-Keys, Kalender-ID, Poll-Grenzen)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    app_name: str = "AppointmentChatWidget"

    # Assistant API
    openai_api_key: str = Field("", alias="OPENAI_API_KEY")  # Muss per Env gesetzt werden.
    assistant_id: str = Field("", alias="ASSISTANT_ID")  # Wird per `chat-widget create-assistant` erzeugt.
    assistant_model: str = Field("gpt-4o", alias="ASSISTANT_MODEL")
    run_poll_interval_seconds: float = Field(1.0, alias="RUN_POLL_INTERVAL_SECONDS")
    run_max_wait_seconds: float = Field(120.0, alias="RUN_MAX_WAIT_SECONDS")

    # Redis (Thread-Zuordnung pro Session)
    redis_url: Optional[str] = Field(None, alias="REDIS_URL")
    redis_host: str = Field("redis", alias="REDIS_HOST")
    redis_port: int = Field(6379, alias="REDIS_PORT")
    redis_password: Optional[str] = Field(None, alias="REDIS_PASSWORD")

    # Kalender (GoHighLevel / LeadConnector)
    ghl_api_token: str = Field("", alias="GHL_API_TOKEN")
    ghl_calendar_id: str = Field("ocQHyuzHvysMo5N5VsXc", alias="GHL_CALENDAR_ID")
    ghl_api_version: str = Field("2021-04-15", alias="GHL_API_VERSION")
    ghl_services_base_url: str = Field(
        "https://services.leadconnectorhq.com", alias="GHL_SERVICES_BASE_URL"
    )
    ghl_rest_base_url: str = Field(
        "https://rest.gohighlevel.com/v1", alias="GHL_REST_BASE_URL"
    )
    default_timezone: str = Field("America/New_York", alias="DEFAULT_TIMEZONE")
    appointment_lookahead_days: int = Field(90, alias="APPOINTMENT_LOOKAHEAD_DAYS")
    http_timeout_seconds: float = Field(15.0, alias="HTTP_TIMEOUT_SECONDS")

    # Identität kommt vom vorgelagerten Auth-Proxy.
    user_id_header: str = Field("X-User-Id", alias="USER_ID_HEADER")

    log_file: str = Field("chat_debug.log", alias="LOG_FILE")
    service_port: int = Field(1985, alias="SERVICE_PORT")


settings = Settings()
