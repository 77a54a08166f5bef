# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration for the coach notification
subsystem. Settings are loaded from environment variables with sensible
defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings().

Example:
    >>> from lgscoach.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.delivery.poll_interval
    10.0
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Hosted backend (Supabase) connection configuration.

    The anon key is handed to the persistent worker so it can query the
    notification table on its own. It is equivalent to a bearer credential.

    Attributes:
        url: Project URL, e.g. https://abc.supabase.co.
        anon_key: Public anon API key.
        schema_name: Database schema holding the tables.
        timeout: HTTP request timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        extra="ignore",
    )

    url: str = "http://localhost:54321"
    anon_key: SecretStr = SecretStr("")
    schema_name: str = "public"
    timeout: float = 15.0

    @property
    def rest_url(self) -> str:
        """Build the PostgREST base URL."""
        return f"{self.url.rstrip('/')}/rest/v1"

    @property
    def realtime_url(self) -> str:
        """Build the realtime websocket URL."""
        base = self.url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return f"{base}/realtime/v1/websocket"


class DeliverySettings(BaseSettings):
    """Foreground delivery cadence.

    Attributes:
        poll_interval: Seconds between polls when realtime is unavailable.
        safety_poll_interval: Seconds between auxiliary polls while realtime
            is active.
        toast_duration: Seconds an in-page toast stays visible.
        realtime_join_timeout: Seconds to wait for a channel join reply.
    """

    model_config = SettingsConfigDict(
        env_prefix="DELIVERY_",
        extra="ignore",
    )

    poll_interval: float = 10.0
    safety_poll_interval: float = 30.0
    toast_duration: float = 10.0
    realtime_join_timeout: float = 10.0


class WorkerSettings(BaseSettings):
    """Persistent worker configuration.

    Attributes:
        check_interval: Seconds between background checks.
        activation_grace: Seconds to wait after activation before the
            first check, so the page can deliver identity and credentials.
        coach_route: Route opened or focused on notification click.
        storage_namespace: Key prefix of the worker's durable storage.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKER_",
        extra="ignore",
    )

    check_interval: float = Field(default=10.0, ge=1.0)
    activation_grace: float = 2.0
    coach_route: str = "/coach"
    storage_namespace: str = "coach-cache"


class RedisSettings(BaseSettings):
    """Redis configuration for the worker's durable storage.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Redis password.
        database: Redis database number.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 6379
    password: SecretStr | None = None
    database: int = 0

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        if self.password is not None and self.password.get_secret_value():
            pwd = self.password.get_secret_value()
            return f"redis://:{pwd}@{self.host}:{self.port}/{self.database}"
        return f"redis://{self.host}:{self.port}/{self.database}"


class PushSettings(BaseSettings):
    """Web push (Firebase Cloud Messaging) configuration.

    Attributes:
        project_id: Firebase project ID.
        credentials_path: Path to the service account JSON file.
        device_tokens: Comma-separated web push tokens of the coach's
            browsers. An empty list means permission was never granted.
        icon: Icon shown with system notifications.
    """

    model_config = SettingsConfigDict(
        env_prefix="PUSH_",
        extra="ignore",
    )

    project_id: str | None = None
    credentials_path: str | None = None
    device_tokens: str = ""
    icon: str = "/favicon.ico"

    @property
    def device_tokens_list(self) -> list[str]:
        """Parse the device token string into a list."""
        return [t.strip() for t in self.device_tokens.split(",") if t.strip()]


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Attributes:
        environment: Current environment.
        debug: Enable debug mode.
        log_level: Logging level.
        supabase: Hosted backend settings.
        delivery: Foreground delivery settings.
        worker: Persistent worker settings.
        redis: Worker storage settings.
        push: Web push settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    delivery: DeliverySettings = Field(default_factory=DeliverySettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    push: PushSettings = Field(default_factory=PushSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing or after changing the environment.
    """
    get_settings.cache_clear()
