from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ObserverSettings(BaseSettings):
    """Runtime configuration.

    Resolution order: programmatic, environment vars, .env file, defaults.
    """

    model_config = SettingsConfigDict(env_prefix="OBSERVER_", env_file=".env", extra="ignore")

    log_level: str = Field(default="INFO", description="Root log level")
    log_format: Literal["json", "console"] = Field(default="json", description="Log renderer")
    service_name: str = Field(default="observer-agents", description="Service name bound to every log line")
    max_directive_iterations: int = Field(
        default=100,
        gt=0,
        description="Extra resolutions allowed per directive kind for markers reintroduced by replacements",
    )
    api_host: str = Field(default="0.0.0.0", description="HTTP bind address")
    api_port: int = Field(default=8000, description="HTTP port")


# Global settings instance
_settings: Optional[ObserverSettings] = None


def get_settings() -> ObserverSettings:
    """Get the process-wide settings, loading them on first use"""
    global _settings
    if _settings is None:
        _settings = ObserverSettings()
    return _settings


def set_settings(settings: Optional[ObserverSettings]) -> None:
    """Replace the process-wide settings (None reloads on next access)"""
    global _settings
    _settings = settings
