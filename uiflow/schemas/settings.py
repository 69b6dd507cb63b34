# uiflow/schemas/settings.py
"""
Centralized settings management using pydantic-settings.

`FlowSettings` holds the timeouts and retry defaults every step falls back
to when the caller does not pass an explicit value. Values come from the
`flow:` section of `uiflow.yaml` and may be overridden by `UIFLOW_*`
environment variables.
"""
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from uiflow.utils.config import get_config


class FlowSettings(BaseSettings):
    """
    Runtime defaults for chains, finders and actions.

    :ivar find_timeout: Seconds a finder waits for a first match.
    :vartype find_timeout: float
    :ivar exists_timeout: Default seconds for existence probes.
    :vartype exists_timeout: float
    :ivar action_timeout: Seconds an element interaction may take.
    :vartype action_timeout: float
    :ivar load_timeout: Seconds to wait for a page load after navigation.
    :vartype load_timeout: float
    :ivar retry_base_delay_ms: Delay unit for retry backoff.
    :vartype retry_base_delay_ms: int
    :ivar retry_backoff: Whether retry sleeps after exceptions only or after every miss.
    :vartype retry_backoff: str
    """

    find_timeout: float = Field(10.0, gt=0)
    exists_timeout: float = Field(1.0, ge=0)
    action_timeout: float = Field(60.0, gt=0)
    load_timeout: float = Field(30.0, gt=0)
    retry_base_delay_ms: int = Field(200, ge=0)
    retry_backoff: Literal["on_exception", "always"] = "on_exception"
    headless: bool = True
    trace_steps: bool = True

    model_config = SettingsConfigDict(
        env_prefix="UIFLOW_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # environment beats the YAML file, which is passed as init kwargs
        return env_settings, dotenv_settings, init_settings, file_secret_settings


_SETTINGS: Optional[FlowSettings] = None


def get_settings() -> FlowSettings:
    global _SETTINGS
    if _SETTINGS is None:
        section = get_config().get("flow") or {}
        _SETTINGS = FlowSettings(**section)
    return _SETTINGS


def reload_settings() -> FlowSettings:
    """Clear the cached settings and rebuild them (primarily for tests)."""
    global _SETTINGS
    _SETTINGS = None
    return get_settings()
