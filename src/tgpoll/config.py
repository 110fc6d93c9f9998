"""Application runtime configuration.

Sources, highest priority first: constructor kwargs (CLI flags), `TGPOLL_*`
environment variables, then a TOML settings file (`settings.toml` in the
working directory unless another path is given to `load_settings`).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

DEFAULT_SETTINGS_FILE = Path("settings.toml")


class Settings(BaseSettings):
    """Settings for the long-poll client.

    Invariant:
        `access_token` is never rendered in logs or reprs (`SecretStr`).
        `timeout_seconds` is the server-side long-poll wait passed to
        `getUpdates`; the client never enforces a shorter wait.
    """

    model_config = SettingsConfigDict(
        env_prefix="TGPOLL_",
        toml_file=DEFAULT_SETTINGS_FILE,
    )

    access_token: SecretStr
    timeout_seconds: int = Field(default=60, gt=0)
    limit: int | None = Field(default=None, ge=1, le=100)
    allowed_updates: list[str] | None = None
    api_base_url: str = "https://api.telegram.org"

    retry_max_retries: int = Field(default=0, ge=0)
    retry_initial_backoff_seconds: float = Field(default=1.0, gt=0)
    retry_max_backoff_seconds: float = Field(default=30.0, gt=0)

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value!r}")
        return level

    @model_validator(mode="after")
    def _validate_retry_backoff(self) -> "Settings":
        """Require the backoff cap to be at least the initial backoff."""

        if self.retry_max_backoff_seconds < self.retry_initial_backoff_seconds:
            raise ValueError(
                "retry_max_backoff_seconds must be >= retry_initial_backoff_seconds; "
                f"got {self.retry_max_backoff_seconds} < {self.retry_initial_backoff_seconds}"
            )
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, TomlConfigSettingsSource(settings_cls))


def load_settings(settings_file: Path | None = None, **overrides: Any) -> Settings:
    """Build `Settings`, reading `settings_file` instead of the default TOML.

    `overrides` win over every other source; `None` values are ignored so
    unset CLI flags fall through to env/file.
    """

    overrides = {k: v for k, v in overrides.items() if v is not None}
    if settings_file is None:
        return Settings(**overrides)

    class _FileSettings(Settings):
        model_config = SettingsConfigDict(toml_file=settings_file.expanduser())

    return _FileSettings(**overrides)
