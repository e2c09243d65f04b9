from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scopelog.errors import ConfigurationError
from scopelog.log_env import StdlibLogEnv
from scopelog.namespace import Namespace
from scopelog.severity import Severity, Verbosity, normalize_severity, parse_verbosity


class Settings(BaseSettings):
    """
    Runtime configuration for the default log environment.

    Notes:
    - Only used when code logs outside an explicitly bound scope, or when the
      caller builds its env via `default_log_env()`.
    - Accepts the common service/env variable names used elsewhere in deployments.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    LOG_APP_NAME: str = Field(
        default="app",
        validation_alias=AliasChoices("LOG_APP_NAME", "SERVICE_NAME", "APP_NAME"),
    )
    LOG_ENVIRONMENT: str = Field(
        default="production",
        validation_alias=AliasChoices("LOG_ENVIRONMENT", "ENVIRONMENT", "ENV"),
    )
    # 0..3 (or V0..V3): which payload keys get exported.
    LOG_VERBOSITY: Verbosity = Verbosity.V2
    LOG_LEVEL: str = "INFO"
    LOG_LOGGER_NAME: str = "scopelog"

    @field_validator("LOG_VERBOSITY", mode="before")
    @classmethod
    def _parse_verbosity(cls, v: Any) -> Verbosity:
        return parse_verbosity(v)

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _check_level(cls, v: Any) -> str:
        s = str(v or "").strip().upper()
        if s not in Severity.__members__ and s not in {"WARN", "FATAL"}:
            raise ConfigurationError(f"invalid LOG_LEVEL {v!r}")
        return s

    @property
    def severity(self) -> Severity:
        return normalize_severity(self.LOG_LEVEL)

    def app_namespace(self) -> Namespace:
        return Namespace(p for p in self.LOG_APP_NAME.split(".") if p.strip())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def default_log_env(settings: Settings | None = None) -> StdlibLogEnv:
    s = settings or get_settings()
    return StdlibLogEnv(
        app=s.app_namespace(),
        env=s.LOG_ENVIRONMENT,
        verbosity=s.LOG_VERBOSITY,
        logger_name=s.LOG_LOGGER_NAME,
    )


def apply_log_level(settings: Settings | None = None) -> None:
    """Set LOG_LEVEL on the configured logger. Called once, when the default root is built."""
    s = settings or get_settings()
    logging.getLogger(s.LOG_LOGGER_NAME).setLevel(s.severity.level)
