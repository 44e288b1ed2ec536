"""Application configuration loaded from environment variables."""
from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class AppConfig:
    """Runtime settings for the FitTrack API."""

    db_host: str
    db_port: int
    db_name: str
    db_user: str
    db_password: str
    db_connect_timeout: int
    jwt_secret_key: str
    jwt_exp_minutes: int
    session_cookie_name: str
    session_cookie_secure: bool
    discord_webhook_url: Optional[str]
    notification_timeout_seconds: float
    openai_api_key: Optional[str]
    openai_model: str
    owner_username: str
    owner_email: str
    entitlement_cache_ttl_seconds: int
    cors_allow_origins: Tuple[str, ...]

    def db_kwargs(self) -> Dict[str, Any]:
        return dict(
            host=self.db_host,
            port=self.db_port,
            dbname=self.db_name,
            user=self.db_user,
            password=self.db_password,
            connect_timeout=self.db_connect_timeout,
        )


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_float(value: Optional[str], *, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected float value, got {value!r}") from exc


def _parse_connect_timeout(raw_value: Optional[str]) -> int:
    timeout = _to_float(raw_value, default=5.0)
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def load_app_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load :class:`AppConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    origins = tuple(
        origin.strip()
        for origin in env_mapping.get("CORS_ALLOW_ORIGINS", "http://localhost:5173").split(",")
        if origin.strip()
    )

    return AppConfig(
        db_host=env_mapping.get("DB_HOST", "127.0.0.1"),
        db_port=_to_int(env_mapping.get("DB_PORT"), default=5432),
        db_name=env_mapping.get("DB_NAME", "fittrack"),
        db_user=env_mapping.get("DB_USER", "fittrack"),
        db_password=env_mapping.get("DB_PASSWORD", "fittrack"),
        db_connect_timeout=_parse_connect_timeout(env_mapping.get("DB_CONNECT_TIMEOUT")),
        jwt_secret_key=env_mapping.get("JWT_SECRET_KEY", "dev-secret-change-me"),
        jwt_exp_minutes=_to_int(env_mapping.get("JWT_EXP_MINUTES"), default=60 * 24 * 30),
        session_cookie_name=env_mapping.get("SESSION_COOKIE_NAME", "session"),
        session_cookie_secure=_to_bool(env_mapping.get("SESSION_COOKIE_SECURE"), default=False),
        discord_webhook_url=env_mapping.get("DISCORD_WEBHOOK_URL") or None,
        notification_timeout_seconds=max(
            0.5, _to_float(env_mapping.get("NOTIFICATION_TIMEOUT_SECONDS"), default=5.0)
        ),
        openai_api_key=env_mapping.get("OPENAI_API_KEY") or None,
        openai_model=env_mapping.get("OPENAI_MODEL", "gpt-4o"),
        owner_username=env_mapping.get("OWNER_USERNAME", "Owner"),
        owner_email=env_mapping.get("OWNER_EMAIL", "owner@fittrack.app"),
        entitlement_cache_ttl_seconds=max(
            60, _to_int(env_mapping.get("ENTITLEMENT_CACHE_TTL_SECONDS"), default=300)
        ),
        cors_allow_origins=origins,
    )
