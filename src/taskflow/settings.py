from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - AUTH_BACKEND: 'memory' (default) or 'supabase'
    - SUPABASE_URL / SUPABASE_ANON_KEY: project URL and public key (required for 'supabase')
    - AUTH_MAX_ATTEMPTS: attempts allowed per email inside the window (default 5)
    - AUTH_WINDOW_SECONDS: rolling rate-limit window (default 60)
    - AUTH_COOLDOWN_SECONDS: submit lockout after a failed attempt (default 3)
    - AUTH_TIMEOUT_SECONDS: timeout for auth backend requests (default 10)
    - TASKFLOW_PREFERS_DARK: host light/dark preference used to seed the theme (default false)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: console log level (default INFO)
    """

    auth_backend: str
    supabase_url: Optional[str]
    supabase_anon_key: Optional[str]
    auth_max_attempts: int
    auth_window_seconds: float
    auth_cooldown_seconds: float
    auth_timeout_seconds: float
    prefers_dark: bool
    cors_allow_origins: List[str]
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_number(value: str, default: float) -> float:
    try:
        n = float(value.strip())
    except ValueError:
        return default
    return n if n >= 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("AUTH_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "supabase"}:
        backend = "memory"

    level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        level = "INFO"

    return Settings(
        auth_backend=backend,
        supabase_url=os.getenv("SUPABASE_URL") or None,
        supabase_anon_key=os.getenv("SUPABASE_ANON_KEY") or None,
        auth_max_attempts=int(_parse_number(_get_env("AUTH_MAX_ATTEMPTS", "5"), 5)),
        auth_window_seconds=_parse_number(_get_env("AUTH_WINDOW_SECONDS", "60"), 60.0),
        auth_cooldown_seconds=_parse_number(_get_env("AUTH_COOLDOWN_SECONDS", "3"), 3.0),
        auth_timeout_seconds=_parse_number(_get_env("AUTH_TIMEOUT_SECONDS", "10"), 10.0),
        prefers_dark=_parse_bool(_get_env("TASKFLOW_PREFERS_DARK", "false"), False),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=level,
    )
