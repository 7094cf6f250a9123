# src/tasklane/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the REST backend is only built when selected).
- Local overrides via an optional, gitignored config_local.py.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

ENV_PREFIX = "TASKLANE"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Backend selection ----
    backend: str  # "sqlite" | "rest"
    probe_schema: bool

    # ---- Local SQLite backend ----
    data_dir: Path
    db_path: Path
    omit_columns: List[str]
    user_id: Optional[str]
    user_email: Optional[str]

    # ---- Hosted REST backend (Supabase / PostgREST) ----
    supabase_url: str
    supabase_anon_key: Optional[str]
    access_token: Optional[str]
    http_timeout_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _first_env(_k("APP_NAME"), default="tasklane") or "tasklane"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        backend = _env(_k("BACKEND"), "sqlite").strip().lower() or "sqlite"
        probe_schema = _env_bool(_k("PROBE_SCHEMA"), False)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/tasklane"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "tasks.sqlite3")
        omit_columns = _env_list(_k("OMIT_COLUMNS"), [])
        # An empty TASKLANE_USER_ID means "signed out".
        user_id = _env(_k("USER_ID"), "local-user").strip() or None
        user_email = _first_env(_k("USER_EMAIL"), default="me@localhost")

        # Accept the conventional SUPABASE_* names as fallbacks.
        supabase_url = (_first_env(_k("SUPABASE_URL"), "SUPABASE_URL", default="") or "").strip()
        supabase_anon_key = _first_env(_k("SUPABASE_ANON_KEY"), "SUPABASE_ANON_KEY", default=None)
        access_token = _first_env(_k("ACCESS_TOKEN"), default=None)
        http_timeout_seconds = _env_float(_k("HTTP_TIMEOUT_SECONDS"), 15.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            backend=backend,
            probe_schema=probe_schema,
            data_dir=data_dir,
            db_path=db_path,
            omit_columns=omit_columns,
            user_id=user_id,
            user_email=user_email,
            supabase_url=supabase_url,
            supabase_anon_key=supabase_anon_key,
            access_token=access_token,
            http_timeout_seconds=http_timeout_seconds,
        )


SETTINGS = Settings.from_env()

# ---- Optional local overrides (never committed) ----
# Prefer .env for secrets; use config_local.py only for safe overrides.
try:
    import config_local as _config_local  # type: ignore
except ImportError:
    _config_local = None

if _config_local is not None:
    if hasattr(_config_local, "BACKEND"):
        object.__setattr__(SETTINGS, "backend", str(_config_local.BACKEND).lower())  # type: ignore[misc]
    if hasattr(_config_local, "OMIT_COLUMNS"):
        object.__setattr__(SETTINGS, "omit_columns", list(_config_local.OMIT_COLUMNS))  # type: ignore[misc]
    if hasattr(_config_local, "PROBE_SCHEMA"):
        object.__setattr__(SETTINGS, "probe_schema", bool(_config_local.PROBE_SCHEMA))  # type: ignore[misc]


def get_settings() -> Settings:
    return SETTINGS
