# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use:
- .env (local, gitignored)
- config_local.py (local safe overrides, gitignored)

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKLANE_APP_NAME": "App display name (default: tasklane).",
    "TASKLANE_LOG_LEVEL": "Console logging level (default: INFO).",
    # Backend
    "TASKLANE_BACKEND": "Data store: sqlite (local) or rest (hosted Supabase/PostgREST).",
    "TASKLANE_PROBE_SCHEMA": "Read one task row at startup to learn missing columns (true/false).",
    # Local SQLite backend (gitignored paths)
    "TASKLANE_DATA_DIR": "Local data directory (default: .local/tasklane).",
    "TASKLANE_DB_PATH": "SQLite path (default: <data_dir>/tasks.sqlite3).",
    "TASKLANE_OMIT_COLUMNS": (
        "Comma/space separated optional task columns to leave out "
        "(priority, status, due_date), emulating a partially migrated schema."
    ),
    "TASKLANE_USER_ID": "Signed-in user id for the local backend (default: local-user; empty => signed out).",
    "TASKLANE_USER_EMAIL": "Email of the local user (default: me@localhost).",
    # Hosted backend
    "TASKLANE_SUPABASE_URL": "Project URL (SUPABASE_URL is accepted too).",
    "TASKLANE_SUPABASE_ANON_KEY": "Public anon key (SUPABASE_ANON_KEY is accepted too).",
    "TASKLANE_ACCESS_TOKEN": "User access token (JWT); without it the user is signed out.",
    "TASKLANE_HTTP_TIMEOUT_SECONDS": "HTTP timeout for the hosted backend (default: 15).",
}
