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
    "CLIPPY_APP_NAME": "App display name (default: clippy).",
    "CLIPPY_LOG_LEVEL": "Logging level (default: INFO).",
    # Connectors
    "CLIPPY_CONSOLE_ENABLED": "Enable console connector (true/false).",
    # LLM (any OpenAI-compatible endpoint)
    "CLIPPY_OPENAI_API_KEY": "API key (falls back to OPENAI_API_KEY; without one the offline analyzer is used).",
    "CLIPPY_OPENAI_BASE_URL": "Base URL (default: https://api.openai.com/v1).",
    "CLIPPY_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "CLIPPY_HTTP_REFERER": "Optional OpenRouter-style metadata header.",
    "CLIPPY_APP_TITLE": "Optional OpenRouter-style metadata header title.",
    "CLIPPY_LLM_CONNECT_TIMEOUT_SECONDS": "Connect timeout for LLM calls (default: 5).",
    "CLIPPY_LLM_READ_TIMEOUT_SECONDS": "Read timeout for LLM calls (default: 90).",
    # Paths (gitignored)
    "CLIPPY_DATA_DIR": "Local data directory (default: .local/clippy).",
    "CLIPPY_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    "CLIPPY_TEAMS_DB_PATH": "Team/announcement SQLite path (default: <data_dir>/teams.sqlite3).",
    "CLIPPY_USERS_DB_PATH": "User directory SQLite path (default: <data_dir>/users.sqlite3).",
    # Tuning
    "CLIPPY_DEADLINE_NEARING_DAYS": "Days before a deadline counts as 'due soon' (default: 2).",
    "CLIPPY_INVITE_CODE_LENGTH": "Length of new invitation codes (default: 6, minimum 4).",
}
