"""Database connection settings."""

from __future__ import annotations

from ethanalysis.env import get_env_var_unsafe


def get_db_url() -> str:
    """Return the database URL from DATABASE_URL."""
    return get_env_var_unsafe("DATABASE_URL")


def get_db_url_with_name(name: str) -> str:
    """Return the database URL tagged with an application name."""
    return f"{get_db_url()}?application_name={name}"