"""Configuration constants for Chorely, read from the environment."""
from __future__ import annotations

import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}.") from exc


SQLITE_FILE_NAME = os.environ.get("CHORELY_SQLITE", "chorely.db")
LOG_PATH = os.environ.get("CHORELY_LOG_PATH") or None
DEFAULT_FAMILY_ID = "default"
DEFAULT_STREAK_BONUS_POINTS = _int_env("CHORELY_STREAK_BONUS_POINTS", 50)
STREAK_BONUS_EVERY_DAYS = 7
ADMIN_TIMEOUT = timedelta(seconds=_int_env("CHORELY_ADMIN_TIMEOUT_SECONDS", 180))
ADMIN_MAX_ATTEMPTS = _int_env("CHORELY_ADMIN_MAX_ATTEMPTS", 5)
ADMIN_LOCKOUT = timedelta(minutes=_int_env("CHORELY_ADMIN_LOCKOUT_MINUTES", 5))

__all__ = [
    "SQLITE_FILE_NAME",
    "LOG_PATH",
    "DEFAULT_FAMILY_ID",
    "DEFAULT_STREAK_BONUS_POINTS",
    "STREAK_BONUS_EVERY_DAYS",
    "ADMIN_TIMEOUT",
    "ADMIN_MAX_ATTEMPTS",
    "ADMIN_LOCKOUT",
]
