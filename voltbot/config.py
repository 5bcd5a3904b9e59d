from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = BASE_DIR.parent

# Support both root-level and package-local .env files.
load_dotenv(PROJECT_ROOT / ".env")
load_dotenv(BASE_DIR / ".env")


def _env_int(default: int, *keys: str, minimum: int = 0) -> int:
    for key in keys:
        raw = os.getenv(key)
        if raw is None:
            continue
        try:
            return max(minimum, int(raw))
        except ValueError:
            continue
    return max(minimum, default)


def _env_float(default: float, *keys: str, minimum: float = 0.0, maximum: float = 1.0) -> float:
    for key in keys:
        raw = os.getenv(key)
        if raw is None:
            continue
        try:
            value = float(raw)
            return max(minimum, min(maximum, value))
        except ValueError:
            continue
    return max(minimum, min(maximum, default))


def _env_str(default: str, *keys: str) -> str:
    for key in keys:
        raw = os.getenv(key)
        if raw is not None and raw.strip():
            return raw.strip()
    return default


def _env_bool(default: bool, *keys: str) -> bool:
    for key in keys:
        raw = os.getenv(key)
        if raw is None:
            continue
        return raw.strip().lower() in ("1", "true", "yes", "on")
    return default


class VoltConfig:
    """
    Centralized tuning config for the economy and games.
    Edit defaults here or override via .env.
    """

    class CURRENCY:
        NAME = _env_str("pizza", "CURRENCY_NAME", "POINTS_NAME")
        SYMBOL = _env_str("🍕", "CURRENCY_SYMBOL", "POINTS_SYMBOL")

    class ECONOMY:
        BAKE_AMOUNT = _env_int(6969, "VOLT_BAKE_AMOUNT", minimum=1)
        LEADERBOARD_SIZE = _env_int(10, "VOLT_LEADERBOARD_SIZE", minimum=1)

    class CRIME:
        ROB_SUCCESS_CHANCE = _env_float(0.5, "VOLT_ROB_SUCCESS_CHANCE")
        ROB_MIN_PERCENT = _env_float(0.10, "VOLT_ROB_MIN_PERCENT")
        ROB_MAX_PERCENT = _env_float(0.40, "VOLT_ROB_MAX_PERCENT")
        ROB_PENALTY_RATE = _env_float(0.25, "VOLT_ROB_PENALTY_RATE")

    class JOBS:
        ASSIGNMENT_MODE = _env_str("multi", "VOLT_JOB_ASSIGNMENT_MODE").lower()

    class CASINO:
        BLACKJACK_MIN_BET = _env_int(1, "VOLT_BLACKJACK_MIN_BET", minimum=1)

    class RAFFLES:
        POLL_SECONDS = _env_int(30, "VOLT_RAFFLE_POLL_SECONDS", minimum=5)

    class DASHBOARD:
        ENABLED = _env_bool(True, "DASHBOARD_ENABLED")
        PORT = _env_int(3000, "DASHBOARD_PORT", "SERVER_PORT", minimum=1)

    class BOT:
        TOKEN = _env_str("", "DISCORD_TOKEN", "VOLT_DISCORD_TOKEN")
        DEBUG_MODE = _env_bool(False, "DEBUG_MODE")
        SYNC_COMMANDS = _env_bool(True, "VOLT_SYNC_COMMANDS")
        SYNC_GUILD_ID = _env_int(0, "VOLT_SYNC_GUILD_ID")

    class PATHS:
        DATABASE = _env_str(str(BASE_DIR / "economy.db"), "VOLT_DATABASE_PATH")
        LOG_FILE = _env_str(str(BASE_DIR / "bot.log"), "VOLT_LOG_FILE")
