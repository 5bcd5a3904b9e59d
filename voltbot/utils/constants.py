# utils/constants.py
from ..config import VoltConfig


class Times:
    """Time constants in seconds."""
    SECOND = 1
    MINUTE = 60
    HOUR = 3600
    DAY = 86400


class Emojis:
    """Centralized Emoji Repository."""
    # UI Elements
    SUCCESS = "✅"
    ERROR = "🚫"
    WARNING = "⚠️"

    # Economy
    COIN = VoltConfig.CURRENCY.SYMBOL
    BANK = "🏦"
    MONEY_BAG = "💰"
    POLICE = "👮"

    # Shop / Jobs
    SHOP = "🛍️"
    BACKPACK = "🎒"
    WORK = "🛠️"

    # Games
    PARTY = "🎉"
    TICKET = "🎟️"
    HIDDEN_CARD = "🂠"


class Colors:
    """Hex colors for embeds."""
    BLURPLE = 0x5865F2
    GREEN = 0x57F287
    RED = 0xED4245
    GOLD = 0xFFD700
    ORANGE = 0xFFA500
    TEAL = 0x00AE86


class Paths:
    """File paths for the system."""
    DB_NAME = VoltConfig.PATHS.DATABASE
    LOG_FILE = VoltConfig.PATHS.LOG_FILE
    BACKUP_DIR = "backups"


# -----------------------------------------------------------------------------
# GAME BALANCE CONFIGURATION
# -----------------------------------------------------------------------------

class EconomyConfig:
    CURRENCY_NAME = VoltConfig.CURRENCY.NAME
    CURRENCY_SYMBOL = VoltConfig.CURRENCY.SYMBOL
    BAKE_AMOUNT = VoltConfig.ECONOMY.BAKE_AMOUNT
    LEADERBOARD_SIZE = VoltConfig.ECONOMY.LEADERBOARD_SIZE


class CrimeConfig:
    # Success Rates (0.0 to 1.0)
    ROB_SUCCESS_CHANCE = VoltConfig.CRIME.ROB_SUCCESS_CHANCE

    # Share of the target's wallet at stake, drawn uniformly in [MIN, MAX)
    ROB_MIN_PERCENT = VoltConfig.CRIME.ROB_MIN_PERCENT
    ROB_MAX_PERCENT = VoltConfig.CRIME.ROB_MAX_PERCENT

    # Failed robbers owe this share of the amount at stake
    ROB_PENALTY_RATE = VoltConfig.CRIME.ROB_PENALTY_RATE


class JobConfig:
    ASSIGNMENT_MODE = VoltConfig.JOBS.ASSIGNMENT_MODE


class CasinoConfig:
    BLACKJACK_MIN_BET = VoltConfig.CASINO.BLACKJACK_MIN_BET


class RaffleConfig:
    POLL_SECONDS = VoltConfig.RAFFLES.POLL_SECONDS
    TICKET_SUFFIX = "Raffle Ticket"
    TIME_UNITS = {
        "minutes": Times.MINUTE,
        "hours": Times.HOUR,
        "days": Times.DAY,
    }
