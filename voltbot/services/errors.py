# services/errors.py
"""
Expected, user-facing failures raised by the services.

Every error carries the values a command needs to word its reply;
`str(error)` is already a readable message.
"""


class VoltError(Exception):
    """Base class for all economy/game errors that should be shown to the user."""


class InsufficientFundsError(VoltError):
    def __init__(self, needed: int, available: int, balance: str = "wallet"):
        self.needed = needed
        self.available = available
        self.balance = balance
        super().__init__(f"Insufficient funds: need {needed} but your {balance} has {available}.")


class InsufficientQuantityError(VoltError):
    def __init__(self, item_name: str, needed: int, available: int):
        self.item_name = item_name
        self.needed = needed
        self.available = available
        super().__init__(f'You do not have enough of "{item_name}": need {needed}, you have {available}.')


class ItemNotFoundError(VoltError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'"{name}" was not found in the shop.')


class DuplicateNameError(VoltError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'"{name}" already exists.')


class OutOfStockError(VoltError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'"{name}" is out of stock.')


class NothingToRedeemError(VoltError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'You do not have "{name}" in your inventory.')


class ActiveGameExistsError(VoltError):
    def __init__(self, user_id: str, game_id: int):
        self.user_id = user_id
        self.game_id = game_id
        super().__init__("You already have an active Blackjack game! Use /hit or /stand to finish it.")


class NoActiveGameError(VoltError):
    def __init__(self, game_id=None):
        self.game_id = game_id
        super().__init__("No active Blackjack game found. Start one with /blackjack <bet>.")


class AlreadyAssignedError(VoltError):
    def __init__(self, user_id: str, job_id: int, description: str):
        self.user_id = user_id
        self.job_id = job_id
        self.description = description
        super().__init__(f"You already have a job: {description}")


class NotAssignedError(VoltError):
    def __init__(self, user_id: str, job_id=None):
        self.user_id = user_id
        self.job_id = job_id
        if job_id is None:
            super().__init__("You do not have an active job.")
        else:
            super().__init__(f"<@{user_id}> is not assigned to job {job_id}.")


class JobNotFoundError(VoltError):
    def __init__(self, job_id: int):
        self.job_id = job_id
        super().__init__(f"Job {job_id} does not exist.")


class InvalidPrizeError(VoltError):
    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f'Invalid prize "{raw}". Enter an amount (number) or a valid shop item.')


class RaffleNotFoundError(VoltError):
    def __init__(self, raffle_id: int):
        self.raffle_id = raffle_id
        super().__init__(f"Raffle/giveaway {raffle_id} was not found.")


class RaffleClosedError(VoltError):
    def __init__(self, raffle_id: int, name: str):
        self.raffle_id = raffle_id
        self.name = name
        super().__init__(f'"{name}" has already ended; entries are closed.')


class InvalidArgumentError(VoltError, ValueError):
    """A malformed argument rejected at a service boundary."""
