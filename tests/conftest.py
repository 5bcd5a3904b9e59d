import random
from collections import deque

import pytest

from voltbot.data.casino_games import Card
from voltbot.db.database import DatabaseManager
from voltbot.services.blackjack_service import BlackjackService
from voltbot.services.economy_service import EconomyService
from voltbot.services.jobs_service import JobsService
from voltbot.services.raffle_service import RaffleService
from voltbot.services.shop_service import ShopService
from voltbot.utils.rng import RandomSource


def cards(*values, suit="♠️"):
    return [Card(value=str(v), suit=suit) for v in values]


class ScriptedRandom(RandomSource):
    """
    A RandomSource whose draws can be queued up front.
    Anything not queued falls back to a seeded generator.
    """

    def __init__(self, seed: int = 1234):
        super().__init__(random.Random(seed))
        self.cards = deque()
        self.chances = deque()
        self.floats = deque()
        self.picks = deque()

    def queue_cards(self, *values):
        self.cards.extend(cards(*values))

    def draw_card(self) -> Card:
        if self.cards:
            return self.cards.popleft()
        return super().draw_card()

    def chance(self, probability: float) -> bool:
        if self.chances:
            return self.chances.popleft()
        return self._rng.random() < probability

    def uniform_float(self, low: float, high: float) -> float:
        if self.floats:
            return self.floats.popleft()
        return super().uniform_float(low, high)

    def pick_without_replacement(self, pool, k):
        if self.picks:
            return self.picks.popleft()
        return super().pick_without_replacement(pool, k)


@pytest.fixture
async def database(tmp_path):
    manager = DatabaseManager(str(tmp_path / "economy_test.db"))
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def rng():
    return ScriptedRandom()


@pytest.fixture
def economy(database, rng):
    return EconomyService(database, rng)


@pytest.fixture
def shop(database, rng, economy):
    return ShopService(database, rng, economy=economy)


@pytest.fixture
def jobs(database, rng, economy):
    return JobsService(database, rng, economy=economy, mode="multi")


@pytest.fixture
def single_jobs(database, rng, economy):
    return JobsService(database, rng, economy=economy, mode="single")


@pytest.fixture
def blackjack(database, rng, economy):
    return BlackjackService(database, rng, economy=economy)


@pytest.fixture
def raffles(database, rng, economy, shop):
    return RaffleService(database, rng, economy=economy, shop=shop)
