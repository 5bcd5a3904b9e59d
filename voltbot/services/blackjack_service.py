# services/blackjack_service.py
import json
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .base_service import BaseService
from .economy_service import EconomyService
from .errors import ActiveGameExistsError, NoActiveGameError
from ..data.casino_games import BLACKJACK, Card, hand_total, is_natural
from ..db.database import fetch_one, utcnow


class GameStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    PLAYER_WIN = "player_win"
    DEALER_WIN = "dealer_win"
    PUSH = "push"


@dataclass
class BlackjackGame:
    game_id: int
    user_id: str
    bet: int
    player_hand: List[Card] = field(default_factory=list)
    dealer_hand: List[Card] = field(default_factory=list)
    status: GameStatus = GameStatus.IN_PROGRESS
    payout: int = 0
    wallet: Optional[int] = None

    @property
    def player_total(self) -> int:
        return hand_total(self.player_hand)

    @property
    def dealer_total(self) -> int:
        return hand_total(self.dealer_hand)

    @property
    def player_natural(self) -> bool:
        return is_natural(self.player_hand)

    @property
    def dealer_natural(self) -> bool:
        return is_natural(self.dealer_hand)

    @property
    def busted(self) -> bool:
        return self.player_total > BLACKJACK["target"]

    @property
    def finished(self) -> bool:
        return self.status is not GameStatus.IN_PROGRESS

    @classmethod
    def from_row(cls, row: dict) -> "BlackjackGame":
        return cls(
            game_id=row["game_id"],
            user_id=row["user_id"],
            bet=row["bet"],
            player_hand=[Card.from_dict(c) for c in json.loads(row["player_hand"])],
            dealer_hand=[Card.from_dict(c) for c in json.loads(row["dealer_hand"])],
            status=GameStatus(row["status"]),
        )

    def to_dict(self, reveal_dealer: Optional[bool] = None) -> dict:
        """Plain view of the game. The dealer's hole card stays hidden while in progress."""
        reveal = self.finished if reveal_dealer is None else reveal_dealer
        dealer = self.dealer_hand if reveal else self.dealer_hand[:1]
        return {
            "game_id": self.game_id,
            "user_id": self.user_id,
            "bet": self.bet,
            "status": self.status.value,
            "player_hand": [str(c) for c in self.player_hand],
            "player_total": self.player_total,
            "dealer_hand": [str(c) for c in dealer],
            "dealer_total": self.dealer_total if reveal else hand_total(dealer),
            "payout": self.payout,
        }


def _dump_hand(hand: List[Card]) -> str:
    return json.dumps([card.to_dict() for card in hand], ensure_ascii=False)


def settle(game: BlackjackGame) -> BlackjackGame:
    """
    Decides the outcome of a stood hand and the amount returned to the wallet.
    Equal totals push, naturals included.
    """
    target = BLACKJACK["target"]
    player, dealer = game.player_total, game.dealer_total

    if player > target:
        game.status = GameStatus.DEALER_WIN
    elif dealer > target or player > dealer:
        game.status = GameStatus.PLAYER_WIN
    elif player == dealer:
        game.status = GameStatus.PUSH
    else:
        game.status = GameStatus.DEALER_WIN

    if game.status is GameStatus.PLAYER_WIN:
        rate = BLACKJACK["blackjack_payout"] if game.player_natural else BLACKJACK["payout"]
        game.payout = math.floor(game.bet * rate)
    elif game.status is GameStatus.PUSH:
        game.payout = math.floor(game.bet * BLACKJACK["push_payout"])
    else:
        game.payout = 0
    return game


class BlackjackService(BaseService):
    """
    Deal -> hit* -> stand -> settle.
    The bet leaves the wallet at deal time; settlement only ever credits.
    A settled game's row is deleted, freeing the user for a new one.
    """

    def __init__(self, database=None, rng=None, economy: Optional[EconomyService] = None):
        super().__init__("blackjack", database, rng)
        self.economy = economy or EconomyService(self.db, self.rng)

    async def _load(self, conn, game_id: int) -> BlackjackGame:
        row = await fetch_one(conn, "SELECT * FROM blackjack_games WHERE game_id = ?", game_id)
        if not row or row["status"] != GameStatus.IN_PROGRESS.value:
            raise NoActiveGameError(game_id)
        return BlackjackGame.from_row(row)

    @staticmethod
    async def _discard(conn, game: BlackjackGame):
        await conn.execute("DELETE FROM blackjack_games WHERE game_id = ?", (game.game_id,))

    async def get_active_game(self, user_id: str) -> Optional[BlackjackGame]:
        row = await self.db.fetch_one(
            "SELECT * FROM blackjack_games WHERE user_id = ? AND status = ?",
            str(user_id), GameStatus.IN_PROGRESS.value,
        )
        return BlackjackGame.from_row(row) if row else None

    async def start_game(self, user_id: str, bet: int) -> BlackjackGame:
        """Escrows the bet and deals player, dealer, player, dealer."""
        self._require_positive("bet", bet)

        async with self.db.transaction() as conn:
            existing = await fetch_one(conn, "SELECT game_id FROM blackjack_games WHERE user_id = ?", str(user_id))
            if existing:
                raise ActiveGameExistsError(user_id, existing["game_id"])

            wallet = await self.economy.apply_delta(conn, user_id, "wallet", -bet)

            player, dealer = [], []
            for hand in (player, dealer, player, dealer):
                hand.append(self.rng.draw_card())

            cursor = await conn.execute(
                """INSERT INTO blackjack_games (user_id, bet, player_hand, dealer_hand, status, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (str(user_id), bet, _dump_hand(player), _dump_hand(dealer),
                 GameStatus.IN_PROGRESS.value, utcnow().isoformat()),
            )
            game = BlackjackGame(
                game_id=cursor.lastrowid,
                user_id=str(user_id),
                bet=bet,
                player_hand=player,
                dealer_hand=dealer,
                wallet=wallet,
            )

        self.logger.info(
            f"Blackjack #{game.game_id} for {user_id}: bet {bet}, player {game.player_total}"
            + (" (natural)" if game.player_natural else "")
        )
        return game

    async def hit(self, game_id: int) -> BlackjackGame:
        """Draws one card for the player. A bust settles the game as a dealer win."""
        async with self.db.transaction() as conn:
            game = await self._load(conn, game_id)
            game.player_hand.append(self.rng.draw_card())

            if game.busted:
                game.status = GameStatus.DEALER_WIN
                game.payout = 0
                await self._discard(conn, game)
            else:
                await conn.execute(
                    "UPDATE blackjack_games SET player_hand = ? WHERE game_id = ?",
                    (_dump_hand(game.player_hand), game_id),
                )
            game.wallet = (await self.economy.read_balances(conn, game.user_id))["wallet"]

        if game.finished:
            self.logger.info(f"Blackjack #{game_id}: {game.user_id} bust at {game.player_total}, lost {game.bet}")
        return game

    async def stand(self, game_id: int) -> BlackjackGame:
        """Dealer draws below 17, then the hand is settled and paid."""
        async with self.db.transaction() as conn:
            game = await self._load(conn, game_id)

            while game.dealer_total < BLACKJACK["dealer_stands_on"]:
                game.dealer_hand.append(self.rng.draw_card())

            settle(game)
            if game.payout:
                game.wallet = await self.economy.apply_delta(conn, game.user_id, "wallet", game.payout)
            else:
                game.wallet = (await self.economy.read_balances(conn, game.user_id))["wallet"]
            await self._discard(conn, game)

        self.logger.info(
            f"Blackjack #{game_id}: {game.user_id} {game.status.value} "
            f"({game.player_total} vs {game.dealer_total}), paid {game.payout}"
        )
        return game
