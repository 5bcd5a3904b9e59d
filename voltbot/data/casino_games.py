# data/casino_games.py
from __future__ import annotations

from dataclasses import dataclass

CARD_VALUES = ("2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K", "A")
CARD_SUITS = ("♠️", "♥️", "♦️", "♣️")
FACE_CARDS = ("J", "Q", "K")

BLACKJACK = {
    "name": "🃏 Blackjack",
    "target": 21,
    "dealer_stands_on": 17,
    "payout": 2.0,  # stake back plus an equal win
    "blackjack_payout": 2.5,  # natural 21 on the first two cards
    "push_payout": 1.0,
}


@dataclass(frozen=True)
class Card:
    value: str
    suit: str

    def __post_init__(self):
        if self.value not in CARD_VALUES:
            raise ValueError(f"Unknown card value: {self.value!r}")

    @property
    def is_ace(self) -> bool:
        return self.value == "A"

    @property
    def points(self) -> int:
        """Face value with aces counted high."""
        if self.is_ace:
            return 11
        if self.value in FACE_CARDS:
            return 10
        return int(self.value)

    def to_dict(self) -> dict:
        return {"value": self.value, "suit": self.suit}

    @classmethod
    def from_dict(cls, data: dict) -> "Card":
        return cls(value=str(data["value"]), suit=str(data["suit"]))

    def __str__(self) -> str:
        return f"{self.value}{self.suit}"


def hand_total(hand) -> int:
    """
    Scores a hand: aces start at 11 and drop to 1 one at a time
    while the total is over 21.
    """
    total = sum(card.points for card in hand)
    soft_aces = sum(1 for card in hand if card.is_ace)

    while total > BLACKJACK["target"] and soft_aces:
        total -= 10
        soft_aces -= 1

    return total


def is_natural(hand) -> bool:
    """Two-card 21."""
    return len(hand) == 2 and hand_total(hand) == BLACKJACK["target"]
