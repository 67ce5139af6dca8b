from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

# Weakest to strongest. Rank 2 is the top rank in Big Two.
RANKS = ("3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K", "A", "2")
SUITS = "CSHD"

RANK_VALUE = {rank: idx for idx, rank in enumerate(RANKS)}
SUIT_VALUE = {suit: idx for idx, suit in enumerate(SUITS)}

_RANK_ALIASES = {"T": "10"}


@dataclass(frozen=True)
class Card:
    rank: str
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in RANK_VALUE:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUIT_VALUE:
            raise ValueError(f"Invalid suit: {self.suit}")

    @property
    def label(self) -> str:
        return f"{self.rank}{self.suit}"

    @property
    def rank_value(self) -> int:
        return RANK_VALUE[self.rank]

    @property
    def suit_value(self) -> int:
        return SUIT_VALUE[self.suit]

    @property
    def strength(self) -> tuple[int, int]:
        return (self.rank_value, self.suit_value)


THREE_OF_CLUBS = Card("3", "C")


def full_deck() -> List[Card]:
    return [Card(rank, suit) for rank in RANKS for suit in SUITS]


def build_deck(rng: Optional[random.Random] = None) -> List[Card]:
    rng = rng or random.Random()
    deck = full_deck()
    rng.shuffle(deck)
    return deck


def deal(deck: List[Card], count: int) -> List[Card]:
    if len(deck) < count:
        raise ValueError("Not enough cards left in deck")
    cards = deck[:count]
    del deck[:count]
    return cards


def sort_cards(cards: Iterable[Card], reverse: bool = False) -> List[Card]:
    return sorted(cards, key=lambda card: card.strength, reverse=reverse)


def highest_card(cards: Iterable[Card]) -> Card:
    return max(cards, key=lambda card: card.strength)


def cards_to_labels(cards: Iterable[Card]) -> List[str]:
    return [card.label for card in cards]


def parse_label(label: str) -> Card:
    text = label.strip().upper()
    if len(text) not in (2, 3):
        raise ValueError(f"Invalid card label: {label}")
    rank, suit = text[:-1], text[-1]
    return Card(_RANK_ALIASES.get(rank, rank), suit)


def parse_cards(labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
