from __future__ import annotations

import itertools
from collections import Counter
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .cards import Card, highest_card, sort_cards
from .models import InvalidAction, Rejection

PLAY_SIZES = (1, 2, 3, 5)
LOW_STRAIGHT = frozenset({12, 0, 1, 2, 3})  # 2-3-4-5-6, six-high


class Category(IntEnum):
    SINGLE = 1
    PAIR = 2
    TRIPLE = 3
    STRAIGHT = 4
    FLUSH = 5
    FULL_HOUSE = 6
    QUADS = 7
    STRAIGHT_FLUSH = 8


class Strength(IntEnum):
    """Residual-hand ladder for loser tie-breaks. Wider than the legal plays."""

    HIGH_CARD = 1
    PAIR = 2
    TWO_PAIR = 3
    TRIPLE = 4
    STRAIGHT = 5
    FLUSH = 6
    FULL_HOUSE = 7
    QUADS = 8
    STRAIGHT_FLUSH = 9


_CATEGORY_NAMES = {
    Category.SINGLE: "single",
    Category.PAIR: "pair",
    Category.TRIPLE: "triple",
    Category.STRAIGHT: "straight",
    Category.FLUSH: "flush",
    Category.FULL_HOUSE: "full_house",
    Category.QUADS: "quads",
    Category.STRAIGHT_FLUSH: "straight_flush",
}


@dataclass(frozen=True)
class HandEvaluation:
    category: Category
    tie_key: Tuple[int, ...]

    @property
    def name(self) -> str:
        return describe(self)


@dataclass(frozen=True)
class BestHand:
    cards: Tuple[Card, ...]
    strength: Strength
    rank_value: int
    suit_value: int

    @property
    def sort_key(self) -> Tuple[int, int, int]:
        return (int(self.strength), self.rank_value, self.suit_value)


def describe(evaluation: HandEvaluation) -> str:
    return _CATEGORY_NAMES[evaluation.category]


def evaluate(cards: Sequence[Card]) -> HandEvaluation:
    """Classify a candidate play.

    Raises InvalidAction with a rejection code when the cards do not form a
    legal play. The result does not depend on the order of ``cards``.
    """
    cards = list(cards)
    if len(set(cards)) != len(cards):
        raise InvalidAction(Rejection.DUPLICATE_CARD, "A card appears more than once in the play.")
    size = len(cards)
    if size not in PLAY_SIZES:
        raise InvalidAction(Rejection.INVALID_CARD_COUNT, "You can only play 1, 2, 3, or 5 cards.")

    counts = Counter(card.rank_value for card in cards)
    top = highest_card(cards)

    if size == 1:
        return HandEvaluation(Category.SINGLE, top.strength)
    if size == 2:
        if len(counts) != 1:
            raise InvalidAction(Rejection.NOT_A_PAIR, "2-card hands must be a pair.")
        return HandEvaluation(Category.PAIR, top.strength)
    if size == 3:
        if len(counts) != 1:
            raise InvalidAction(Rejection.NOT_A_TRIPLE, "3-card hands must be three of a kind.")
        return HandEvaluation(Category.TRIPLE, top.strength)
    return _evaluate_five(cards, counts, top)


def _evaluate_five(cards: List[Card], counts: Counter, top: Card) -> HandEvaluation:
    is_flush = len({card.suit for card in cards}) == 1
    high = straight_high(cards)
    pattern = sorted(counts.values(), reverse=True)

    if is_flush and high is not None:
        return HandEvaluation(Category.STRAIGHT_FLUSH, (high, _card_of_rank(cards, high).suit_value))
    if pattern == [4, 1]:
        quad_rank = _rank_with_count(counts, 4)
        kicker = next(card for card in cards if card.rank_value != quad_rank)
        return HandEvaluation(Category.QUADS, (quad_rank, kicker.suit_value))
    if pattern == [3, 2]:
        return HandEvaluation(Category.FULL_HOUSE, (_rank_with_count(counts, 3), top.suit_value))
    if is_flush:
        ranks = [card.rank_value for card in sort_cards(cards, reverse=True)]
        return HandEvaluation(Category.FLUSH, tuple(ranks) + (top.suit_value,))
    if high is not None:
        return HandEvaluation(Category.STRAIGHT, (high, _card_of_rank(cards, high).suit_value))
    if pattern == [2, 2, 1]:
        raise InvalidAction(Rejection.TWO_PAIR_NOT_ALLOWED, "Two-pair is not allowed in this game.")
    raise InvalidAction(
        Rejection.ILLEGAL_FIVE_CARD_SHAPE,
        "Only straight, flush, full house, quads, or straight flush are allowed as 5-card hands.",
    )


def straight_high(cards: Iterable[Card]) -> Optional[int]:
    """Return the rank value of the straight's high card, or None.

    Runs wrap around the 13 ranks. In the low straight 2-3-4-5-6 the 2 plays
    low, so the six is the high card.
    """
    values = {card.rank_value for card in cards}
    if len(values) != 5:
        return None
    if values == LOW_STRAIGHT:
        return 3
    for start in range(13):
        if all((start + step) % 13 in values for step in range(5)):
            return (start + 4) % 13
    return None


def compare(first: HandEvaluation, second: HandEvaluation) -> int:
    if first.category != second.category:
        return int(first.category) - int(second.category)
    for a, b in itertools.zip_longest(first.tie_key, second.tie_key, fillvalue=0):
        if a != b:
            return a - b
    return 0


def _rank_with_count(counts: Counter, count: int) -> int:
    return next(rank for rank, seen in counts.items() if seen == count)


def _card_of_rank(cards: Iterable[Card], rank_value: int) -> Card:
    return highest_card(card for card in cards if card.rank_value == rank_value)


# Best-subset search ----------------------------------------------------


def best_hand(cards: Sequence[Card]) -> Optional[BestHand]:
    """Strongest sub-hand hiding in ``cards``, by the residual-hand ladder.

    Enumerates every 5, 4, 3 and 2 card combination. Used once per round to
    break ties between players left holding the same number of cards.
    """
    ordered = sort_cards(cards)
    if not ordered:
        return None

    best: Optional[BestHand] = None
    for size in (5, 4, 3, 2):
        if len(ordered) < size:
            continue
        for combo in itertools.combinations(ordered, size):
            candidate = _rank_subset(combo)
            if candidate is None:
                continue
            if best is None or candidate.sort_key > best.sort_key:
                best = candidate

    if best is None:
        top = highest_card(ordered)
        best = BestHand((top,), Strength.HIGH_CARD, top.rank_value, top.suit_value)
    return best


def _rank_subset(combo: Tuple[Card, ...]) -> Optional[BestHand]:
    groups: Dict[int, List[Card]] = {}
    for card in combo:
        groups.setdefault(card.rank_value, []).append(card)

    if len(combo) == 5:
        strength, decisive = _classify_five(combo, groups)
    elif len(groups) == 1:
        strength = {4: Strength.QUADS, 3: Strength.TRIPLE, 2: Strength.PAIR}[len(combo)]
        decisive = highest_card(combo)
    else:
        return None
    return BestHand(combo, strength, decisive.rank_value, decisive.suit_value)


def _classify_five(combo: Tuple[Card, ...], groups: Dict[int, List[Card]]) -> Tuple[Strength, Card]:
    is_flush = len({card.suit for card in combo}) == 1
    high = straight_high(combo)
    by_size = sorted(groups.values(), key=lambda group: (len(group), group[0].rank_value), reverse=True)
    pattern = [len(group) for group in by_size]

    if is_flush and high is not None:
        return Strength.STRAIGHT_FLUSH, _card_of_rank(combo, high)
    if pattern[0] == 4:
        return Strength.QUADS, highest_card(by_size[0])
    if pattern == [3, 2]:
        return Strength.FULL_HOUSE, highest_card(by_size[0])
    if is_flush:
        return Strength.FLUSH, highest_card(combo)
    if high is not None:
        return Strength.STRAIGHT, _card_of_rank(combo, high)
    if pattern[0] == 3:
        return Strength.TRIPLE, highest_card(by_size[0])
    if pattern[:2] == [2, 2]:
        return Strength.TWO_PAIR, highest_card(by_size[0])
    if pattern[0] == 2:
        return Strength.PAIR, highest_card(by_size[0])
    return Strength.HIGH_CARD, highest_card(combo)
