from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .cards import Card, build_deck, deal

LOGGER = logging.getLogger("bigtwo.dealer")

HAND_SIZES = {3: 17, 4: 13}


@dataclass
class DealResult:
    hands: Dict[str, List[Card]]
    discard: Optional[Card]
    attempts: int


def holds_all_twos(hand: Sequence[Card]) -> bool:
    return sum(1 for card in hand if card.rank == "2") == 4


def deal_round(player_ids: Sequence[str], rng: Optional[random.Random] = None, max_attempts: int = 500) -> DealResult:
    """Deal a fresh shuffled deck to 3 or 4 players.

    A deal that leaves any one player with all four 2s is thrown away and
    redone. After ``max_attempts`` deals the last one stands regardless. With
    three players the single leftover card becomes the discard.
    """
    if len(player_ids) not in HAND_SIZES:
        raise ValueError(f"Cannot deal to {len(player_ids)} players")
    rng = rng or random.Random()
    per_player = HAND_SIZES[len(player_ids)]

    attempts = 0
    while True:
        attempts += 1
        deck = build_deck(rng)
        hands = {player_id: deal(deck, per_player) for player_id in player_ids}
        if not any(holds_all_twos(hand) for hand in hands.values()):
            break
        if attempts >= max_attempts:
            LOGGER.warning("Accepting deal with all four 2s in one hand after %s attempts", attempts)
            break

    discard = deck[0] if deck else None
    if attempts > 1:
        LOGGER.debug("Redealt %s times to avoid a four-2s hand", attempts - 1)
    return DealResult(hands=hands, discard=discard, attempts=attempts)
