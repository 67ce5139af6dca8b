from __future__ import annotations

import itertools
import random
from typing import Dict, List, Optional, Sequence, Tuple

from bigtwo.cards import Card, sort_cards
from bigtwo.evaluator import HandEvaluation, compare, evaluate
from bigtwo.models import ActionType, InvalidAction
from bigtwo.room import Room

_RNG = random.Random()

Candidate = Tuple[List[Card], HandEvaluation]


def _groups(hand: Sequence[Card]) -> Dict[int, List[Card]]:
    groups: Dict[int, List[Card]] = {}
    for card in sort_cards(hand):
        groups.setdefault(card.rank_value, []).append(card)
    return groups


def candidate_plays(hand: Sequence[Card], size: int) -> List[Candidate]:
    """Every legal play of ``size`` cards hiding in ``hand``, weakest first."""
    combos: List[Tuple[Card, ...]] = []
    if size == 1:
        combos = [(card,) for card in hand]
    elif size in (2, 3):
        for cards in _groups(hand).values():
            combos.extend(itertools.combinations(cards, size))
    elif size == 5:
        combos = list(itertools.combinations(sort_cards(hand), 5))

    found: List[Candidate] = []
    for combo in combos:
        try:
            found.append((list(combo), evaluate(combo)))
        except InvalidAction:
            continue
    found.sort(key=lambda item: (int(item[1].category), item[1].tie_key))
    return found


def legal_plays(room: Room, player_id: str) -> List[Candidate]:
    """Plays the room would accept from ``player_id`` right now."""
    trick = room.trick
    if trick is None or trick.turn_player_id != player_id:
        return []
    hand = room.pool.players[player_id].hand
    previous = trick.last_play

    sizes = (len(previous.cards),) if previous else (1, 2, 3, 5)
    plays: List[Candidate] = []
    for size in sizes:
        for cards, evaluation in candidate_plays(hand, size):
            if not trick.first_play_done and trick.opening_card not in cards:
                continue
            if previous and compare(evaluation, previous.evaluation) <= 0:
                continue
            plays.append((cards, evaluation))
    return plays


def baseline_strategy(room: Room, player_id: str) -> Tuple[ActionType, Optional[List[Card]]]:
    """Cautious demo bot: leads its lowest card, answers with the cheapest beater."""

    trick = room.trick
    if trick is None:
        raise RuntimeError("Round not in progress")
    hand = room.pool.players[player_id].hand

    if trick.last_play is None:
        if not trick.first_play_done:
            return ActionType.PLAY, [trick.opening_card]
        # Shed a pair now and then so the table sees more than singles.
        pairs = candidate_plays(hand, 2)
        if pairs and _RNG.random() < 0.3:
            return ActionType.PLAY, pairs[0][0]
        return ActionType.PLAY, [sort_cards(hand)[0]]

    beaters = legal_plays(room, player_id)
    if not beaters:
        return ActionType.PASS, None
    # Occasionally hold back, unless the hand is nearly gone.
    if len(hand) > 3 and _RNG.random() < 0.15:
        return ActionType.PASS, None
    return ActionType.PLAY, beaters[0][0]
