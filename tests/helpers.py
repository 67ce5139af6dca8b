from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from bigtwo.cards import Card, full_deck, parse_cards, parse_label, sort_cards
from bigtwo.dealer import HAND_SIZES, DealResult
from bigtwo.models import Action, ActionType, Event, RoomConfig
from bigtwo.room import Room


def cards(*labels: str) -> List[Card]:
    return parse_cards(labels)


def create_room(players: int = 4, *, seed: int = 7, config: Optional[RoomConfig] = None) -> Room:
    """Room with ``players`` joined as p0..pN named Player0..PlayerN."""
    room = Room("TEST", config or RoomConfig(seed=seed))
    for idx in range(players):
        room.apply(Action(ActionType.JOIN, f"p{idx}", name=f"Player{idx}"))
    return room


def ready_all(room: Room) -> List[Event]:
    """Ready every seated player; returns the events from the last ready."""
    events: List[Event] = []
    for player_id in list(room.pool.active):
        events = room.apply(Action(ActionType.READY, player_id))
    return events


def events_named(events: Sequence[Event], name: str) -> List[Event]:
    return [event for event in events if event.ev == name]


def rig_deal(monkeypatch, hands: Dict[str, Sequence[str]], discard: Optional[str] = None) -> None:
    """Make the next deals hand out ``hands``, topped up from the rest of the deck.

    Top-up cards come from the strong end of the deck.
    """
    fixed = {player_id: parse_cards(labels) for player_id, labels in hands.items()}
    discard_card = parse_label(discard) if discard else None

    def fake_deal(player_ids, rng=None, max_attempts=500):
        used = {card for hand in fixed.values() for card in hand}
        if discard_card is not None:
            used.add(discard_card)
        spare = [card for card in full_deck() if card not in used]
        size = HAND_SIZES[len(player_ids)]
        dealt = {}
        for player_id in player_ids:
            hand = list(fixed.get(player_id, []))
            while len(hand) < size:
                hand.append(spare.pop())
            dealt[player_id] = hand
        leftover = discard_card if discard_card is not None else (spare.pop() if spare else None)
        return DealResult(hands=dealt, discard=leftover, attempts=1)

    monkeypatch.setattr("bigtwo.room.deal_round", fake_deal)


def stage_hands(room: Room, hands: Dict[str, Sequence[str]], turn: str) -> None:
    """Jump a running round to a late position.

    Seated players get exactly ``hands``; every other card counts as played.
    The opening play is treated as done and ``turn`` is on lead.
    """
    assert room.trick is not None
    held = set()
    for player_id, labels in hands.items():
        hand = sort_cards(parse_cards(labels))
        room.pool.players[player_id].hand = hand
        held.update(hand)
    if room.discard is not None:
        held.add(room.discard)
    held.update(room.retired)
    room.played = [card for card in full_deck() if card not in held]
    room.trick.clear()
    room.trick.first_play_done = True
    room.trick.turn_player_id = turn
    room.discard_visible = False
