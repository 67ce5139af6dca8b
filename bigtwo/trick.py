from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

from .cards import THREE_OF_CLUBS, Card
from .evaluator import compare, evaluate
from .models import InvalidAction, Play, Player, Rejection, TrickPhase

# Turn order and trick bookkeeping for one round. Seating is the ordered
# list of active player ids; the Room owns it and passes it in.


@dataclass
class TrickContext:
    turn_player_id: str
    opening_card: Card = THREE_OF_CLUBS
    last_play: Optional[Play] = None
    passed_since: Set[str] = field(default_factory=set)
    history: List[Play] = field(default_factory=list)
    first_play_done: bool = False

    @property
    def phase(self) -> TrickPhase:
        if self.last_play is None:
            return TrickPhase.NO_ACTIVE_PLAY
        return TrickPhase.AWAITING_RESPONSE

    def clear(self) -> None:
        self.last_play = None
        self.history = []
        self.passed_since = set()


def next_player(seating: Sequence[str], player_id: str) -> str:
    idx = seating.index(player_id)
    return seating[(idx + 1) % len(seating)]


def submit_play(ctx: TrickContext, seating: Sequence[str], player: Player, cards: Sequence[Card]) -> Play:
    if ctx.turn_player_id != player.id:
        raise InvalidAction(Rejection.NOT_YOUR_TURN, "Not your turn.")
    for card in cards:
        if card not in player.hand:
            raise InvalidAction(Rejection.CARD_NOT_IN_HAND, "You tried to play a card you don't have.")

    evaluation = evaluate(cards)

    if not ctx.first_play_done and ctx.opening_card not in cards:
        raise InvalidAction(
            Rejection.MUST_OPEN_WITH_THREE_OF_CLUBS,
            f"First play must include the {ctx.opening_card.label}.",
        )

    previous = ctx.last_play
    if previous is not None:
        if len(cards) != len(previous.cards):
            raise InvalidAction(
                Rejection.MUST_MATCH_PREVIOUS_COUNT,
                f"You must play the same number of cards ({len(previous.cards)}).",
            )
        if compare(evaluation, previous.evaluation) <= 0:
            raise InvalidAction(Rejection.DOES_NOT_BEAT_PREVIOUS, "Your hand does not beat the previous hand.")

    played = set(cards)
    player.hand = [card for card in player.hand if card not in played]

    play = Play(player_id=player.id, player_name=player.name, cards=list(cards), evaluation=evaluation)
    ctx.last_play = play
    ctx.history.append(play)
    ctx.passed_since = set()
    ctx.first_play_done = True

    # An emptied hand ends the round; the turn stays put.
    if player.hand:
        ctx.turn_player_id = next_player(seating, player.id)
    return play


def pass_turn(ctx: TrickContext, seating: Sequence[str], player_id: str) -> bool:
    """Record a pass. Returns True when the pass cleared the trick."""
    if ctx.turn_player_id != player_id:
        raise InvalidAction(Rejection.NOT_YOUR_TURN, "Not your turn.")
    if ctx.last_play is None:
        raise InvalidAction(Rejection.CANNOT_PASS_EMPTY_TABLE, "You can't pass when there is no hand on the table.")

    ctx.passed_since.add(player_id)
    if _settle(ctx, seating):
        return True
    ctx.turn_player_id = next_player(seating, player_id)
    return False


def drop_player(ctx: TrickContext, remaining: Sequence[str], player_id: str) -> bool:
    """Forget a player who left mid-round. Returns True when the trick cleared."""
    ctx.passed_since.discard(player_id)
    cleared = False
    if ctx.last_play is not None and ctx.last_play.player_id == player_id:
        ctx.clear()
        cleared = True
    if ctx.turn_player_id == player_id:
        ctx.turn_player_id = remaining[0]
    if _settle(ctx, remaining):
        cleared = True
    return cleared


def _settle(ctx: TrickContext, seating: Sequence[str]) -> bool:
    # Everyone but the leader has passed: table clears and the leader leads.
    if ctx.last_play is None:
        return False
    leader = ctx.last_play.player_id
    passes = sum(1 for pid in ctx.passed_since if pid != leader and pid in seating)
    if passes < len(seating) - 1:
        return False
    ctx.clear()
    ctx.turn_player_id = leader
    return True
