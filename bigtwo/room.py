from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .cards import THREE_OF_CLUBS, Card, cards_to_labels, full_deck, sort_cards
from .dealer import deal_round
from .evaluator import BestHand, best_hand
from .models import (
    Action,
    ActionType,
    Event,
    InvalidAction,
    Player,
    Rejection,
    RoomConfig,
    RoundPhase,
)
from .pool import PlayerPool
from .stats import StatsBook
from .trick import TrickContext, drop_player, pass_turn as pass_trick, submit_play

LOGGER = logging.getLogger("bigtwo.room")

# Room keeps one table's state in memory and turns player actions into
# outbound events. No networking lives here.


@dataclass
class RoundResult:
    round_no: int
    winner_id: str
    winner_name: str
    loser_id: Optional[str] = None
    loser_name: Optional[str] = None
    promoted: List[str] = field(default_factory=list)
    demoted: Optional[str] = None


class Room:
    def __init__(
        self,
        room_id: str,
        config: Optional[RoomConfig] = None,
        stats: Optional[StatsBook] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.id = room_id
        self.config = config or RoomConfig()
        self.stats = stats or StatsBook()
        self.rng = rng or random.Random(self.config.seed)
        self.pool = PlayerPool(self.config)
        self.phase = RoundPhase.WAITING_FOR_READY
        self.trick: Optional[TrickContext] = None
        self.discard: Optional[Card] = None
        self.discard_visible = False
        self.played: List[Card] = []
        self.retired: List[Card] = []
        self.round_counter = 0
        self.last_result: Optional[RoundResult] = None

    @property
    def started(self) -> bool:
        return self.phase == RoundPhase.IN_PROGRESS

    @property
    def first_play_done(self) -> bool:
        return bool(self.trick and self.trick.first_play_done)

    @property
    def turn_player_id(self) -> Optional[str]:
        return self.trick.turn_player_id if self.trick else None

    def is_empty(self) -> bool:
        return len(self.pool) == 0

    # Dispatch --------------------------------------------------------

    def apply(self, action: Action) -> List[Event]:
        """Run one player action to completion and return what to send."""
        try:
            if action.type == ActionType.JOIN:
                return self.join(action.player_id, action.name or "")
            if action.type == ActionType.READY:
                return self.ready(action.player_id)
            if action.type == ActionType.PLAY:
                return self.play(action.player_id, action.cards)
            if action.type == ActionType.PASS:
                return self.pass_turn(action.player_id)
            if action.type == ActionType.STATS:
                return self.stats_for(action.player_id, action.name)
            if action.type == ActionType.LEAVE:
                return self.leave(action.player_id)
            raise ValueError(f"Unsupported action {action.type}")
        except InvalidAction as exc:
            LOGGER.warning(
                "Rejected action room=%s player=%s action=%s code=%s reason=%s",
                self.id,
                action.player_id,
                action.type.value,
                exc.code.value,
                exc.msg,
            )
            return [Event("invalid_action", {"code": exc.code.value, "msg": exc.msg}, to=action.player_id)]

    # Membership ------------------------------------------------------

    def join(self, player_id: str, name: str) -> List[Event]:
        status = self.pool.join(player_id, name, round_in_progress=self.started)
        LOGGER.info(
            "Player %s (%s) joined room %s as %s (position=%s)",
            name,
            player_id,
            self.id,
            status.value,
            self.pool.queue_position(player_id),
        )
        events = [self._status_event(player_id), self._roster_event()]
        if self.started:
            events.append(self._table_event(to=player_id))
            if self.discard_visible and self.discard:
                events.append(Event("discard_revealed", {"card": self.discard.label}, to=player_id))
        return events

    def leave(self, player_id: str) -> List[Event]:
        was_active = self.pool.is_active(player_id)
        player = self.pool.remove(player_id)
        if player is None:
            return []
        LOGGER.info("Player %s (%s) left room %s", player.name, player_id, self.id)
        events: List[Event] = [Event("player_left", {"player_id": player_id, "name": player.name})]

        if self.started and was_active:
            self.retired.extend(player.hand)
            if len(self.pool.active) < self.config.min_active:
                events.extend(self._abort_round(f"{player.name} left the table"))
            else:
                assert self.trick is not None
                turn_before = self.trick.turn_player_id
                if drop_player(self.trick, self.pool.active, player_id):
                    events.append(self._table_event())
                if self.trick.turn_player_id != turn_before:
                    events.append(self._turn_event())
        elif not self.started:
            events.extend(self._promotion_events(self.pool.promote()))

        events.extend(self._queue_events())
        events.append(self._roster_event())
        return events

    def stats_for(self, player_id: str, name: Optional[str]) -> List[Event]:
        target = name or self.pool.get(player_id).name
        stats = self.stats.get(target)
        return [Event("stats", {"name": target, "stats": stats.to_payload()}, to=player_id)]

    # Round lifecycle -------------------------------------------------

    def ready(self, player_id: str) -> List[Event]:
        player = self.pool.get(player_id)
        if not self.pool.is_active(player_id):
            raise InvalidAction(
                Rejection.NOT_ACTIVE_PLAYER,
                "Only active players can ready up. You are in the waiting room.",
            )
        if self.started:
            raise InvalidAction(Rejection.ROUND_IN_PROGRESS, "A round is already in progress.")

        player.ready = True
        LOGGER.info(
            "Player %s is ready in room %s (%s/%s)",
            player.name,
            self.id,
            sum(1 for p in self.pool.active_players() if p.ready),
            len(self.pool.active),
        )
        if self.can_start_round():
            return self.start_round()
        return [self._roster_event()]

    def can_start_round(self) -> bool:
        active = self.pool.active_players()
        return (
            not self.started
            and self.config.min_active <= len(active) <= self.config.max_active
            and all(player.ready for player in active)
        )

    def start_round(self) -> List[Event]:
        if not self.can_start_round():
            raise RuntimeError("Not enough ready players to start a round")

        active = self.pool.active_players()
        result = deal_round([p.id for p in active], self.rng, self.config.max_deal_attempts)
        for player in active:
            player.hand = sort_cards(result.hands[player.id])

        opening = self._opening_card(active)
        starter = next(player for player in active if opening in player.hand)

        self.round_counter += 1
        self.phase = RoundPhase.IN_PROGRESS
        self.trick = TrickContext(turn_player_id=starter.id, opening_card=opening)
        self.discard = result.discard
        self.discard_visible = result.discard is not None
        self.played = []
        self.retired = []
        self._check_conservation()

        LOGGER.info(
            "Round %s started in room %s with %s players; %s opens with %s",
            self.round_counter,
            self.id,
            len(active),
            starter.name,
            opening.label,
        )

        events = [Event("dealt", {"hand": cards_to_labels(player.hand)}, to=player.id) for player in active]
        if self.discard is not None:
            events.append(Event("discard_revealed", {"card": self.discard.label}))
        events.append(self._table_event())
        events.append(self._turn_event())
        events.append(self._roster_event())
        return events

    def _opening_card(self, active: Sequence[Player]) -> Card:
        if any(THREE_OF_CLUBS in player.hand for player in active):
            return THREE_OF_CLUBS
        # Three players and the 3 of clubs was the discard.
        return min((card for player in active for card in player.hand), key=lambda card: card.strength)

    def play(self, player_id: str, cards: Sequence[Card]) -> List[Event]:
        player = self.pool.get(player_id)
        self._require_round(player_id)
        assert self.trick is not None

        was_first = not self.trick.first_play_done
        play = submit_play(self.trick, self.pool.active, player, cards)
        self.played.extend(play.cards)
        self._check_conservation()
        LOGGER.debug(
            "Accepted play room=%s player=%s cards=%s type=%s",
            self.id,
            player.name,
            cards_to_labels(play.cards),
            play.evaluation.name,
        )

        events: List[Event] = []
        if was_first and self.discard_visible:
            self.discard_visible = False
            events.append(Event("discard_hidden"))
        events.append(self._table_event())
        events.append(Event("play_accepted", {"cards": cards_to_labels(play.cards)}, to=player_id))

        if not player.hand:
            events.extend(self._finish_round(player))
        else:
            events.append(self._turn_event())
        return events

    def pass_turn(self, player_id: str) -> List[Event]:
        player = self.pool.get(player_id)
        self._require_round(player_id)
        assert self.trick is not None

        cleared = pass_trick(self.trick, self.pool.active, player_id)
        LOGGER.debug("Player %s passed in room %s (trick cleared=%s)", player.name, self.id, cleared)
        events: List[Event] = []
        if cleared:
            events.append(self._table_event())
        events.append(self._turn_event())
        return events

    def _require_round(self, player_id: str) -> None:
        if not self.started:
            raise InvalidAction(Rejection.ROUND_NOT_STARTED, "Game hasn't started yet.")
        if not self.pool.is_active(player_id):
            raise InvalidAction(Rejection.NOT_ACTIVE_PLAYER, "You are in the waiting room.")

    def _finish_round(self, winner: Player) -> List[Event]:
        self.phase = RoundPhase.ROUND_OVER
        active = self.pool.active_players()
        self.stats.record_round(winner.name, [player.name for player in active if player.id != winner.id])

        loser = self.select_loser(winner.id)
        result = RoundResult(
            round_no=self.round_counter,
            winner_id=winner.id,
            winner_name=winner.name,
            loser_id=loser.id if loser else None,
            loser_name=loser.name if loser else None,
        )
        LOGGER.info(
            "Round %s over in room %s: winner=%s loser=%s",
            self.round_counter,
            self.id,
            winner.name,
            result.loser_name,
        )

        result.promoted, result.demoted = self.pool.rotate_after_round(result.loser_id)
        if result.demoted:
            LOGGER.info("Player %s moved to the waiting queue in room %s", result.loser_name, self.id)
        for player_id in result.promoted:
            LOGGER.info("Player %s promoted to the table in room %s", self.pool.players[player_id].name, self.id)
        self.last_result = result
        self._reset_round()

        # Everyone learns their seat for the next round, queue positions included.
        events = [Event("round_over", {"winner": winner.name, "loser": result.loser_name})]
        events.extend(self._status_event(player_id) for player_id in self.pool.active)
        events.extend(self._queue_events())
        events.append(self._roster_event())
        return events

    def select_loser(self, winner_id: str) -> Optional[Player]:
        """The other player holding the most cards.

        Ties on card count go to the player whose best remaining sub-hand is
        weakest; an exact tie keeps the earlier seat.
        """
        contenders = [p for p in self.pool.active_players() if p.id != winner_id and p.hand]
        if not contenders:
            return None
        most = max(len(player.hand) for player in contenders)
        tied = [player for player in contenders if len(player.hand) == most]
        if len(tied) == 1:
            return tied[0]
        return min(tied, key=lambda player: _best(player.hand).sort_key)

    def _abort_round(self, reason: str) -> List[Event]:
        LOGGER.info("Round %s aborted in room %s: %s", self.round_counter, self.id, reason)
        self._reset_round()
        events = [Event("round_aborted", {"reason": reason}), self._table_event()]
        events.extend(self._promotion_events(self.pool.promote()))
        return events

    def _reset_round(self) -> None:
        for player in self.pool.players.values():
            player.reset_for_round()
        self.phase = RoundPhase.WAITING_FOR_READY
        self.trick = None
        self.discard = None
        self.discard_visible = False
        self.played = []
        self.retired = []

    def _check_conservation(self) -> None:
        located: List[Card] = [card for player in self.pool.active_players() for card in player.hand]
        located.extend(self.played)
        located.extend(self.retired)
        if self.discard is not None:
            located.append(self.discard)
        assert len(located) == 52 and set(located) == set(full_deck()), "card accounting broken"

    # Payload helpers -------------------------------------------------

    def table_payload(self) -> Dict[str, object]:
        history = self.trick.history if self.trick else []
        return {
            "plays": [
                {
                    "player_id": play.player_id,
                    "player": play.player_name,
                    "cards": cards_to_labels(play.cards),
                    "hand_type": play.evaluation.name,
                }
                for play in history
            ]
        }

    def turn_payload(self) -> Dict[str, object]:
        if not self.trick:
            raise RuntimeError("Round not in progress")
        active = self.pool.active_players()
        current = self.trick.turn_player_id
        start = next((idx for idx, player in enumerate(active) if player.id == current), 0)
        ordered = active[start:] + active[:start]
        return {
            "player_id": current,
            "player_name": self.pool.players[current].name if current in self.pool else "",
            "players": [self._seat_summary(player) for player in ordered],
            "player_count": len(active),
        }

    def _seat_summary(self, player: Player) -> Dict[str, object]:
        summary: Dict[str, object] = {
            "player_id": player.id,
            "name": player.name,
            "cards_remaining": len(player.hand),
        }
        summary.update(self.stats.get(player.name).to_payload())
        return summary

    def status_payload(self, player_id: str) -> Dict[str, object]:
        player = self.pool.players[player_id]
        return {
            "player_id": player_id,
            "status": self.pool.status(player_id).value,
            "queue_position": self.pool.queue_position(player_id),
            "stats": self.stats.get(player.name).to_payload(),
        }

    def _table_event(self, to: Optional[str] = None) -> Event:
        return Event("table_updated", self.table_payload(), to=to)

    def _turn_event(self) -> Event:
        return Event("turn_changed", self.turn_payload())

    def _roster_event(self) -> Event:
        return Event("roster_changed", self.pool.roster_payload())

    def _status_event(self, player_id: str) -> Event:
        return Event("status_changed", self.status_payload(player_id), to=player_id)

    def _promotion_events(self, promoted: Sequence[str]) -> List[Event]:
        for player_id in promoted:
            LOGGER.info("Player %s promoted to the table in room %s", self.pool.players[player_id].name, self.id)
        return [self._status_event(player_id) for player_id in promoted]

    def _queue_events(self) -> List[Event]:
        return [self._status_event(player_id) for player_id in self.pool.waiting]


def _best(hand: Sequence[Card]) -> BestHand:
    best = best_hand(hand)
    assert best is not None
    return best
