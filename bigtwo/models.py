from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

from .cards import Card

if TYPE_CHECKING:
    from .evaluator import HandEvaluation


class Rejection(str, Enum):
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    ROUND_NOT_STARTED = "ROUND_NOT_STARTED"
    ROUND_IN_PROGRESS = "ROUND_IN_PROGRESS"
    CARD_NOT_IN_HAND = "CARD_NOT_IN_HAND"
    DUPLICATE_CARD = "DUPLICATE_CARD"
    INVALID_CARD_COUNT = "INVALID_CARD_COUNT"
    NOT_A_PAIR = "NOT_A_PAIR"
    NOT_A_TRIPLE = "NOT_A_TRIPLE"
    ILLEGAL_FIVE_CARD_SHAPE = "ILLEGAL_FIVE_CARD_SHAPE"
    TWO_PAIR_NOT_ALLOWED = "TWO_PAIR_NOT_ALLOWED"
    MUST_OPEN_WITH_THREE_OF_CLUBS = "MUST_OPEN_WITH_THREE_OF_CLUBS"
    MUST_MATCH_PREVIOUS_COUNT = "MUST_MATCH_PREVIOUS_COUNT"
    DOES_NOT_BEAT_PREVIOUS = "DOES_NOT_BEAT_PREVIOUS"
    CANNOT_PASS_EMPTY_TABLE = "CANNOT_PASS_EMPTY_TABLE"
    ROOM_FULL = "ROOM_FULL"
    NOT_ACTIVE_PLAYER = "NOT_ACTIVE_PLAYER"
    UNKNOWN_PLAYER = "UNKNOWN_PLAYER"
    BAD_CARD = "BAD_CARD"


class InvalidAction(ValueError):
    """A player action the rules refuse. Reported to the actor only."""

    def __init__(self, code: Rejection, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


class RoundPhase(str, Enum):
    WAITING_FOR_READY = "WAITING_FOR_READY"
    IN_PROGRESS = "IN_PROGRESS"
    ROUND_OVER = "ROUND_OVER"


class TrickPhase(str, Enum):
    NO_ACTIVE_PLAY = "NO_ACTIVE_PLAY"
    AWAITING_RESPONSE = "AWAITING_RESPONSE"


class PlayerStatus(str, Enum):
    ACTIVE = "active"
    WAITING = "waiting"


class ActionType(str, Enum):
    JOIN = "join"
    READY = "ready"
    PLAY = "play"
    PASS = "pass"
    STATS = "stats"
    LEAVE = "leave"


@dataclass
class RoomConfig:
    max_active: int = 4
    min_active: int = 3
    capacity: int = 10
    max_deal_attempts: int = 500
    seed: Optional[int] = None


@dataclass
class Player:
    id: str
    name: str
    hand: List[Card] = field(default_factory=list)
    ready: bool = False

    def reset_for_round(self) -> None:
        self.hand = []
        self.ready = False


@dataclass
class PlayerStats:
    wins: int = 0
    games_played: int = 0

    @property
    def win_percent(self) -> int:
        if self.games_played == 0:
            return 0
        return round(self.wins / self.games_played * 100)

    def to_payload(self) -> Dict[str, int]:
        return {
            "wins": self.wins,
            "games_played": self.games_played,
            "win_percent": self.win_percent,
        }


@dataclass
class Play:
    player_id: str
    player_name: str
    cards: List[Card]
    evaluation: "HandEvaluation"


@dataclass
class Action:
    type: ActionType
    player_id: str
    name: Optional[str] = None
    cards: List[Card] = field(default_factory=list)


@dataclass
class Event:
    ev: str
    data: Dict[str, object] = field(default_factory=dict)
    # None addresses the whole room.
    to: Optional[str] = None
