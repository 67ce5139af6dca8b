"""Big Two table engine: rules, turn order and seating, with no networking."""

from .cards import Card, RANKS, SUITS, THREE_OF_CLUBS, build_deck, deal, parse_cards
from .dealer import DealResult, deal_round
from .evaluator import BestHand, Category, HandEvaluation, Strength, best_hand, compare, evaluate
from .models import (
    Action,
    ActionType,
    Event,
    InvalidAction,
    Player,
    PlayerStats,
    PlayerStatus,
    Rejection,
    RoomConfig,
    RoundPhase,
    TrickPhase,
)
from .pool import PlayerPool
from .registry import RoomRegistry
from .room import Room, RoundResult
from .stats import StatsBook

__all__ = [
    "Card",
    "RANKS",
    "SUITS",
    "THREE_OF_CLUBS",
    "build_deck",
    "deal",
    "parse_cards",
    "DealResult",
    "deal_round",
    "BestHand",
    "Category",
    "HandEvaluation",
    "Strength",
    "best_hand",
    "compare",
    "evaluate",
    "Action",
    "ActionType",
    "Event",
    "InvalidAction",
    "Player",
    "PlayerStats",
    "PlayerStatus",
    "Rejection",
    "RoomConfig",
    "RoundPhase",
    "TrickPhase",
    "PlayerPool",
    "RoomRegistry",
    "Room",
    "RoundResult",
    "StatsBook",
]
