from __future__ import annotations

from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

from .models import InvalidAction, Player, PlayerStatus, Rejection, RoomConfig


class PlayerPool:
    """Seated players (ordered, capped) plus a FIFO queue of waiting players."""

    def __init__(self, config: RoomConfig) -> None:
        self.config = config
        self.players: Dict[str, Player] = {}
        self.active: List[str] = []
        self.waiting: Deque[str] = deque()

    def __len__(self) -> int:
        return len(self.players)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self.players

    def get(self, player_id: str) -> Player:
        player = self.players.get(player_id)
        if player is None:
            raise InvalidAction(Rejection.UNKNOWN_PLAYER, "You are not in this room.")
        return player

    # Membership ------------------------------------------------------

    def join(self, player_id: str, name: str, round_in_progress: bool) -> PlayerStatus:
        if player_id in self.players:
            raise ValueError(f"Player {player_id} already in room")
        if len(self.players) >= self.config.capacity:
            raise InvalidAction(Rejection.ROOM_FULL, f"Room is full (max {self.config.capacity} players).")

        self.players[player_id] = Player(id=player_id, name=name)
        # Late joiners always queue, even when a seat is free.
        if not round_in_progress and len(self.active) < self.config.max_active:
            self.active.append(player_id)
            return PlayerStatus.ACTIVE
        self.waiting.append(player_id)
        return PlayerStatus.WAITING

    def remove(self, player_id: str) -> Optional[Player]:
        player = self.players.pop(player_id, None)
        if player is None:
            return None
        if player_id in self.active:
            self.active.remove(player_id)
        if player_id in self.waiting:
            self.waiting.remove(player_id)
        return player

    # Queries ---------------------------------------------------------

    def is_active(self, player_id: str) -> bool:
        return player_id in self.active

    def status(self, player_id: str) -> PlayerStatus:
        return PlayerStatus.ACTIVE if self.is_active(player_id) else PlayerStatus.WAITING

    def queue_position(self, player_id: str) -> int:
        """1-based position in the queue, -1 for seated players."""
        if player_id in self.waiting:
            return list(self.waiting).index(player_id) + 1
        return -1

    def active_players(self) -> List[Player]:
        return [self.players[player_id] for player_id in self.active]

    def waiting_players(self) -> List[Player]:
        return [self.players[player_id] for player_id in self.waiting]

    # Rotation --------------------------------------------------------

    def promote(self) -> List[str]:
        promoted: List[str] = []
        while len(self.active) < self.config.max_active and self.waiting:
            player_id = self.waiting.popleft()
            self.active.append(player_id)
            promoted.append(player_id)
        return promoted

    def rotate_after_round(self, loser_id: Optional[str]) -> Tuple[List[str], Optional[str]]:
        """Apply the between-rounds seat changes.

        A full table sends the loser to the back of the queue before refilling
        from the front. A short table only refills; nobody is demoted.
        Returns (promoted ids, demoted id).
        """
        demoted: Optional[str] = None
        if loser_id is not None and loser_id in self.active and len(self.active) >= self.config.max_active:
            self.active.remove(loser_id)
            self.waiting.append(loser_id)
            demoted = loser_id
        return self.promote(), demoted

    def roster_payload(self) -> Dict[str, object]:
        return {
            "active": [
                {"player_id": player.id, "name": player.name, "ready": player.ready}
                for player in self.active_players()
            ],
            "waiting": [
                {"player_id": player.id, "name": player.name, "position": idx}
                for idx, player in enumerate(self.waiting_players(), start=1)
            ],
        }
