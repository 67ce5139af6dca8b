from __future__ import annotations

import logging
import random
from typing import Dict, Optional

from .models import RoomConfig
from .room import Room
from .stats import StatsBook

LOGGER = logging.getLogger("bigtwo.registry")


class RoomRegistry:
    """Every live room by id, plus the stats book the rooms share.

    A room exists from its first join until its last player leaves.
    """

    def __init__(self, config: Optional[RoomConfig] = None, stats: Optional[StatsBook] = None) -> None:
        self.config = config or RoomConfig()
        self.stats = stats or StatsBook()
        self.rooms: Dict[str, Room] = {}
        self._rng = random.Random(self.config.seed)

    def __len__(self) -> int:
        return len(self.rooms)

    def get(self, room_id: str) -> Optional[Room]:
        return self.rooms.get(room_id)

    def get_or_create(self, room_id: str) -> Room:
        room = self.rooms.get(room_id)
        if room is None:
            # Each room gets its own generator so rooms never share shuffle state.
            rng = random.Random(self._rng.getrandbits(64)) if self.config.seed is not None else None
            room = Room(room_id, self.config, self.stats, rng=rng)
            self.rooms[room_id] = room
            LOGGER.info("Room %s created", room_id)
        return room

    def discard_if_empty(self, room_id: str) -> bool:
        room = self.rooms.get(room_id)
        if room is None or not room.is_empty():
            return False
        del self.rooms[room_id]
        LOGGER.info("Room %s closed", room_id)
        return True

    def find_player_room(self, player_id: str) -> Optional[Room]:
        for room in self.rooms.values():
            if player_id in room.pool:
                return room
        return None
