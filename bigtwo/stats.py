from __future__ import annotations

from typing import Dict, Iterable

from .models import PlayerStats


class StatsBook:
    """Process-lifetime win records keyed by display name."""

    def __init__(self) -> None:
        self._stats: Dict[str, PlayerStats] = {}

    def get(self, name: str) -> PlayerStats:
        stats = self._stats.get(name)
        if stats is None:
            stats = PlayerStats()
            self._stats[name] = stats
        return stats

    def record_round(self, winner: str, others: Iterable[str]) -> None:
        """Credit a win to ``winner`` and a game to each name in ``others``.

        ``others`` lists every other seat, so a name shared by two seated
        players is counted once per seat.
        """
        won = self.get(winner)
        won.wins += 1
        won.games_played += 1
        for name in others:
            self.get(name).games_played += 1

    def __contains__(self, name: object) -> bool:
        return name in self._stats
