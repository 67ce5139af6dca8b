#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import websockets
from websockets.asyncio.client import ClientConnection

logging.basicConfig(level=logging.INFO)

# ManualClient mirrors what a bot does but with terminal prompts.


@dataclass
class TableState:
    hand: List[str] = field(default_factory=list)
    plays: List[Dict[str, Any]] = field(default_factory=list)
    discard: Optional[str] = None
    status: str = "waiting"
    queue_position: int = -1


class ManualClient:
    def __init__(self, name: str, room: str, url: str) -> None:
        self.name = name
        self.room = room
        self.url = url
        self.websocket: Optional[ClientConnection] = None
        self.player_id: Optional[str] = None
        self.state = TableState()
        self.recent_events: deque[str] = deque(maxlen=6)
        self.my_turn = False
        self.last_turn: Dict[str, Any] = {}

    async def run(self) -> None:
        async with websockets.connect(self.url) as ws:
            self.websocket = ws
            await self._send({"type": "join", "room": self.room, "name": self.name})
            await self._loop()

    async def _loop(self) -> None:
        assert self.websocket is not None
        while True:
            raw = await self.websocket.recv()
            await self._dispatch(json.loads(raw))

    async def _dispatch(self, msg: Dict[str, Any]) -> None:
        msg_type = msg.get("type")
        self._print_message(msg)

        if msg_type == "status_changed" and msg.get("status") == "active":
            await self._prompt_ready()
        elif msg_type == "turn_changed":
            self.my_turn = msg.get("player_id") == self.player_id
            if self.my_turn:
                self.last_turn = msg
                await self._handle_turn(msg)
        elif msg_type in ("round_over", "round_aborted"):
            self.my_turn = False
        elif msg_type in ("invalid_action", "stats") and self.my_turn:
            # Still our move: a refused play or a stats lookup needs a new choice.
            await self._handle_turn(self.last_turn)

    async def _prompt_ready(self) -> None:
        input("Seated. Press enter when ready: ")
        await self._send({"type": "ready"})

    async def _handle_turn(self, msg: Dict[str, Any]) -> None:
        self._render_table(msg)
        while True:
            action = self._prompt_action()
            if action is None:
                continue
            await self._send(action)
            break

    def _prompt_action(self) -> Optional[Dict[str, Any]]:
        choice = input("Cards to play, 'pass' or 'stats [name]' (h=help): ").strip()
        if not choice or choice.lower() == "h":
            self._print_help()
            return None

        lowered = choice.lower()
        if lowered == "pass":
            return {"type": "pass"}
        if lowered.startswith("stats"):
            name = choice[5:].strip()
            return {"type": "stats", "name": name} if name else {"type": "stats"}

        labels = [_normalize(label) for label in choice.replace(",", " ").split()]
        missing = [label for label in labels if label not in self.state.hand]
        if missing:
            print(f"Not in your hand: {' '.join(missing)}")
            return None
        return {"type": "play", "cards": labels}

    def _print_help(self) -> None:
        print("Options:")
        print("  3C 3D      → play the listed cards (10 may be written T)")
        print("  pass       → give up the trick")
        print("  stats NAME → show a player's record")

    def _print_message(self, msg: Dict[str, Any]) -> None:
        msg_type = msg.get("type", "?")
        print(f"\n>>> {msg_type.upper()}")
        if msg_type == "welcome":
            self.player_id = msg.get("player_id")
            print(f"Joined room {msg.get('room')} as {msg.get('name')} ({self.player_id})")
        elif msg_type == "status_changed":
            self.state.status = msg.get("status", self.state.status)
            self.state.queue_position = msg.get("queue_position", -1)
            if self.state.status == "waiting":
                print(f"Waiting in queue at position {self.state.queue_position}")
            print(f"Your stats: {msg.get('stats')}")
        elif msg_type == "roster_changed":
            seated = ", ".join(
                f"{p['name']}{' ✓' if p.get('ready') else ''}" for p in msg.get("active", [])
            )
            queued = ", ".join(f"{p['position']}:{p['name']}" for p in msg.get("waiting", []))
            print(f"Table: {seated or '(empty)'} | Queue: {queued or '(empty)'}")
        elif msg_type == "dealt":
            self.state.hand = list(msg.get("hand", []))
            self.state.plays = []
            print(f"Your hand: {' '.join(self.state.hand)}")
        elif msg_type == "discard_revealed":
            self.state.discard = msg.get("card")
            print(f"Discarded card: {self.state.discard}")
        elif msg_type == "discard_hidden":
            self.state.discard = None
        elif msg_type == "table_updated":
            self.state.plays = list(msg.get("plays", []))
            if self.state.plays:
                last = self.state.plays[-1]
                self.recent_events.append(f"{last['player']} played {' '.join(last['cards'])} ({last['hand_type']})")
            else:
                self.recent_events.append("Table cleared")
        elif msg_type == "play_accepted":
            played = set(msg.get("cards", []))
            self.state.hand = [label for label in self.state.hand if label not in played]
        elif msg_type == "turn_changed":
            print(f"Turn: {msg.get('player_name')}")
        elif msg_type == "round_over":
            print(f"Winner: {msg.get('winner')} | loser: {msg.get('loser')}")
            self.state = TableState(status=self.state.status)
        elif msg_type == "round_aborted":
            print(f"Round aborted: {msg.get('reason')}")
            self.state = TableState(status=self.state.status)
        elif msg_type == "stats":
            print(f"{msg.get('name')}: {msg.get('stats')}")
        elif msg_type in ("invalid_action", "error"):
            print(f"Error {msg.get('code')}: {msg.get('msg')}")
        else:
            print(json.dumps(msg, indent=2))

    def _render_table(self, msg: Dict[str, Any]) -> None:
        plays = self.state.plays
        on_table = " ".join(plays[-1]["cards"]) if plays else "--"
        print(f"On table: {on_table}" + (f" | discard {self.state.discard}" if self.state.discard else ""))
        print(f"You: {' '.join(self.state.hand)}")
        for entry in msg.get("players", []):
            marker = "→" if entry.get("player_id") == msg.get("player_id") else " "
            me = " [ME]" if entry.get("player_id") == self.player_id else ""
            print(
                f"  {marker}{entry['name']:<12} cards={entry['cards_remaining']:>2} "
                f"wins={entry['wins']} games={entry['games_played']} ({entry['win_percent']}%){me}"
            )
        if self.recent_events:
            print("Recent:")
            for entry in reversed(self.recent_events):
                print(f"  {entry}")

    async def _send(self, payload: Dict[str, Any]) -> None:
        assert self.websocket is not None
        await self.websocket.send(json.dumps(payload))


def _normalize(label: str) -> str:
    text = label.upper()
    return "10" + text[1:] if text.startswith("T") else text


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Big Two table manual client")
    parser.add_argument("--url", default="ws://127.0.0.1:8765")
    parser.add_argument("--room", default="LOBBY")
    parser.add_argument("--name", required=True)
    return parser.parse_args(argv)


def main(argv: list[str]) -> None:
    args = parse_args(argv)
    client = ManualClient(name=args.name, room=args.room, url=args.url)
    try:
        asyncio.run(client.run())
    except KeyboardInterrupt:
        print("\nSession closed")


if __name__ == "__main__":
    main(sys.argv[1:])
