#!/usr/bin/env python3
"""Simulate a busy table with simple bots.

This script spins up the table host in-process and connects a handful of
bots to one room. With more bots than seats the extras wait in the queue, so
the run exercises promotion and demotion between rounds as well as play.

Example:
    python scripts/table_sim.py --players 6 --rounds 20
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import websockets

from bigtwo.cards import Card, cards_to_labels, parse_cards, sort_cards
from bigtwo.evaluator import compare, evaluate
from bigtwo.models import RoomConfig
from practice.bots import candidate_plays
from tablehost.server import HostServer

LOGGER = logging.getLogger("table_sim")


@dataclass
class BotState:
    name: str
    rng: random.Random
    player_id: Optional[str] = None
    hand: List[Card] = field(default_factory=list)
    table: List[List[Card]] = field(default_factory=list)


def choose_move(state: BotState) -> Dict[str, Any]:
    """Lowest single on the lead, cheapest beater otherwise, pass when stuck."""
    if not state.table:
        return {"type": "play", "cards": cards_to_labels(sort_cards(state.hand)[:1])}
    previous = state.table[-1]
    target = evaluate(previous)
    for cards, evaluation in candidate_plays(state.hand, len(previous)):
        if compare(evaluation, target) > 0:
            if state.rng.random() < 0.1 and len(state.hand) > 3:
                break
            return {"type": "play", "cards": cards_to_labels(cards)}
    return {"type": "pass"}


async def run_bot(state: BotState, url: str, room: str, rounds_done: asyncio.Queue, stop_event: asyncio.Event) -> None:
    """Connect one bot and play until the simulation stops."""

    try:
        async with websockets.connect(url) as ws:
            await ws.send(json.dumps({"type": "join", "room": room, "name": state.name}))
            while not stop_event.is_set():
                try:
                    raw = await asyncio.wait_for(ws.recv(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue
                except websockets.ConnectionClosed:
                    break

                message = json.loads(raw)
                msg_type = message.get("type")

                if msg_type == "welcome":
                    state.player_id = message["player_id"]
                elif msg_type == "status_changed" and message.get("status") == "active":
                    await ws.send(json.dumps({"type": "ready"}))
                elif msg_type == "dealt":
                    state.hand = parse_cards(message["hand"])
                    state.table = []
                elif msg_type == "table_updated":
                    state.table = [parse_cards(play["cards"]) for play in message.get("plays", [])]
                elif msg_type == "play_accepted":
                    played = set(parse_cards(message["cards"]))
                    state.hand = [card for card in state.hand if card not in played]
                elif msg_type == "turn_changed" and message.get("player_id") == state.player_id:
                    await ws.send(json.dumps(choose_move(state)))
                elif msg_type == "invalid_action":
                    LOGGER.warning("%s rejected: %s", state.name, message.get("msg"))
                    # A refused answer to a table play falls back to passing.
                    if state.table and message.get("code") not in ("ROUND_IN_PROGRESS", "NOT_ACTIVE_PLAYER"):
                        await ws.send(json.dumps({"type": "pass"}))
                elif msg_type == "round_over":
                    state.hand = []
                    await rounds_done.put(message)

    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Bot %s crashed: %s", state.name, exc)


async def run_simulation(args: argparse.Namespace) -> None:
    host = HostServer(RoomConfig(seed=args.seed))
    server_task = asyncio.create_task(host.start(args.host, args.port))
    await asyncio.sleep(0.5)  # give the socket time to bind

    stop_event = asyncio.Event()
    rounds_done: asyncio.Queue = asyncio.Queue()
    bots = [BotState(name=f"SimBot{i}", rng=random.Random(args.seed + i)) for i in range(args.players)]
    bot_tasks = [
        asyncio.create_task(run_bot(bot, f"ws://{args.host}:{args.port}", args.room, rounds_done, stop_event))
        for bot in bots
    ]

    async def count_rounds() -> None:
        # Every seated bot reports the same round_over; count unique rounds.
        seen = 0
        while seen < args.rounds:
            first = await rounds_done.get()
            seen += 1
            LOGGER.info("Round %s: winner=%s loser=%s", seen, first.get("winner"), first.get("loser"))
            await asyncio.sleep(0.05)
            while not rounds_done.empty():
                rounds_done.get_nowait()

    try:
        await asyncio.wait_for(count_rounds(), timeout=args.timeout)
    except asyncio.TimeoutError:
        LOGGER.warning("Simulation timed out; stopping bots")
    finally:
        stop_event.set()
        for task in bot_tasks:
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await asyncio.gather(*bot_tasks, return_exceptions=True)
        server_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await server_task
    for name in sorted(bot.name for bot in bots):
        stats = host.registry.stats.get(name)
        LOGGER.info("%s: wins=%s games=%s", name, stats.wins, stats.games_played)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a local table simulation with simple bots")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=9001)
    parser.add_argument("--room", default="SIM")
    parser.add_argument("--players", type=int, default=5)
    parser.add_argument("--rounds", type=int, default=10)
    parser.add_argument("--timeout", type=float, default=60.0, help="max seconds to run before stopping")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    try:
        asyncio.run(run_simulation(args))
    except KeyboardInterrupt:
        LOGGER.info("Simulation interrupted; shutting down")


if __name__ == "__main__":
    main()
