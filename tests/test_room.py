from bigtwo.cards import THREE_OF_CLUBS, Card
from bigtwo.models import Action, ActionType, RoundPhase

from .helpers import cards, create_room, events_named, ready_all, rig_deal, stage_hands


def play(room, player_id, *labels):
    return room.apply(Action(ActionType.PLAY, player_id, cards=cards(*labels)))


def pass_(room, player_id):
    return room.apply(Action(ActionType.PASS, player_id))


def test_round_starts_once_every_seated_player_is_ready():
    room = create_room(3)
    first = room.apply(Action(ActionType.READY, "p0"))
    assert [event.ev for event in first] == ["roster_changed"]
    assert not room.started

    events = ready_all(room)

    assert room.started
    dealt = events_named(events, "dealt")
    assert sorted(event.to for event in dealt) == ["p0", "p1", "p2"]
    assert all(len(event.data["hand"]) == 17 for event in dealt)
    assert events_named(events, "discard_revealed")[0].data["card"] == room.discard.label
    turn = events_named(events, "turn_changed")[0]
    starter = room.pool.players[turn.data["player_id"]]
    assert room.trick.opening_card in starter.hand


def test_round_does_not_start_with_two_players():
    room = create_room(2)
    ready_all(room)
    assert not room.started
    assert not room.can_start_round()


def test_waiting_player_cannot_ready():
    room = create_room(5)
    events = room.apply(Action(ActionType.READY, "p4"))
    assert len(events) == 1
    assert events[0].ev == "invalid_action"
    assert events[0].to == "p4"
    assert events[0].data["code"] == "NOT_ACTIVE_PLAYER"


def test_ready_during_round_is_rejected():
    room = create_room(4)
    ready_all(room)
    events = room.apply(Action(ActionType.READY, "p0"))
    assert events[0].data["code"] == "ROUND_IN_PROGRESS"


def test_play_and_pass_before_round_are_rejected():
    room = create_room(3)
    assert play(room, "p0", "3C")[0].data["code"] == "ROUND_NOT_STARTED"
    assert pass_(room, "p0")[0].data["code"] == "ROUND_NOT_STARTED"


def test_rejection_goes_only_to_the_actor():
    room = create_room(4)
    ready_all(room)
    starter = room.turn_player_id
    other = next(pid for pid in room.pool.active if pid != starter)
    card = room.pool.players[other].hand[0]

    events = room.apply(Action(ActionType.PLAY, other, cards=[card]))

    assert len(events) == 1
    assert events[0].to == other
    assert events[0].data == {"code": "NOT_YOUR_TURN", "msg": "Not your turn."}
    assert card in room.pool.players[other].hand


def test_opening_play_broadcasts_table_and_next_turn():
    room = create_room(4)
    ready_all(room)
    starter = room.turn_player_id
    seats = room.pool.active

    events = play(room, starter, "3C")

    assert [event.ev for event in events] == ["table_updated", "play_accepted", "turn_changed"]
    assert events[0].data["plays"] == [
        {"player_id": starter, "player": room.pool.players[starter].name, "cards": ["3C"], "hand_type": "single"}
    ]
    assert events[1].to == starter
    expected_next = seats[(seats.index(starter) + 1) % 4]
    assert events[2].data["player_id"] == expected_next
    assert room.first_play_done


def test_turn_payload_lists_players_from_current_seat():
    room = create_room(4)
    ready_all(room)
    payload = room.turn_payload()
    order = [entry["player_id"] for entry in payload["players"]]
    assert order[0] == room.turn_player_id
    assert sorted(order) == sorted(room.pool.active)
    assert payload["player_count"] == 4
    assert payload["players"][0]["cards_remaining"] == 13
    assert {"wins", "games_played", "win_percent"} <= set(payload["players"][0])


def test_discard_is_hidden_after_first_play():
    room = create_room(3)
    ready_all(room)
    assert room.discard_visible
    starter = room.turn_player_id

    events = room.apply(Action(ActionType.PLAY, starter, cards=[room.trick.opening_card]))

    assert events[0].ev == "discard_hidden"
    assert events[0].to is None
    assert not room.discard_visible


def test_three_of_clubs_in_discard_hands_opening_to_lowest_card(monkeypatch):
    rig_deal(monkeypatch, {"p1": ["3S"]}, discard="3C")
    room = create_room(3)
    events = ready_all(room)

    assert events_named(events, "discard_revealed")[0].data["card"] == "3C"
    assert room.trick.opening_card == Card("3", "S")
    assert room.turn_player_id == "p1"

    other = next(card for card in room.pool.players["p1"].hand if card != Card("3", "S"))
    rejected = room.apply(Action(ActionType.PLAY, "p1", cards=[other]))
    assert rejected[0].data["code"] == "MUST_OPEN_WITH_THREE_OF_CLUBS"
    assert rejected[0].data["msg"] == "First play must include the 3S."

    accepted = play(room, "p1", "3S")
    assert events_named(accepted, "play_accepted")


def test_trick_clears_after_everyone_else_passes():
    room = create_room(4)
    ready_all(room)
    seats = list(room.pool.active)
    leader = room.turn_player_id
    play(room, leader, "3C")

    start = seats.index(leader)
    for step in (1, 2):
        events = pass_(room, seats[(start + step) % 4])
        assert [event.ev for event in events] == ["turn_changed"]

    events = pass_(room, seats[(start + 3) % 4])
    assert [event.ev for event in events] == ["table_updated", "turn_changed"]
    assert events[0].data == {"plays": []}
    assert events[1].data["player_id"] == leader
    assert pass_(room, leader)[0].data["code"] == "CANNOT_PASS_EMPTY_TABLE"


def test_round_end_demotes_loser_and_promotes_queue():
    room = create_room(5)
    ready_all(room)
    stage_hands(room, {"p0": ["3C"], "p1": ["4C", "5C"], "p2": ["4D", "5D"], "p3": ["6C"]}, turn="p0")

    events = play(room, "p0", "3C")

    over = events_named(events, "round_over")[0]
    # p1 and p2 both hold two cards; five of clubs is the weaker best card.
    assert over.data == {"winner": "Player0", "loser": "Player1"}
    assert room.pool.active == ["p0", "p2", "p3", "p4"]
    assert list(room.pool.waiting) == ["p1"]
    assert room.phase == RoundPhase.WAITING_FOR_READY
    assert room.trick is None
    assert all(not player.hand and not player.ready for player in room.pool.players.values())

    statuses = {event.to: event.data for event in events_named(events, "status_changed")}
    assert statuses["p4"]["status"] == "active"
    assert statuses["p1"] == {
        "player_id": "p1",
        "status": "waiting",
        "queue_position": 1,
        "stats": {"wins": 0, "games_played": 1, "win_percent": 0},
    }
    assert events[-1].ev == "roster_changed"
    assert room.last_result.demoted == "p1"
    assert room.last_result.promoted == ["p4"]


def test_round_end_records_stats_for_seated_players_only():
    room = create_room(5)
    ready_all(room)
    stage_hands(room, {"p0": ["3C"], "p1": ["4C"], "p2": ["4D", "5D", "6D"], "p3": ["6C", "7C"]}, turn="p0")

    events = play(room, "p0", "3C")

    assert events_named(events, "round_over")[0].data["loser"] == "Player2"
    assert room.stats.get("Player0").to_payload() == {"wins": 1, "games_played": 1, "win_percent": 100}
    assert room.stats.get("Player3").games_played == 1
    assert room.stats.get("Player4").games_played == 0


def test_card_count_tie_goes_to_weaker_best_hand():
    room = create_room(4)
    ready_all(room)
    stage_hands(room, {"p0": ["3C"], "p1": ["4C", "4D"], "p2": ["KS", "AD"], "p3": ["6C"]}, turn="p0")

    events = play(room, "p0", "3C")

    assert events_named(events, "round_over")[0].data["loser"] == "Player2"
    # Full table with an empty queue: the loser is reseated at the end.
    assert room.pool.active == ["p0", "p1", "p3", "p2"]


def test_short_table_keeps_loser_and_seats_late_joiner():
    room = create_room(3)
    ready_all(room)
    joined = room.apply(Action(ActionType.JOIN, "p3", name="Player3"))
    assert room.pool.status("p3").value == "waiting"
    assert [event.ev for event in joined if event.to == "p3"] == [
        "status_changed",
        "table_updated",
        "discard_revealed",
    ]

    stage_hands(room, {"p0": ["3C"], "p1": ["4C"], "p2": ["4D", "5D"]}, turn="p0")
    events = play(room, "p0", "3C")

    assert events_named(events, "round_over")[0].data["loser"] == "Player2"
    assert room.pool.active == ["p0", "p1", "p2", "p3"]
    assert not room.pool.waiting


def test_turn_player_leaving_passes_turn_to_first_seat():
    room = create_room(4)
    ready_all(room)
    leaver = room.turn_player_id

    events = room.apply(Action(ActionType.LEAVE, leaver))

    assert events[0].ev == "player_left"
    assert room.started
    assert len(room.retired) == 13
    room._check_conservation()
    turn = events_named(events, "turn_changed")[0]
    assert turn.data["player_id"] == room.pool.active[0]
    assert turn.data["player_count"] == 3


def test_leaving_below_three_players_aborts_round():
    room = create_room(3)
    ready_all(room)
    room.apply(Action(ActionType.JOIN, "p3", name="Player3"))

    events = room.apply(Action(ActionType.LEAVE, "p0"))

    aborted = events_named(events, "round_aborted")
    assert aborted and aborted[0].data["reason"] == "Player0 left the table"
    assert not room.started
    assert room.pool.active == ["p1", "p2", "p3"]
    promoted = [event for event in events_named(events, "status_changed") if event.to == "p3"]
    assert promoted[0].data["status"] == "active"
    assert room.stats.get("Player1").games_played == 0


def test_leaving_between_rounds_promotes_from_queue():
    room = create_room(5)
    events = room.apply(Action(ActionType.LEAVE, "p1"))
    assert room.pool.active == ["p0", "p2", "p3", "p4"]
    assert events_named(events, "status_changed")[0].to == "p4"
    assert events[-1].ev == "roster_changed"


def test_unknown_player_leaving_is_a_no_op():
    room = create_room(3)
    assert room.apply(Action(ActionType.LEAVE, "ghost")) == []


def test_stats_lookup_defaults_to_own_name():
    room = create_room(3)
    own = room.apply(Action(ActionType.STATS, "p1"))
    assert own[0].to == "p1"
    assert own[0].data == {"name": "Player1", "stats": {"wins": 0, "games_played": 0, "win_percent": 0}}

    other = room.apply(Action(ActionType.STATS, "p1", name="Nobody"))
    assert other[0].data["name"] == "Nobody"
    assert other[0].data["stats"]["games_played"] == 0


def test_room_is_full_at_ten_players():
    room = create_room(10)
    events = room.apply(Action(ActionType.JOIN, "p10", name="Player10"))
    assert events[0].data == {"code": "ROOM_FULL", "msg": "Room is full (max 10 players)."}
    assert "p10" not in room.pool


def test_opening_card_defaults_to_three_of_clubs():
    room = create_room(4)
    ready_all(room)
    assert room.trick.opening_card == THREE_OF_CLUBS


def test_shared_display_name_counts_a_game_for_each_seat():
    room = create_room(0)
    for player_id, name in (("w", "Bob"), ("x", "Bob"), ("y", "Cara")):
        room.apply(Action(ActionType.JOIN, player_id, name=name))
    ready_all(room)
    stage_hands(room, {"w": ["3C"], "x": ["4C"], "y": ["4D", "5D"]}, turn="w")

    play(room, "w", "3C")

    assert room.stats.get("Bob").to_payload() == {"wins": 1, "games_played": 2, "win_percent": 50}
    assert room.stats.get("Cara").games_played == 1
