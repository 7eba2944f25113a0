import json

import pytest
from conftest import drain, events_named

from drawit.protocol.constants import ActionKind
from drawit.server.errors import (
    EmptyGuess,
    NoActiveRound,
    NotDrawer,
    UnknownAction,
    UnknownPlayer,
    ValidationFailed,
)

STROKE = {"from": {"x": 1.0, "y": 2.0}, "to": {"x": 3.5, "y": 4.0}}


def test_every_action_kind_has_a_handler(game):
    assert set(game.dispatcher.handlers) == set(ActionKind)


def test_unknown_player_is_rejected_before_anything_else(game, lobby):
    (p1, ch1), _ = lobby("a", "b")
    with pytest.raises(UnknownPlayer):
        game.act("nope", "startRound")
    with pytest.raises(UnknownPlayer):
        game.act(None, "bogus")
    assert not game.rounds.active
    assert drain(ch1) == []


def test_unknown_action_kind(game, lobby):
    (p1, _), _ = lobby("a", "b")
    with pytest.raises(UnknownAction):
        game.act(p1, "teleport", {})


def test_guess_routes_to_round_controller(game, lobby):
    (p1, ch1), (p2, _) = lobby("a", "b")
    assert game.act(p1, "startRound") == {"ok": True}
    word = events_named(drain(ch1), "word")[0]["word"]
    assert game.act(p2, "guess", {"text": "nope"}) == {"ok": True, "correct": False}
    assert game.act(p2, "guess", {"text": word}) == {"ok": True, "correct": True}
    assert not game.rounds.active


def test_guess_without_payload_is_empty(game, lobby):
    (p1, _), (p2, _) = lobby("a", "b")
    game.act(p1, "startRound")
    with pytest.raises(EmptyGuess):
        game.act(p2, "guess", None)


def test_end_round_action_uses_stopped_reason(game, lobby):
    (p1, _), (p2, ch2) = lobby("a", "b")
    game.act(p1, "startRound")
    drain(ch2)
    assert game.act(p2, "endRound", {}) == {"ok": True}
    [ended] = events_named(drain(ch2), "roundEnded")
    assert ended["reason"] == "stopped"
    # ending again is harmless
    assert game.act(p2, "endRound") == {"ok": True}
    assert drain(ch2) == []


def test_draw_is_relayed_to_everyone_but_the_drawer(game, lobby):
    (p1, ch1), (p2, ch2), (p3, ch3) = lobby("a", "b", "c")
    game.act(p1, "startRound")
    drain(ch1), drain(ch2), drain(ch3)

    stroke = dict(STROKE, color="#ff0000")
    assert game.act(p1, "draw", stroke) == {"ok": True}

    assert drain(ch1) == []
    assert drain(ch2) == [("draw", stroke)]
    assert drain(ch3) == [("draw", stroke)]


def test_draw_is_relayed_byte_for_byte(game, lobby):
    (p1, ch1), (p2, ch2) = lobby("a", "b")
    game.act(p1, "startRound")
    drain(ch1), drain(ch2)

    stroke = {"from": {"x": 1, "y": 2, "p": 0.5}, "to": {"x": 3, "y": 4}, "width": 3}
    game.act(p1, "draw", stroke)

    frame = ch2._queue.get_nowait()
    assert frame == "event: draw\ndata: " + json.dumps(stroke, separators=(",", ":")) + "\n\n"


def test_draw_rejects_non_numeric_coordinates(game, lobby):
    (p1, _), (_, ch2) = lobby("a", "b")
    game.act(p1, "startRound")
    drain(ch2)
    with pytest.raises(ValidationFailed):
        game.act(p1, "draw", {"from": {"x": "1", "y": 2}, "to": {"x": 3, "y": 4}})
    assert drain(ch2) == []


def test_non_drawer_draw_is_rejected_without_broadcast(game, lobby):
    (p1, ch1), (p2, ch2) = lobby("a", "b")
    game.act(p1, "startRound")
    drain(ch1), drain(ch2)
    with pytest.raises(NotDrawer):
        game.act(p2, "draw", STROKE)
    assert drain(ch1) == [] and drain(ch2) == []


def test_draw_without_active_round_is_rejected(game, lobby):
    (p1, ch1), (p2, ch2) = lobby("a", "b")
    with pytest.raises(NoActiveRound):
        game.act(p1, "draw", STROKE)
    assert drain(ch2) == []


def test_malformed_draw_payload(game, lobby):
    (p1, _), _ = lobby("a", "b")
    game.act(p1, "startRound")
    with pytest.raises(ValidationFailed):
        game.act(p1, "draw", {"from": {"x": 1}})


def test_clear_only_from_drawer(game, lobby):
    (p1, ch1), (p2, ch2) = lobby("a", "b")
    with pytest.raises(NotDrawer):
        game.act(p1, "clear")
    game.act(p1, "startRound")
    drain(ch1), drain(ch2)
    with pytest.raises(NotDrawer):
        game.act(p2, "clear")
    assert game.act(p1, "clear") == {"ok": True}
    assert drain(ch1) == [("clear", {})]
    assert drain(ch2) == [("clear", {})]
