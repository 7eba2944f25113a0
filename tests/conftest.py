import asyncio
import json
import random

import pytest
from fastapi.testclient import TestClient

from drawit.server.app import app
from drawit.server.config import Settings
from drawit.server.game import Game, get_game


def parse_frame(frame):
    event, data = None, None
    for line in frame.strip("\n").split("\n"):
        if line.startswith("event: "):
            event = line[len("event: "):]
        elif line.startswith("data: "):
            data = json.loads(line[len("data: "):])
    return event, data


def drain(channel):
    """Pop every frame queued on a channel as (event, data) pairs."""
    out = []
    while True:
        try:
            frame = channel._queue.get_nowait()
        except asyncio.QueueEmpty:
            break
        if frame is None:
            break
        out.append(parse_frame(frame))
    return out


def events_named(frames, name):
    return [data for event, data in frames if event == name]


@pytest.fixture()
def settings():
    return Settings(_env_file=None, keepalive_interval_s=0)


@pytest.fixture()
def game(settings):
    return Game(settings, rng=random.Random(1234))


@pytest.fixture()
def lobby(game):
    """Join `n` players and open a stream for each; returns [(player_id, channel), ...]."""

    def _lobby(*names):
        seats = []
        for name in names:
            pid = game.join(name)["player"]["id"]
            seats.append((pid, game.connect(pid)))
        for _, channel in seats:
            drain(channel)
        return seats

    return _lobby


@pytest.fixture()
def client(game):
    app.dependency_overrides[get_game] = lambda: game
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
