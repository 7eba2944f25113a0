from __future__ import annotations

from enum import Enum

# Closed vocabularies for the wire protocol; canonical list lives here.


class EventKind(str, Enum):
    """Server -> client push events (SSE `event:` names)."""

    WELCOME = "welcome"
    PLAYERS = "players"
    CHAT = "chat"
    ROUND_STARTED = "roundStarted"
    ROUND_ENDED = "roundEnded"
    WORD = "word"  # private: drawer only
    GUESS_RESULT = "guessResult"
    DRAW = "draw"
    CLEAR = "clear"
    PING = "ping"


class ActionKind(str, Enum):
    """Client -> server actions (`type` field of /api/action)."""

    GUESS = "guess"
    START_ROUND = "startRound"
    END_ROUND = "endRound"
    DRAW = "draw"
    CLEAR = "clear"


class EndReason(str, Enum):
    STOPPED = "stopped"
    EVERYONE_GUESSED = "everyone-guessed"
    DRAWER_LEFT = "drawer-left"


class ChatType(str, Enum):
    SYSTEM = "system"
    GUESS = "guess"


MAX_NAME_LENGTH = 18

# Placement scoring: 1st 100, 2nd 80, ... floored at 30.
FIRST_PLACE_POINTS = 100
PLACEMENT_STEP = 20
MIN_GUESS_POINTS = 30
DRAWER_BONUS = 15
