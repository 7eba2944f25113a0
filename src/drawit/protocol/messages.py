from __future__ import annotations

import json
from typing import Annotated, Any, ClassVar, Literal, Optional, TypeAlias, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .constants import ActionKind, ChatType, EndReason, EventKind

# ---------------------------------------------------------------------------
# Shared views
# ---------------------------------------------------------------------------


class PlayerView(BaseModel):
    id: str
    name: str
    score: int


class RoundView(BaseModel):
    """Public round metadata. Never carries the word."""

    active: bool
    drawerId: Optional[str] = None
    guessed: list[str] = Field(default_factory=list)
    roundNumber: int = 0


class Point(BaseModel):
    # numbers only; strict float still takes ints
    model_config = ConfigDict(strict=True)

    x: float
    y: float


class Stroke(BaseModel):
    """Shape check for one pen segment. Extra keys (color, width, ...) are allowed."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    start: Point = Field(alias="from")
    to: Point


# ---------------------------------------------------------------------------
# Server -> client events. Each payload type is bound to exactly one event name.
# ---------------------------------------------------------------------------


class Event(BaseModel):
    event: ClassVar[EventKind]
    # drop null fields on the wire (e.g. system chat has no sender)
    compact: ClassVar[bool] = False

    def wire(self) -> Any:
        return self.model_dump(mode="json", by_alias=True, exclude_none=self.compact)


class Welcome(Event):
    event: ClassVar[EventKind] = EventKind.WELCOME

    players: list[PlayerView]
    round: RoundView


class Players(Event):
    event: ClassVar[EventKind] = EventKind.PLAYERS

    players: list[PlayerView]


class Chat(Event):
    model_config = ConfigDict(populate_by_name=True)

    event: ClassVar[EventKind] = EventKind.CHAT
    compact: ClassVar[bool] = True

    sender: Optional[str] = Field(default=None, alias="from")
    message: str
    type: ChatType = ChatType.SYSTEM


class RoundStarted(Event):
    event: ClassVar[EventKind] = EventKind.ROUND_STARTED

    drawerId: str
    drawerName: str
    roundNumber: int


class RoundEnded(Event):
    event: ClassVar[EventKind] = EventKind.ROUND_ENDED

    reason: EndReason
    word: Optional[str] = None


class Word(Event):
    event: ClassVar[EventKind] = EventKind.WORD

    word: str


class GuessResult(Event):
    event: ClassVar[EventKind] = EventKind.GUESS_RESULT

    playerId: str
    playerName: str
    points: int
    drawerBonus: int
    order: Annotated[int, Field(description="1-based placement within the round")]


class Clear(Event):
    event: ClassVar[EventKind] = EventKind.CLEAR


class Ping(Event):
    event: ClassVar[EventKind] = EventKind.PING


class DrawRelay(Event):
    """A validated stroke, sent on exactly as the drawer posted it."""

    event: ClassVar[EventKind] = EventKind.DRAW

    stroke: dict[str, Any]

    def wire(self) -> Any:
        return self.stroke


OutboundMsg: TypeAlias = Union[
    Welcome,
    Players,
    Chat,
    RoundStarted,
    RoundEnded,
    Word,
    GuessResult,
    DrawRelay,
    Clear,
    Ping,
]


def encode_event(msg: OutboundMsg) -> str:
    """Frame one message as a Server-Sent Event: `event: <name>` + one JSON data line."""
    data = json.dumps(msg.wire(), separators=(",", ":"), ensure_ascii=False)
    return f"event: {msg.event.value}\ndata: {data}\n\n"


# ---------------------------------------------------------------------------
# Client -> server actions (closed tagged union over ActionKind)
# ---------------------------------------------------------------------------


class Empty(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GuessPayload(BaseModel):
    text: str = ""


class GuessAction(BaseModel):
    type: Literal["guess"]
    payload: GuessPayload = Field(default_factory=GuessPayload)


class StartRoundAction(BaseModel):
    type: Literal["startRound"]
    payload: Empty = Field(default_factory=Empty)


class EndRoundAction(BaseModel):
    type: Literal["endRound"]
    payload: Empty = Field(default_factory=Empty)


class DrawAction(BaseModel):
    type: Literal["draw"]
    payload: Stroke


class ClearAction(BaseModel):
    type: Literal["clear"]
    payload: Empty = Field(default_factory=Empty)


Action: TypeAlias = Annotated[
    Union[GuessAction, StartRoundAction, EndRoundAction, DrawAction, ClearAction],
    Field(discriminator="type"),
]

_ACTIONS: TypeAdapter[Action] = TypeAdapter(Action)


def parse_action(kind: ActionKind, payload: Any) -> Action:
    """Validate `payload` against the model for `kind` (raises pydantic.ValidationError)."""
    return _ACTIONS.validate_python(
        {"type": kind.value, "payload": payload if payload is not None else {}}
    )


# ---------------------------------------------------------------------------
# HTTP request bodies
# ---------------------------------------------------------------------------


class JoinRequest(BaseModel):
    name: Optional[str] = None


class LeaveRequest(BaseModel):
    playerId: str


class ActionRequest(BaseModel):
    # a missing id is answered as an unknown player, not a malformed body
    playerId: Optional[str] = None
    type: str
    payload: Optional[dict[str, Any]] = None
