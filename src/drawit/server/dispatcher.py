from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from drawit.protocol.constants import ActionKind, EndReason
from drawit.protocol.messages import (
    Action,
    ClearAction,
    DrawAction,
    DrawRelay,
    GuessAction,
    parse_action,
)
from drawit.protocol.messages import Clear as ClearEvent

from .broadcast import BroadcastBus, all_except
from .errors import NoActiveRound, NotDrawer, UnknownAction, UnknownPlayer, ValidationFailed
from .roster import Roster
from .rounds import RoundController

log = logging.getLogger(__name__)

# (identity, validated action, payload exactly as posted)
Handler = Callable[[str, Any, Any], dict[str, Any]]


class ActionDispatcher:
    """Authenticate an inbound action and route it by kind."""

    def __init__(
        self,
        roster: Roster,
        rounds: RoundController,
        bus: BroadcastBus,
        *,
        debug: bool = False,
    ) -> None:
        self.roster = roster
        self.rounds = rounds
        self.bus = bus
        self.debug = debug
        self.handlers: dict[ActionKind, Handler] = {
            ActionKind.GUESS: self._guess,
            ActionKind.START_ROUND: self._start_round,
            ActionKind.END_ROUND: self._end_round,
            ActionKind.DRAW: self._draw,
            ActionKind.CLEAR: self._clear,
        }
        missing = set(ActionKind) - set(self.handlers)
        if missing:
            raise RuntimeError(f"no handler for actions: {sorted(k.value for k in missing)}")

    def dispatch(self, identity: str | None, kind: str, payload: Any = None) -> dict[str, Any]:
        if not self.roster.has(identity):
            raise UnknownPlayer()
        try:
            action_kind = ActionKind(kind)
        except ValueError:
            raise UnknownAction() from None
        try:
            action = parse_action(action_kind, payload)
        except ValidationError as e:
            raise ValidationFailed(f"Invalid {action_kind.value} payload.") from e

        if self.debug:
            log.debug("action type=%s from=%s", action_kind.value, identity)
        return self.handlers[action_kind](identity, action, payload)

    def _guess(self, identity: str, action: GuessAction, payload: Any) -> dict[str, Any]:
        outcome = self.rounds.evaluate_guess(identity, action.payload.text)
        return {"ok": True, "correct": outcome.correct}

    def _start_round(self, identity: str, action: Action, payload: Any) -> dict[str, Any]:
        self.rounds.start_round(identity)
        return {"ok": True}

    def _end_round(self, identity: str, action: Action, payload: Any) -> dict[str, Any]:
        self.rounds.end_round(EndReason.STOPPED)
        return {"ok": True}

    def _draw(self, identity: str, action: DrawAction, payload: Any) -> dict[str, Any]:
        if not self.rounds.active:
            raise NoActiveRound()
        if identity != self.rounds.drawer_id:
            raise NotDrawer("Only the drawer can draw.")
        # Relayed as posted; per-channel failures are handled by the bus.
        self.bus.emit(DrawRelay(stroke=payload), all_except(identity))
        return {"ok": True}

    def _clear(self, identity: str, action: ClearAction, payload: Any) -> dict[str, Any]:
        if identity != self.rounds.drawer_id:
            raise NotDrawer("Only the drawer can clear the board.")
        self.bus.emit(ClearEvent())
        return {"ok": True}
