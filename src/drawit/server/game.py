from __future__ import annotations

import logging
import random
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache
from typing import Any

from drawit.protocol.messages import Chat, Players, Welcome, Word

from .broadcast import BroadcastBus
from .config import Settings, get_settings
from .connections import Channel, ConnectionRegistry
from .dispatcher import ActionDispatcher
from .errors import LobbyFull, UnknownPlayer
from .roster import Player, Roster
from .rounds import RoundController

log = logging.getLogger(__name__)


class Game:
    """
    Sole owner of the lobby: roster, round state and open channels.

    All public methods are synchronous and run on the event loop thread, so
    each one is a single atomic step with respect to every other request.
    Players lost to transport failures during a step are removed once that
    step's own broadcasts are done.
    """

    def __init__(self, settings: Settings | None = None, *, rng: random.Random | None = None) -> None:
        self.settings = settings or get_settings()
        rng = rng or random.Random()
        self.roster = Roster(rng=rng)
        self.registry = ConnectionRegistry(
            keepalive_interval_s=self.settings.keepalive_interval_s,
            on_drop=self._on_drop,
        )
        self.bus = BroadcastBus(self.registry, debug=self.settings.debug_log_msgs)
        self.rounds = RoundController(
            self.roster,
            self.bus,
            self.settings.words,
            rng=rng,
            min_players=self.settings.min_players,
        )
        self.dispatcher = ActionDispatcher(
            self.roster, self.rounds, self.bus, debug=self.settings.debug_log_msgs
        )
        self._dropped: list[str] = []
        self._busy = False

    # -- player-facing operations -------------------------------------------------

    def join(self, raw_name: str | None) -> dict[str, Any]:
        with self._step():
            if len(self.roster) >= self.settings.max_players:
                raise LobbyFull(self.settings.max_players)
            player = self.roster.join(raw_name)
            log.info("player joined id=%s name=%r", player.id, player.name)
            self._broadcast_players()
            self.bus.emit(Chat(message=f"{player.name} joined the lobby."))
            return {
                "player": player.view().model_dump(),
                "players": [p.model_dump() for p in self.roster.snapshot()],
                "round": self.rounds.public_state().model_dump(),
                "maxPlayers": self.settings.max_players,
            }

    def leave(self, identity: str) -> bool:
        """Idempotent; False means the player was already gone."""
        with self._step():
            return self._remove(identity) is not None

    def act(self, identity: str | None, kind: str, payload: Any = None) -> dict[str, Any]:
        with self._step():
            return self.dispatcher.dispatch(identity, kind, payload)

    # -- push channel lifecycle ---------------------------------------------------

    def connect(self, identity: str | None) -> Channel:
        with self._step():
            player = self.roster.get(identity)
            if player is None:
                raise UnknownPlayer()
            channel = Channel(max_pending=self.settings.channel_max_pending)
            self.registry.attach(player.id, channel)
            log.info("stream opened player=%s", player.id)
            self.bus.send_to(
                player.id,
                Welcome(players=self.roster.snapshot(), round=self.rounds.public_state()),
            )
            # a reconnecting drawer still needs the word
            r = self.rounds.round
            if r.active and r.drawer_id == player.id and r.word is not None:
                self.bus.send_to(player.id, Word(word=r.word))
            return channel

    def disconnect(self, identity: str, channel: Channel) -> None:
        """The transport behind `channel` closed; a replaced channel is ignored."""
        with self._step():
            if self.registry.get(identity) is not channel:
                return
            log.info("stream closed player=%s", identity)
            self.registry.detach(identity)
            self._remove(identity)

    def shutdown(self) -> None:
        self.registry.close_all()

    # -- internals ------------------------------------------------------------------

    @contextmanager
    def _step(self) -> Iterator[None]:
        if self._busy:
            yield
            return
        self._busy = True
        try:
            yield
        finally:
            try:
                while self._dropped:
                    self._remove(self._dropped.pop(0))
            finally:
                self._busy = False

    def _remove(self, identity: str) -> Player | None:
        player = self.roster.remove(identity)
        if player is None:
            return None
        log.info("player left id=%s name=%r", player.id, player.name)
        self.registry.detach(identity)
        self._broadcast_players()
        self.bus.emit(Chat(message=f"{player.name} left the lobby."))
        self.rounds.on_player_removed(identity)
        return player

    def _broadcast_players(self) -> None:
        self.bus.emit(Players(players=self.roster.snapshot()))

    def _on_drop(self, identity: str) -> None:
        self._dropped.append(identity)
        if not self._busy:
            # keep-alive failures arrive outside of any request
            with self._step():
                pass


@lru_cache(maxsize=1)
def get_game() -> Game:
    return Game(get_settings())
