from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field

from drawit.protocol.constants import MAX_NAME_LENGTH
from drawit.protocol.messages import PlayerView

log = logging.getLogger(__name__)


@dataclass
class Player:
    id: str
    name: str
    score: int = 0

    def view(self) -> PlayerView:
        return PlayerView(id=self.id, name=self.name, score=self.score)


@dataclass
class _Slot:
    player: Player
    active: bool = True


def sanitize_name(raw: str | None, *, rng: random.Random | None = None) -> str:
    """Trim, drop non-printables, truncate; blank names get a `Guest-NNN` label."""
    cleaned = "".join(ch for ch in (raw or "") if ch.isprintable()).strip()
    if not cleaned:
        return f"Guest-{(rng or random).randint(100, 999)}"
    return cleaned[:MAX_NAME_LENGTH].rstrip()


@dataclass
class Roster:
    """
    Players in join order, plus the turn cursor used for drawer rotation.

    Join order lives in an append-only arena of slots. Removing a player tags
    its slot instead of shifting the list, so the cursor (the slot of the last
    drawer) always points at something well defined; `next_drawer` scans
    forward from it over the slots that are still active.
    """

    rng: random.Random = field(default_factory=random.Random)
    _slots: list[_Slot] = field(default_factory=list)
    _index: dict[str, int] = field(default_factory=dict)  # id -> slot index
    _cursor: int = -1  # slot of the last drawer; -1 before the first round

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, identity: object) -> bool:
        return identity in self._index

    def has(self, identity: str | None) -> bool:
        return identity is not None and identity in self._index

    def get(self, identity: str | None) -> Player | None:
        if identity is None:
            return None
        i = self._index.get(identity)
        return self._slots[i].player if i is not None else None

    def join(self, raw_name: str | None) -> Player:
        identity = uuid.uuid4().hex
        while identity in self._index:
            identity = uuid.uuid4().hex
        player = Player(id=identity, name=sanitize_name(raw_name, rng=self.rng))
        self._index[identity] = len(self._slots)
        self._slots.append(_Slot(player))
        return player

    def remove(self, identity: str) -> Player | None:
        """Remove a player; None means it was already absent."""
        i = self._index.pop(identity, None)
        if i is None:
            return None
        slot = self._slots[i]
        slot.active = False
        if len(self._slots) > 2 * len(self._index):
            self._compact()
        return slot.player

    def award(self, identity: str | None, delta: int) -> None:
        if delta < 0:
            raise ValueError("scores never decrease")
        player = self.get(identity)
        if player is not None:
            player.score += delta

    def order(self) -> list[str]:
        return [s.player.id for s in self._slots if s.active]

    def players(self) -> list[Player]:
        return [s.player for s in self._slots if s.active]

    def snapshot(self) -> list[PlayerView]:
        return [p.view() for p in self.players()]

    def next_drawer(self) -> str | None:
        """Advance the cursor to the next active slot after it (circular)."""
        n = len(self._slots)
        if not self._index:
            return None
        for step in range(1, n + 1):
            i = (self._cursor + step) % n
            if self._slots[i].active:
                self._cursor = i
                return self._slots[i].player.id
        return None

    def _compact(self) -> None:
        # Keep "next after cursor" stable: the cursor becomes the last surviving
        # slot at or before its old position.
        before = sum(1 for s in self._slots[: self._cursor + 1] if s.active)
        self._slots = [s for s in self._slots if s.active]
        self._index = {s.player.id: i for i, s in enumerate(self._slots)}
        self._cursor = before - 1
        log.debug("roster compacted: %d slots, cursor=%d", len(self._slots), self._cursor)
