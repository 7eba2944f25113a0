from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from enum import Enum

from drawit.protocol.messages import Ping, encode_event

log = logging.getLogger(__name__)

PING_FRAME = encode_event(Ping())


class SendResult(str, Enum):
    OK = "ok"
    CLOSED = "closed"  # consumer went away
    OVERFLOW = "overflow"  # consumer stopped reading; too many frames pending


class Channel:
    """
    One-way push channel to a single client.

    Frames are queued in memory and drained by the SSE response body. Writes
    never block: a full queue is reported as OVERFLOW and the owner tears the
    channel down.
    """

    def __init__(self, max_pending: int = 512) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=max_pending)
        self.closed = False

    def send(self, frame: str) -> SendResult:
        if self.closed:
            return SendResult.CLOSED
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            return SendResult.OVERFLOW
        return SendResult.OK

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # make room for the end-of-stream marker
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def frames(self) -> AsyncIterator[str]:
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame


@dataclass
class _Connection:
    channel: Channel
    keepalive: asyncio.Task | None = None


@dataclass
class ConnectionRegistry:
    """
    identity -> open push channel.

    Entries belong to the connection lifecycle and can disappear at any time;
    callers must treat a missing target as normal.
    """

    keepalive_interval_s: float = 25.0
    # called after a transport failure tore a channel down (implicit leave)
    on_drop: Callable[[str], None] | None = None
    _conns: dict[str, _Connection] = field(default_factory=dict)

    def attach(self, identity: str, channel: Channel) -> None:
        self.detach(identity)
        conn = _Connection(channel)
        if self.keepalive_interval_s > 0:
            conn.keepalive = asyncio.get_running_loop().create_task(
                self._keepalive(identity, channel)
            )
        self._conns[identity] = conn

    def detach(self, identity: str) -> bool:
        conn = self._conns.pop(identity, None)
        if conn is None:
            return False
        if conn.keepalive is not None:
            conn.keepalive.cancel()
            conn.keepalive = None
        conn.channel.close()
        return True

    def drop(self, identity: str) -> None:
        """Tear down a channel whose write failed and report it to the owner."""
        if self.detach(identity):
            log.info("dropped channel player=%s", identity)
            if self.on_drop is not None:
                self.on_drop(identity)

    def is_open(self, identity: str) -> bool:
        return identity in self._conns

    def get(self, identity: str) -> Channel | None:
        conn = self._conns.get(identity)
        return conn.channel if conn is not None else None

    def identities(self) -> list[str]:
        return list(self._conns)

    def close_all(self) -> None:
        for identity in list(self._conns):
            self.detach(identity)

    async def _keepalive(self, identity: str, channel: Channel) -> None:
        while True:
            await asyncio.sleep(self.keepalive_interval_s)
            if channel.send(PING_FRAME) is not SendResult.OK:
                if self.get(identity) is channel:
                    self.drop(identity)
                return
