from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from drawit.protocol.messages import OutboundMsg, encode_event

from .connections import ConnectionRegistry, SendResult

log = logging.getLogger(__name__)

Predicate = Callable[[str], bool]


def everyone(identity: str) -> bool:
    return True


def all_except(excluded: str | None) -> Predicate:
    return lambda identity: identity != excluded


def only(target: str) -> Predicate:
    return lambda identity: identity == target


@dataclass(frozen=True)
class Delivery:
    identity: str
    result: SendResult

    @property
    def ok(self) -> bool:
        return self.result is SendResult.OK


class BroadcastBus:
    """Fan-out of framed events to the channels currently in the registry."""

    def __init__(self, registry: ConnectionRegistry, *, debug: bool = False) -> None:
        self.registry = registry
        self.debug = debug

    def emit(self, msg: OutboundMsg, predicate: Predicate = everyone) -> list[Delivery]:
        frame = encode_event(msg)
        deliveries: list[Delivery] = []
        for identity in self.registry.identities():
            if not predicate(identity):
                continue
            deliveries.append(self._write(identity, frame))
        if self.debug:
            log.debug("emit event=%s targets=%d", msg.event.value, len(deliveries))
        # Failed channels are torn down after the loop so one bad client never
        # cuts delivery short for the others.
        for d in deliveries:
            if not d.ok:
                self.registry.drop(d.identity)
        return deliveries

    def send_to(self, identity: str, msg: OutboundMsg) -> Delivery | None:
        if not self.registry.is_open(identity):
            return None
        d = self._write(identity, encode_event(msg))
        if not d.ok:
            self.registry.drop(identity)
        return d

    def _write(self, identity: str, frame: str) -> Delivery:
        channel = self.registry.get(identity)
        if channel is None:
            return Delivery(identity, SendResult.CLOSED)
        return Delivery(identity, channel.send(frame))
