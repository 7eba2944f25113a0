from .constants import (
    DRAWER_BONUS,
    MAX_NAME_LENGTH,
    ActionKind,
    ChatType,
    EndReason,
    EventKind,
)
from .messages import encode_event, parse_action

__all__ = [
    "ActionKind",
    "ChatType",
    "EndReason",
    "EventKind",
    "DRAWER_BONUS",
    "MAX_NAME_LENGTH",
    "encode_event",
    "parse_action",
]
