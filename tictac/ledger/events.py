"""
Ledger Events - Tagged notifications emitted by the ledger.

Each kind is its own type carrying only the fields valid for it.
Raw notifications ({kind, sessionId, payload}) are decoded once at the
boundary; everything downstream matches on the type or on .kind.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union


class EventKind(str, Enum):
    SESSION_CREATED = "SessionCreated"
    SESSION_JOINED = "SessionJoined"
    MOVE_MADE = "MoveMade"
    SESSION_FINISHED = "SessionFinished"
    SESSION_DRAW = "SessionDraw"
    SESSION_CANCELLED = "SessionCancelled"


# Kinds that change the contents of one open session
SESSION_KINDS = frozenset({
    EventKind.MOVE_MADE,
    EventKind.SESSION_FINISHED,
    EventKind.SESSION_DRAW,
    EventKind.SESSION_CANCELLED,
})

# Kinds that change which sessions exist or are joinable
LIST_KINDS = frozenset({
    EventKind.SESSION_CREATED,
    EventKind.SESSION_JOINED,
})

ALL_KINDS = SESSION_KINDS | LIST_KINDS


@dataclass(frozen=True)
class SessionCreated:
    kind: ClassVar[EventKind] = EventKind.SESSION_CREATED
    session_id: str
    creator: str
    stake: str = "0"


@dataclass(frozen=True)
class SessionJoined:
    kind: ClassVar[EventKind] = EventKind.SESSION_JOINED
    session_id: str
    joiner: str


@dataclass(frozen=True)
class MoveMade:
    kind: ClassVar[EventKind] = EventKind.MOVE_MADE
    session_id: str
    player: str
    position: int


@dataclass(frozen=True)
class SessionFinished:
    kind: ClassVar[EventKind] = EventKind.SESSION_FINISHED
    session_id: str
    winner: str
    prize: str = "0"


@dataclass(frozen=True)
class SessionDraw:
    kind: ClassVar[EventKind] = EventKind.SESSION_DRAW
    session_id: str


@dataclass(frozen=True)
class SessionCancelled:
    kind: ClassVar[EventKind] = EventKind.SESSION_CANCELLED
    session_id: str


LedgerEvent = Union[
    SessionCreated,
    SessionJoined,
    MoveMade,
    SessionFinished,
    SessionDraw,
    SessionCancelled,
]

EVENT_TYPES: dict[EventKind, type] = {
    EventKind.SESSION_CREATED: SessionCreated,
    EventKind.SESSION_JOINED: SessionJoined,
    EventKind.MOVE_MADE: MoveMade,
    EventKind.SESSION_FINISHED: SessionFinished,
    EventKind.SESSION_DRAW: SessionDraw,
    EventKind.SESSION_CANCELLED: SessionCancelled,
}


def decode_event(kind: str, session_id: Any, payload: dict[str, Any] | None = None) -> LedgerEvent:
    """
    Build a typed event from a raw notification.

    Raises ValueError for unknown kinds or missing payload fields.
    """
    try:
        event_kind = EventKind(kind)
    except ValueError:
        raise ValueError(f"Unknown event kind: {kind!r}")

    payload = payload or {}
    sid = str(session_id)

    if event_kind == EventKind.SESSION_CREATED:
        return SessionCreated(sid, creator=_required(payload, "creator"), stake=str(payload.get("stake", "0")))
    if event_kind == EventKind.SESSION_JOINED:
        return SessionJoined(sid, joiner=_required(payload, "joiner"))
    if event_kind == EventKind.MOVE_MADE:
        return MoveMade(sid, player=_required(payload, "player"), position=int(_required(payload, "position")))
    if event_kind == EventKind.SESSION_FINISHED:
        return SessionFinished(sid, winner=_required(payload, "winner"), prize=str(payload.get("prize", "0")))
    if event_kind == EventKind.SESSION_DRAW:
        return SessionDraw(sid)
    return SessionCancelled(sid)


def _required(payload: dict[str, Any], key: str) -> Any:
    if key not in payload or payload[key] is None:
        raise ValueError(f"Event payload missing {key!r}")
    return payload[key]
