"""WebSocket and queue message envelope models."""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class SharedItem(BaseModel):
    """Opaque shared record; only ``id`` is typed."""

    model_config = ConfigDict(extra="allow")

    id: int
    title: str | None = None
    description: str | None = None
    url: str | None = None
    thumbnailUrl: str | None = None


class ShareEnvelope(BaseModel):
    """Client ↔ Server, and the body of queue messages."""

    action: Literal["share_item"] = "share_item"
    item: SharedItem


class RelayedEnvelope(BaseModel):
    """Server → Client for queue-originated traffic."""

    source: Literal["realtime"] = "realtime"
    payload: Any


class PingFrame(BaseModel):
    """In-band liveness check: server sends ping, client answers pong."""

    type: Literal["ping", "pong"]


PING_FRAME = PingFrame(type="ping").model_dump_json()


def is_pong(data: Any) -> bool:
    return isinstance(data, dict) and data.get("type") == "pong"
