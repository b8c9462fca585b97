from __future__ import annotations

from pydantic import BaseModel

from share_relay.infrastructure.ws.protocol import SharedItem


class ShareRequest(BaseModel):
    """One of ``item``, ``url`` or ``image_base64`` must be set."""

    item: SharedItem | None = None
    url: str | None = None
    image_base64: str | None = None


class ShareResponse(BaseModel):
    status: str = "ok"
    id: str
