from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter

from share_relay.api.deps import PublisherDep
from share_relay.api.middleware.correlation_id import current_correlation_id
from share_relay.api.v1.schemas.share import ShareRequest, ShareResponse
from share_relay.application.exceptions import ValidationError
from share_relay.infrastructure.ws.protocol import ShareEnvelope

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["share"])


def build_share_payload(body: ShareRequest) -> dict[str, Any]:
    if body.item is not None:
        return ShareEnvelope(item=body.item).model_dump(mode="json", exclude_none=True)
    if body.url is not None:
        return {"type": "url", "url": body.url}
    if body.image_base64 is not None:
        return {"type": "base64", "image_base64": body.image_base64}
    raise ValidationError("one of item, url or image_base64 is required")


@router.post("/share", response_model=ShareResponse)
async def share(body: ShareRequest, publisher: PublisherDep) -> ShareResponse:
    """Publish onto the durable queue for producers without a live connection."""
    payload = build_share_payload(body)
    entry_id = await publisher.publish(payload, request_id=current_correlation_id())
    logger.info("Published share %s (%s)", entry_id, payload.get("action") or payload.get("type"))
    return ShareResponse(id=entry_id)
