from __future__ import annotations

import json
from typing import Any

from share_relay.infrastructure.ws.protocol import RelayedEnvelope


def decode_queue_payload(content: str | bytes) -> Any:
    """Parse a queue body as JSON, wrapping anything else as ``{"raw": ...}``."""
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        return {"raw": content}


def encode_relayed(payload: Any) -> str:
    return RelayedEnvelope(payload=payload).model_dump_json()


def encode_queue_payload(payload: Any) -> str:
    return json.dumps(payload)


def decode_client_frame(raw: str | bytes) -> Any:
    """Parse a client frame; raises ValueError when it is not valid JSON."""
    return json.loads(raw)


def encode_client_frame(data: Any) -> str:
    return json.dumps(data)
