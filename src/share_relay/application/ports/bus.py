from __future__ import annotations

from typing import Any, Protocol


class EventPublisher(Protocol):
    async def publish(self, payload: Any, *, request_id: str | None = None) -> str: ...
