from __future__ import annotations

from typing import Protocol


class RelayConnection(Protocol):
    """A live client connection as seen by the registry, broadcaster and monitor."""

    id: str
    is_alive: bool

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, data: str) -> None: ...

    async def ping(self) -> None: ...

    def mark_alive(self) -> None: ...

    async def terminate(self) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...
