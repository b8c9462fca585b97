from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from share_relay.application.exceptions import QueueUnavailableError
from share_relay.application.ports.bus import EventPublisher
from share_relay.services.relay_service import RelayServer


def get_relay(request: Request) -> RelayServer:
    return request.app.state.relay


def get_publisher(relay: Annotated[RelayServer, Depends(get_relay)]) -> EventPublisher:
    if relay.publisher is None:
        raise QueueUnavailableError("queue publisher is not connected")
    return relay.publisher


RelayDep = Annotated[RelayServer, Depends(get_relay)]
PublisherDep = Annotated[EventPublisher, Depends(get_publisher)]
