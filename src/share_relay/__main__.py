"""Entrypoint: python -m share_relay"""
from __future__ import annotations

import logging

import uvicorn

from share_relay.config import settings


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "share_relay.app:create_app",
        factory=True,
        host=settings.WS_HOST,
        port=settings.WS_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        ws_ping_interval=settings.WS_HEARTBEAT_SECONDS,
        ws_ping_timeout=settings.WS_HEARTBEAT_SECONDS,
    )


if __name__ == "__main__":
    main()
