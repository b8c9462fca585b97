"""Dev script: publish a share_item envelope straight onto the queue."""
from __future__ import annotations

import argparse
import asyncio
import logging

import redis.asyncio as aioredis

from share_relay.config import settings
from share_relay.infrastructure.bus.redis_streams import RedisStreamPublisher
from share_relay.infrastructure.ws.protocol import ShareEnvelope, SharedItem

logger = logging.getLogger(__name__)


async def publish_share(redis: aioredis.Redis, item: SharedItem) -> str:
    publisher = RedisStreamPublisher(redis, settings.QUEUE_NAME, max_length=settings.QUEUE_MAX_LENGTH)
    envelope = ShareEnvelope(item=item).model_dump(mode="json", exclude_none=True)
    entry_id = await publisher.publish(envelope)
    logger.info("Published item %s to '%s' as %s", item.id, settings.QUEUE_NAME, entry_id)
    return entry_id


async def _run(args: argparse.Namespace) -> None:
    r = aioredis.from_url(settings.QUEUE_URL, decode_responses=True)
    try:
        await publish_share(r, SharedItem(id=args.id, title=args.title, url=args.url))
    finally:
        await r.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("id", type=int)
    parser.add_argument("--title")
    parser.add_argument("--url")
    logging.basicConfig(level=logging.INFO)
    asyncio.run(_run(parser.parse_args()))


if __name__ == "__main__":
    main()
