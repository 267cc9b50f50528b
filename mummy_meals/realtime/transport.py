# mummy_meals/realtime/transport.py
import asyncio
import json
from typing import AsyncIterator, Callable, Iterable, Optional

import redis
from redis.asyncio import Redis as AsyncRedis

from mummy_meals.realtime.feed import ChangeEvent, RowFilter, Topic
from mummy_meals.utils.logging import get_logger
from mummy_meals.utils.retry import redis_retry
from mummy_meals.utils.settings import REALTIME_CHANNEL_PREFIX, REDIS_URL

logger = get_logger(__name__)


def redis_channel(topic: Topic, prefix: str = REALTIME_CHANNEL_PREFIX) -> str:
    return f"{prefix}:{Topic(topic).value}"


class RedisTransport:
    """Rozsyla ChangeEventy przez redis pub/sub (kanal na topic)."""

    def __init__(
        self,
        url: str | None = None,
        client: redis.Redis | None = None,
        prefix: str = REALTIME_CHANNEL_PREFIX,
    ):
        self.redis = client or redis.Redis.from_url(url or REDIS_URL, decode_responses=True)
        self.prefix = prefix

    @redis_retry()
    def publish(self, event: ChangeEvent) -> int:
        channel = redis_channel(event.topic, self.prefix)
        logger.debug(f"Publish {event.op.value} on {channel}")
        return self.redis.publish(channel, event.model_dump_json())


def format_sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


def _decode_event(raw) -> Optional[ChangeEvent]:
    try:
        return ChangeEvent.model_validate_json(raw)
    except ValueError:
        logger.warning(f"Dropping malformed realtime payload: {raw!r}")
        return None


async def sse_stream(
    topics: Iterable[Topic],
    row_filter: Optional[RowFilter] = None,
    client_factory: Callable[[], AsyncRedis] | None = None,
    prefix: str = REALTIME_CHANNEL_PREFIX,
    poll_timeout: float = 5.0,
) -> AsyncIterator[str]:
    """
    Strumien Server-Sent Events dla jednego kanalu (topiki + filtr).

    Klient dostaje `event: change` i sam robi re-fetch. Przy bledzie redisa
    wysylamy `event: degraded` i laczymy sie ponownie z backoffem, eventy z
    przerwy nie sa odtwarzane.
    """
    factory = client_factory or (lambda: AsyncRedis.from_url(REDIS_URL, decode_responses=True))
    channels = [redis_channel(t, prefix) for t in topics]
    pubsub = None
    client = None
    backoff = 1.0

    yield "retry: 3000\n\n"
    try:
        while True:
            try:
                if client is None:
                    client = factory()
                if pubsub is None:
                    pubsub = client.pubsub(ignore_subscribe_messages=True)
                    await pubsub.subscribe(*channels)
                message = await pubsub.get_message(timeout=poll_timeout)
                if message:
                    event = _decode_event(message.get("data"))
                    if event is not None and (row_filter is None or row_filter.matches(event.row)):
                        yield format_sse("change", event.model_dump(mode="json"))
                else:
                    #keep-alive dla proxy
                    yield ": keep-alive\n\n"
                backoff = 1.0
            except asyncio.CancelledError:
                raise
            except redis.RedisError as e:
                logger.warning(f"Realtime stream degraded, retrying in {backoff}s: {e}")
                yield format_sse("degraded", {"reason": str(e), "retry_in": backoff})
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, 15.0)
                await _close(pubsub, channels)
                pubsub = None
                client = None
    finally:
        await _close(pubsub, channels)


async def _close(pubsub, channels) -> None:
    if pubsub is None:
        return
    try:
        await pubsub.unsubscribe(*channels)
        await pubsub.aclose()
    except redis.RedisError as e:
        logger.debug(f"Ignoring error while closing pubsub: {e}")
