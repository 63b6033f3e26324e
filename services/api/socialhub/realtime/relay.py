"""
Cross-instance broadcast relay over Redis pub/sub.

With several API instances behind a load balancer each one only knows its
own Socket.IO sessions. Every local broadcast is also published on one Redis
channel; every instance listens on that channel and hands events that came
from *other* instances to its local observers.

Message schema (JSON):
  { origin, event, payload }

`origin` is the publishing instance id, used to skip our own messages since
the local observers already got them from `Broadcaster.broadcast`.
"""
import asyncio
import json
import logging
import uuid
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from socialhub.realtime.broadcaster import Broadcaster
from socialhub.telemetry import RELAY_ERRORS_TOTAL

logger = logging.getLogger(__name__)


class RedisRelay:
    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        instance_id: Optional[str] = None,
        retry_delay: float = 1.0,
        max_retry_delay: float = 30.0,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self.instance_id = instance_id or uuid.uuid4().hex
        self._retry_delay = retry_delay
        self._max_retry_delay = max_retry_delay
        self._task: Optional[asyncio.Task] = None

    async def publish(self, event: str, payload: dict[str, Any]) -> None:
        message = json.dumps({"origin": self.instance_id, "event": event, "payload": payload})
        await self._redis.publish(self._channel, message)

    def handle_message(self, raw: Any, broadcaster: Broadcaster) -> bool:
        """Deliver one relayed message locally. Returns whether it was delivered."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            RELAY_ERRORS_TOTAL.inc()
            logger.warning("Malformed relay message: %r", raw)
            return False

        if not isinstance(data, dict) or data.get("origin") == self.instance_id:
            return False

        event, payload = data.get("event"), data.get("payload")
        if not isinstance(event, str) or not isinstance(payload, dict):
            RELAY_ERRORS_TOTAL.inc()
            logger.warning("Relay message without event/payload: %r", data)
            return False

        broadcaster.deliver_local(event, payload)
        return True

    async def listen(self, broadcaster: Broadcaster) -> None:
        """
        Relay messages from the channel until cancelled.

        A lost connection is logged and counted, then the channel is
        resubscribed after an exponential backoff capped at `max_retry_delay`.
        """
        delay = self._retry_delay
        while True:
            pubsub = self._redis.pubsub()
            try:
                await pubsub.subscribe(self._channel)
                logger.info("Relay %s listening on '%s'", self.instance_id, self._channel)
                delay = self._retry_delay
                async for message in pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    self.handle_message(message.get("data"), broadcaster)
            except (RedisError, OSError) as exc:
                RELAY_ERRORS_TOTAL.inc()
                logger.warning(
                    "Relay listener lost '%s': %s (resubscribing in %.1fs)",
                    self._channel, exc, delay,
                )
            finally:
                await self._close_pubsub(pubsub)

            await asyncio.sleep(delay)
            delay = min(delay * 2, self._max_retry_delay)

    async def _close_pubsub(self, pubsub: Any) -> None:
        try:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()
        except (RedisError, OSError) as exc:
            logger.debug("Could not close relay subscription cleanly: %s", exc)

    def start(self, broadcaster: Broadcaster) -> asyncio.Task:
        self._task = asyncio.get_running_loop().create_task(
            self.listen(broadcaster), name="broadcast-relay"
        )
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            RELAY_ERRORS_TOTAL.inc()
            logger.warning("Relay listener had stopped with an error: %r", exc)
