"""Audit helpers for friend and blend requests."""

from __future__ import annotations

import logging
from typing import Dict

from redis.exceptions import RedisError

from watchme.infra.redis import redis_client
from watchme.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


async def log_request_event(stream: str, event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **fields}
	try:
		await redis_client.xadd(f"x:{stream}.events", payload, maxlen=10_000, approximate=True)
	except RedisError:
		logger.warning("audit append failed", extra={"stream": stream, "event": event})


def inc_friend_request(action: str) -> None:
	obs_metrics.inc_friend_request(action)


def inc_blend_request(action: str) -> None:
	obs_metrics.inc_blend_request(action)
