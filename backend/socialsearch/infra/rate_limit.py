"""Fixed-window rate limiting on Redis for the search endpoints."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Optional

from socialsearch.infra.redis import namespaced, redis_client


@dataclass(slots=True, frozen=True)
class RateLimitDecision:
	allowed: bool
	count: int
	limit: int
	retry_after: int


async def hit(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> RateLimitDecision:
	"""Count one call for `actor_id` and report whether it fits the window budget."""

	window = max(1, int(window_seconds))
	now = now or time.time()
	slot = int(math.floor(now / window))
	retry_after = max(1, int((slot + 1) * window - now))
	if limit <= 0:
		return RateLimitDecision(allowed=False, count=0, limit=limit, retry_after=retry_after)
	key = namespaced("rl", kind, actor_id, slot)
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, window)
		count, _ = await pipe.execute()
	count = int(count)
	return RateLimitDecision(allowed=count <= limit, count=count, limit=limit, retry_after=retry_after)
