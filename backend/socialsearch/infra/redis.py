"""Redis connection management.

`redis_client` is a stable proxy, so modules that imported it keep working
after the underlying client is swapped (fakeredis in tests). Keys written by
this service go through `namespaced()` so they share one prefix.
"""

from __future__ import annotations

import redis.asyncio as redis

from socialsearch.settings import settings


class RedisProxy:
	"""Forwards attribute access to the current Redis client."""

	def __init__(self, client: redis.Redis):
		self._client: redis.Redis = client

	def set_client(self, client: redis.Redis) -> None:
		self._client = client

	@property
	def client(self) -> redis.Redis:
		return self._client

	def __getattr__(self, item):
		return getattr(self._client, item)


def namespaced(*parts: object) -> str:
	"""Join key parts under the configured prefix, e.g. `search:rl:search:u1:42`."""

	return ":".join([settings.redis_key_prefix, *(str(part) for part in parts)])


redis_client: RedisProxy = RedisProxy(redis.from_url(settings.redis_url, decode_responses=True))


def set_redis_client(client: redis.Redis) -> None:
	redis_client.set_client(client)
