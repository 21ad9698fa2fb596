"""AsyncPG pool used by the Postgres search store.

Search only reads, so the pool is small, every connection is tagged with the
service name, and statements are bounded by `postgres_command_timeout`.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import asyncpg

from socialsearch.settings import settings

_pool: Optional[asyncpg.pool.Pool] = None


def _dsn() -> str:
	# 127.0.0.1 instead of localhost avoids IPv6 resolution stalls
	return settings.postgres_url.replace("localhost", "127.0.0.1")


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		pool = asyncpg.create_pool(
			dsn=_dsn(),
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			command_timeout=settings.postgres_command_timeout,
			server_settings={
				"application_name": settings.service_name,
				"default_transaction_read_only": "on",
			},
		)
		_pool = await asyncio.wait_for(pool, timeout=settings.postgres_connect_timeout)
	return _pool


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	assert _pool is not None
	return _pool


async def close_pool() -> None:
	global _pool
	if _pool is not None:
		await _pool.close()
		_pool = None
