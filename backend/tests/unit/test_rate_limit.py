import pytest

from socialsearch.domain.search import policy
from socialsearch.infra import rate_limit
from socialsearch.infra.redis import namespaced


@pytest.mark.asyncio
async def test_hit_counts_within_window(fake_redis):
	now = 120.0 + 45.0

	first = await rate_limit.hit("search", "u1", limit=2, now=now)
	second = await rate_limit.hit("search", "u1", limit=2, now=now)
	third = await rate_limit.hit("search", "u1", limit=2, now=now)

	assert [first.allowed, second.allowed, third.allowed] == [True, True, False]
	assert third.count == 3
	assert third.retry_after == 15
	assert await fake_redis.get(namespaced("rl", "search", "u1", 2)) == "3"
	assert 0 < await fake_redis.ttl("search:rl:search:u1:2") <= 60


@pytest.mark.asyncio
async def test_hit_starts_fresh_in_next_window():
	await rate_limit.hit("search", "u1", limit=1, now=59.0)
	blocked = await rate_limit.hit("search", "u1", limit=1, now=59.5)
	fresh = await rate_limit.hit("search", "u1", limit=1, now=60.0)

	assert not blocked.allowed
	assert fresh.allowed


@pytest.mark.asyncio
async def test_hit_keys_are_per_kind_and_actor():
	await rate_limit.hit("search", "u1", limit=1, now=10.0)

	other_actor = await rate_limit.hit("search", "u2", limit=1, now=10.0)
	other_kind = await rate_limit.hit("search:suggest", "u1", limit=1, now=10.0)

	assert other_actor.allowed
	assert other_kind.allowed


@pytest.mark.asyncio
async def test_zero_budget_never_allows(fake_redis):
	decision = await rate_limit.hit("search", "u1", limit=0, now=10.0)

	assert not decision.allowed
	assert await fake_redis.keys("search:rl:*") == []


@pytest.mark.asyncio
async def test_enforce_rate_limit_raises_with_retry_after():
	await policy.enforce_rate_limit("u1", kind="search", limit=1)

	with pytest.raises(policy.SearchRateLimitError) as excinfo:
		await policy.enforce_rate_limit("u1", kind="search", limit=1)

	assert excinfo.value.status_code == 429
	assert 1 <= excinfo.value.retry_after <= 60
