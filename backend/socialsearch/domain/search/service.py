"""Service layer for Search & Trending."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Mapping, Optional, Protocol, Sequence, Union

import asyncpg

from socialsearch.domain.search import models, policy, schemas
from socialsearch.domain.search.exceptions import StoreUnavailableError
from socialsearch.domain.search.providers import (
	HashtagSearchProvider,
	PostSearchProvider,
	UserSearchProvider,
	date_cutoff,
)
from socialsearch.domain.search.relationships import load_snapshot
from socialsearch.domain.search.store import MemorySearchStore, PostgresSearchStore, SearchStore
from socialsearch.domain.search.trending import TrendingEngine
from socialsearch.infra import postgres
from socialsearch.obs import metrics as obs_metrics
from socialsearch.settings import settings

logger = logging.getLogger(__name__)

AnyResult = Union[schemas.UserResult, schemas.PostResult, schemas.HashtagResult]

SUGGESTION_USERS = 3
SUGGESTION_HASHTAGS = 3
SUGGESTION_LIMIT = 6


class IdentityProvider(Protocol):
	def current_user_id(self) -> Optional[str]: ...


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def sub_limits(search_type: models.SearchType, limit: int) -> dict[models.SearchType, int]:
	"""Per-provider budgets for one search call, in merge order."""

	if search_type is models.SearchType.ALL:
		return {
			models.SearchType.USERS: math.ceil(limit / 3),
			models.SearchType.POSTS: math.ceil(limit / 2),
			models.SearchType.HASHTAGS: math.ceil(limit / 4),
		}
	return {search_type: limit}


def merge_results(result_sets: Iterable[Sequence[AnyResult]], limit: int) -> list[AnyResult]:
	"""Fan-in: drop duplicate ids, order by score desc keeping fetch order on ties."""

	merged: list[AnyResult] = []
	seen: set[str] = set()
	for result_set in result_sets:
		for result in result_set:
			if result.id in seen:
				continue
			seen.add(result.id)
			merged.append(result)
	merged.sort(key=lambda result: -result.relevance_score)
	return merged[:limit]


class SearchService:
	"""Privacy-aware multi-entity search over an injected store and identity."""

	def __init__(
		self,
		store: SearchStore,
		identity: IdentityProvider,
		*,
		overfetch_factor: Optional[int] = None,
		hashtag_scan_limit: Optional[int] = None,
		trending_window_days: Optional[int] = None,
		trending_min_occurrences: Optional[int] = None,
		trending_scan_limit: Optional[int] = None,
		clock: Callable[[], datetime] = _utcnow,
	) -> None:
		self._store = store
		self._identity = identity
		self._clock = clock
		factor = overfetch_factor or settings.search_overfetch_factor
		self._users = UserSearchProvider(store, overfetch_factor=factor)
		self._posts = PostSearchProvider(store, overfetch_factor=factor)
		self._hashtags = HashtagSearchProvider(store, scan_limit=hashtag_scan_limit or settings.hashtag_scan_limit)
		self._trending = TrendingEngine(
			store,
			window_days=trending_window_days or settings.trending_window_days,
			min_occurrences=trending_min_occurrences or settings.trending_min_occurrences,
			scan_limit=trending_scan_limit or settings.trending_scan_limit,
		)

	async def _snapshot(self, kind: str) -> Optional[models.RelationshipSnapshot]:
		"""Load the requester's relationships; None means nothing may be shown."""

		requester_id = self._identity.current_user_id()
		if not requester_id:
			logger.info("search.unauthenticated kind=%s", kind)
			return None
		try:
			return await load_snapshot(self._store, requester_id)
		except StoreUnavailableError as exc:
			obs_metrics.inc_provider_failure("relationships")
			logger.warning("search.snapshot_failed kind=%s detail=%s", kind, exc.detail)
			return None

	async def _fan_out(
		self,
		calls: Mapping[str, Awaitable[Sequence[AnyResult]]],
	) -> dict[str, Sequence[AnyResult]]:
		"""Run provider calls concurrently; a provider that blows up contributes nothing."""

		outcomes = await asyncio.gather(*calls.values(), return_exceptions=True)
		result_sets: dict[str, Sequence[AnyResult]] = {}
		for name, outcome in zip(calls.keys(), outcomes):
			if isinstance(outcome, asyncio.CancelledError):
				raise outcome
			if isinstance(outcome, Exception):
				obs_metrics.inc_provider_failure(name)
				logger.error("search.provider_crashed provider=%s", name, exc_info=outcome)
				result_sets[name] = []
				continue
			result_sets[name] = outcome
		return result_sets

	def _filters(self, query: schemas.SearchQuery, now: datetime) -> models.CandidateFilters:
		return models.CandidateFilters(
			since=date_cutoff(query.date_range, now),
			verified_only=query.verified_only,
			sort_by=query.sort_by,
		)

	async def search(self, query: schemas.SearchQuery) -> list[AnyResult]:
		start = time.perf_counter()
		kind = f"search:{query.type.value}"
		try:
			obs_metrics.inc_search_query(kind)
			snapshot = await self._snapshot(kind)
			if snapshot is None:
				return []
			text = query.normalized_query()
			limit = min(query.limit, settings.search_max_limit)
			now = self._clock()
			filters = self._filters(query, now)

			calls: dict[str, Awaitable[Sequence[AnyResult]]] = {}
			for search_type, budget in sub_limits(query.type, limit).items():
				if search_type is models.SearchType.USERS:
					calls[self._users.name] = self._users.search(text, filters, budget, snapshot)
				elif search_type is models.SearchType.POSTS:
					calls[self._posts.name] = self._posts.search(text, filters, budget, snapshot, now=now)
				else:
					calls[self._hashtags.name] = self._hashtags.search(text, budget, snapshot, now=now)

			results = merge_results((await self._fan_out(calls)).values(), limit)
			obs_metrics.observe_search_results(kind, len(results))
			logger.info("search.done type=%s query=%s results=%d", query.type.value, text[:24], len(results))
			return results
		finally:
			obs_metrics.observe_search_latency(kind, time.perf_counter() - start)

	async def search_users(
		self,
		text: str,
		*,
		limit: int = 20,
		filters: Optional[models.CandidateFilters] = None,
	) -> list[schemas.UserResult]:
		snapshot = await self._snapshot("users")
		return await self._users.search(text.strip(), filters or models.CandidateFilters(), limit, snapshot)

	async def search_posts(
		self,
		text: str,
		*,
		limit: int = 20,
		filters: Optional[models.CandidateFilters] = None,
	) -> list[schemas.PostResult]:
		snapshot = await self._snapshot("posts")
		return await self._posts.search(
			text.strip(), filters or models.CandidateFilters(), limit, snapshot, now=self._clock()
		)

	async def search_hashtags(self, text: str, *, limit: int = 10) -> list[schemas.HashtagResult]:
		snapshot = await self._snapshot("hashtags")
		return await self._hashtags.search(text, limit, snapshot, now=self._clock())

	async def get_suggestions(self, partial_text: str) -> list[schemas.SearchSuggestion]:
		text = (partial_text or "").strip()
		if len(text) < policy.MIN_SUGGESTION_LEN:
			return []
		start = time.perf_counter()
		try:
			obs_metrics.inc_search_query("suggestions")
			snapshot = await self._snapshot("suggestions")
			if snapshot is None:
				return []
			result_sets = await self._fan_out(
				{
					self._users.name: self._users.search(text, models.CandidateFilters(), SUGGESTION_USERS, snapshot),
					self._hashtags.name: self._hashtags.search(text, SUGGESTION_HASHTAGS, snapshot, now=self._clock()),
				}
			)
			suggestions: list[schemas.SearchSuggestion] = []
			for result in result_sets[self._users.name]:
				if isinstance(result, schemas.UserResult):
					suggestions.append(
						schemas.SearchSuggestion(
							id=f"suggestion-user-{result.user.id}",
							text=result.user.display_name or result.user.username or "",
							type="user",
							avatar=result.user.avatar,
						)
					)
			for result in result_sets[self._hashtags.name]:
				if isinstance(result, schemas.HashtagResult):
					suggestions.append(
						schemas.SearchSuggestion(
							id=f"suggestion-hashtag-{result.hashtag.tag}",
							text=f"#{result.hashtag.tag}",
							type="hashtag",
						)
					)
			return suggestions[:SUGGESTION_LIMIT]
		finally:
			obs_metrics.observe_search_latency("suggestions", time.perf_counter() - start)

	async def get_trending_topics(self, limit: int = 10) -> list[schemas.TrendingTopic]:
		start = time.perf_counter()
		try:
			obs_metrics.inc_search_query("trending")
			snapshot = await self._snapshot("trending")
			topics = await self._trending.topics(snapshot, limit, now=self._clock())
			obs_metrics.set_trending_topics(len(topics))
			logger.info("search.trending results=%d", len(topics))
			return topics
		finally:
			obs_metrics.observe_search_latency("trending", time.perf_counter() - start)


_MEMORY = MemorySearchStore()


class _StoreResolver:
	"""Decides once per process whether searches run on Postgres or in memory."""

	def __init__(self) -> None:
		self._pool_checked = False
		self._pool: Optional[asyncpg.Pool] = None

	async def _pool_or_none(self) -> Optional[asyncpg.Pool]:
		if self._pool_checked:
			return self._pool
		self._pool_checked = True
		try:
			pool = await postgres.get_pool()
		except Exception as exc:
			obs_metrics.mark_postgres(False)
			logger.warning("search.store_fallback reason=%s", type(exc).__name__)
			pool = None
		else:
			obs_metrics.mark_postgres(True)
		self._pool = pool
		return pool

	async def resolve(self) -> SearchStore:
		pool = await self._pool_or_none()
		if pool is None:
			return _MEMORY
		return PostgresSearchStore(pool)

	def forget(self) -> None:
		self._pool_checked = False
		self._pool = None


_RESOLVER = _StoreResolver()


async def resolve_store() -> SearchStore:
	"""Postgres when a pool was reachable, else the in-process memory store."""

	return await _RESOLVER.resolve()


def forget_store() -> None:
	"""Drop the remembered store decision, e.g. after the pool is closed."""

	_RESOLVER.forget()


async def seed_memory_store(
	*,
	users: Iterable[models.UserRow] | None = None,
	posts: Iterable[models.PostRow] | None = None,
	privacy: Mapping[str, models.PrivacySetting] | None = None,
	follows: Iterable[tuple[str, str]] | None = None,
	blocks: Iterable[tuple[str, str]] | None = None,
) -> None:
	await _MEMORY.seed(users=users, posts=posts, privacy=privacy, follows=follows, blocks=blocks)


async def reset_memory_state() -> None:
	await _MEMORY.reset()
