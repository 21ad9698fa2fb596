"""Entity search providers: accounts, posts and hashtags."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Optional, TypeVar

from socialsearch.domain.search import hashtags, models, policy, ranking, schemas
from socialsearch.domain.search.exceptions import StoreUnavailableError
from socialsearch.domain.search.store import SearchStore
from socialsearch.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


def date_cutoff(date_range: models.DateRange, now: datetime) -> Optional[datetime]:
	"""Map a date range filter to the minimum created_at it admits (UTC)."""

	now = now.astimezone(timezone.utc)
	if date_range is models.DateRange.TODAY:
		return now.replace(hour=0, minute=0, second=0, microsecond=0)
	if date_range is models.DateRange.WEEK:
		return now - timedelta(days=7)
	if date_range is models.DateRange.MONTH:
		return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
	if date_range is models.DateRange.YEAR:
		return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
	return None


class EntitySearchProvider:
	"""Shared plumbing: over-fetch sizing and store failure containment."""

	name = "entity"

	def __init__(self, store: SearchStore, *, overfetch_factor: int = 2) -> None:
		self._store = store
		self._overfetch_factor = max(1, overfetch_factor)

	def _fetch_size(self, limit: int) -> int:
		return limit * self._overfetch_factor

	async def _guarded(self, call: Awaitable[T]) -> Optional[T]:
		"""Await a store call; None signals the provider should degrade to empty."""

		try:
			return await call
		except StoreUnavailableError as exc:
			obs_metrics.inc_provider_failure(self.name)
			logger.warning("search.provider_failed provider=%s detail=%s", self.name, exc.detail)
			return None


class UserSearchProvider(EntitySearchProvider):
	name = "users"

	async def search(
		self,
		text: str,
		filters: models.CandidateFilters,
		limit: int,
		snapshot: Optional[models.RelationshipSnapshot],
	) -> list[schemas.UserResult]:
		if snapshot is None or limit <= 0:
			return []
		rows = await self._guarded(self._store.find_users_by_text(text, filters, self._fetch_size(limit)))
		if rows is None:
			return []

		# Blocked candidates never need a privacy lookup.
		pending = [row for row in rows if not policy.is_blocked(snapshot.requester_id, row.user_id, snapshot.blocked)]
		privacy: dict[str, models.PrivacySetting] = {}
		if pending:
			loaded = await self._guarded(self._store.get_privacy_settings([row.user_id for row in pending]))
			if loaded is None:
				return []
			privacy = loaded

		results: list[schemas.UserResult] = []
		dropped = 0
		for position, row in enumerate(rows):
			if len(results) >= limit:
				break
			if not policy.snapshot_allows_user(snapshot, row.user_id, privacy.get(row.user_id)):
				dropped += 1
				continue
			score = ranking.user_search_score(
				username=row.username,
				display_name=row.display_name,
				verified=row.verified,
				followers_count=row.followers_count,
				query=text,
				position=position,
			)
			results.append(
				schemas.UserResult(
					id=f"user-{row.user_id}",
					relevance_score=score,
					user=schemas.UserSummary(
						id=row.user_id,
						username=row.username,
						display_name=row.display_name,
						avatar=row.avatar,
						verified=row.verified,
						followers_count=row.followers_count,
					),
				)
			)
		obs_metrics.inc_filtered(self.name, dropped)
		return results


class PostSearchProvider(EntitySearchProvider):
	name = "posts"

	async def search(
		self,
		text: str,
		filters: models.CandidateFilters,
		limit: int,
		snapshot: Optional[models.RelationshipSnapshot],
		*,
		now: Optional[datetime] = None,
	) -> list[schemas.PostResult]:
		if snapshot is None or limit <= 0:
			return []
		rows = await self._guarded(self._store.find_posts_by_text(text, filters, self._fetch_size(limit)))
		if rows is None:
			return []

		now = now or datetime.now(timezone.utc)
		results: list[schemas.PostResult] = []
		dropped = 0
		for position, row in enumerate(rows):
			if len(results) >= limit:
				break
			if not policy.snapshot_allows_post(snapshot, row):
				dropped += 1
				continue
			score = ranking.post_search_score(
				content=row.content,
				likes_count=row.likes_count,
				comments_count=row.comments_count,
				author_verified=row.author_verified,
				created_at=row.created_at,
				query=text,
				position=position,
				now=now,
			)
			results.append(
				schemas.PostResult(
					id=f"post-{row.post_id}",
					relevance_score=score,
					post=schemas.PostSummary(
						id=row.post_id,
						content=row.content,
						author_id=row.author_id,
						created_at=row.created_at,
						likes_count=row.likes_count,
						comments_count=row.comments_count,
						visibility=row.visibility,
						author=schemas.AuthorSummary(
							username=row.author_username,
							display_name=row.author_display_name,
							avatar=row.author_avatar,
							verified=row.author_verified,
						),
					),
				)
			)
		obs_metrics.inc_filtered(self.name, dropped)
		return results


class HashtagSearchProvider(EntitySearchProvider):
	name = "hashtags"

	def __init__(self, store: SearchStore, *, scan_limit: int = 1000) -> None:
		super().__init__(store)
		self._scan_limit = max(1, scan_limit)

	async def search(
		self,
		text: str,
		limit: int,
		snapshot: Optional[models.RelationshipSnapshot],
		*,
		now: Optional[datetime] = None,
	) -> list[schemas.HashtagResult]:
		tag_query = hashtags.normalize_tag(text)
		if not tag_query or snapshot is None or limit <= 0:
			return []
		rows = await self._guarded(
			self._store.find_posts_by_text(
				f"#{tag_query}",
				models.CandidateFilters(sort_by=models.SortBy.RECENT),
				self._scan_limit,
			)
		)
		if rows is None:
			return []

		tallies = hashtags.tally_hashtags(rows, snapshot, contains=tag_query)

		now = now or datetime.now(timezone.utc)
		results = [
			schemas.HashtagResult(
				id=f"hashtag-{tally.tag}",
				relevance_score=ranking.hashtag_search_score(tally.tag, tag_query, tally.count),
				hashtag=schemas.HashtagSummary(
					tag=tally.tag,
					post_count=tally.count,
					trending_score=ranking.trending_score(tally.seen_at, tally.count, now=now),
				),
			)
			for tally in tallies.values()
		]
		results.sort(key=lambda result: -result.relevance_score)
		return results[:limit]
