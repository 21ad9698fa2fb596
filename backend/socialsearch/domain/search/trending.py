"""Trending hashtags over a recent window of visible posts."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from socialsearch.domain.search import hashtags, models, ranking, schemas
from socialsearch.domain.search.exceptions import StoreUnavailableError
from socialsearch.domain.search.store import SearchStore
from socialsearch.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class TrendingEngine:
	"""Recomputes trending topics from scratch on every call."""

	def __init__(
		self,
		store: SearchStore,
		*,
		window_days: int = 7,
		min_occurrences: int = 3,
		scan_limit: int = 2000,
	) -> None:
		self._store = store
		self._window = timedelta(days=window_days)
		self._min_occurrences = min_occurrences
		self._scan_limit = scan_limit

	async def topics(
		self,
		snapshot: Optional[models.RelationshipSnapshot],
		limit: int,
		*,
		now: Optional[datetime] = None,
	) -> list[schemas.TrendingTopic]:
		if snapshot is None or limit <= 0:
			return []
		now = now or datetime.now(timezone.utc)
		try:
			rows = await self._store.find_recent_posts(now - self._window, limit=self._scan_limit)
		except StoreUnavailableError as exc:
			obs_metrics.inc_provider_failure("trending")
			logger.warning("search.trending_failed detail=%s", exc.detail)
			return []

		topics = [
			schemas.TrendingTopic(
				id=f"trending-{tally.tag}",
				hashtag=tally.tag,
				post_count=tally.count,
				growth_rate=ranking.trending_score(tally.seen_at, tally.count, now=now),
				category=hashtags.categorize_hashtag(tally.tag),
			)
			for tally in hashtags.tally_hashtags(rows, snapshot).values()
			if tally.count >= self._min_occurrences
		]
		topics.sort(key=lambda topic: -topic.growth_rate)
		return topics[:limit]
