"""Ranking helpers shared by Search & Trending flows."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

MAX_SCORE = 1.0
RECENT_WINDOW = timedelta(hours=24)


def clamp(value: float, *, lower: float = 0.0, upper: float = MAX_SCORE) -> float:
	return max(lower, min(upper, value))


def _lower(value: Optional[str]) -> str:
	return (value or "").lower()


def _log_boost(count: int, weight: float) -> float:
	return math.log10(max(count, 0) + 1) * weight


def _as_utc(value: datetime) -> datetime:
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value


def user_search_score(
	*,
	username: Optional[str],
	display_name: Optional[str],
	verified: bool,
	followers_count: int,
	query: str,
	position: int,
) -> float:
	"""Score an account by fetch position, popularity and how well its names match."""

	query_lower = query.lower()
	username_lower = _lower(username)
	display_lower = _lower(display_name)

	score = 1.0 - position * 0.1
	if verified:
		score += 0.3
	score += _log_boost(followers_count, 0.1)
	if username is not None and username_lower == query_lower:
		score += 0.5
	if display_name is not None and display_lower == query_lower:
		score += 0.4
	if username is not None and query_lower in username_lower:
		score += 0.2
	if display_name is not None and query_lower in display_lower:
		score += 0.1
	return clamp(score)


def post_search_score(
	*,
	content: Optional[str],
	likes_count: int,
	comments_count: int,
	author_verified: bool,
	created_at: datetime,
	query: str,
	position: int,
	now: Optional[datetime] = None,
) -> float:
	"""Score a post by fetch position, engagement, term hits and freshness."""

	now = now or datetime.now(timezone.utc)
	score = 1.0 - position * 0.05
	score += _log_boost(likes_count, 0.1)
	score += _log_boost(comments_count, 0.05)
	if author_verified:
		score += 0.2
	if content:
		content_lower = content.lower()
		for term in query.lower().split():
			score += content_lower.count(term) * 0.1
	if now - _as_utc(created_at) < RECENT_WINDOW:
		score += 0.2
	return clamp(score)


def hashtag_search_score(tag: str, query: str, occurrences: int) -> float:
	"""Score a tag against the normalized query (no leading '#')."""

	query_lower = query.lower()
	score = 0.5
	if tag == query_lower:
		score += 0.5
	if tag.startswith(query_lower):
		score += 0.3
	score += _log_boost(occurrences, 0.1)
	return clamp(score)


def trending_score(
	seen_at: Sequence[datetime],
	count: int,
	*,
	now: Optional[datetime] = None,
) -> float:
	"""Blend volume (40%) with the share of occurrences from the last 24h (60%)."""

	if not seen_at:
		return 0.0
	now = now or datetime.now(timezone.utc)
	recent = sum(1 for ts in seen_at if now - _as_utc(ts) < RECENT_WINDOW)
	recency_score = recent / len(seen_at)
	volume_score = min(count / 100, 1.0)
	return volume_score * 0.4 + recency_score * 0.6
