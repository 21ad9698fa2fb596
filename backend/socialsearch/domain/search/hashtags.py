"""Hashtag parsing and categorisation."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from socialsearch.domain.search import models, policy

# \w is unicode-aware: letters (accented included), digits and underscore
_HASHTAG_RE = re.compile(r"#(\w+)")

_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
	("technology", ("tech", "ai", "coding", "programming", "software", "web", "mobile")),
	("sports", ("football", "basketball", "soccer", "tennis", "sports", "fitness")),
	("entertainment", ("movie", "music", "tv", "celebrity", "entertainment", "gaming")),
	("news", ("news", "breaking", "politics", "world", "update")),
	("lifestyle", ("food", "travel", "fashion", "health", "lifestyle", "photography")),
)


def normalize_tag(text: Optional[str]) -> str:
	"""Strip surrounding whitespace and one leading '#', then lowercase."""

	value = (text or "").strip()
	if value.startswith("#"):
		value = value[1:]
	return value.strip().lower()


def extract_hashtags(content: Optional[str]) -> list[str]:
	"""Return every hashtag in order of appearance, lowercased and without '#'."""

	if not content:
		return []
	return [match.lower() for match in _HASHTAG_RE.findall(content)]


def categorize_hashtag(tag: str) -> Optional[str]:
	lowered = tag.lower()
	for category, keywords in _CATEGORIES:
		if any(keyword in lowered for keyword in keywords):
			return category
	return None


def tally_hashtags(
	rows: Iterable[models.PostRow],
	snapshot: models.RelationshipSnapshot,
	*,
	contains: Optional[str] = None,
) -> dict[str, models.HashtagTally]:
	"""Count tags across the posts the snapshot's requester may see.

	When `contains` is given only tags including that substring are counted.
	"""

	tallies: dict[str, models.HashtagTally] = {}
	for row in rows:
		if not row.content or not policy.snapshot_allows_post(snapshot, row):
			continue
		for tag in extract_hashtags(row.content):
			if contains is not None and contains not in tag:
				continue
			tallies.setdefault(tag, models.HashtagTally(tag=tag)).add(row.created_at)
	return tallies
