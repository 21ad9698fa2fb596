"""Rate limits and visibility guards for Search & Trending."""

from __future__ import annotations

from typing import AbstractSet, Optional

from socialsearch.domain.search import models
from socialsearch.domain.search.exceptions import SearchError
from socialsearch.infra import rate_limit

MIN_SUGGESTION_LEN = 2


class SearchPolicyError(SearchError):
	"""Error surfaced to API callers."""


class SearchRateLimitError(SearchPolicyError):
	def __init__(self, retry_after: int) -> None:
		super().__init__("rate_limit", status_code=429)
		self.retry_after = retry_after


async def enforce_rate_limit(user_id: str, *, kind: str = "search", limit: int) -> None:
	"""Ensure the caller remains within the configured budget."""

	decision = await rate_limit.hit(kind, user_id, limit=limit)
	if not decision.allowed:
		raise SearchRateLimitError(decision.retry_after)


def is_blocked(requester_id: str, other_id: str, block_set: AbstractSet[str]) -> bool:
	"""Block sets are loaded symmetrically, so one membership test covers both directions."""

	return requester_id != other_id and other_id in block_set


def can_see_user(
	requester_id: str,
	candidate_id: str,
	candidate_privacy: Optional[models.PrivacySetting],
	follow_set: AbstractSet[str],
	block_set: AbstractSet[str],
) -> bool:
	"""Visibility guard for account results."""

	if is_blocked(requester_id, candidate_id, block_set):
		return False
	if requester_id == candidate_id:
		return True
	privacy = candidate_privacy if isinstance(candidate_privacy, models.PrivacySetting) else models.PrivacySetting()
	if not privacy.is_private:
		return True
	return candidate_id in follow_set


def can_see_post(
	requester_id: str,
	post: models.PostRow,
	follow_set: AbstractSet[str],
	block_set: AbstractSet[str],
) -> bool:
	"""Visibility guard for post results, driven by the post's tier."""

	author_id = post.author_id
	if is_blocked(requester_id, author_id, block_set):
		return False
	if requester_id == author_id:
		return True
	tier = (post.visibility or "").strip().lower()
	if tier == models.VisibilityTier.PUBLIC.value:
		return True
	if tier == models.VisibilityTier.FOLLOWERS.value:
		return author_id in follow_set
	# private posts are only shown to their author; unknown tiers stay hidden
	return False


def snapshot_allows_user(
	snapshot: models.RelationshipSnapshot,
	candidate_id: str,
	candidate_privacy: Optional[models.PrivacySetting],
) -> bool:
	return can_see_user(snapshot.requester_id, candidate_id, candidate_privacy, snapshot.following, snapshot.blocked)


def snapshot_allows_post(snapshot: models.RelationshipSnapshot, post: models.PostRow) -> bool:
	return can_see_post(snapshot.requester_id, post, snapshot.following, snapshot.blocked)
