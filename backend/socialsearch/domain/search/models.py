"""Domain models backing search & trending results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class SearchType(str, Enum):
	ALL = "all"
	USERS = "users"
	POSTS = "posts"
	HASHTAGS = "hashtags"


class SortBy(str, Enum):
	RELEVANCE = "relevance"
	POPULAR = "popular"
	RECENT = "recent"


class DateRange(str, Enum):
	ALL = "all"
	TODAY = "today"
	WEEK = "week"
	MONTH = "month"
	YEAR = "year"


class VisibilityTier(str, Enum):
	PUBLIC = "public"
	FOLLOWERS = "followers"
	PRIVATE = "private"


@dataclass(slots=True, frozen=True)
class PrivacySetting:
	"""Per-user privacy record; every field defaults to fully open."""

	profile_visibility: str = "public"
	message_requests: bool = True
	show_online_status: bool = True
	show_read_receipts: bool = True
	search_visibility: bool = True

	@classmethod
	def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "PrivacySetting":
		"""Build from a stored JSON record, ignoring anything malformed."""

		if not isinstance(payload, Mapping):
			return cls()
		visibility = payload.get("profile_visibility")
		if not isinstance(visibility, str) or not visibility.strip():
			visibility = "public"

		def _flag(key: str) -> bool:
			value = payload.get(key)
			return value if isinstance(value, bool) else True

		return cls(
			profile_visibility=visibility.strip().lower(),
			message_requests=_flag("message_requests"),
			show_online_status=_flag("show_online_status"),
			show_read_receipts=_flag("show_read_receipts"),
			search_visibility=_flag("search_visibility"),
		)

	@property
	def is_private(self) -> bool:
		return self.profile_visibility == "private"


@dataclass(slots=True, frozen=True)
class CandidateFilters:
	"""Query-layer filters handed to the store."""

	since: Optional[datetime] = None
	verified_only: bool = False
	sort_by: SortBy = SortBy.RELEVANCE


@dataclass(slots=True)
class UserRow:
	"""Normalized representation of an account returned from the store."""

	user_id: str
	username: Optional[str]
	display_name: Optional[str]
	avatar: Optional[str] = None
	verified: bool = False
	followers_count: int = 0
	created_at: Optional[datetime] = None
	banned: bool = False


@dataclass(slots=True)
class PostRow:
	"""Post joined with its author summary."""

	post_id: str
	content: Optional[str]
	author_id: str
	created_at: datetime
	likes_count: int = 0
	comments_count: int = 0
	visibility: str = VisibilityTier.PUBLIC.value
	author_username: Optional[str] = None
	author_display_name: Optional[str] = None
	author_avatar: Optional[str] = None
	author_verified: bool = False
	author_banned: bool = False
	is_deleted: bool = False


@dataclass(slots=True, frozen=True)
class RelationshipSnapshot:
	"""The requester's block and follow sets, loaded once per call."""

	requester_id: str
	blocked: frozenset[str] = field(default_factory=frozenset)
	following: frozenset[str] = field(default_factory=frozenset)


@dataclass(slots=True)
class HashtagTally:
	"""Occurrence count and timestamps for one tag within a scan."""

	tag: str
	count: int = 0
	seen_at: list[datetime] = field(default_factory=list)

	def add(self, created_at: datetime) -> None:
		self.count += 1
		self.seen_at.append(created_at)
