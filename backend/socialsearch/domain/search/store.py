"""Store adapters consumed by the search providers.

`SearchStore` is the read-only surface the engine depends on. Two
implementations ship with the service: `PostgresSearchStore` (asyncpg) and
`MemorySearchStore`, a seedable in-process store used by tests and as the
fallback when no database pool is reachable.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Iterable, Mapping, Optional, Protocol, Sequence

import asyncpg

from socialsearch.domain.search import models
from socialsearch.domain.search.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SearchStore(Protocol):
	async def find_users_by_text(
		self, text: str, filters: models.CandidateFilters, limit: int
	) -> list[models.UserRow]: ...

	async def find_posts_by_text(
		self, text: str, filters: models.CandidateFilters, limit: int
	) -> list[models.PostRow]: ...

	async def find_recent_posts(self, since: datetime, *, limit: int) -> list[models.PostRow]: ...

	async def get_block_set(self, user_id: str) -> set[str]: ...

	async def get_follow_set(self, user_id: str) -> set[str]: ...

	async def get_privacy_settings(self, user_ids: Sequence[str]) -> dict[str, models.PrivacySetting]: ...


def _like_pattern(text: str) -> str:
	escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
	return f"%{escaped}%"


def _aware(value: Optional[datetime]) -> datetime:
	if value is None:
		return _EPOCH
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value


class MemorySearchStore:
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.users: dict[str, models.UserRow] = {}
		self.posts: dict[str, models.PostRow] = {}
		self.privacy: dict[str, models.PrivacySetting] = {}
		self.follows: set[tuple[str, str]] = set()
		self.blocks: set[tuple[str, str]] = set()

	async def reset(self) -> None:
		async with self._lock:
			self.users.clear()
			self.posts.clear()
			self.privacy.clear()
			self.follows.clear()
			self.blocks.clear()

	async def seed(
		self,
		*,
		users: Iterable[models.UserRow] | None = None,
		posts: Iterable[models.PostRow] | None = None,
		privacy: Mapping[str, models.PrivacySetting] | None = None,
		follows: Iterable[tuple[str, str]] | None = None,
		blocks: Iterable[tuple[str, str]] | None = None,
	) -> None:
		async with self._lock:
			self.users = {u.user_id: u for u in users or []}
			self.posts = {p.post_id: p for p in posts or []}
			self.privacy = dict(privacy or {})
			self.follows = set(follows or [])
			self.blocks = set(blocks or [])

	def _visible_post_rows(self) -> list[models.PostRow]:
		rows: list[models.PostRow] = []
		for post in self.posts.values():
			if post.is_deleted:
				continue
			author = self.users.get(post.author_id)
			if post.author_banned or (author is not None and author.banned):
				continue
			rows.append(post)
		return rows

	async def find_users_by_text(
		self,
		text: str,
		filters: models.CandidateFilters,
		limit: int,
	) -> list[models.UserRow]:
		needle = text.strip().lower()
		async with self._lock:
			rows: list[models.UserRow] = []
			for user in self.users.values():
				if user.banned:
					continue
				if needle and needle not in (user.username or "").lower() and needle not in (user.display_name or "").lower():
					continue
				if filters.verified_only and not user.verified:
					continue
				if filters.since is not None and _aware(user.created_at) < filters.since:
					continue
				rows.append(user)
		if filters.sort_by is models.SortBy.POPULAR:
			rows.sort(key=lambda u: -u.followers_count)
		elif filters.sort_by is models.SortBy.RECENT:
			rows.sort(key=lambda u: _aware(u.created_at), reverse=True)
		else:
			rows.sort(key=lambda u: (not u.verified, -u.followers_count))
		return rows[:limit]

	async def find_posts_by_text(
		self,
		text: str,
		filters: models.CandidateFilters,
		limit: int,
	) -> list[models.PostRow]:
		needle = text.strip().lower()
		async with self._lock:
			rows = [
				post
				for post in self._visible_post_rows()
				if (not needle or needle in (post.content or "").lower())
				and (filters.since is None or _aware(post.created_at) >= filters.since)
			]
		if filters.sort_by is models.SortBy.POPULAR:
			rows.sort(key=lambda p: -p.likes_count)
		elif filters.sort_by is models.SortBy.RECENT:
			rows.sort(key=lambda p: _aware(p.created_at), reverse=True)
		else:
			rows.sort(key=lambda p: (p.likes_count, _aware(p.created_at)), reverse=True)
		return rows[:limit]

	async def find_recent_posts(self, since: datetime, *, limit: int) -> list[models.PostRow]:
		async with self._lock:
			rows = [post for post in self._visible_post_rows() if _aware(post.created_at) >= since]
		rows.sort(key=lambda p: _aware(p.created_at), reverse=True)
		return rows[:limit]

	async def get_block_set(self, user_id: str) -> set[str]:
		async with self._lock:
			blocked: set[str] = set()
			for blocker, target in self.blocks:
				if blocker == user_id:
					blocked.add(target)
				if target == user_id:
					blocked.add(blocker)
			return blocked

	async def get_follow_set(self, user_id: str) -> set[str]:
		async with self._lock:
			return {following for follower, following in self.follows if follower == user_id}

	async def get_privacy_settings(self, user_ids: Sequence[str]) -> dict[str, models.PrivacySetting]:
		async with self._lock:
			return {uid: self.privacy[uid] for uid in user_ids if uid in self.privacy}


class PostgresSearchStore:
	"""asyncpg-backed store; every backend failure surfaces as StoreUnavailableError."""

	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	@asynccontextmanager
	async def _connection(self, operation: str) -> AsyncIterator[asyncpg.Connection]:
		try:
			async with self._pool.acquire() as conn:
				yield conn
		except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as exc:
			logger.warning("search.store_error op=%s error=%s", operation, type(exc).__name__)
			raise StoreUnavailableError(f"{operation}_failed") from exc

	async def find_users_by_text(
		self,
		text: str,
		filters: models.CandidateFilters,
		limit: int,
	) -> list[models.UserRow]:
		if filters.sort_by is models.SortBy.POPULAR:
			order_by = "u.followers_count DESC, u.id"
		elif filters.sort_by is models.SortBy.RECENT:
			order_by = "u.created_at DESC, u.id"
		else:
			order_by = "u.verify DESC, u.followers_count DESC, u.id"
		needle = text.strip()
		async with self._connection("find_users") as conn:
			rows = await conn.fetch(
				f"""
				SELECT u.id, u.username, u.display_name, u.avatar, u.verify,
					u.followers_count, u.created_at
				FROM users u
				WHERE u.banned = FALSE
					AND ($1 = '' OR u.username ILIKE $2 OR u.display_name ILIKE $2)
					AND ($3::boolean = FALSE OR u.verify = TRUE)
					AND ($4::timestamptz IS NULL OR u.created_at >= $4::timestamptz)
				ORDER BY {order_by}
				LIMIT $5
				""",
				needle,
				_like_pattern(needle),
				filters.verified_only,
				filters.since,
				limit,
			)
		return [
			models.UserRow(
				user_id=str(row["id"]),
				username=row["username"],
				display_name=row["display_name"],
				avatar=row["avatar"],
				verified=bool(row["verify"]),
				followers_count=int(row["followers_count"] or 0),
				created_at=row["created_at"],
			)
			for row in rows
		]

	async def find_posts_by_text(
		self,
		text: str,
		filters: models.CandidateFilters,
		limit: int,
	) -> list[models.PostRow]:
		if filters.sort_by is models.SortBy.POPULAR:
			order_by = "p.likes_count DESC, p.id"
		elif filters.sort_by is models.SortBy.RECENT:
			order_by = "p.created_at DESC, p.id"
		else:
			order_by = "p.likes_count DESC, p.created_at DESC, p.id"
		needle = text.strip()
		async with self._connection("find_posts") as conn:
			rows = await conn.fetch(
				f"""
				{_POST_SELECT}
					AND ($1 = '' OR p.content ILIKE $2)
					AND ($3::timestamptz IS NULL OR p.created_at >= $3::timestamptz)
				ORDER BY {order_by}
				LIMIT $4
				""",
				needle,
				_like_pattern(needle),
				filters.since,
				limit,
			)
		return [_post_from_record(row) for row in rows]

	async def find_recent_posts(self, since: datetime, *, limit: int) -> list[models.PostRow]:
		async with self._connection("find_recent_posts") as conn:
			rows = await conn.fetch(
				f"""
				{_POST_SELECT}
					AND p.created_at >= $1
				ORDER BY p.created_at DESC, p.id
				LIMIT $2
				""",
				since,
				limit,
			)
		return [_post_from_record(row) for row in rows]

	async def get_block_set(self, user_id: str) -> set[str]:
		async with self._connection("get_block_set") as conn:
			rows = await conn.fetch(
				"""
				SELECT blocked_id AS other FROM blocked_users WHERE blocker_id = $1
				UNION
				SELECT blocker_id AS other FROM blocked_users WHERE blocked_id = $1
				""",
				user_id,
			)
		return {str(row["other"]) for row in rows}

	async def get_follow_set(self, user_id: str) -> set[str]:
		async with self._connection("get_follow_set") as conn:
			rows = await conn.fetch(
				"SELECT following_id FROM follows WHERE follower_id = $1",
				user_id,
			)
		return {str(row["following_id"]) for row in rows}

	async def get_privacy_settings(self, user_ids: Sequence[str]) -> dict[str, models.PrivacySetting]:
		ids = list(dict.fromkeys(str(uid) for uid in user_ids))
		if not ids:
			return {}
		async with self._connection("get_privacy_settings") as conn:
			rows = await conn.fetch(
				"SELECT user_id, privacy_settings FROM user_settings WHERE user_id::text = ANY($1::text[])",
				ids,
			)
		settings_by_user: dict[str, models.PrivacySetting] = {}
		for row in rows:
			payload = row["privacy_settings"]
			if isinstance(payload, str):
				try:
					payload = json.loads(payload)
				except ValueError:
					payload = None
			settings_by_user[str(row["user_id"])] = models.PrivacySetting.from_payload(payload)
		return settings_by_user


_POST_SELECT = """
				SELECT p.id, p.content, p.user_id, p.created_at, p.likes_count,
					p.comments_count, p.visibility,
					u.username, u.display_name, u.avatar, u.verify
				FROM posts p
				JOIN users u ON u.id = p.user_id
				WHERE p.is_deleted = FALSE
					AND u.banned = FALSE
"""


def _post_from_record(row: Mapping[str, object]) -> models.PostRow:
	return models.PostRow(
		post_id=str(row["id"]),
		content=row["content"],  # type: ignore[arg-type]
		author_id=str(row["user_id"]),
		created_at=row["created_at"],  # type: ignore[arg-type]
		likes_count=int(row["likes_count"] or 0),  # type: ignore[arg-type]
		comments_count=int(row["comments_count"] or 0),  # type: ignore[arg-type]
		visibility=str(row["visibility"] or models.VisibilityTier.PUBLIC.value),
		author_username=row["username"],  # type: ignore[arg-type]
		author_display_name=row["display_name"],  # type: ignore[arg-type]
		author_avatar=row["avatar"],  # type: ignore[arg-type]
		author_verified=bool(row["verify"]),
	)
