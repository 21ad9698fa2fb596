"""Per-call relationship snapshot loading."""

from __future__ import annotations

import asyncio

from socialsearch.domain.search import models
from socialsearch.domain.search.store import SearchStore


async def load_snapshot(store: SearchStore, requester_id: str) -> models.RelationshipSnapshot:
	"""Fetch the requester's block set and follow set exactly once each.

	The store returns blocks in both directions, so the snapshot's block set
	already covers "requester blocked X" and "X blocked requester".
	"""

	blocked, following = await asyncio.gather(
		store.get_block_set(requester_id),
		store.get_follow_set(requester_id),
	)
	return models.RelationshipSnapshot(
		requester_id=requester_id,
		blocked=frozenset(str(uid) for uid in blocked),
		following=frozenset(str(uid) for uid in following),
	)
