from datetime import datetime, timedelta, timezone

import pytest

from socialsearch.domain.search import models
from socialsearch.domain.search.service import seed_memory_store
from socialsearch.infra import jwt as jwt_helper
from socialsearch.settings import settings

USER_ME = "00000000-0000-0000-0000-000000000001"
USER_EVE = "00000000-0000-0000-0000-000000000002"
USER_MAL = "00000000-0000-0000-0000-000000000003"


def _recent(hours: float) -> datetime:
	return datetime.now(timezone.utc) - timedelta(hours=hours)


async def _seed() -> None:
	await seed_memory_store(
		users=[
			models.UserRow(user_id=USER_ME, username="self", display_name="Self"),
			models.UserRow(user_id=USER_EVE, username="eve", display_name="Eve Search", verified=True),
			models.UserRow(user_id=USER_MAL, username="evelyn_mal", display_name="Mal"),
		],
		posts=[
			models.PostRow(post_id="p1", content="Eve loves #travel", author_id=USER_EVE, created_at=_recent(1)),
			models.PostRow(post_id="p2", content="more #travel tips", author_id=USER_EVE, created_at=_recent(2)),
			models.PostRow(post_id="p3", content="#travel again", author_id=USER_EVE, created_at=_recent(3)),
			models.PostRow(post_id="p4", content="eve #travel", author_id=USER_MAL, created_at=_recent(1)),
		],
		blocks=[(USER_ME, USER_MAL)],
	)


@pytest.mark.asyncio
async def test_search_endpoint_returns_visible_results(api_client):
	await _seed()

	response = await api_client.get("/search", params={"q": "eve"}, headers={"X-User-Id": USER_ME})
	payload = response.json()

	assert response.status_code == 200
	assert payload["q"] == "eve"
	ids = [item["id"] for item in payload["items"]]
	assert f"user-{USER_EVE}" in ids
	assert f"user-{USER_MAL}" not in ids
	assert "post-p4" not in ids
	scores = [item["relevance_score"] for item in payload["items"]]
	assert scores == sorted(scores, reverse=True)
	assert all(0.0 <= score <= 1.0 for score in scores)


@pytest.mark.asyncio
async def test_search_endpoint_type_filter(api_client):
	await _seed()

	response = await api_client.get(
		"/search",
		params={"q": "travel", "type": "hashtags"},
		headers={"X-User-Id": USER_ME},
	)
	payload = response.json()

	assert response.status_code == 200
	assert [item["type"] for item in payload["items"]] == ["hashtag"]
	assert payload["items"][0]["hashtag"]["tag"] == "travel"
	assert payload["items"][0]["hashtag"]["post_count"] == 3


@pytest.mark.asyncio
async def test_search_endpoint_accepts_bearer_token(api_client):
	await _seed()
	token = jwt_helper.encode_access(USER_ME)

	response = await api_client.get(
		"/search",
		params={"q": "eve", "type": "users"},
		headers={"Authorization": f"Bearer {token}"},
	)

	assert response.status_code == 200
	assert response.json()["items"][0]["user"]["id"] == USER_EVE


@pytest.mark.asyncio
async def test_invalid_bearer_token_rejected(api_client):
	response = await api_client.get("/search", params={"q": "eve"}, headers={"Authorization": "Bearer nope"})

	assert response.status_code == 401
	assert response.json()["detail"] == "invalid_token"
	assert "request_id" in response.json()


@pytest.mark.asyncio
async def test_anonymous_caller_gets_empty_results(api_client):
	await _seed()

	search = await api_client.get("/search", params={"q": "eve"})
	suggestions = await api_client.get("/search/suggestions", params={"q": "ev"})
	trending = await api_client.get("/search/trending")

	assert search.status_code == 200
	assert search.json()["items"] == []
	assert suggestions.json()["items"] == []
	assert trending.json()["items"] == []


@pytest.mark.asyncio
async def test_suggestions_endpoint(api_client):
	await _seed()

	response = await api_client.get("/search/suggestions", params={"q": "ev"}, headers={"X-User-Id": USER_ME})
	items = response.json()["items"]

	assert response.status_code == 200
	assert items[0] == {
		"id": f"suggestion-user-{USER_EVE}",
		"text": "Eve Search",
		"type": "user",
		"avatar": None,
	}
	assert len(items) <= 6


@pytest.mark.asyncio
async def test_trending_endpoint(api_client):
	await _seed()

	response = await api_client.get("/search/trending", params={"limit": 5}, headers={"X-User-Id": USER_ME})
	items = response.json()["items"]

	assert response.status_code == 200
	assert len(items) == 1
	assert items[0]["id"] == "trending-travel"
	assert items[0]["post_count"] == 3
	assert items[0]["category"] == "lifestyle"


@pytest.mark.asyncio
async def test_validation_errors_use_envelope(api_client):
	response = await api_client.get(
		"/search",
		params={"q": "eve", "limit": 0, "type": "rooms"},
		headers={"X-User-Id": USER_ME},
	)
	payload = response.json()

	assert response.status_code == 422
	assert payload["detail"] == "validation_error"
	assert payload["errors"]
	assert payload["request_id"]
	assert response.headers["X-Request-Id"] == payload["request_id"]


@pytest.mark.asyncio
async def test_search_rate_limited(api_client, monkeypatch):
	await _seed()
	monkeypatch.setattr(settings, "search_rate_per_minute", 2)

	statuses = []
	for _ in range(3):
		response = await api_client.get("/search", params={"q": "eve"}, headers={"X-User-Id": USER_ME})
		statuses.append(response.status_code)

	assert statuses == [200, 200, 429]
	assert response.json()["detail"] == "rate_limit"
	assert 1 <= int(response.headers["Retry-After"]) <= 60
