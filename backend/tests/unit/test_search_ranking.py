from datetime import datetime, timedelta, timezone

import pytest

from socialsearch.domain.search import ranking

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _user_score(username: str, **overrides) -> float:
	params = dict(
		username=username,
		display_name="Someone Else",
		verified=False,
		followers_count=0,
		query="test",
		position=5,
	)
	params.update(overrides)
	return ranking.user_search_score(**params)


def test_exact_username_beats_substring_match():
	exact = _user_score("test")
	partial = _user_score("testuser")
	assert exact > partial
	assert partial == pytest.approx(0.7)


def test_user_score_is_case_insensitive_and_clamped():
	assert _user_score("TEST", position=0, verified=True, followers_count=10_000) == 1.0
	assert _user_score("nomatch", position=30) == 0.0


def test_user_score_display_name_boosts():
	score = _user_score("nomatch", display_name="Test", position=9)
	# 0.1 base + 0.4 exact display + 0.1 display contains
	assert score == pytest.approx(0.6)


def test_post_score_counts_term_occurrences_and_engagement():
	score = ranking.post_search_score(
		content="Python tips and python tricks",
		likes_count=9,
		comments_count=0,
		author_verified=False,
		created_at=NOW - timedelta(days=3),
		query="python",
		position=10,
		now=NOW,
	)
	# 0.5 base + 0.1 likes + 2 * 0.1 occurrences
	assert score == pytest.approx(0.8)


def test_post_score_recency_and_verified_boost():
	old = ranking.post_search_score(
		content="nothing here",
		likes_count=0,
		comments_count=0,
		author_verified=True,
		created_at=NOW - timedelta(hours=30),
		query="zzz",
		position=12,
		now=NOW,
	)
	fresh = ranking.post_search_score(
		content="nothing here",
		likes_count=0,
		comments_count=0,
		author_verified=True,
		created_at=NOW - timedelta(hours=2),
		query="zzz",
		position=12,
		now=NOW,
	)
	assert old == pytest.approx(0.6)
	assert fresh == pytest.approx(0.8)


def test_post_score_treats_query_terms_literally():
	score = ranking.post_search_score(
		content="a+b and a+b",
		likes_count=0,
		comments_count=0,
		author_verified=False,
		created_at=NOW - timedelta(days=2),
		query="a+b",
		position=16,
		now=NOW,
	)
	assert score == pytest.approx(0.4)


def test_hashtag_score():
	assert ranking.hashtag_search_score("coffee", "coffee", 9) == 1.0
	assert ranking.hashtag_search_score("coffeetime", "coffee", 0) == pytest.approx(0.8)
	assert ranking.hashtag_search_score("icedcoffee", "coffee", 0) == pytest.approx(0.5)


def test_trending_score_empty_is_zero():
	assert ranking.trending_score([], 0) == 0


def test_trending_score_blends_volume_and_recency():
	recent = [NOW - timedelta(hours=h) for h in (1, 2, 3)]
	spread = [NOW - timedelta(days=d) for d in (2, 4, 6)]
	assert ranking.trending_score(recent, 3, now=NOW) == pytest.approx(0.03 * 0.4 + 0.6)
	assert ranking.trending_score(spread, 3, now=NOW) == pytest.approx(0.03 * 0.4)
	assert ranking.trending_score(recent, 500, now=NOW) == pytest.approx(1.0)


def test_trending_score_accepts_naive_timestamps():
	naive = [(NOW - timedelta(hours=1)).replace(tzinfo=None)]
	assert ranking.trending_score(naive, 1, now=NOW) == pytest.approx(0.01 * 0.4 + 0.6)
