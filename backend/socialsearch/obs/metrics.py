"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"social_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"social_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

POSTGRES_UP = Gauge("social_postgres_up", "Postgres availability (1=up,0=down)")

SEARCH_QUERIES = Counter(
	"social_search_queries_total",
	"Search queries executed",
	["kind"],
)

SEARCH_LATENCY = Histogram(
	"social_search_latency_seconds",
	"Search latency in seconds",
	["kind"],
	buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0),
)

SEARCH_RESULTS = Histogram(
	"social_search_results",
	"Results returned per search call",
	["kind"],
	buckets=(0, 1, 3, 6, 10, 20, 50),
)

SEARCH_PROVIDER_FAILURES = Counter(
	"social_search_provider_failures_total",
	"Entity provider calls that degraded to an empty result",
	["provider"],
)

SEARCH_FILTERED = Counter(
	"social_search_candidates_filtered_total",
	"Over-fetched candidates dropped by the visibility filter",
	["provider"],
)

TRENDING_TOPICS = Gauge(
	"social_trending_topics",
	"Topics returned by the latest trending computation",
)


def observe_request(route: str, method: str, status: int, latency_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(latency_seconds)


def mark_postgres(ok: bool) -> None:
	POSTGRES_UP.set(1 if ok else 0)


def inc_search_query(kind: str) -> None:
	SEARCH_QUERIES.labels(kind=kind).inc()


def observe_search_latency(kind: str, latency_seconds: float) -> None:
	SEARCH_LATENCY.labels(kind=kind).observe(latency_seconds)


def observe_search_results(kind: str, count: int) -> None:
	SEARCH_RESULTS.labels(kind=kind).observe(count)


def inc_provider_failure(provider: str) -> None:
	SEARCH_PROVIDER_FAILURES.labels(provider=provider).inc()


def inc_filtered(provider: str, count: int) -> None:
	if count > 0:
		SEARCH_FILTERED.labels(provider=provider).inc(count)


def set_trending_topics(count: int) -> None:
	TRENDING_TOPICS.set(count)
