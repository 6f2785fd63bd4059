"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary


REQUEST_COUNTER = Counter(
	"dealrate_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"dealrate_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

POSTS_CREATED = Counter(
	"dealrate_posts_created_total",
	"Posts created (always pending on creation)",
)

POSTS_CREATE_REJECTED = Counter(
	"dealrate_posts_create_rejected_total",
	"Post creations rejected",
	["reason"],
)

POST_TRANSITIONS = Counter(
	"dealrate_post_transitions_total",
	"Post status transitions",
	["to_status"],
)

RATINGS_SUBMITTED = Counter(
	"dealrate_ratings_submitted_total",
	"Rating submissions by outcome",
	["result"],
)

RATING_SCORES = Counter(
	"dealrate_rating_scores_total",
	"Accepted ratings by score",
	["score"],
)

REDIS_UP = Gauge("dealrate_redis_up", "Redis availability (1=up,0=down)")
REDIS_LATENCY = Summary("dealrate_redis_latency_seconds", "Redis ping latency (seconds)")

POSTGRES_UP = Gauge("dealrate_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("dealrate_postgres_latency_seconds", "Postgres ping latency (seconds)")

AUDIT_EMIT_FAILURES = Counter(
	"dealrate_audit_emit_failures_total",
	"Audit stream appends that failed after commit",
	["stream"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_post_created() -> None:
	POSTS_CREATED.inc()


def inc_post_create_rejected(reason: str) -> None:
	POSTS_CREATE_REJECTED.labels(reason=reason).inc()


def inc_post_transition(to_status: str) -> None:
	POST_TRANSITIONS.labels(to_status=to_status).inc()


def inc_rating_submitted(result: str) -> None:
	RATINGS_SUBMITTED.labels(result=result).inc()


def inc_rating_score(score: int) -> None:
	RATING_SCORES.labels(score=str(score)).inc()


def inc_audit_emit_failure(stream: str) -> None:
	AUDIT_EMIT_FAILURES.labels(stream=stream).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
