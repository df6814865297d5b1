"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
	"consumed_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"consumed_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

AUTH_FAILURES = Counter(
	"consumed_auth_failures_total",
	"Requests rejected for missing or invalid caller identity",
	["reason"],
)

USERS_CREATED = Counter(
	"consumed_users_lazily_created_total",
	"User profiles created on first sight of an auth identity",
)

POINTS_COMPUTED = Counter(
	"consumed_points_computed_total",
	"Score computations completed",
)

POINTS_COMPUTE_LATENCY = Histogram(
	"consumed_points_compute_duration_seconds",
	"Time spent computing a user's score and rank",
	buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
)

SOFT_READ_FAILURES = Counter(
	"consumed_activity_read_failures_total",
	"Activity reads that failed and were treated as empty",
	["source"],
)

SNAPSHOT_WRITE_FAILURES = Counter(
	"consumed_points_snapshot_failures_total",
	"Score snapshot upserts that failed",
)

LEADERBOARD_BUILDS = Counter(
	"consumed_leaderboard_builds_total",
	"Leaderboards computed",
	["category", "scope", "period"],
)

POINTS_EVENTS = Counter(
	"consumed_points_events_total",
	"Events appended to the points stream",
	["event"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_auth_failure(reason: str) -> None:
	AUTH_FAILURES.labels(reason=reason).inc()


def inc_user_created() -> None:
	USERS_CREATED.inc()


def observe_points_computed(elapsed_seconds: float) -> None:
	POINTS_COMPUTED.inc()
	POINTS_COMPUTE_LATENCY.observe(elapsed_seconds)


def inc_soft_read_failure(source: str) -> None:
	SOFT_READ_FAILURES.labels(source=source).inc()


def inc_snapshot_failure() -> None:
	SNAPSHOT_WRITE_FAILURES.inc()


def inc_leaderboard_build(category: str, scope: str, period: str) -> None:
	LEADERBOARD_BUILDS.labels(category=category, scope=scope, period=period).inc()


def inc_points_event(event: str) -> None:
	POINTS_EVENTS.labels(event=event).inc()
