"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"watchme_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"watchme_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"watchme_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"watchme_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

AUTH_EVENTS = Counter(
	"watchme_auth_events_total",
	"Authentication events by method and result",
	["method", "result"],
)

PROFILE_CREATE_FAILURES = Counter(
	"watchme_profile_create_failures_total",
	"Profile documents that could not be created after retries",
)

INTERACTIONS = Counter(
	"watchme_interactions_total",
	"Like, dislike, watched and rating writes",
	["kind"],
)

DISCOVER_SWIPES = Counter(
	"watchme_discover_swipes_total",
	"Discover deck swipes by direction",
	["direction"],
)

DISCOVER_REFILLS = Counter(
	"watchme_discover_refills_total",
	"Discover deck builds and refills",
	["reason"],
)

WATCHLIST_WRITES = Counter(
	"watchme_watchlist_writes_total",
	"Watchlist mutations",
	["action"],
)

FRIEND_REQUESTS = Counter(
	"watchme_friend_requests_total",
	"Friend request lifecycle events",
	["action"],
)

BLEND_REQUESTS = Counter(
	"watchme_blend_requests_total",
	"Blend request lifecycle events",
	["action"],
)

CHAT_MESSAGES = Counter(
	"watchme_chat_messages_total",
	"Chat messages sent by type",
	["type"],
)

RECOMMENDATIONS_SENT = Counter(
	"watchme_recommendations_sent_total",
	"Title recommendations sent to friends",
)

AI_CALLS = Counter(
	"watchme_ai_calls_total",
	"Generative model calls by flow and outcome",
	["flow", "outcome"],
)

AI_LATENCY = Histogram(
	"watchme_ai_call_duration_seconds",
	"Generative model call latency",
	["flow"],
	buckets=(0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

CATALOG_CALLS = Counter(
	"watchme_catalog_calls_total",
	"Content API calls by endpoint group and outcome",
	["endpoint", "outcome"],
)

TRANSACTION_RETRIES = Counter(
	"watchme_docstore_transaction_retries_total",
	"Optimistic transactions re-run after a conflict",
)

REDIS_UP = Gauge("watchme_redis_up", "Redis readiness (1 up, 0 down)")
REDIS_LATENCY = Histogram("watchme_redis_ping_seconds", "Redis ping latency")
POSTGRES_UP = Gauge("watchme_postgres_up", "Postgres readiness (1 up, 0 down)")
POSTGRES_LATENCY = Histogram("watchme_postgres_ping_seconds", "Postgres ping latency")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def inc_auth(method: str, result: str) -> None:
	AUTH_EVENTS.labels(method=method, result=result).inc()


def inc_profile_create_failure() -> None:
	PROFILE_CREATE_FAILURES.inc()


def inc_interaction(kind: str) -> None:
	INTERACTIONS.labels(kind=kind).inc()


def inc_swipe(direction: str) -> None:
	DISCOVER_SWIPES.labels(direction=direction).inc()


def inc_deck_refill(reason: str) -> None:
	DISCOVER_REFILLS.labels(reason=reason).inc()


def inc_watchlist_write(action: str) -> None:
	WATCHLIST_WRITES.labels(action=action).inc()


def inc_friend_request(action: str) -> None:
	FRIEND_REQUESTS.labels(action=action).inc()


def inc_blend_request(action: str) -> None:
	BLEND_REQUESTS.labels(action=action).inc()


def inc_chat_message(message_type: str) -> None:
	CHAT_MESSAGES.labels(type=message_type).inc()


def inc_recommendation_sent() -> None:
	RECOMMENDATIONS_SENT.inc()


def observe_ai_call(flow: str, outcome: str, elapsed_seconds: float | None = None) -> None:
	AI_CALLS.labels(flow=flow, outcome=outcome).inc()
	if elapsed_seconds is not None:
		AI_LATENCY.labels(flow=flow).observe(elapsed_seconds)


def inc_catalog_call(endpoint: str, outcome: str) -> None:
	CATALOG_CALLS.labels(endpoint=endpoint, outcome=outcome).inc()


def inc_transaction_retry() -> None:
	TRANSACTION_RETRIES.inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
