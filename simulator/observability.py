"""Request observability: Prometheus metrics for the simulator."""
from typing import Optional
import time

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

request_counter = Counter(
    "simulator_requests_total",
    "Total simulated API requests",
    ["endpoint", "status"],
)

request_latency = Histogram(
    "simulator_request_duration_seconds",
    "Time to produce a simulated response (stream start for SSE)",
    ["endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)

quota_rejections = Counter(
    "simulator_quota_rejections_total",
    "Requests rejected by a quota",
    ["axis"],
)

faults_injected = Counter(
    "simulator_faults_injected_total",
    "Simulated error responses",
    ["status"],
)

stream_events = Counter(
    "simulator_stream_events_total",
    "Server-sent events written",
    ["protocol"],
)

streams_cancelled = Counter(
    "simulator_streams_cancelled_total",
    "Streams stopped because the consumer went away",
    ["protocol"],
)

metrics_router = APIRouter()


@metrics_router.get("/metrics")
async def metrics_endpoint():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def record_request(endpoint: str, status_code: int, duration: float):
    request_counter.labels(endpoint=endpoint, status=str(status_code)).inc()
    request_latency.labels(endpoint=endpoint).observe(duration)


def record_quota_rejection(axis: str):
    quota_rejections.labels(axis=axis).inc()


def record_fault(status_code: int):
    faults_injected.labels(status=str(status_code)).inc()


def record_stream_event(protocol: str):
    stream_events.labels(protocol=protocol).inc()


def record_stream_cancelled(protocol: str):
    streams_cancelled.labels(protocol=protocol).inc()


def request_timer() -> float:
    return time.perf_counter()


def elapsed(start_time: Optional[float]) -> float:
    if start_time is None:
        return 0.0
    return time.perf_counter() - start_time
