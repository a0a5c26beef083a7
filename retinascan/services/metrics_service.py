from prometheus_client import Counter, Histogram, generate_latest
import time
import logging
from collections import deque
from typing import Deque, Dict, Any, Tuple

logger = logging.getLogger("MetricsService")

WINDOW_SECONDS = 600
ALERT_THRESHOLD = 0.1
MIN_SAMPLES = 10

CALL_COUNT = Counter(
    "retinascan_calls_total",
    "Total outbound screening calls",
    ["service", "outcome"]
)

LATENCY_HISTOGRAM = Histogram(
    "retinascan_latency_seconds",
    "Latency of outbound screening calls in seconds",
    ["service"]
)

FALLBACK_COUNT = Counter(
    "retinascan_fallbacks_total",
    "Calls answered from a static fallback instead of the remote service",
    ["service", "reason"]
)

class MetricsService:
    # service -> (timestamp, "success" | "error" | "fallback") within the rolling window
    _history: Dict[str, Deque[Tuple[float, str]]] = {}

    @staticmethod
    def record_latency(service: str, duration: float):
        LATENCY_HISTOGRAM.labels(service=service).observe(duration)

    @staticmethod
    def record_error(service: str, error_type: str):
        CALL_COUNT.labels(service=service, outcome=error_type).inc()
        MetricsService._observe(service, "error")

    @staticmethod
    def record_success(service: str):
        CALL_COUNT.labels(service=service, outcome="success").inc()
        MetricsService._observe(service, "success")

    @staticmethod
    def record_fallback(service: str, reason: str):
        """Record that a failed call was answered locally. Call before record_error for the same call."""
        FALLBACK_COUNT.labels(service=service, reason=reason).inc()
        MetricsService._observe(service, "fallback")

    @classmethod
    def _window(cls, service: str, now: float) -> Deque[Tuple[float, str]]:
        events = cls._history.setdefault(service, deque())
        while events and now - events[0][0] >= WINDOW_SECONDS:
            events.popleft()
        return events

    @staticmethod
    def _summarize(events) -> Dict[str, Any]:
        calls = sum(1 for _, kind in events if kind != "fallback")
        errors = sum(1 for _, kind in events if kind == "error")
        fallbacks = min(sum(1 for _, kind in events if kind == "fallback"), errors)
        # Errors the caller actually saw; recovered ones were served a fallback.
        unrecovered = errors - fallbacks
        unrecovered_rate = unrecovered / calls if calls else 0.0
        fallback_rate = fallbacks / calls if calls else 0.0
        if unrecovered_rate > ALERT_THRESHOLD:
            status = "UNHEALTHY"
        elif fallback_rate > ALERT_THRESHOLD:
            status = "DEGRADED"
        else:
            status = "HEALTHY"
        return {
            "status": status,
            "error_rate": f"{unrecovered_rate * 100:.1f}%",
            "fallback_rate": f"{fallback_rate * 100:.1f}%",
            "sample_size": calls,
        }

    @classmethod
    def _observe(cls, service: str, kind: str):
        now = time.time()
        events = cls._window(service, now)
        events.append((now, kind))
        if kind == "fallback":
            return
        summary = cls._summarize(events)
        if summary["sample_size"] >= MIN_SAMPLES and summary["status"] == "UNHEALTHY":
            logger.critical(f"CRITICAL_SYS_ALERT: {service} failure rate is {summary['error_rate']}!")

    @classmethod
    def get_health_report(cls) -> Dict[str, Any]:
        now = time.time()
        report = {}
        for service in list(cls._history):
            events = cls._window(service, now)
            if events:
                report[service] = cls._summarize(events)
        return report

    @classmethod
    def reset(cls):
        cls._history = {}

def render_metrics() -> bytes:
    return generate_latest()
