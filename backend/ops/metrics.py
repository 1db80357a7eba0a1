"""
Prometheus metrics endpoint.

Exposes application metrics in Prometheus format for scraping.

Metrics exposed:
- eventconnect_ledger_operations_total: Ledger operations by operation and outcome
- eventconnect_ledger_retries_total: Ledger transactions retried after contention
- eventconnect_mirror_write_failures_total: Mirror writes that failed (out-of-band report)
- eventconnect_events: Number of events in the primary store
- eventconnect_registrations: Number of registrations in the primary store
- eventconnect_mirror_drift_events: Events whose mirrored count disagrees with the primary
- eventconnect_request_duration_seconds: HTTP request duration histogram
"""
import logging
import re
import time

from django.http import HttpResponse
from django.views import View
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

logger = logging.getLogger(__name__)

_metrics_initialized = False

# Metric references (initialized lazily)
_ledger_operations = None
_ledger_retries = None
_mirror_failures = None
_events_gauge = None
_registrations_gauge = None
_mirror_drift = None
_request_duration = None
_active_requests = None


def _init_prometheus() -> None:
    """Create metric objects once per process."""
    global _metrics_initialized
    global _ledger_operations, _ledger_retries, _mirror_failures
    global _events_gauge, _registrations_gauge, _mirror_drift
    global _request_duration, _active_requests

    if _metrics_initialized:
        return

    _ledger_operations = Counter(
        "eventconnect_ledger_operations_total",
        "Registration ledger operations",
        ["operation", "outcome"],
    )

    _ledger_retries = Counter(
        "eventconnect_ledger_retries_total",
        "Ledger transactions retried after a database conflict",
        ["operation"],
    )

    _mirror_failures = Counter(
        "eventconnect_mirror_write_failures_total",
        "Mirror writes that failed and were not applied",
        ["operation"],
    )

    _events_gauge = Gauge(
        "eventconnect_events",
        "Number of events in the primary store",
    )

    _registrations_gauge = Gauge(
        "eventconnect_registrations",
        "Number of registrations in the primary store",
    )

    _mirror_drift = Gauge(
        "eventconnect_mirror_drift_events",
        "Events whose mirrored registration count differs from the primary",
    )

    _request_duration = Histogram(
        "eventconnect_request_duration_seconds",
        "HTTP request duration in seconds",
        ["method", "endpoint", "status"],
        buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    )

    _active_requests = Gauge(
        "eventconnect_active_requests",
        "Number of requests currently being processed",
    )

    _metrics_initialized = True
    logger.info("Prometheus metrics initialized")


def record_ledger_outcome(operation: str, outcome: str) -> None:
    """Count a ledger operation result ("ok" or an error code)."""
    _init_prometheus()
    _ledger_operations.labels(operation=operation, outcome=outcome).inc()


def record_ledger_retry(operation: str) -> None:
    _init_prometheus()
    _ledger_retries.labels(operation=operation).inc()


def record_mirror_failure(operation: str) -> None:
    """Report a mirror write failure; never raises."""
    _init_prometheus()
    _mirror_failures.labels(operation=operation).inc()


def collect_metrics():
    """Collect current gauge values from both stores."""
    _init_prometheus()

    try:
        from events.models import Event, Registration
        from mirror.synchronizer import find_drifted_events

        _events_gauge.set(Event.objects.count())
        _registrations_gauge.set(Registration.objects.count())
        _mirror_drift.set(len(find_drifted_events()))

    except Exception as e:
        logger.error(f"Error collecting metrics: {e}")


def get_prometheus_response():
    """Generate Prometheus metrics response."""
    try:
        # Collect current values
        collect_metrics()

        # Generate response
        output = generate_latest()
        return HttpResponse(output, content_type=CONTENT_TYPE_LATEST)

    except Exception as e:
        logger.error(f"Error generating metrics: {e}")
        return HttpResponse(
            f"# Error generating metrics: {e}\n",
            content_type="text/plain",
            status=500,
        )


class MetricsView(View):
    """
    Prometheus metrics endpoint.

    Exposes metrics in Prometheus format at /_metrics.
    Should be protected in production (internal network only).
    """

    def get(self, request):
        return get_prometheus_response()


def track_request_metrics(get_response):
    """
    Middleware to track request duration metrics.

    Add to MIDDLEWARE after SecurityMiddleware:
        "ops.metrics.track_request_metrics",
    """
    _init_prometheus()

    def middleware(request):
        start = time.time()
        _active_requests.inc()
        status = 500

        try:
            response = get_response(request)
            status = response.status_code
            return response
        finally:
            _active_requests.dec()
            duration = time.time() - start

            # Normalize endpoint for cardinality control
            endpoint = request.path
            endpoint = re.sub(r"/\d+/", "/{id}/", endpoint)
            endpoint = re.sub(r"/[0-9a-f-]{36}/", "/{uuid}/", endpoint)

            _request_duration.labels(
                method=request.method,
                endpoint=endpoint[:50],  # Truncate long paths
                status=f"{status // 100}xx",
            ).observe(duration)

    return middleware
