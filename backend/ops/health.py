"""
Health check endpoints for operations monitoring.

Endpoints:
- /_health/live    - liveness probe (is the process running?)
- /_health/ready   - readiness probe (do both stores accept connections?)
- /_health/full    - full report: stores, broker, mirror drift
"""
import logging
import time
from typing import Any, Callable, Dict

import redis
from django.conf import settings
from django.db import DatabaseError, connections
from django.http import JsonResponse
from django.views import View

logger = logging.getLogger(__name__)


def _timed(check: Callable[[], Dict[str, Any]], errors: tuple) -> Dict[str, Any]:
    """Run `check`, adding duration_ms; listed errors become "unhealthy"."""
    start = time.time()
    try:
        result = {"status": "healthy", **check()}
    except errors as e:
        logger.warning("Health check failed: %s", e)
        result = {"status": "unhealthy", "error": str(e)}
    result["duration_ms"] = round((time.time() - start) * 1000, 2)
    return result


class HealthCheck:
    """Individual checks; each returns a dict with at least "status"."""

    @staticmethod
    def check_database(alias: str = "default") -> Dict[str, Any]:
        def ping():
            conn = connections[alias]
            conn.ensure_connection()
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            return {"alias": alias}

        result = _timed(ping, (DatabaseError,))
        result.setdefault("alias", alias)
        return result

    @staticmethod
    def check_stores() -> Dict[str, Any]:
        """Primary and mirror; the mirror being down degrades rather than fails."""
        primary = HealthCheck.check_database("default")
        mirror = HealthCheck.check_database(settings.MIRROR_DATABASE_ALIAS)

        if primary["status"] != "healthy":
            status = "unhealthy"
        elif mirror["status"] != "healthy":
            status = "degraded"
        else:
            status = "healthy"
        return {"status": status, "primary": primary, "mirror": mirror}

    @staticmethod
    def check_broker() -> Dict[str, Any]:
        """Redis behind Celery and the channel layer, when configured."""
        url = getattr(settings, "CELERY_BROKER_URL", None)
        if not url or not url.startswith(("redis://", "rediss://")):
            return {"status": "skipped", "reason": "Redis not configured"}

        return _timed(lambda: {"ping": redis.from_url(url).ping()}, (redis.RedisError,))

    @staticmethod
    def check_mirror_drift() -> Dict[str, Any]:
        """Events whose mirrored count disagrees with the primary, against MIRROR_DRIFT_THRESHOLD."""
        from mirror.synchronizer import find_drifted_events

        try:
            drifted = find_drifted_events()
        except DatabaseError as e:
            return {"status": "error", "error": str(e)}

        threshold = getattr(settings, "MIRROR_DRIFT_THRESHOLD", 0)
        return {
            "status": "healthy" if len(drifted) <= threshold else "degraded",
            "drifted_events": len(drifted),
            "threshold": threshold,
            "sample": drifted[:10],
        }

    @staticmethod
    def get_full_health() -> Dict[str, Any]:
        checks = {
            "stores": HealthCheck.check_stores(),
            "broker": HealthCheck.check_broker(),
            "mirror_drift": HealthCheck.check_mirror_drift(),
        }

        statuses = {c["status"] for c in checks.values()} - {"skipped"}
        if statuses <= {"healthy"}:
            overall = "healthy"
        elif "unhealthy" in statuses:
            overall = "unhealthy"
        else:
            overall = "degraded"

        return {
            "status": overall,
            "checks": checks,
            "version": getattr(settings, "VERSION", "unknown"),
            "environment": "development" if settings.DEBUG else "production",
        }


class LivenessView(View):
    """Always 200 while the process serves requests; touches nothing external."""

    def get(self, request):
        return JsonResponse({"status": "alive"})


class ReadinessView(View):
    """
    200 only if both stores accept connections.

    A mirror outage makes the service not ready even though registrations
    would still commit, because the push feeds would stall.
    """

    def get(self, request):
        stores = HealthCheck.check_stores()
        ready = stores["status"] == "healthy"

        return JsonResponse({
            "status": "ready" if ready else "not_ready",
            "database": stores["primary"],
            "mirror": stores["mirror"],
        }, status=200 if ready else 503)


class FullHealthView(View):
    """Full report for dashboards; keep it on the internal network."""

    def get(self, request):
        health = HealthCheck.get_full_health()
        return JsonResponse(health, status=200 if health["status"] == "healthy" else 503)
