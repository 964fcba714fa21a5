"""
Métriques Prometheus pour l'application.

Ce module définit les métriques HTTP, celles du pipeline de captures et de la délégation des
régénérations en tâche de fond, ainsi que la route `/metrics`.
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Pipeline de captures
SCREENSHOT_PIPELINE_RUNS = Counter(
    "screenshot_pipeline_runs_total",
    "Screenshot pipeline runs by outcome",
    ["result"],
)
SCREENSHOT_PIPELINE_DURATION = Histogram(
    "screenshot_pipeline_duration_seconds",
    "Duration of screenshot pipeline runs",
    buckets=[1, 2, 5, 10, 20, 40, 80, 160],
)
SCREENSHOT_UPLOADS = Counter(
    "screenshot_uploads_total",
    "Images uploaded to the asset store",
    ["kind", "mode"],
)

# Délégation en tâche de fond
SCREENSHOT_DISPATCH_TOTAL = Counter(
    "screenshot_dispatch_total",
    "Regeneration plans handed to the background dispatcher",
    ["dispatcher", "result"],
)


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Compte les requêtes et mesure leur latence par route (gabarit, pas l'URL brute)."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        route = _route_label(request)
        REQUEST_LATENCY.labels(route=route).observe(time.perf_counter() - start)
        REQUEST_COUNT.labels(
            method=request.method, route=route, status=str(response.status_code)
        ).inc()
        return response


@metrics_router.get("/metrics")
def metrics() -> Response:
    """Expose les métriques au format texte Prometheus."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
