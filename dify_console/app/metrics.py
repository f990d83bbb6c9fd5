"""
Métriques Prometheus pour l'application.

Ce module définit les métriques Prometheus du service: requêtes HTTP entrantes, appels à la Dify
Console API et issues des synchronisations DSL.
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Appels sortants vers les instances Dify
DIFY_API_REQUESTS = Counter(
    "dify_api_requests_total",
    "Calls to the Dify Console API",
    ["operation", "outcome"],
)

# Synchronisation DSL: outcome in {created, unchanged, failed}
DSL_SYNC_TOTAL = Counter(
    "dsl_sync_total",
    "DSL synchronisation outcomes",
    ["outcome"],
)
DSL_VERSIONS_PRUNED = Counter(
    "dsl_versions_pruned_total",
    "DSL versions deleted by the retention policy",
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware pour collecter les métriques Prometheus des requêtes HTTP."""

    async def dispatch(self, request: Request, call_next):
        """Mesure la latence et compte les requêtes par route et statut."""
        start = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        route_path = getattr(route, "path", request.url.path)
        REQUEST_COUNT.labels(request.method, route_path, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route_path).observe(time.perf_counter() - start)
        return response


@metrics_router.get("/metrics")
def metrics() -> Response:
    """Expose les métriques au format texte Prometheus."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
