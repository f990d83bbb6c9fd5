"""
Application principale FastAPI.

Ce module assemble les composants du back-office de synchronisation Dify : middlewares, routes
d'administration et métriques.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, métriques, timing)
- Monter les routers (santé, instances, comptes, applications, métriques)
"""

from __future__ import annotations

from fastapi import FastAPI

from dify_console.api.routes_accounts import router as accounts_router
from dify_console.api.routes_apps import router as apps_router
from dify_console.api.routes_health import router as health_router
from dify_console.api.routes_instances import router as instances_router
from dify_console.app.metrics import PrometheusMiddleware, metrics_router
from dify_console.core.container import container
from dify_console.core.logging import setup_logging
from dify_console.middlewares.request_id import RequestIDMiddleware
from dify_console.middlewares.timing import TimingMiddleware


def create_app() -> FastAPI:
    """Construit et retourne l'application FastAPI prête à l'usage."""
    settings = container.settings
    setup_logging(settings.LOG_LEVEL)
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.include_router(health_router)
    app.include_router(instances_router)
    app.include_router(accounts_router)
    app.include_router(apps_router)
    app.include_router(metrics_router)
    return app


app = create_app()
