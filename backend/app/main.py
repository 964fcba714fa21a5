"""
Application principale FastAPI.

Ce module assemble tous les composants de l'application : middlewares,
routes, métriques et gestion des erreurs de l'API des modèles de contenu.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, métriques)
- Monter les routers (santé, modèles de contenu, utilisateurs, métriques)
- Installer les gestionnaires d'erreurs (enveloppe `{code, message, trace_id}`)
"""

from __future__ import annotations

from fastapi import FastAPI

from backend.api.routes_content_models import router as content_models_router
from backend.api.routes_health import router as health_router
from backend.api.routes_users import router as users_router
from backend.apigw.errors import install_error_handlers
from backend.app.metrics import PrometheusMiddleware, metrics_router
from backend.core.container import container
from backend.core.logging import setup_logging
from backend.middlewares.request_id import RequestIDMiddleware


def create_app() -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Configure le logging structuré (structlog)
    - Lit les paramètres d'exécution
    - Ajoute les middlewares utiles au debug/traçabilité
    - Publie les routes et installe les gestionnaires d'erreurs
    """
    settings = container.settings
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.include_router(health_router)
    app.include_router(content_models_router)
    app.include_router(users_router)
    app.include_router(metrics_router)
    install_error_handlers(app)
    return app


app = create_app()
