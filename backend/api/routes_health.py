"""
Endpoint de santé pour vérifier la disponibilité de l'API et de ses backends.

Expose `/health` pour signaler l'état général de l'application, du stockage d'images et du mode
de régénération des captures.
"""


from fastapi import APIRouter, Depends

from backend.api.deps import get_container
from backend.core.container import Container

router = APIRouter(tags=["health"])


@router.get("/health")
def health(c: Container = Depends(get_container)):
    """Vérifie la disponibilité de l'API et les backends configurés."""
    return {
        "status": "ok",
        "storage": c.engine.dialect.name,
        "assets": getattr(c, "asset_backend", "unknown"),
        "dispatcher": getattr(c.dispatcher, "name", "unknown"),
        "maintenance": c.settings.MAINTENANCE_MODE,
    }
