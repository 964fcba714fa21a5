"""
Régénération en masse des captures des modèles les plus récents.

Opération de maintenance: elle ne s'exécute que si le mode maintenance est explicitement activé
(`MAINTENANCE_MODE=true` ou `--maintenance`). Chaque modèle reçoit un plan complet qui écrase
les identifiants publics existants.

Usage:
    python -m scripts.backfill_screenshots --limit 50 --maintenance
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass

import structlog
from sqlalchemy.engine import Engine

from backend.core.settings import Settings
from backend.domain.services import ContentModelService
from backend.infra.ops.dispatch import ScreenshotDispatcher
from backend.infra.repo.db import session_scope

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MaintenanceMode:
    """Drapeau de maintenance passé explicitement aux opérations qui l'exigent."""

    enabled: bool = False

    @classmethod
    def from_settings(cls, settings: Settings, override: bool = False) -> MaintenanceMode:
        return cls(enabled=override or settings.MAINTENANCE_MODE)


def backfill_screenshots(
    engine: Engine,
    dispatcher: ScreenshotDispatcher,
    maintenance: MaintenanceMode,
    limit: int = 100,
) -> list[str]:
    """Planifie la régénération complète des `limit` derniers modèles; retourne leurs slugs."""
    if not maintenance.enabled:
        log.warning("backfill_refused", reason="maintenance_mode_disabled")
        return []
    with session_scope(engine) as session:
        service = ContentModelService(session, dispatcher)
        recent = service.models.list_recent(max(0, limit))
        for content_model in recent:
            service.schedule_full_regeneration(content_model)
        slugs = [cm.slug for cm in recent]
    log.info("backfill_scheduled", count=len(slugs))
    return slugs


def main(argv: list[str] | None = None) -> int:
    """Point d'entrée CLI; code 2 si le mode maintenance n'est pas actif."""
    parser = argparse.ArgumentParser(description="Regenerate screenshots of recent content models")
    parser.add_argument("--limit", type=int, default=100)
    parser.add_argument("--maintenance", action="store_true", help="Enable maintenance mode")
    args = parser.parse_args(argv)

    # Import local: le conteneur lit la configuration et ouvre le moteur SQL
    from backend.core.container import container
    from backend.core.logging import setup_logging

    setup_logging(container.settings.LOG_LEVEL, container.settings.LOG_JSON)
    maintenance = MaintenanceMode.from_settings(container.settings, override=args.maintenance)
    if not maintenance.enabled:
        print("maintenance mode is disabled; pass --maintenance or set MAINTENANCE_MODE=true")
        return 2
    slugs = backfill_screenshots(container.engine, container.dispatcher, maintenance, args.limit)
    print(f"scheduled={len(slugs)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
