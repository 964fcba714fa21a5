"""Normalisation du positionnement d'un diagramme.

Translate le positionnement pour que sa boîte englobante commence à l'origine (min x = 0,
min y = 0). Fonction pure et idempotente.
"""

from __future__ import annotations

from backend.domain.diagram import ContentModelPosition, Point


def normalize_layout(position: ContentModelPosition) -> ContentModelPosition:
    """Retourne un nouveau positionnement translaté de (-min x, -min y).

    Un positionnement vide est retourné tel quel (copie), faute de minimum.
    """
    points = position.content_types
    if not points:
        return position.model_copy(deep=True)
    smallest_x = min(p.x for p in points.values())
    smallest_y = min(p.y for p in points.values())
    return ContentModelPosition(
        content_types={
            node_id: Point(x=p.x - smallest_x, y=p.y - smallest_y) for node_id, p in points.items()
        }
    )
