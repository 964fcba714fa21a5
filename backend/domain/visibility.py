"""
Politique de visibilité et d'accès en lecture aux modèles de contenu.

Règles:
- PUBLIC: toujours lisible.
- UNLISTED: lisible par quiconque connaît le slug, mais absent des listes par défaut.
- PRIVATE: lisible par le propriétaire, ou par un appelant présentant le secret de
  contournement partagé (utilisé uniquement par le pipeline de captures).
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from enum import Enum

from backend.domain.errors import ValidationError


class Visibility(str, Enum):
    """État de visibilité d'un modèle."""

    PUBLIC = "PUBLIC"
    UNLISTED = "UNLISTED"
    PRIVATE = "PRIVATE"


def bypass_secret_matches(presented: str | None, configured: str | None) -> bool:
    """Compare le secret présenté au secret configuré, en temps constant.

    Un secret non configuré ne valide jamais rien.
    """
    if not configured or not presented:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), configured.encode("utf-8"))


def can_read(
    visibility: Visibility,
    owner_id: str,
    viewer_id: str | None,
    presented_secret: str | None = None,
    configured_secret: str | None = None,
) -> bool:
    """Indique si l'appelant peut lire un modèle par son slug."""
    if visibility in (Visibility.PUBLIC, Visibility.UNLISTED):
        return True
    if viewer_id is not None and viewer_id == owner_id:
        return True
    return bypass_secret_matches(presented_secret, configured_secret)


@dataclass(frozen=True)
class ListingFilter:
    """Filtre effectif d'une requête de liste."""

    visibility: Visibility
    owner_id: str | None


def resolve_listing_filter(
    visibility: Visibility, viewer_id: str | None, user_filter: str | None = None
) -> ListingFilter:
    """Calcule le filtre de liste autorisé pour l'appelant.

    Une visibilité autre que PUBLIC exige un appelant authentifié et restreint la liste à ses
    propres modèles.
    """
    owner = user_filter or None
    if visibility is Visibility.PUBLIC:
        return ListingFilter(visibility=visibility, owner_id=owner)
    if viewer_id is None:
        raise ValidationError("authentication_required_for_visibility_filter")
    return ListingFilter(visibility=visibility, owner_id=viewer_id)
