"""
Moteur de décision de version.

Compare une mise à jour proposée avec la dernière version stockée et décide:
- aucune nouvelle version (mise à jour des champs scalaires uniquement),
- correction en place du positionnement de la dernière version,
- création de la version N+1.

Fournit aussi le plan de régénération des trois images dérivées (méta, diagramme,
diagramme sans connexions) transmis au pipeline de captures.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from backend.domain.diagram import (
    ContentModelGraph,
    ContentModelPosition,
    graphs_equal,
    layouts_equal,
)
from backend.domain.errors import ValidationError
from backend.domain.position import normalize_layout
from backend.domain.visibility import Visibility


class ChangeKind(str, Enum):
    """Classification d'une mise à jour."""

    NONE = "none"
    PATCH_LAYOUT = "patch_layout"
    NEW_VERSION = "new_version"


@dataclass(frozen=True)
class LatestVersion:
    """Dernière version stockée, telle que comparée par le moteur."""

    version: int
    model: ContentModelGraph
    position: ContentModelPosition


@dataclass(frozen=True)
class ProposedUpdate:
    """Mise à jour partielle; `None` signifie « non fourni »."""

    title: str | None = None
    description: str | None = None
    visibility: Visibility | None = None
    model: ContentModelGraph | None = None
    position: ContentModelPosition | None = None


@dataclass(frozen=True)
class VersionDecision:
    """Décision du moteur et valeurs à appliquer."""

    kind: ChangeKind
    model_changed: bool
    layout_changed: bool
    title_changed: bool
    title: str | None
    description: str | None
    visibility: Visibility | None
    next_version: int | None = None
    version_name: str | None = None
    model: ContentModelGraph | None = None
    position: ContentModelPosition | None = None


def clean_required_text(value: str, field_name: str) -> str:
    """Retire les espaces et rejette une valeur vide."""
    cleaned = value.strip()
    if not cleaned:
        raise ValidationError(f"{field_name}_required")
    return cleaned


def classify_update(
    current_title: str, latest: LatestVersion, proposed: ProposedUpdate
) -> VersionDecision:
    """Classe une mise à jour proposée par rapport à la dernière version.

    Ordre de priorité:
    1. ni graphe ni positionnement modifiés → champs scalaires seulement;
    2. positionnement seul → correction en place de la dernière version;
    3. graphe seul → version N+1 avec le positionnement hérité;
    4. les deux → version N+1 avec le nouveau graphe et le nouveau positionnement normalisé.
    """
    title = None if proposed.title is None else clean_required_text(proposed.title, "title")
    description = (
        None
        if proposed.description is None
        else clean_required_text(proposed.description, "description")
    )

    model_changed = proposed.model is not None and not graphs_equal(proposed.model, latest.model)
    normalized = None if proposed.position is None else normalize_layout(proposed.position)
    layout_changed = normalized is not None and not layouts_equal(normalized, latest.position)
    title_changed = title is not None and title != current_title

    common: dict[str, Any] = {
        "model_changed": model_changed,
        "layout_changed": layout_changed,
        "title_changed": title_changed,
        "title": title,
        "description": description,
        "visibility": proposed.visibility,
    }

    if not model_changed and not layout_changed:
        return VersionDecision(kind=ChangeKind.NONE, **common)
    if layout_changed and not model_changed:
        return VersionDecision(kind=ChangeKind.PATCH_LAYOUT, position=normalized, **common)
    return VersionDecision(
        kind=ChangeKind.NEW_VERSION,
        next_version=latest.version + 1,
        version_name=title if title is not None else current_title,
        model=proposed.model,
        position=normalized if layout_changed else latest.position,
        **common,
    )


@dataclass(frozen=True)
class RegenerationPlan:
    """Images à (re)générer et identifiants publics à écraser.

    Un identifiant présent fait passer l'upload du mode « création » au mode « écrasement »,
    ce qui conserve une URL stable.
    """

    generate_meta_image: bool = True
    generate_diagram_images: bool = True
    meta_image_public_id: str | None = None
    diagram_image_public_id: str | None = None
    diagram_no_connections_image_public_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegenerationPlan:
        known = {k: data[k] for k in cls.__dataclass_fields__ if k in data}
        return cls(**known)


def initial_plan() -> RegenerationPlan:
    """Plan d'une création: toutes les images, toutes nouvelles."""
    return RegenerationPlan()


def plan_regeneration(
    decision: VersionDecision,
    meta_image_public_id: str | None,
    diagram_image_public_id: str | None,
    diagram_no_connections_image_public_id: str | None,
) -> RegenerationPlan | None:
    """Déduit le plan de régénération d'une décision (None: rien à régénérer)."""
    if decision.model_changed:
        # La nouvelle version n'a pas encore d'images: seule la méta est écrasée
        return RegenerationPlan(meta_image_public_id=meta_image_public_id)
    if decision.layout_changed:
        return RegenerationPlan(
            meta_image_public_id=meta_image_public_id,
            diagram_image_public_id=diagram_image_public_id,
            diagram_no_connections_image_public_id=diagram_no_connections_image_public_id,
        )
    if decision.title_changed:
        return RegenerationPlan(
            generate_diagram_images=False,
            meta_image_public_id=meta_image_public_id,
        )
    return None
