"""
Structures typées du diagramme de modèle de contenu.

Ce module décrit le graphe (types de contenu, champs, liens) et le positionnement 2-D des nœuds,
ainsi que les fonctions d'égalité structurelle utilisées pour détecter un changement.

Les clés inconnues des payloads sont ignorées: seules les informations décrites ici sont
conservées et comparées.
"""

from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_validator

LinkType = Literal["Asset", "Entry"]

# Écart absolu en deçà duquel deux coordonnées sont tenues pour égales
COORDINATE_TOLERANCE = 1e-9


class _Schema(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SpaceLink(_Schema):
    """Référence vers l'espace Contentful (`sys.space`)."""

    sys: dict[str, Any]


class ContentTypeSys(_Schema):
    """Identité stable d'un type de contenu."""

    id: str
    type: str
    space: SpaceLink | None = None


class FieldItems(_Schema):
    """Description des éléments d'un champ de type tableau."""

    type: str
    validations: list[dict[str, Any]] | None = None
    link_type: LinkType | None = Field(default=None, alias="linkType")


class ContentTypeField(_Schema):
    """Champ d'un type de contenu."""

    id: str
    name: str
    type: str
    localized: bool
    required: bool
    disabled: bool
    omitted: bool
    link_type: LinkType | None = Field(default=None, alias="linkType")
    validations: list[dict[str, Any]] | None = None
    items: FieldItems | None = None


class ContentType(_Schema):
    """Nœud du diagramme."""

    sys: ContentTypeSys
    name: str
    display_field: str | None = Field(alias="displayField")
    description: str | None
    fields: list[ContentTypeField]
    internal: bool | None = None


class ContentModelGraph(RootModel[list[ContentType]]):
    """Graphe complet: liste ordonnée des types de contenu."""

    @model_validator(mode="before")
    @classmethod
    def _unwrap_envelopes(cls, value: Any) -> Any:
        # Export CLI Contentful ({"contentTypes": [...]}) ou Delivery API ({"items": [...]})
        if isinstance(value, dict):
            for key in ("contentTypes", "items"):
                if key in value and isinstance(value[key], list):
                    return value[key]
        return value

    @property
    def node_ids(self) -> list[str]:
        return [ct.sys.id for ct in self.root]

    def canonical(self) -> list[dict[str, Any]]:
        """Forme JSON canonique (alias, sans valeurs nulles) stockée et comparée."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Point(_Schema):
    """Coordonnées d'un nœud."""

    x: float = Field(strict=True, allow_inf_nan=False)
    y: float = Field(strict=True, allow_inf_nan=False)


class ContentModelPosition(_Schema):
    """Positionnement: identifiant de nœud → coordonnées."""

    content_types: dict[str, Point] = Field(alias="contentTypes")

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_mapping(cls, value: Any) -> Any:
        """Enveloppe un mapping nu `{id: {x, y}}`.

        L'enveloppe est reconnue à sa forme (clé `contentTypes` dont la valeur est un mapping de
        points), pas à son seul nom: un nœud peut s'appeler `contentTypes`.
        """
        if isinstance(value, dict) and not _is_envelope(value):
            return {"contentTypes": value}
        return value

    def canonical(self) -> dict[str, Any]:
        return {
            "contentTypes": {
                node_id: {"x": _num(p.x), "y": _num(p.y)}
                for node_id, p in self.content_types.items()
            }
        }


def _is_envelope(value: dict) -> bool:
    for key in ("contentTypes", "content_types"):
        inner = value.get(key)
        if isinstance(inner, dict) and all(isinstance(p, dict) for p in inner.values()):
            return True
    return False


def _num(value: float) -> int | float:
    """Restitue un entier quand la coordonnée n'a pas de partie décimale."""
    return int(value) if float(value).is_integer() else value


def graphs_equal(a: ContentModelGraph, b: ContentModelGraph) -> bool:
    """Égalité structurelle de deux graphes.

    L'ordre des clés est ignoré et une clé absente équivaut à une valeur nulle; l'ordre des
    types de contenu et des champs est significatif.
    """
    return a.canonical() == b.canonical()


def layouts_equal(a: ContentModelPosition, b: ContentModelPosition) -> bool:
    """Égalité structurelle de deux positionnements (mêmes nœuds, mêmes coordonnées).

    Les coordonnées sont comparées à `COORDINATE_TOLERANCE` près: la normalisation soustrait des
    flottants et deux translations d'un même positionnement peuvent différer d'un arrondi.
    """
    if a.content_types.keys() != b.content_types.keys():
        return False
    return all(
        _same_coordinate(p.x, b.content_types[node_id].x)
        and _same_coordinate(p.y, b.content_types[node_id].y)
        for node_id, p in a.content_types.items()
    )


def _same_coordinate(left: float, right: float) -> bool:
    return math.isclose(left, right, rel_tol=0, abs_tol=COORDINATE_TOLERANCE)
