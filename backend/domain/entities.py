"""
Entités du domaine métier (POPO).

Objets retournés par les dépôts et manipulés par les services: utilisateurs, modèles de contenu,
versions et images dérivées.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from backend.domain.visibility import Visibility


@dataclass
class User:
    """Utilisateur identifié par le sujet de son jeton."""

    id: str
    auth_subject: str
    email: str
    name: str = ""
    picture: str = ""


@dataclass
class ImageAsset:
    """
    Image stockée chez le fournisseur (CDN).

    Attributs
    - public_id: identifiant public attribué par le fournisseur.
    - version: estampille de révision (change à chaque écrasement).
    - signature: signature d'intégrité renvoyée à l'upload.
    - width/height: dimensions en pixels.
    """

    id: str
    public_id: str
    version: int
    signature: str
    width: int | None
    height: int | None
    resource_type: str = "image"
    type: str = "upload"


@dataclass
class ContentModelVersion:
    """Instantané graphe + positionnement; seule la dernière version est modifiable."""

    id: str
    content_model_id: str
    version: int
    name: str
    model: list[dict[str, Any]]
    position: dict[str, Any]
    author_id: str
    image: ImageAsset | None = None
    image_no_connections: ImageAsset | None = None
    created_at: datetime | None = None


@dataclass
class ContentModel:
    """Modèle de contenu avec sa dernière version."""

    id: str
    slug: str
    title: str
    description: str
    user_id: str
    visibility: Visibility
    latest: ContentModelVersion
    cms: str = "contentful"
    og_meta_image: ImageAsset | None = None
    owner: User | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Page:
    """Page de résultats avec informations de pagination."""

    items: list[ContentModel] = field(default_factory=list)
    total: int = 0
    has_next: bool = False
    has_prev: bool = False
