# Schémas Pydantic exposés par l'API (requêtes et réponses).

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from backend.domain.entities import ContentModel, ImageAsset, Page, User
from backend.infra.assets.base import AssetStore


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VersionInput(BaseModel):
    """Graphe et positionnement proposés; chaîne JSON ou objet déjà structuré."""

    model: Any = None
    position: Any = None


class CreateContentModelRequest(BaseModel):
    """Requête de création d'un modèle.

    Champs:
    - title, description: textes obligatoires (non vides après trim)
    - visibility: PUBLIC | UNLISTED | PRIVATE (PUBLIC par défaut)
    - version: graphe (`model`) et positionnement (`position`) initiaux
    """

    title: str
    description: str
    visibility: str | None = None
    version: VersionInput


class UpdateContentModelRequest(BaseModel):
    """Mise à jour partielle: seuls les champs fournis sont pris en compte."""

    title: str | None = None
    description: str | None = None
    visibility: str | None = None
    version: VersionInput | None = None


class UserPayload(BaseModel):
    email: str | None = None
    name: str = ""
    picture: str = ""


class ImageView(_CamelModel):
    src: str
    path: str
    width: int | None = None
    height: int | None = None


class OwnerView(_CamelModel):
    id: str
    name: str
    picture: str
    email: str | None = None


class VersionView(_CamelModel):
    id: str
    version: int
    name: str
    model: list[dict[str, Any]]
    position: dict[str, Any]
    created_at: datetime | None = None
    image: ImageView | None = None
    image_no_connections: ImageView | None = None


class ContentModelView(_CamelModel):
    id: str
    slug: str
    title: str
    description: str
    cms: str
    visibility: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    og_meta_image: ImageView | None = None
    user: OwnerView | None = None
    version: VersionView


class PaginationView(_CamelModel):
    has_next: bool
    has_prev: bool
    total: int


class ContentModelPageView(_CamelModel):
    items: list[ContentModelView]
    pagination: PaginationView


class UserView(_CamelModel):
    id: str
    email: str
    name: str
    picture: str


def image_view(asset: ImageAsset | None, store: AssetStore) -> ImageView | None:
    """Vue d'une image: URL et chemin de livraison construits par le stockage."""
    if asset is None:
        return None
    return ImageView(
        src=store.url(asset.public_id, asset.version, asset.resource_type),
        path=store.path(asset.public_id, asset.version, asset.resource_type),
        width=asset.width,
        height=asset.height,
    )


def owner_view(owner: User | None, viewer_id: str | None) -> OwnerView | None:
    # L'email n'est exposé qu'au propriétaire
    if owner is None:
        return None
    return OwnerView(
        id=owner.id,
        name=owner.name,
        picture=owner.picture,
        email=owner.email if viewer_id == owner.id else None,
    )


def content_model_view(
    cm: ContentModel, store: AssetStore, viewer_id: str | None = None
) -> ContentModelView:
    latest = cm.latest
    return ContentModelView(
        id=cm.id,
        slug=cm.slug,
        title=cm.title,
        description=cm.description,
        cms=cm.cms,
        visibility=cm.visibility.value,
        created_at=cm.created_at,
        updated_at=cm.updated_at,
        og_meta_image=image_view(cm.og_meta_image, store),
        user=owner_view(cm.owner, viewer_id),
        version=VersionView(
            id=latest.id,
            version=latest.version,
            name=latest.name,
            model=latest.model,
            position=latest.position,
            created_at=latest.created_at,
            image=image_view(latest.image, store),
            image_no_connections=image_view(latest.image_no_connections, store),
        ),
    )


def page_view(page: Page, store: AssetStore, viewer_id: str | None = None) -> ContentModelPageView:
    return ContentModelPageView(
        items=[content_model_view(cm, store, viewer_id) for cm in page.items],
        pagination=PaginationView(has_next=page.has_next, has_prev=page.has_prev, total=page.total),
    )


def user_view(user: User) -> UserView:
    return UserView(id=user.id, email=user.email, name=user.name, picture=user.picture)
