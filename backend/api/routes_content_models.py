"""
Routes liées aux modèles de contenu: création, lecture, liste, mise à jour et suppression.

Ce module regroupe les endpoints `/content-models`. Les lectures acceptent un appelant anonyme;
les mutations exigent un utilisateur authentifié et propriétaire du modèle.
"""

from fastapi import APIRouter, Depends, Header, Query

from backend.api.deps import (
    get_asset_store,
    get_content_model_service,
    get_current_user,
    get_current_user_optional,
)
from backend.api.schemas import (
    ContentModelPageView,
    ContentModelView,
    CreateContentModelRequest,
    UpdateContentModelRequest,
    content_model_view,
    page_view,
)
from backend.core.http_constants import DEFAULT_PAGE_SIZE, HTTP_CREATED
from backend.domain.entities import User
from backend.domain.services import ContentModelService
from backend.infra.assets.base import AssetStore

router = APIRouter(prefix="/content-models", tags=["content-models"])
service_dep = Depends(get_content_model_service)
store_dep = Depends(get_asset_store)
current_user_dep = Depends(get_current_user)
optional_user_dep = Depends(get_current_user_optional)


def _viewer_id(user: User | None) -> str | None:
    return user.id if user is not None else None


@router.get("", response_model=ContentModelPageView)
def list_content_models(
    count: int = DEFAULT_PAGE_SIZE,
    page: int = 1,
    user: str = "",
    search: str = "",
    visibility: str = "PUBLIC",
    service: ContentModelService = service_dep,
    store: AssetStore = store_dep,
    viewer: User | None = optional_user_dep,
):
    """
    Liste paginée des modèles, les plus récents d'abord.

    Paramètres:
    - count: taille de page (bornée à 1..1000), page: numéro de page (≥ 1).
    - user: filtre sur le propriétaire; search: recherche dans le titre ou la description.
    - visibility: PUBLIC par défaut; UNLISTED/PRIVATE listent uniquement les modèles de l'appelant.
    """
    result = service.list(
        count=count,
        page=page,
        user=user,
        search=search,
        visibility=visibility,
        viewer_id=_viewer_id(viewer),
    )
    return page_view(result, store, _viewer_id(viewer))


@router.get("/{slug}", response_model=ContentModelView)
def get_content_model(
    slug: str,
    preview_secret: str | None = Query(None, alias="previewSecret"),
    x_preview_secret: str | None = Header(None),
    service: ContentModelService = service_dep,
    store: AssetStore = store_dep,
    viewer: User | None = optional_user_dep,
):
    """Lecture par slug; un modèle PRIVATE non lisible répond 404."""
    found = service.get_by_slug(
        slug,
        viewer_id=_viewer_id(viewer),
        presented_secret=x_preview_secret or preview_secret,
    )
    return content_model_view(found, store, _viewer_id(viewer))


@router.post("", response_model=ContentModelView, status_code=HTTP_CREATED)
def create_content_model(
    payload: CreateContentModelRequest,
    service: ContentModelService = service_dep,
    store: AssetStore = store_dep,
    user: User = current_user_dep,
):
    """Crée un modèle et sa version 1; la génération des images part après le commit."""
    created = service.create(
        owner_id=user.id,
        title=payload.title,
        description=payload.description,
        model=payload.version.model,
        position=payload.version.position,
        visibility=payload.visibility,
    )
    return content_model_view(created, store, user.id)


@router.patch("/{content_model_id}", response_model=ContentModelView)
def update_content_model(
    content_model_id: str,
    payload: UpdateContentModelRequest,
    service: ContentModelService = service_dep,
    store: AssetStore = store_dep,
    user: User = current_user_dep,
):
    version = payload.version
    updated = service.update(
        user.id,
        content_model_id,
        title=payload.title,
        description=payload.description,
        visibility=payload.visibility,
        model=version.model if version is not None else None,
        position=version.position if version is not None else None,
    )
    return content_model_view(updated, store, user.id)


@router.delete("/{content_model_id}", response_model=ContentModelView)
def delete_content_model(
    content_model_id: str,
    service: ContentModelService = service_dep,
    store: AssetStore = store_dep,
    user: User = current_user_dep,
):
    deleted = service.delete(user.id, content_model_id)
    return content_model_view(deleted, store, user.id)
