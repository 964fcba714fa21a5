# ============================================================
# Module : backend/infra/repo/content_model_repo.py
# Objet  : Accès SQL (CRUD) pour ContentModel, versions et images.
# ============================================================

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...domain.entities import ContentModel, ContentModelVersion, ImageAsset, Page, User
from ...domain.errors import DependencyError
from ...domain.visibility import ListingFilter, Visibility
from ..assets.base import UploadResult
from .models import ContentModelORM, ContentModelVersionORM, ImageAssetORM, UserORM

F = TypeVar("F", bound=Callable[..., Any])


def wrap_db_errors(fn: F) -> F:
    """Traduit les erreurs SQLAlchemy en `DependencyError`."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise DependencyError(f"database_error: {type(exc).__name__}") from exc

    return wrapper  # type: ignore[return-value]


def image_to_domain(row: ImageAssetORM | None) -> ImageAsset | None:
    if row is None:
        return None
    return ImageAsset(
        id=row.id,
        public_id=row.public_id,
        version=row.version,
        signature=row.signature,
        width=row.width,
        height=row.height,
        resource_type=row.resource_type,
        type=row.type,
    )


def user_to_domain(row: UserORM) -> User:
    return User(
        id=row.id,
        auth_subject=row.auth_subject,
        email=row.email,
        name=row.name or "",
        picture=row.picture or "",
    )


def version_to_domain(row: ContentModelVersionORM) -> ContentModelVersion:
    return ContentModelVersion(
        id=row.id,
        content_model_id=row.content_model_id,
        version=row.version,
        name=row.name,
        model=row.model or [],
        position=row.position or {"contentTypes": {}},
        author_id=row.author_id,
        image=image_to_domain(row.image),
        image_no_connections=image_to_domain(row.image_no_connections),
        created_at=row.created_at,
    )


class ContentModelRepo:
    """CRUD des modèles de contenu et de leurs versions."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def _latest_version_row(self, content_model_id: str) -> ContentModelVersionORM | None:
        stmt = (
            select(ContentModelVersionORM)
            .where(ContentModelVersionORM.content_model_id == content_model_id)
            .order_by(ContentModelVersionORM.version.desc())
            .limit(1)
        )
        return self._session.execute(stmt).unique().scalars().first()

    def _to_domain(self, row: ContentModelORM) -> ContentModel:
        latest = self._latest_version_row(row.id)
        if latest is None:
            raise DependencyError(f"content_model_without_version: {row.id}")
        return ContentModel(
            id=row.id,
            slug=row.slug,
            title=row.title,
            description=row.description,
            user_id=row.user_id,
            visibility=Visibility(row.visibility),
            latest=version_to_domain(latest),
            cms=row.cms,
            og_meta_image=image_to_domain(row.og_meta_image),
            owner=user_to_domain(row.user) if row.user is not None else None,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def _row(self, content_model_id: str) -> ContentModelORM | None:
        return self._session.get(ContentModelORM, content_model_id)

    @wrap_db_errors
    def create(
        self,
        *,
        owner_id: str,
        slug: str,
        title: str,
        description: str,
        visibility: Visibility,
        model: list[dict[str, Any]],
        position: dict[str, Any],
    ) -> ContentModel:
        """Crée le modèle et sa version 1 dans la même transaction."""
        row = ContentModelORM(
            slug=slug,
            title=title,
            description=description,
            visibility=visibility.value,
            user_id=owner_id,
        )
        self._session.add(row)
        self._session.flush()
        self._session.add(
            ContentModelVersionORM(
                content_model_id=row.id,
                version=1,
                name=title,
                model=model,
                position=position,
                author_id=owner_id,
            )
        )
        self._session.flush()
        self._session.refresh(row)
        return self._to_domain(row)

    @wrap_db_errors
    def get_by_id(self, content_model_id: str) -> ContentModel | None:
        row = self._row(content_model_id)
        return self._to_domain(row) if row is not None else None

    @wrap_db_errors
    def get_by_slug(self, slug: str) -> ContentModel | None:
        stmt = select(ContentModelORM).where(ContentModelORM.slug == slug)
        row = self._session.execute(stmt).unique().scalars().first()
        return self._to_domain(row) if row is not None else None

    @wrap_db_errors
    def list(
        self, listing: ListingFilter, search: str = "", count: int = 20, page: int = 1
    ) -> Page:
        """Liste paginée (plus récents d'abord), filtrée par visibilité/propriétaire/recherche."""
        conditions = [ContentModelORM.visibility == listing.visibility.value]
        if listing.owner_id:
            conditions.append(ContentModelORM.user_id == listing.owner_id)
        term = search.strip()
        if term:
            conditions.append(
                or_(
                    ContentModelORM.title.icontains(term, autoescape=True),
                    ContentModelORM.description.icontains(term, autoescape=True),
                )
            )
        skip = (page - 1) * count
        total = self._session.execute(
            select(func.count()).select_from(ContentModelORM).where(*conditions)
        ).scalar_one()
        stmt = (
            select(ContentModelORM)
            .where(*conditions)
            .order_by(ContentModelORM.created_at.desc(), ContentModelORM.id)
            .offset(skip)
            .limit(count)
        )
        rows = self._session.execute(stmt).unique().scalars().all()
        return Page(
            items=[self._to_domain(r) for r in rows],
            total=total,
            has_next=total > count * page,
            has_prev=skip != 0,
        )

    @wrap_db_errors
    def list_recent(self, limit: int) -> list[ContentModel]:
        """Derniers modèles créés, toutes visibilités confondues (maintenance)."""
        stmt = select(ContentModelORM).order_by(ContentModelORM.created_at.desc()).limit(limit)
        return [self._to_domain(r) for r in self._session.execute(stmt).unique().scalars().all()]

    @wrap_db_errors
    def update_fields(
        self,
        content_model_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        visibility: Visibility | None = None,
    ) -> None:
        """Met à jour les champs scalaires fournis (None: inchangé)."""
        row = self._row(content_model_id)
        if row is None:
            raise DependencyError(f"content_model_missing: {content_model_id}")
        if title is not None:
            row.title = title
        if description is not None:
            row.description = description
        if visibility is not None:
            row.visibility = visibility.value
        self._session.flush()

    @wrap_db_errors
    def patch_latest_position(self, content_model_id: str, position: dict[str, Any]) -> None:
        """Remplace en place le positionnement de la dernière version."""
        latest = self._latest_version_row(content_model_id)
        if latest is None:
            raise DependencyError(f"content_model_without_version: {content_model_id}")
        latest.position = position
        self._session.flush()

    @wrap_db_errors
    def add_version(
        self,
        content_model_id: str,
        *,
        version: int,
        name: str,
        model: list[dict[str, Any]],
        position: dict[str, Any],
        author_id: str,
    ) -> None:
        """Insère la version N+1 (sans images)."""
        self._session.add(
            ContentModelVersionORM(
                content_model_id=content_model_id,
                version=version,
                name=name,
                model=model,
                position=position,
                author_id=author_id,
            )
        )
        self._session.flush()

    def _upsert_image(self, current: ImageAssetORM | None, upload: UploadResult) -> ImageAssetORM:
        target = current if current is not None else ImageAssetORM()
        target.public_id = upload.public_id
        target.version = upload.version
        target.signature = upload.signature
        target.width = upload.width
        target.height = upload.height
        target.resource_type = upload.resource_type
        target.type = upload.type
        if current is None:
            self._session.add(target)
        self._session.flush()
        return target

    @wrap_db_errors
    def set_meta_image(self, content_model_id: str, upload: UploadResult) -> None:
        """Enregistre l'image méta (mise à jour de la ligne existante, sinon création)."""
        row = self._row(content_model_id)
        if row is None:
            raise DependencyError(f"content_model_missing: {content_model_id}")
        image = self._upsert_image(row.og_meta_image, upload)
        row.og_meta_image_id = image.id
        row.og_meta_image = image
        self._session.flush()

    @wrap_db_errors
    def set_latest_version_images(
        self, content_model_id: str, image: UploadResult, image_no_connections: UploadResult
    ) -> int:
        """Enregistre les deux images du diagramme sur la dernière version; retourne son numéro."""
        latest = self._latest_version_row(content_model_id)
        if latest is None:
            raise DependencyError(f"content_model_without_version: {content_model_id}")
        with_connections = self._upsert_image(latest.image, image)
        without_connections = self._upsert_image(latest.image_no_connections, image_no_connections)
        latest.image_id = with_connections.id
        latest.image = with_connections
        latest.image_no_connections_id = without_connections.id
        latest.image_no_connections = without_connections
        self._session.flush()
        return latest.version

    @wrap_db_errors
    def delete(self, content_model_id: str) -> None:
        """Supprime toutes les versions puis le modèle. Les images ne sont pas récupérées."""
        self._session.execute(
            delete(ContentModelVersionORM).where(
                ContentModelVersionORM.content_model_id == content_model_id
            )
        )
        row = self._row(content_model_id)
        if row is not None:
            self._session.delete(row)
        self._session.flush()
