"""SQLAlchemy models for persistence layer (users, content models, versions, images)."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _uuid() -> str:
    return uuid4().hex


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class UserORM(Base):
    """Modèle ORM pour les utilisateurs."""

    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=_uuid)
    auth_subject = Column(String(255), nullable=False, unique=True)
    email = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False, default="")
    picture = Column(String(1024), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class ImageAssetORM(Base):
    """Modèle ORM pour les images stockées chez le fournisseur."""

    __tablename__ = "image_assets"

    id = Column(String(32), primary_key=True, default=_uuid)
    public_id = Column(String(255), nullable=False)
    version = Column(Integer, nullable=False)
    signature = Column(String(255), nullable=False)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    resource_type = Column(String(32), nullable=False, default="image")
    type = Column(String(32), nullable=False, default="upload")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class ContentModelORM(Base):
    """Modèle ORM pour les modèles de contenu."""

    __tablename__ = "content_models"

    id = Column(String(32), primary_key=True, default=_uuid)
    slug = Column(String(32), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    cms = Column(String(32), nullable=False, default="contentful")
    visibility = Column(String(16), nullable=False, default="PUBLIC", index=True)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    og_meta_image_id = Column(String(32), ForeignKey("image_assets.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    user = relationship(UserORM, lazy="joined")
    og_meta_image = relationship(ImageAssetORM, lazy="joined")


class ContentModelVersionORM(Base):
    """Modèle ORM pour les versions d'un modèle de contenu."""

    __tablename__ = "content_model_versions"

    id = Column(String(32), primary_key=True, default=_uuid)
    content_model_id = Column(
        String(32), ForeignKey("content_models.id"), nullable=False, index=True
    )
    version = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    model = Column(JSON, nullable=False, default=list)
    position = Column(JSON, nullable=False, default=dict)
    author_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    image_id = Column(String(32), ForeignKey("image_assets.id"), nullable=True)
    image_no_connections_id = Column(String(32), ForeignKey("image_assets.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    image = relationship(ImageAssetORM, foreign_keys=[image_id], lazy="joined")
    image_no_connections = relationship(
        ImageAssetORM, foreign_keys=[image_no_connections_id], lazy="joined"
    )

    __table_args__ = (
        UniqueConstraint("content_model_id", "version", name="uq_content_model_version"),
    )
