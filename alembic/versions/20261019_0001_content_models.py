# mypy: ignore-errors
"""
Migration Alembic initiale: utilisateurs, images, modèles de contenu et versions.

Une version est unique par (content_model_id, version); chaque emplacement d'image référence
sa propre ligne `image_assets`.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("auth_subject", sa.String(length=255), nullable=False, unique=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("picture", sa.String(length=1024), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "image_assets",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("public_id", sa.String(length=255), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("signature", sa.String(length=255), nullable=False),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("resource_type", sa.String(length=32), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "content_models",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("slug", sa.String(length=32), nullable=False, unique=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("cms", sa.String(length=32), nullable=False),
        sa.Column("visibility", sa.String(length=16), nullable=False),
        sa.Column("user_id", sa.String(length=32), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "og_meta_image_id",
            sa.String(length=32),
            sa.ForeignKey("image_assets.id"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_content_models_visibility", "content_models", ["visibility"])
    op.create_index("ix_content_models_user_id", "content_models", ["user_id"])
    op.create_index("ix_content_models_created_at", "content_models", ["created_at"])
    op.create_table(
        "content_model_versions",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column(
            "content_model_id",
            sa.String(length=32),
            sa.ForeignKey("content_models.id"),
            nullable=False,
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("model", sa.JSON(), nullable=False),
        sa.Column("position", sa.JSON(), nullable=False),
        sa.Column("author_id", sa.String(length=32), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "image_id", sa.String(length=32), sa.ForeignKey("image_assets.id"), nullable=True
        ),
        sa.Column(
            "image_no_connections_id",
            sa.String(length=32),
            sa.ForeignKey("image_assets.id"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("content_model_id", "version", name="uq_content_model_version"),
    )
    op.create_index(
        "ix_content_model_versions_content_model_id",
        "content_model_versions",
        ["content_model_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_content_model_versions_content_model_id", table_name="content_model_versions"
    )
    op.drop_table("content_model_versions")
    op.drop_index("ix_content_models_created_at", table_name="content_models")
    op.drop_index("ix_content_models_user_id", table_name="content_models")
    op.drop_index("ix_content_models_visibility", table_name="content_models")
    op.drop_table("content_models")
    op.drop_table("image_assets")
    op.drop_table("users")
