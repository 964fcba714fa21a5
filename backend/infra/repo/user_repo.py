"""Dépôt SQL des utilisateurs (indexés par le sujet de leur jeton d'identité)."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ...domain.entities import User
from .content_model_repo import user_to_domain, wrap_db_errors
from .models import UserORM


class UserRepo:
    """CRUD minimal pour les utilisateurs."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @wrap_db_errors
    def get_by_subject(self, auth_subject: str) -> User | None:
        stmt = select(UserORM).where(UserORM.auth_subject == auth_subject)
        row = self._session.execute(stmt).scalars().first()
        return user_to_domain(row) if row is not None else None

    @wrap_db_errors
    def upsert(self, auth_subject: str, email: str, name: str = "", picture: str = "") -> User:
        """Crée l'utilisateur, ou complète le nom/la photo manquants d'un utilisateur existant."""
        stmt = select(UserORM).where(UserORM.auth_subject == auth_subject)
        row = self._session.execute(stmt).scalars().first()
        if row is None:
            row = UserORM(auth_subject=auth_subject, email=email, name=name, picture=picture)
            self._session.add(row)
        else:
            row.email = email or row.email
            if not row.name and name:
                row.name = name
            if not row.picture and picture:
                row.picture = picture
        self._session.flush()
        return user_to_domain(row)
