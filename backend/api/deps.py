"""Dépendances partagées pour les routes de l'API.

But du module
-------------
- Centraliser la création des instances nécessaires aux endpoints (session SQL,
  service métier, stockage d'images, identité de l'appelant).
- Offrir un point d'ancrage unique pour les tests via `app.dependency_overrides`.

Authentification
----------------
- `get_current_user`: jeton Bearer obligatoire, sinon 401.
- `get_current_user_optional`: sans en-tête, l'appelant est anonyme; un jeton présent mais
  invalide reste une erreur 401.
"""

from __future__ import annotations

from collections.abc import Iterator

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from backend.core.container import Container, container
from backend.core.http_constants import HTTP_UNAUTHORIZED
from backend.domain.auth import TokenData, decode_token
from backend.domain.entities import User
from backend.domain.services import ContentModelService
from backend.infra.assets.base import AssetStore
from backend.infra.ops.dispatch import ScreenshotDispatcher
from backend.infra.repo.db import session_scope
from backend.infra.repo.user_repo import UserRepo


def get_container() -> Container:
    return container


def get_session(c: Container = Depends(get_container)) -> Iterator[Session]:
    """Session par requête: commit en fin de requête, rollback sur erreur."""
    with session_scope(c.engine) as session:
        yield session


def get_dispatcher(c: Container = Depends(get_container)) -> ScreenshotDispatcher:
    return c.dispatcher


def get_asset_store(c: Container = Depends(get_container)) -> AssetStore:
    return c.asset_store


def get_content_model_service(
    session: Session = Depends(get_session),
    dispatcher: ScreenshotDispatcher = Depends(get_dispatcher),
    c: Container = Depends(get_container),
) -> ContentModelService:
    return ContentModelService(session, dispatcher, bypass_secret=c.settings.PREVIEW_BYPASS_SECRET)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=HTTP_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode_header(authorization: str, c: Container) -> TokenData:
    if not authorization.lower().startswith("bearer "):
        raise _unauthorized("missing_token")
    token = authorization.split(" ", 1)[1].strip()
    data = decode_token(token, c.settings.JWT_SECRET, c.settings.JWT_ALG)
    if not data:
        raise _unauthorized("invalid_token")
    return data


def get_token_data(
    authorization: str | None = Header(None),
    c: Container = Depends(get_container),
) -> TokenData:
    """Décode le jeton Bearer sans exiger que l'utilisateur existe (inscription)."""
    if not authorization:
        raise _unauthorized("missing_token")
    return _decode_header(authorization, c)


def get_current_user(
    token: TokenData = Depends(get_token_data),
    session: Session = Depends(get_session),
) -> User:
    """Extrait et valide l'utilisateur courant à partir du token d'autorisation."""
    user = UserRepo(session).get_by_subject(token.sub)
    if user is None:
        raise _unauthorized("user_not_found")
    return user


def get_current_user_optional(
    authorization: str | None = Header(None),
    session: Session = Depends(get_session),
    c: Container = Depends(get_container),
) -> User | None:
    if not authorization:
        return None
    token = _decode_header(authorization, c)
    user = UserRepo(session).get_by_subject(token.sub)
    if user is None:
        raise _unauthorized("user_not_found")
    return user
