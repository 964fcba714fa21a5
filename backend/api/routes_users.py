"""
Routes utilisateurs.

L'identité est portée par le jeton Bearer émis par le fournisseur d'identité: `POST /users`
enregistre (ou complète) l'appelant, `GET /users/me` retourne sa fiche.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.api.deps import get_current_user, get_session, get_token_data
from backend.api.schemas import UserPayload, UserView, user_view
from backend.domain.auth import TokenData
from backend.domain.entities import User
from backend.domain.errors import ValidationError
from backend.infra.repo.user_repo import UserRepo

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserView)
def upsert_user(
    payload: UserPayload,
    token: TokenData = Depends(get_token_data),
    session: Session = Depends(get_session),
):
    """Crée l'utilisateur du jeton, ou complète son nom et sa photo."""
    email = (payload.email or token.email or "").strip()
    if not email:
        raise ValidationError("email_required")
    user = UserRepo(session).upsert(
        auth_subject=token.sub, email=email, name=payload.name, picture=payload.picture
    )
    return user_view(user)


@router.get("/me", response_model=UserView)
def me(user: User = Depends(get_current_user)):
    return user_view(user)
