import secrets
from collections.abc import Callable
from typing import Any

import structlog
from sqlalchemy.orm import Session

from backend.core.http_constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from backend.domain.diagram import ContentModelGraph, ContentModelPosition
from backend.domain.entities import ContentModel, Page
from backend.domain.errors import NotFoundError, ValidationError
from backend.domain.parsers import (
    ParseResult,
    parse_content_model,
    parse_content_model_position,
    parse_visibility,
)
from backend.domain.position import normalize_layout
from backend.domain.versioning import (
    ChangeKind,
    LatestVersion,
    ProposedUpdate,
    RegenerationPlan,
    classify_update,
    clean_required_text,
    initial_plan,
    plan_regeneration,
)
from backend.domain.visibility import Visibility, can_read, resolve_listing_filter
from backend.infra.ops.dispatch import ScreenshotDispatcher
from backend.infra.ops.post_commit import dispatch_regeneration_after_commit
from backend.infra.repo.content_model_repo import ContentModelRepo

SLUG_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"
SLUG_LENGTH = 11

log = structlog.get_logger(__name__)


def generate_slug() -> str:
    """Slug aléatoire, stable et non devinable (11 caractères)."""
    return "".join(secrets.choice(SLUG_ALPHABET) for _ in range(SLUG_LENGTH))


def _unwrap(result: ParseResult, label: str) -> Any:
    if not result.ok:
        raise ValidationError(f"invalid_{label}: {result.error}")
    return result.data


def _maybe(parser: Callable[[Any], ParseResult], raw: Any, label: str) -> Any:
    return None if raw is None else _unwrap(parser(raw), label)


class ContentModelService:
    """Service métier des modèles de contenu.

    Responsabilités:
    - Valider les payloads (graphe, positionnement, visibilité) et les champs texte.
    - Classer chaque mise à jour (aucune version / correction en place / nouvelle version).
    - Persister via `ContentModelRepo` dans la transaction de la session fournie.
    - Confier la régénération des images au dispatcher, après commit uniquement.
    """

    def __init__(
        self,
        session: Session,
        dispatcher: ScreenshotDispatcher,
        bypass_secret: str | None = None,
    ):
        """Initialise le service avec ses dépendances.

        Paramètres:
        - session: session SQLAlchemy de la requête (commit géré par l'appelant).
        - dispatcher: délégation des régénérations en tâche de fond.
        - bypass_secret: secret partagé donnant accès en lecture aux modèles privés.
        """
        self.session = session
        self.models = ContentModelRepo(session)
        self.dispatcher = dispatcher
        self.bypass_secret = bypass_secret

    def create(
        self,
        owner_id: str,
        title: str,
        description: str,
        model: Any,
        position: Any,
        visibility: str | None = None,
    ) -> ContentModel:
        """Crée un modèle et sa version 1, puis planifie la génération complète des images."""
        clean_title = clean_required_text(title or "", "title")
        clean_description = clean_required_text(description or "", "description")
        graph: ContentModelGraph = _unwrap(parse_content_model(model), "model")
        layout: ContentModelPosition = _unwrap(parse_content_model_position(position), "position")
        vis = Visibility.PUBLIC
        if visibility is not None:
            vis = _unwrap(parse_visibility(visibility), "visibility")

        created = self.models.create(
            owner_id=owner_id,
            slug=generate_slug(),
            title=clean_title,
            description=clean_description,
            visibility=vis,
            model=graph.canonical(),
            position=normalize_layout(layout).canonical(),
        )
        log.info("content_model_created", slug=created.slug, owner=owner_id)
        self._schedule(created.slug, initial_plan())
        return created

    def _owned(self, owner_id: str, content_model_id: str) -> ContentModel:
        current = self.models.get_by_id(content_model_id)
        # Propriétaire différent masqué en « introuvable »
        if current is None or current.user_id != owner_id:
            raise NotFoundError("content_model_not_found")
        return current

    def update(
        self,
        owner_id: str,
        content_model_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        visibility: str | None = None,
        model: Any = None,
        position: Any = None,
    ) -> ContentModel:
        """Applique une mise à jour partielle selon la décision du moteur de version."""
        current = self._owned(owner_id, content_model_id)
        proposed = ProposedUpdate(
            title=title,
            description=description,
            visibility=_maybe(parse_visibility, visibility, "visibility"),
            model=_maybe(parse_content_model, model, "model"),
            position=_maybe(parse_content_model_position, position, "position"),
        )
        latest = LatestVersion(
            version=current.latest.version,
            model=ContentModelGraph.model_validate(current.latest.model),
            position=ContentModelPosition.model_validate(current.latest.position),
        )
        decision = classify_update(current.title, latest, proposed)

        self.models.update_fields(
            content_model_id,
            title=decision.title,
            description=decision.description,
            visibility=decision.visibility,
        )
        if decision.kind is ChangeKind.PATCH_LAYOUT:
            self.models.patch_latest_position(content_model_id, decision.position.canonical())
        elif decision.kind is ChangeKind.NEW_VERSION:
            self.models.add_version(
                content_model_id,
                version=decision.next_version,
                name=decision.version_name,
                model=decision.model.canonical(),
                position=decision.position.canonical(),
                author_id=owner_id,
            )
        log.info(
            "content_model_updated",
            slug=current.slug,
            kind=decision.kind.value,
            model_changed=decision.model_changed,
            layout_changed=decision.layout_changed,
            title_changed=decision.title_changed,
        )

        plan = plan_regeneration(
            decision,
            meta_image_public_id=_public_id(current.og_meta_image),
            diagram_image_public_id=_public_id(current.latest.image),
            diagram_no_connections_image_public_id=_public_id(current.latest.image_no_connections),
        )
        if plan is not None:
            self._schedule(current.slug, plan)
        return self.models.get_by_id(content_model_id)

    def delete(self, owner_id: str, content_model_id: str) -> ContentModel:
        """Supprime le modèle et toutes ses versions; retourne la vue avant suppression."""
        current = self._owned(owner_id, content_model_id)
        self.models.delete(content_model_id)
        log.info("content_model_deleted", slug=current.slug)
        return current

    def get_by_slug(
        self, slug: str, viewer_id: str | None = None, presented_secret: str | None = None
    ) -> ContentModel:
        """Lecture par slug, soumise à la politique de visibilité."""
        found = self.models.get_by_slug(slug)
        if found is None or not can_read(
            found.visibility, found.user_id, viewer_id, presented_secret, self.bypass_secret
        ):
            raise NotFoundError("content_model_not_found")
        return found

    def list(
        self,
        count: int = DEFAULT_PAGE_SIZE,
        page: int = 1,
        user: str = "",
        search: str = "",
        visibility: str = Visibility.PUBLIC.value,
        viewer_id: str | None = None,
    ) -> Page:
        """Liste paginée, PUBLIC par défaut; les autres visibilités se limitent à l'appelant."""
        vis: Visibility = _unwrap(parse_visibility(visibility), "visibility")
        listing = resolve_listing_filter(vis, viewer_id, user)
        page_size = min(MAX_PAGE_SIZE, max(1, count))
        return self.models.list(listing, search=search, count=page_size, page=max(1, page))

    def schedule_full_regeneration(self, content_model: ContentModel) -> RegenerationPlan:
        """Planifie la régénération des trois images en écrasant les identifiants existants."""
        plan = RegenerationPlan(
            meta_image_public_id=_public_id(content_model.og_meta_image),
            diagram_image_public_id=_public_id(content_model.latest.image),
            diagram_no_connections_image_public_id=_public_id(
                content_model.latest.image_no_connections
            ),
        )
        self._schedule(content_model.slug, plan)
        return plan

    def _schedule(self, slug: str, plan: RegenerationPlan) -> None:
        dispatch_regeneration_after_commit(self.session, self.dispatcher, slug, plan)


def _public_id(asset) -> str | None:
    return asset.public_id if asset is not None else None
