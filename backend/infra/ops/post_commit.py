"""Post-commit helpers for API→workers handoff.

Ce module fournit des utilitaires pour déclencher des actions (ex: régénération des captures)
uniquement après qu'une transaction SQLAlchemy ait été effectivement commitée. Il évite de
lancer un rendu si la transaction est rollback.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import event
from sqlalchemy.orm import Session

from backend.domain.versioning import RegenerationPlan

if TYPE_CHECKING:
    from backend.infra.ops.dispatch import ScreenshotDispatcher

log = structlog.get_logger(__name__)

_ACTIONS_KEY = "_post_commit_actions"


def _ensure_action_list(session: Session) -> list[Callable[[], None]]:
    """Ensure action list container exists on session.info and return it."""
    actions = session.info.get(_ACTIONS_KEY)
    if actions is None:
        actions = []
        session.info[_ACTIONS_KEY] = actions
        _bind_session_events(session)
    return actions


def _bind_session_events(session: Session) -> None:
    """Bind commit/rollback events once for the given session instance."""
    if session.info.get("_post_commit_bound"):
        return
    session.info["_post_commit_bound"] = True

    @event.listens_for(session, "after_commit")
    def _after_commit(_session: Session) -> None:
        actions = list(_session.info.get(_ACTIONS_KEY, []) or [])
        _session.info[_ACTIONS_KEY] = []
        for action in actions:
            # La transaction est déjà commitée: un échec ici ne doit pas casser le flux API
            try:
                action()
            except Exception as exc:
                log.error("post_commit_action_failed", error=type(exc).__name__)

    @event.listens_for(session, "after_rollback")
    def _after_rollback(_session: Session) -> None:
        # Purge les actions planifiées si la transaction est rollback
        _session.info[_ACTIONS_KEY] = []


def register_action_after_commit(
    session: Session,
    func: Callable[..., None],
    *args,
    **kwargs,
) -> None:
    """Register an arbitrary callable to run after a successful commit.

    La fonction est stockée dans la session et exécutée lors de l'évènement
    `after_commit`. En cas de rollback, elle est oubliée.
    """
    bound = functools.partial(func, *args, **kwargs)
    _ensure_action_list(session).append(bound)


def dispatch_regeneration_after_commit(
    session: Session,
    dispatcher: ScreenshotDispatcher,
    slug: str,
    plan: RegenerationPlan,
) -> None:
    """Confie le plan de régénération au dispatcher une fois la transaction commitée."""
    register_action_after_commit(session, dispatcher.dispatch, slug, plan)


__all__ = [
    "dispatch_regeneration_after_commit",
    "register_action_after_commit",
]
