"""
Validation des payloads non fiables (graphe, positionnement, visibilité).

Chaque parseur accepte une chaîne JSON ou une valeur déjà structurée et retourne un
`ParseResult`: `ok=True` avec `data`, ou `ok=False` avec `error`. Aucune exception ne sort
de ces fonctions.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import ValidationError as PydanticValidationError

from backend.domain.diagram import ContentModelGraph, ContentModelPosition
from backend.domain.visibility import Visibility

T = TypeVar("T")


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Résultat étiqueté d'un parsing."""

    ok: bool
    data: T | None = None
    error: str | None = None


def _load(raw: Any) -> Any:
    return json.loads(raw.strip()) if isinstance(raw, str) else raw


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def parse_content_model(raw: Any) -> ParseResult[ContentModelGraph]:
    """Valide un graphe de types de contenu (liste, ou enveloppe CLI/Delivery API)."""
    try:
        return ParseResult(ok=True, data=ContentModelGraph.model_validate(_load(raw)))
    except json.JSONDecodeError as exc:
        return ParseResult(ok=False, error=f"invalid_json: {exc.msg}")
    except PydanticValidationError as exc:
        return ParseResult(ok=False, error=_describe(exc))
    except (TypeError, ValueError) as exc:
        return ParseResult(ok=False, error=str(exc))


def parse_content_model_position(raw: Any) -> ParseResult[ContentModelPosition]:
    """Valide un positionnement `{"contentTypes": {id: {x, y}}}` (ou le mapping nu)."""
    try:
        return ParseResult(ok=True, data=ContentModelPosition.model_validate(_load(raw)))
    except json.JSONDecodeError as exc:
        return ParseResult(ok=False, error=f"invalid_json: {exc.msg}")
    except PydanticValidationError as exc:
        return ParseResult(ok=False, error=_describe(exc))
    except (TypeError, ValueError) as exc:
        return ParseResult(ok=False, error=str(exc))


def parse_visibility(raw: Any) -> ParseResult[Visibility]:
    """Valide une visibilité (PUBLIC, UNLISTED, PRIVATE; sensible à la casse)."""
    try:
        return ParseResult(ok=True, data=Visibility(raw))
    except (TypeError, ValueError):
        return ParseResult(ok=False, error=f"invalid_visibility: {raw!r}")
