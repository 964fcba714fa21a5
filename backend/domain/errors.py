"""
Exceptions du domaine.

Trois familles d'erreurs, traduites en réponses HTTP par `backend.apigw.errors`:
- `ValidationError`: payload invalide (JSON, schéma, champ requis vide) → 400.
- `NotFoundError`: identifiant/slug inconnu, ou propriétaire différent (masqué) → 404.
- `DependencyError`: échec d'un collaborateur (base, stockage d'images, navigateur) → 500 opaque.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base commune des erreurs métier."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Entrée client invalide; jamais rejouée."""


class NotFoundError(DomainError):
    """Ressource absente ou non visible par l'appelant."""


class DependencyError(DomainError):
    """Échec d'un service tiers ou de la persistance."""
