"""
Interface du stockage d'images (CDN).

Le stockage accepte un binaire et retourne un identifiant public permanent et ses dimensions.
Il fournit aussi l'URL et le chemin de livraison d'une image.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class UploadResult:
    """Réponse du fournisseur après upload."""

    public_id: str
    version: int
    signature: str
    width: int | None
    height: int | None
    resource_type: str = "image"
    type: str = "upload"

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> UploadResult:
        return cls(
            public_id=str(data["public_id"]),
            version=int(data["version"]),
            signature=str(data.get("signature", "")),
            width=data.get("width"),
            height=data.get("height"),
            resource_type=str(data.get("resource_type", "image")),
            type=str(data.get("type", "upload")),
        )


class AssetStore(ABC):
    """Contrat commun des stockages d'images."""

    @abstractmethod
    def upload(
        self,
        data: bytes,
        *,
        folder: str | None = None,
        public_id: str | None = None,
        overwrite: bool = False,
    ) -> UploadResult:
        """Envoie une image; `public_id` + `overwrite` remplace l'image existante."""

    @abstractmethod
    def url(self, public_id: str, version: int, resource_type: str = "image") -> str:
        """URL publique de livraison."""

    def path(self, public_id: str, version: int, resource_type: str = "image") -> str:
        """Chemin relatif (partie après `image/upload/`), utile aux transformations frontend."""
        full = self.url(public_id, version, resource_type)
        marker = f"{resource_type}/upload/"
        return full.split(marker, 1)[1] if marker in full else full
