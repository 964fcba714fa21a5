"""Stockage d'images en mémoire (dev/tests), même contrat que Cloudinary."""

from __future__ import annotations

import hashlib
import struct
from uuid import uuid4

from backend.infra.assets.base import AssetStore, UploadResult

_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _png_size(data: bytes) -> tuple[int | None, int | None]:
    """Lit largeur/hauteur dans l'en-tête IHDR d'un PNG (None si autre format)."""
    if len(data) >= 24 and data.startswith(_PNG_SIGNATURE) and data[12:16] == b"IHDR":
        width, height = struct.unpack(">II", data[16:24])
        return width, height
    return None, None


class InMemoryAssetStore(AssetStore):
    """
    Stockage d'images en mémoire.

    Stocke les binaires dans un dict local, non persistant. Un écrasement incrémente la version.
    """

    def __init__(self, base_url: str = "memory://assets") -> None:
        self._base_url = base_url.rstrip("/")
        self.blobs: dict[str, bytes] = {}
        self.versions: dict[str, int] = {}
        self.uploads: list[dict] = []

    def upload(
        self,
        data: bytes,
        *,
        folder: str | None = None,
        public_id: str | None = None,
        overwrite: bool = False,
    ) -> UploadResult:
        if public_id is None:
            prefix = f"{folder.rstrip('/')}/" if folder else ""
            public_id = f"{prefix}{uuid4().hex[:20]}"
        elif public_id in self.blobs and not overwrite:
            return self._result(public_id)
        self.blobs[public_id] = data
        self.versions[public_id] = self.versions.get(public_id, 0) + 1
        self.uploads.append({"public_id": public_id, "folder": folder, "overwrite": overwrite})
        return self._result(public_id)

    def _result(self, public_id: str) -> UploadResult:
        data = self.blobs[public_id]
        width, height = _png_size(data)
        return UploadResult(
            public_id=public_id,
            version=self.versions[public_id],
            signature=hashlib.sha1(data).hexdigest(),  # noqa: S324
            width=width,
            height=height,
        )

    def url(self, public_id: str, version: int, resource_type: str = "image") -> str:
        return f"{self._base_url}/{resource_type}/upload/v{version}/{public_id}"
