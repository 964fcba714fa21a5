"""
Client Cloudinary (upload signé via l'API HTTP).

Identifiants lus depuis `CLOUDINARY_URL` (`cloudinary://<api_key>:<api_secret>@<cloud_name>`).
- Ne journalise jamais le secret d'API.
- Toute erreur réseau/HTTP est traduite en `DependencyError`.
"""

from __future__ import annotations

import hashlib
import time
from urllib.parse import urlparse

import httpx
import structlog

from backend.domain.errors import DependencyError
from backend.infra.assets.base import AssetStore, UploadResult


def parse_cloudinary_url(url: str) -> tuple[str, str, str]:
    """Extrait (cloud_name, api_key, api_secret) d'une URL `cloudinary://`."""
    parsed = urlparse(url)
    if parsed.scheme != "cloudinary" or not parsed.hostname:
        raise ValueError("invalid CLOUDINARY_URL")
    if not parsed.username or not parsed.password:
        raise ValueError("CLOUDINARY_URL missing credentials")
    return parsed.hostname, parsed.username, parsed.password


def sign_params(params: dict[str, str], api_secret: str) -> str:
    """Signature Cloudinary: sha1 des paramètres triés `k=v&...` suivis du secret."""
    payload = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] != "")
    return hashlib.sha1((payload + api_secret).encode("utf-8")).hexdigest()  # noqa: S324


class CloudinaryAssetStore(AssetStore):
    """Stockage d'images Cloudinary."""

    def __init__(
        self,
        cloudinary_url: str,
        api_base_url: str = "https://api.cloudinary.com/v1_1",
        delivery_base_url: str = "https://res.cloudinary.com",
        client: httpx.Client | None = None,
    ) -> None:
        self._cloud_name, self._api_key, self._api_secret = parse_cloudinary_url(cloudinary_url)
        self._api_base_url = api_base_url.rstrip("/")
        self._delivery_base_url = delivery_base_url.rstrip("/")
        if client is None:
            timeout = httpx.Timeout(connect=5.0, read=30.0, write=30.0, pool=5.0)
            client = httpx.Client(timeout=timeout)
        self._client = client
        self._log = structlog.get_logger(__name__).bind(
            component="cloudinary", cloud=self._cloud_name
        )

    def upload(
        self,
        data: bytes,
        *,
        folder: str | None = None,
        public_id: str | None = None,
        overwrite: bool = False,
    ) -> UploadResult:
        params: dict[str, str] = {"timestamp": str(int(time.time()))}
        if folder and public_id is None:
            params["folder"] = folder
        if public_id is not None:
            params["public_id"] = public_id
            params["overwrite"] = "true" if overwrite else "false"
        form = {
            **params,
            "api_key": self._api_key,
            "signature": sign_params(params, self._api_secret),
        }
        endpoint = f"{self._api_base_url}/{self._cloud_name}/image/upload"
        try:
            resp = self._client.post(
                endpoint, data=form, files={"file": ("screenshot.png", data, "image/png")}
            )
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            self._log.error("asset_upload_http_error", status=exc.response.status_code)
            raise DependencyError(f"asset_upload_failed: {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            self._log.error("asset_upload_error", error=type(exc).__name__)
            raise DependencyError(f"asset_upload_failed: {type(exc).__name__}") from exc
        try:
            return UploadResult.from_response(body)
        except (KeyError, TypeError, ValueError) as exc:
            raise DependencyError("asset_upload_invalid_response") from exc

    def url(self, public_id: str, version: int, resource_type: str = "image") -> str:
        base = f"{self._delivery_base_url}/{self._cloud_name}/{resource_type}/upload"
        return f"{base}/v{version}/{public_id}"
