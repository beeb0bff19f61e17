"""Push staged images to Cloudinary's upload API and return their durable URL."""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from account_service.core.config import Settings
    from account_service.services.uploads import StagedFile

logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"


class MediaStoreError(Exception):
    """Raised when the media store is unconfigured, unreachable, or rejects the upload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class MediaUpload:
    url: str
    public_id: str | None = None


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """
    Cloudinary request signature: SHA-1 of the sorted key=value pairs joined by '&',
    with the API secret appended.
    """
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryMediaStore:
    """
    Media store backed by Cloudinary.

    upload() always deletes the local staged file, whether the upload succeeds or fails.
    """

    def __init__(self, settings: Settings, client: httpx.Client | None = None) -> None:
        self._cloud_name = (settings.CLOUDINARY_CLOUD_NAME or "").strip()
        self._api_key = (settings.CLOUDINARY_API_KEY or "").strip()
        self._api_secret = (
            settings.CLOUDINARY_API_SECRET.get_secret_value()
            if settings.CLOUDINARY_API_SECRET is not None
            else ""
        )
        self._folder = (settings.CLOUDINARY_FOLDER or "").strip() or None
        self._timeout = settings.CLOUDINARY_REQUEST_TIMEOUT_SEC
        self._client = client

    def is_configured(self) -> bool:
        return bool(self._cloud_name and self._api_key and self._api_secret)

    def upload(self, staged: StagedFile) -> MediaUpload:
        """Upload one staged file. Raises MediaStoreError on any failure."""
        try:
            return self._upload(staged)
        finally:
            staged.discard()

    def _upload(self, staged: StagedFile) -> MediaUpload:
        if not self.is_configured():
            raise MediaStoreError(
                "Cloudinary is not configured; set CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET."
            )
        params: dict[str, Any] = {"timestamp": int(time.time())}
        if self._folder:
            params["folder"] = self._folder
        data = {
            **{k: str(v) for k, v in params.items()},
            "api_key": self._api_key,
            "signature": sign_params(params, self._api_secret),
        }
        url = f"{CLOUDINARY_API_BASE}/{self._cloud_name}/auto/upload"

        client = self._client or httpx.Client()
        try:
            with staged.path.open("rb") as fh:
                resp = client.post(
                    url,
                    data=data,
                    files={"file": (staged.filename, fh)},
                    timeout=self._timeout,
                )
        except (httpx.HTTPError, OSError) as e:
            raise MediaStoreError(f"Cloudinary request failed: {e!s}") from e
        finally:
            if self._client is None:
                client.close()

        if resp.status_code >= 400:
            try:
                detail = resp.json().get("error", {}).get("message") or resp.text[:500]
            except ValueError:
                detail = resp.text[:500] if resp.text else "Unknown error"
            raise MediaStoreError(f"Cloudinary returned {resp.status_code}: {detail}", resp.status_code)

        try:
            body = resp.json()
        except ValueError as e:
            raise MediaStoreError("Cloudinary returned a non-JSON response.") from e
        media_url = body.get("secure_url") or body.get("url")
        if not media_url:
            raise MediaStoreError("Cloudinary response missing url.")
        logger.info("Uploaded %s to Cloudinary: %s", staged.filename, media_url)
        return MediaUpload(url=media_url, public_id=body.get("public_id"))
