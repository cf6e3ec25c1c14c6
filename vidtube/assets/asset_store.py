"""
Remote storage for user-supplied images (avatar, cover image).

Files arrive as multipart uploads, are spooled to a local temp file, then
pushed to Cloudinary through its signed REST API. The local copy is always
removed after the upload attempt.
"""

import asyncio
import hashlib
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Protocol, Union

import httpx

from vidtube.config import Settings
from vidtube.kernel.errors import UpstreamFailure
from vidtube.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadedAsset:
    """A file that now lives in the remote store."""
    url: str
    public_id: str
    resource_type: str = "image"


class AssetStore(Protocol):
    async def upload(self, local_path: Union[str, Path]) -> UploadedAsset: ...

    async def delete(self, asset: UploadedAsset) -> None: ...


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """Cloudinary request signature: SHA-1 over sorted key=value pairs + secret."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def save_upload_to_temp(
    fileobj: BinaryIO,
    filename: Optional[str],
    directory: Union[str, Path],
) -> Path:
    """
    Spool an uploaded file to ``directory`` and return its path.

    Raises:
        UpstreamFailure: The temp file could not be written
    """
    target_dir = Path(directory)
    suffix = Path(filename).suffix if filename else ""
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=target_dir, suffix=suffix, delete=False) as tmp:
            shutil.copyfileobj(fileobj, tmp)
            return Path(tmp.name)
    except OSError as exc:
        logger.error("Could not spool upload to %s: %s", target_dir, exc)
        raise UpstreamFailure("Failed to upload images") from exc


class CloudinaryAssetStore:
    """Cloudinary upload/destroy over httpx."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        base_url: str = "https://api.cloudinary.com/v1_1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "CloudinaryAssetStore":
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            base_url=settings.cloudinary_base_url,
            timeout=settings.upload_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _signed(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {**params, "timestamp": int(time.time())}
        return {
            **params,
            "api_key": self.api_key,
            "signature": sign_params(params, self.api_secret),
        }

    async def upload(self, local_path: Union[str, Path]) -> UploadedAsset:
        """
        Upload a local file and delete it afterwards.

        Raises:
            UpstreamFailure: Store not configured, unreachable, or rejected the file
        """
        path = Path(local_path)
        try:
            if not self.configured:
                logger.error("Cloudinary credentials are not configured")
                raise UpstreamFailure("Failed to upload images")

            content = await asyncio.to_thread(path.read_bytes)
            url = f"{self.base_url}/{self.cloud_name}/auto/upload"
            async with self._client() as client:
                resp = await client.post(
                    url,
                    data=self._signed({}),
                    files={"file": (path.name, content)},
                )
                resp.raise_for_status()
                body = resp.json()
        except (OSError, httpx.HTTPError, ValueError) as exc:
            logger.warning("Asset upload failed: %s", exc)
            raise UpstreamFailure("Failed to upload images") from exc
        finally:
            path.unlink(missing_ok=True)

        asset_url = body.get("secure_url") or body.get("url")
        if not asset_url or not body.get("public_id"):
            logger.warning("Asset upload returned no URL")
            raise UpstreamFailure("Failed to upload images")

        logger.info("Asset uploaded", extra={"public_id": body["public_id"]})
        return UploadedAsset(
            url=asset_url,
            public_id=body["public_id"],
            resource_type=body.get("resource_type", "image"),
        )

    async def delete(self, asset: UploadedAsset) -> None:
        """
        Remove a previously uploaded asset.

        Raises:
            UpstreamFailure: The store could not be reached or refused
        """
        url = f"{self.base_url}/{self.cloud_name}/{asset.resource_type}/destroy"
        try:
            async with self._client() as client:
                resp = await client.post(url, data=self._signed({"public_id": asset.public_id}))
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Asset delete failed: %s", exc)
            raise UpstreamFailure("Failed to delete asset") from exc
        logger.info("Asset deleted", extra={"public_id": asset.public_id})
