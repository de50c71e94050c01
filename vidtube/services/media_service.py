"""Media upload gateway for the Cloudinary upload API."""

import asyncio
import hashlib
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Optional, Union
from uuid import uuid4

import httpx
import structlog
from pydantic import ConfigDict

from vidtube.config import Settings
from vidtube.models.base import CamelModel

logger = structlog.get_logger(__name__)


class MediaStoreConfig(CamelModel):
    """Immutable media-store credentials, built once at startup."""

    model_config = ConfigDict(frozen=True)

    cloud_name: str
    api_key: str
    api_secret: str
    api_base_url: str = "https://api.cloudinary.com/v1_1"
    timeout_seconds: int = 60

    @classmethod
    def from_settings(cls, settings: Settings) -> "MediaStoreConfig":
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            api_base_url=settings.cloudinary_api_base_url,
            timeout_seconds=settings.upload_timeout_seconds,
        )

    @property
    def upload_url(self) -> str:
        # "auto" lets the provider detect image/video/raw
        return f"{self.api_base_url.rstrip('/')}/{self.cloud_name}/auto/upload"


class UploadResult(CamelModel):
    """Public location of an uploaded asset."""

    url: str
    public_id: Optional[str] = None
    resource_type: Optional[str] = None


def sign_params(params: dict, api_secret: str) -> str:
    """Compute the upload signature: SHA-1 of sorted ``k=v`` pairs plus the secret."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


async def stage_upload(
    filename: Optional[str], fileobj: BinaryIO, temp_dir: Union[str, Path]
) -> Path:
    """Copy an incoming upload stream into ``temp_dir`` under a unique name.

    The returned path is handed to MediaUploadGateway.upload, which deletes it.
    """
    directory = Path(temp_dir)
    suffix = Path(filename or "").suffix
    target = directory / f"{uuid4().hex}{suffix}"

    def _write() -> None:
        directory.mkdir(parents=True, exist_ok=True)
        with target.open("wb") as out:
            shutil.copyfileobj(fileobj, out)

    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, _write)
    return target


class MediaUploadGateway:
    """Forwards local temp files to the media store and cleans them up."""

    def __init__(self, config: MediaStoreConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    async def upload(self, local_path: Optional[Union[str, Path]]) -> Optional[UploadResult]:
        """Upload a local file and delete it afterwards.

        Args:
            local_path: Temp file written by the multipart layer

        Returns:
            UploadResult on success, None if no path was given or anything failed.
            The temp file is removed in both cases.
        """
        if not local_path:
            return None

        path = Path(local_path)
        result: Optional[UploadResult] = None

        try:
            result = await self._send(path)
        except Exception as e:
            # Provider, transport and payload failures all degrade to None
            logger.warning(
                "media_upload_failed",
                file=path.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            result = None
        else:
            logger.info("media_uploaded", file=path.name, url=result.url)
        finally:
            await self._discard(path)

        return result

    async def _send(self, path: Path) -> UploadResult:
        if not self.config.cloud_name:
            raise ValueError("Media store is not configured")

        loop = asyncio.get_running_loop()
        content = await loop.run_in_executor(None, path.read_bytes)

        params = {"timestamp": str(int(time.time()))}
        data = {
            **params,
            "api_key": self.config.api_key,
            "signature": sign_params(params, self.config.api_secret),
        }
        files = {"file": (path.name, content)}

        if self._client is not None:
            response = await self._client.post(self.config.upload_url, data=data, files=files)
        else:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds)
            ) as client:
                response = await client.post(self.config.upload_url, data=data, files=files)

        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError(f"Unexpected upload response: {type(body).__name__}")

        return UploadResult(
            url=body.get("secure_url") or body["url"],
            public_id=body.get("public_id"),
            resource_type=body.get("resource_type"),
        )

    async def _discard(self, path: Path) -> None:
        """Best-effort removal of the temp file; failures are only logged."""
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, path.unlink)
        except OSError as e:
            logger.warning("temp_file_cleanup_failed", file=path.name, error=str(e))
