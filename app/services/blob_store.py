"""
Remote object storage adapter (Cloudinary)
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import cloudinary.exceptions
import cloudinary.uploader
from fastapi.concurrency import run_in_threadpool

from app.config import CloudinarySettings
from app.utils.exceptions import ConfigurationError, RemoteStoreError, retry_with_logging
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

# Only these are retried; other 4xx responses from the API fail on the first attempt
TRANSIENT_ERRORS = (
    cloudinary.exceptions.GeneralError,
    cloudinary.exceptions.RateLimited,
    ConnectionError,
    TimeoutError,
)


@dataclass
class UploadResult:
    url: str
    public_id: Optional[str] = None
    bytes: Optional[int] = None


class CloudinaryBlobStore:
    """Uploads local files to a Cloudinary folder and returns their secure URL"""

    service_name = "cloudinary"

    def __init__(self, settings: CloudinarySettings):
        self.settings = settings

    def _upload_sync(self, local_path: str, folder: str, resource_type: str) -> dict:
        # Credentials travel with each call so no process-wide SDK config is needed
        return cloudinary.uploader.upload(
            local_path,
            folder=folder,
            resource_type=resource_type,
            timeout=self.settings.timeout,
            cloud_name=self.settings.cloud_name,
            api_key=self.settings.api_key,
            api_secret=self.settings.api_secret,
            secure=True,
        )

    async def upload(self, local_path: Union[str, Path], folder: str, resource_type: str = "raw") -> UploadResult:
        """
        Upload ``local_path`` under ``folder``.

        The blocking SDK call runs in the threadpool, bounded by the configured timeout.
        Transient failures are retried with exponential backoff. Every failure surfaces as
        RemoteStoreError; the caller still owns the local file.
        """
        if not self.settings.is_configured:
            raise ConfigurationError(
                "Cloudinary credentials are not configured",
                config_key="CLOUDINARY_CLOUD_NAME"
            )

        @retry_with_logging(
            max_attempts=self.settings.retry_attempts,
            backoff_factor=self.settings.retry_backoff,
            exceptions=TRANSIENT_ERRORS,
            logger=logger,
        )
        async def attempt():
            return await run_in_threadpool(self._upload_sync, str(local_path), folder, resource_type)

        try:
            response = await attempt()
        except Exception as e:
            logger.error(f"Upload of {local_path} to {folder} failed: {e}")
            raise RemoteStoreError(service_name=self.service_name, cause=e) from e

        url = (response or {}).get("secure_url")
        if not url:
            logger.error(f"Upload of {local_path} to {folder} returned no secure_url")
            raise RemoteStoreError(service_name=self.service_name)

        logger.info(f"Uploaded {Path(local_path).name} to {folder}", extra={"public_id": response.get("public_id")})
        return UploadResult(url=url, public_id=response.get("public_id"), bytes=response.get("bytes"))
