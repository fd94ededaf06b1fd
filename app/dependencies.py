from fastapi import Depends, Request

from app.config import Settings, get_settings
from app.services.academic_manager import AcademicRecordManager
from app.services.blob_store import CloudinaryBlobStore
from app.services.db import get_academic_collection
from app.services.temp_files import TempFileManager
from app.services.upload_gatekeeper import UploadGatekeeper
from app.utils.exceptions import AuthenticationError


async def get_current_user_id(request: Request) -> str:
    """
    Identity placed on the request by the upstream auth layer.

    The verified user id is read from ``request.state.user_id``; the ``X-User-Id`` header
    set by the gateway is accepted as well. It is trusted as-is.
    """
    user_id = getattr(request.state, "user_id", None) or request.headers.get("X-User-Id")
    if not user_id or not str(user_id).strip():
        raise AuthenticationError()
    return str(user_id).strip()


def get_temp_files(settings: Settings = Depends(get_settings)) -> TempFileManager:
    return TempFileManager(settings.upload_dir, settings.temp_file_retention_seconds)


def get_gatekeeper(temp_files: TempFileManager = Depends(get_temp_files)) -> UploadGatekeeper:
    return UploadGatekeeper(temp_files)


def get_blob_store(settings: Settings = Depends(get_settings)) -> CloudinaryBlobStore:
    return CloudinaryBlobStore(settings.cloudinary)


def get_academic_manager(settings: Settings = Depends(get_settings)) -> AcademicRecordManager:
    return AcademicRecordManager(get_academic_collection(settings))
