from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile

from app.config import Settings, get_settings
from app.dependencies import (
    get_academic_manager,
    get_blob_store,
    get_current_user_id,
    get_gatekeeper,
    get_temp_files,
)
from app.models.academic import (
    AcademicDetailsCreate,
    AcademicRecord,
    AcademicRecordPayload,
    AcademicResponse,
    DocumentUploadResponse,
    FileUploadResponse,
)
from app.services.academic_manager import AcademicRecordManager
from app.services.blob_store import CloudinaryBlobStore
from app.services.document_links import DocumentSelector
from app.services.temp_files import TempFileManager
from app.services.upload_gatekeeper import UploadCategory, UploadGatekeeper
from app.utils.exceptions import UploadRejectedError
from app.utils.logging_config import get_logger, PerformanceMonitor

router = APIRouter()
logger = get_logger(__name__)

# category -> (settings attribute holding the folder, remote resource type)
REMOTE_TARGETS = {
    UploadCategory.DOCUMENT: ("document_folder", "raw"),
    UploadCategory.IMAGE: ("image_folder", "image"),
}


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', 'unknown')


# ==================== ACADEMIC RECORD ====================

@router.post("/", response_model=AcademicResponse)
async def create_academic(
    payload: AcademicRecordPayload,
    request: Request,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    manager: AcademicRecordManager = Depends(get_academic_manager),
):
    """Create the caller's academic details, or update them if they already exist"""
    request_id = _request_id(request)
    logger.info("Saving academic details", extra={"request_id": request_id, "user_id": user_id})

    with PerformanceMonitor("create_academic", logger):
        record, created = await manager.upsert_record(
            user_id, payload.dict(exclude_unset=True, by_alias=True)
        )

    if created:
        response.status_code = 201
        return AcademicResponse(message="Academic details created successfully", academic=record)
    return AcademicResponse(message="Academic details updated successfully", academic=record)


@router.get("/", response_model=AcademicRecord)
async def get_academic(
    user_id: str = Depends(get_current_user_id),
    manager: AcademicRecordManager = Depends(get_academic_manager),
):
    """Fetch the caller's academic details"""
    return await manager.get_record(user_id)


@router.put("/", response_model=AcademicResponse)
async def update_academic(
    payload: AcademicRecordPayload,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    manager: AcademicRecordManager = Depends(get_academic_manager),
):
    """Update existing academic details"""
    logger.info("Updating academic details", extra={"request_id": _request_id(request), "user_id": user_id})

    with PerformanceMonitor("update_academic", logger):
        record = await manager.update_record(
            user_id, payload.dict(exclude_unset=True, by_alias=True)
        )
    return AcademicResponse(message="Academic details updated successfully", academic=record)


@router.post("/details", response_model=AcademicResponse, status_code=201)
async def create_academic_details(
    payload: AcademicDetailsCreate,
    user_id: str = Depends(get_current_user_id),
    manager: AcademicRecordManager = Depends(get_academic_manager),
):
    """Create academic details; fails if the caller already has a record"""
    record = await manager.create_record(user_id, payload.dict(by_alias=True))
    return AcademicResponse(message="Academic details created successfully", academic=record)


# ==================== UPLOADS ====================

@router.post("/upload-document", response_model=DocumentUploadResponse)
async def upload_academic_document(
    request: Request,
    file: Optional[UploadFile] = File(None),
    document_type: Optional[str] = Form(None, alias="documentType"),
    index: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    manager: AcademicRecordManager = Depends(get_academic_manager),
    settings: Settings = Depends(get_settings),
    temp_files: TempFileManager = Depends(get_temp_files),
    gatekeeper: UploadGatekeeper = Depends(get_gatekeeper),
    blob_store: CloudinaryBlobStore = Depends(get_blob_store),
):
    """Upload a PDF and link its URL into the selected qualification, experience or publication"""
    if file is None:
        raise UploadRejectedError("No file uploaded")

    request_id = _request_id(request)
    policy = gatekeeper.policy_for(UploadCategory.DOCUMENT)

    with PerformanceMonitor("upload_academic_document", logger):
        async with temp_files.staged(file, max_bytes=policy.max_bytes) as staged:
            gatekeeper.accept(staged, UploadCategory.DOCUMENT)
            selector = DocumentSelector.parse(document_type, index)

            result = await blob_store.upload(staged.path, settings.cloudinary.document_folder, "raw")
            record = await manager.link_document(user_id, selector, result.url)

    logger.info(
        f"Document linked at {selector.field_path}",
        extra={"request_id": request_id, "user_id": user_id}
    )
    return DocumentUploadResponse(message="Document uploaded successfully", url=result.url, academic=record)


@router.post("/upload", response_model=FileUploadResponse)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    category: UploadCategory = Query(UploadCategory.DOCUMENT, description="Upload policy: 'document' or 'image'"),
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    temp_files: TempFileManager = Depends(get_temp_files),
    gatekeeper: UploadGatekeeper = Depends(get_gatekeeper),
    blob_store: CloudinaryBlobStore = Depends(get_blob_store),
):
    """Upload a file to remote storage and return its URL without touching the record"""
    if file is None:
        raise UploadRejectedError("No file uploaded")

    folder_attr, resource_type = REMOTE_TARGETS[category]
    policy = gatekeeper.policy_for(category)

    async with temp_files.staged(file, max_bytes=policy.max_bytes) as staged:
        gatekeeper.accept(staged, category)
        result = await blob_store.upload(staged.path, getattr(settings.cloudinary, folder_attr), resource_type)

    logger.info(f"Uploaded {category.value} file for user {user_id}")
    return FileUploadResponse(message="File uploaded successfully", url=result.url)
