"""
Type and size policies applied to staged uploads before they go to remote storage
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet

from app.services.temp_files import StagedFile, TempFileManager
from app.utils.exceptions import UploadRejectedError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

MIB = 1024 * 1024


class UploadCategory(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"


@dataclass(frozen=True)
class UploadPolicy:
    max_bytes: int
    allowed_extensions: FrozenSet[str] = field(default_factory=frozenset)
    allowed_mime_types: FrozenSet[str] = field(default_factory=frozenset)
    type_message: str = "File type not allowed"

    def type_allowed(self, staged: StagedFile) -> bool:
        if self.allowed_extensions and staged.extension not in self.allowed_extensions:
            return False
        if self.allowed_mime_types and staged.content_type not in self.allowed_mime_types:
            return False
        return True


POLICIES = {
    UploadCategory.IMAGE: UploadPolicy(
        max_bytes=2 * MIB,
        allowed_extensions=frozenset({"jpg", "jpeg", "png", "gif"}),
        type_message="Only image files are allowed",
    ),
    UploadCategory.DOCUMENT: UploadPolicy(
        max_bytes=5 * MIB,
        allowed_mime_types=frozenset({"application/pdf"}),
        type_message="Only PDF files are allowed",
    ),
}


class UploadGatekeeper:
    """Accepts or rejects staged files; a rejected file is deleted before the error is raised"""

    def __init__(self, temp_files: TempFileManager):
        self.temp_files = temp_files

    @staticmethod
    def policy_for(category: UploadCategory) -> UploadPolicy:
        return POLICIES[UploadCategory(category)]

    def accept(self, staged: StagedFile, category: UploadCategory) -> None:
        category = UploadCategory(category)
        policy = self.policy_for(category)

        if not policy.type_allowed(staged):
            self._reject(staged, category, policy.type_message)

        if staged.truncated or staged.size > policy.max_bytes:
            limit_mb = policy.max_bytes // MIB
            self._reject(staged, category, f"File size should be less than {limit_mb}MB")

        logger.debug(f"Accepted {category.value} upload {staged.original_filename!r} ({staged.size} bytes)")

    def _reject(self, staged: StagedFile, category: UploadCategory, message: str) -> None:
        logger.info(
            f"Rejected {category.value} upload {staged.original_filename!r}: {message}",
            extra={"content_type": staged.content_type, "size": staged.size}
        )
        self.temp_files.remove(staged.path)
        raise UploadRejectedError(message, category=category.value)
