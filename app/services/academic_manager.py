"""
Academic record persistence: create-or-update, strict create, fetch and document linking
"""
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from pymongo import ReturnDocument

from app.models.academic import AcademicRecord
from app.services.db import to_dict
from app.services.document_links import DocumentSelector
from app.services.qualification_validator import validate_qualifications
from app.utils.exceptions import ExceptionContext, NotFoundError, ValidationError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

NO_ID = {"_id": 0}

# Empty defaults for sections a first write does not mention
SECTION_DEFAULTS = {
    "qualifications": [],
    "experience": [],
    "publications": [],
    "research_interest": None,
}


def _merge_and_validate(user_id: str, existing: Optional[Dict[str, Any]], partial: Dict[str, Any]) -> AcademicRecord:
    """Shallow-merge ``partial`` over ``existing`` and validate the result before anything is written"""
    merged = {**(existing or {}), **partial, "user_id": user_id}
    record = AcademicRecord(**merged)
    validate_qualifications(record.qualifications, record.research_interest_branch)
    return record


def _set_fields(record: AcademicRecord, partial: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    dumped = record.dict(by_alias=True)
    fields = {key: dumped[key] for key in partial}
    # Validation may resolve PG branches in qualifications the caller did not resend
    fields["qualifications"] = dumped["qualifications"]
    fields["updated_at"] = now
    return fields


class AcademicRecordManager:
    """Reads and writes the single academic record owned by each user"""

    def __init__(self, collection):
        self.collection = collection

    async def get_record(self, user_id: str) -> AcademicRecord:
        with ExceptionContext("get_academic_record", logger, user_id=user_id):
            doc = await self.collection.find_one({"user_id": user_id}, NO_ID)
        if not doc:
            raise NotFoundError(resource="academic_details")
        return AcademicRecord(**to_dict(doc))

    async def upsert_record(self, user_id: str, partial: Dict[str, Any]) -> Tuple[AcademicRecord, bool]:
        """
        Create the user's record or merge ``partial`` into it.

        Validation runs on the merged record before the single conditional write, so a
        failed validation never changes stored state. Returns ``(record, created)``.
        """
        with ExceptionContext("upsert_academic_record", logger, user_id=user_id):
            existing = await self.collection.find_one({"user_id": user_id}, NO_ID)
            record = _merge_and_validate(user_id, existing, partial)

            now = datetime.utcnow()
            set_fields = _set_fields(record, partial, now)
            set_on_insert = {"created_at": now}
            for key, default in SECTION_DEFAULTS.items():
                if key not in set_fields:
                    set_on_insert[key] = default

            doc = await self.collection.find_one_and_update(
                {"user_id": user_id},
                {"$set": set_fields, "$setOnInsert": set_on_insert},
                upsert=True,
                projection=NO_ID,
                return_document=ReturnDocument.AFTER,
            )

        created = existing is None
        logger.info(f"{'Created' if created else 'Updated'} academic details for user {user_id}")
        return AcademicRecord(**to_dict(doc)), created

    async def update_record(self, user_id: str, partial: Dict[str, Any]) -> AcademicRecord:
        """Merge ``partial`` into an existing record; a missing record is a NotFoundError"""
        with ExceptionContext("update_academic_record", logger, user_id=user_id):
            existing = await self.collection.find_one({"user_id": user_id}, NO_ID)
            if not existing:
                raise NotFoundError(resource="academic_details")

            record = _merge_and_validate(user_id, existing, partial)
            doc = await self.collection.find_one_and_update(
                {"user_id": user_id},
                {"$set": _set_fields(record, partial, datetime.utcnow())},
                upsert=False,
                projection=NO_ID,
                return_document=ReturnDocument.AFTER,
            )
            if not doc:
                raise NotFoundError(resource="academic_details")

        logger.info(f"Updated academic details for user {user_id}")
        return AcademicRecord(**to_dict(doc))

    async def create_record(self, user_id: str, data: Dict[str, Any]) -> AcademicRecord:
        """Insert a brand-new record; an existing one raises DuplicateRecordError"""
        now = datetime.utcnow()
        record = AcademicRecord(**data, user_id=user_id, created_at=now, updated_at=now)
        validate_qualifications(record.qualifications, record.research_interest_branch)

        with ExceptionContext("create_academic_record", logger, user_id=user_id):
            await self.collection.insert_one(record.dict(by_alias=True))

        logger.info(f"Created academic details for user {user_id}")
        return record

    async def link_document(self, user_id: str, selector: DocumentSelector, url: str) -> AcademicRecord:
        """Store ``url`` on the selected section entry; the entry must already exist"""
        with ExceptionContext("link_academic_document", logger, user_id=user_id, field_path=selector.field_path):
            doc = await self.collection.find_one_and_update(
                {"user_id": user_id, selector.entry_path: {"$exists": True}},
                {"$set": {selector.field_path: url, "updated_at": datetime.utcnow()}},
                projection=NO_ID,
                return_document=ReturnDocument.AFTER,
            )
            if not doc:
                exists = await self.collection.find_one({"user_id": user_id}, {"_id": 1})
                if not exists:
                    raise NotFoundError(resource="academic_details")
                raise ValidationError(
                    f"No {selector.document_type.value} entry at index {selector.index}",
                    field="index",
                    value=selector.index
                )

        logger.info(f"Linked document to {selector.field_path} for user {user_id}")
        return AcademicRecord(**to_dict(doc))
