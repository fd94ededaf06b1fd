"""
Typed selectors for the record field that receives an uploaded document's URL
"""
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from app.utils.exceptions import InvalidDocumentTypeError, ValidationError


class DocumentType(str, Enum):
    QUALIFICATION = "qualification"
    EXPERIENCE = "experience"
    PUBLICATION = "publication"


# document type -> (record section, field inside the section entry)
DOCUMENT_FIELDS = {
    DocumentType.QUALIFICATION: ("qualifications", "document_url"),
    DocumentType.EXPERIENCE: ("experience", "experience_certificate_url"),
    DocumentType.PUBLICATION: ("publications", "document_url"),
}


class DocumentSelector(BaseModel):
    document_type: DocumentType
    index: int = Field(ge=0)

    @property
    def section(self) -> str:
        return DOCUMENT_FIELDS[self.document_type][0]

    @property
    def field(self) -> str:
        return DOCUMENT_FIELDS[self.document_type][1]

    @property
    def entry_path(self) -> str:
        """Dotted path of the selected section entry, e.g. ``experience.1``"""
        return f"{self.section}.{self.index}"

    @property
    def field_path(self) -> str:
        """Dotted path of the URL field, e.g. ``experience.1.experience_certificate_url``"""
        return f"{self.entry_path}.{self.field}"

    @classmethod
    def parse(cls, document_type: Any, index: Any) -> "DocumentSelector":
        """Build a selector from raw multipart form values"""
        try:
            doc_type = DocumentType(document_type)
        except ValueError:
            raise InvalidDocumentTypeError(document_type)

        try:
            position = int(str(index).strip())
        except (TypeError, ValueError):
            raise ValidationError("Index must be an integer", field="index", value=index)
        if position < 0:
            raise ValidationError("Index must not be negative", field="index", value=index)

        return cls(document_type=doc_type, index=position)
