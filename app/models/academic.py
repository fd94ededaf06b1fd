from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

# Disciplines accepted on a PG examination result
VALID_BRANCHES = ("CSE", "ECE", "EIE", "EEE", "ME")


class Standard(str, Enum):
    UG = "UG"
    PG = "PG"


# -------- Examination results --------
class Aggregate(BaseModel):
    cgpa: Optional[float] = None
    class_: Optional[str] = Field(default=None, alias="class")
    percentage: Optional[float] = None

    class Config:
        populate_by_name = True


class ExaminationResult(BaseModel):
    branch: Optional[str] = None
    aggregate: Optional[Aggregate] = None


class ExaminationResults(BaseModel):
    ug: Optional[ExaminationResult] = None
    pg: Optional[ExaminationResult] = None


# -------- Record sections --------
class Qualification(BaseModel):
    standard: Standard
    branch: Optional[str] = None
    institution: Optional[str] = None
    year_of_passing: Optional[int] = None
    examination_results: Optional[ExaminationResults] = None
    document_url: Optional[str] = None

    class Config:
        extra = "allow"
        use_enum_values = True


class Experience(BaseModel):
    organization: Optional[str] = None
    designation: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    experience_certificate_url: Optional[str] = None

    class Config:
        extra = "allow"


class Publication(BaseModel):
    title: Optional[str] = None
    journal: Optional[str] = None
    year: Optional[int] = None
    document_url: Optional[str] = None

    class Config:
        extra = "allow"


class ResearchInterest(BaseModel):
    branch: Optional[str] = None
    area: Optional[str] = None

    class Config:
        extra = "allow"


# -------- Academic record --------
class AcademicRecord(BaseModel):
    user_id: str
    qualifications: List[Qualification] = []
    experience: List[Experience] = []
    publications: List[Publication] = []
    research_interest: Optional[ResearchInterest] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def research_interest_branch(self) -> Optional[str]:
        return self.research_interest.branch if self.research_interest else None


class AcademicRecordPayload(BaseModel):
    """Partial record body for create/update; only the fields sent are applied"""
    qualifications: Optional[List[Qualification]] = None
    experience: Optional[List[Experience]] = None
    publications: Optional[List[Publication]] = None
    research_interest: Optional[ResearchInterest] = None


class AcademicDetailsCreate(BaseModel):
    """Body for the strict create endpoint"""
    qualifications: List[Qualification] = []
    experience: List[Experience] = []
    publications: List[Publication] = []


# -------- Responses --------
class AcademicResponse(BaseModel):
    success: bool = True
    message: str
    academic: AcademicRecord


class DocumentUploadResponse(BaseModel):
    success: bool = True
    message: str
    url: str
    academic: AcademicRecord


class FileUploadResponse(BaseModel):
    success: bool = True
    message: str
    url: str
