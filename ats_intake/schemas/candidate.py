# ats_intake/schemas/candidate.py

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from typing import List, Optional

from ats_intake.schemas.submission import FieldError

# Responses are read straight off the ORM rows and serialized with the
# browser's camelCase keys (firstName, fieldOfStudy, totalPages, ...).
_RESPONSE_CONFIG = ConfigDict(
    from_attributes=True,
    alias_generator=to_camel,
    populate_by_name=True,
)

class DocumentResponse(BaseModel):
    id: int
    candidate_id: int
    file_name: str
    original_name: str
    file_type: str
    file_size: int
    file_path: str
    document_type: str
    uploaded_at: Optional[datetime] = None

    model_config = _RESPONSE_CONFIG

class EducationResponse(BaseModel):
    id: int
    candidate_id: int
    institution: str
    degree: str
    field_of_study: str
    start_date: date
    end_date: Optional[date] = None
    current: bool
    description: Optional[str] = None

    model_config = _RESPONSE_CONFIG

class ExperienceResponse(BaseModel):
    id: int
    candidate_id: int
    company: str
    position: str
    description: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    current: bool

    model_config = _RESPONSE_CONFIG

# --- The main candidate schema, with nested relations ---
class CandidateResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    address: Optional[str] = None
    linked_in: Optional[str] = None
    portfolio: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    educations: List[EducationResponse] = []
    experiences: List[ExperienceResponse] = []
    documents: List[DocumentResponse] = []

    model_config = _RESPONSE_CONFIG

class PaginationInfo(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int

    model_config = _RESPONSE_CONFIG

class CandidateListData(BaseModel):
    candidates: List[CandidateResponse]
    pagination: PaginationInfo

    model_config = _RESPONSE_CONFIG

# --- Response envelopes: {success, data} / {success, error, errors} ---
class CandidateEnvelope(BaseModel):
    success: bool = True
    data: CandidateResponse

class CandidateListEnvelope(BaseModel):
    success: bool = True
    data: CandidateListData

class SuggestionsEnvelope(BaseModel):
    success: bool = True
    data: List[str]

class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    errors: Optional[List[FieldError]] = None
