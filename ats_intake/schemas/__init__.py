# ats_intake/schemas/__init__.py

from .submission import (
    CandidateSubmission, EducationEntry, ExperienceEntry, FieldError, parse_submission
)
from .candidate import (
    CandidateEnvelope, CandidateListData, CandidateListEnvelope, CandidateResponse,
    DocumentResponse, EducationResponse, ErrorResponse, ExperienceResponse,
    PaginationInfo, SuggestionsEnvelope
)
