# ats_intake/api/v1/candidates.py

import logging
import math
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional

# --- Local Imports ---
from ats_intake.core.config import settings
from ats_intake.core.exceptions import NotFoundError, StorageError
from ats_intake.db.database import get_db
from ats_intake.schemas.candidate import (
    CandidateEnvelope, CandidateListData, CandidateListEnvelope, CandidateResponse,
    ErrorResponse, PaginationInfo, SuggestionsEnvelope
)
from ats_intake.services.autocomplete import AutocompleteService
from ats_intake.services.crud_candidates import CandidateRepository
from ats_intake.services.submission import SubmissionCoordinator
from ats_intake.storage.local_files import LocalFileStorage, StagedFile, get_file_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/candidates", tags=["candidates"])

def get_candidate_repository(db: Session = Depends(get_db)) -> CandidateRepository:
    return CandidateRepository(db)

def _require_query(query: Optional[str]) -> str:
    if query is None or not query.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query parameter is required")
    if len(query.strip()) < settings.AUTOCOMPLETE_MIN_QUERY_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Query must be at least {settings.AUTOCOMPLETE_MIN_QUERY_LENGTH} characters"
        )
    return query

def _get_candidate_or_404(repo: CandidateRepository, candidate_id: int):
    try:
        candidate = repo.get_by_id(candidate_id)
    except SQLAlchemyError as e:
        raise StorageError("An error occurred while fetching the candidate", cause=e)
    if not candidate:
        raise NotFoundError("Candidate not found")
    return candidate

# --- Autocomplete Endpoints ---
# Declared before /{candidate_id} so the literal paths win.
@router.get("/autocomplete/institutions", response_model=SuggestionsEnvelope,
            responses={400: {"model": ErrorResponse}})
def institution_suggestions_endpoint(
    query: Optional[str] = None,
    repo: CandidateRepository = Depends(get_candidate_repository),
):
    """Suggests previously entered institution names matching the query."""
    query = _require_query(query)
    return SuggestionsEnvelope(data=AutocompleteService(repo).institutions(query))

@router.get("/autocomplete/companies", response_model=SuggestionsEnvelope,
            responses={400: {"model": ErrorResponse}})
def company_suggestions_endpoint(
    query: Optional[str] = None,
    repo: CandidateRepository = Depends(get_candidate_repository),
):
    """Suggests previously entered company names matching the query."""
    query = _require_query(query)
    return SuggestionsEnvelope(data=AutocompleteService(repo).companies(query))

# --- Candidate Endpoints ---
@router.post("", response_model=CandidateEnvelope, status_code=status.HTTP_201_CREATED,
             responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
async def create_candidate_endpoint(
    candidate_data: Optional[str] = Form(None, alias="candidateData"),
    documents: Optional[List[UploadFile]] = File(None),
    repo: CandidateRepository = Depends(get_candidate_repository),
    file_storage: LocalFileStorage = Depends(get_file_storage),
):
    """
    Creates a candidate with education, experience and up to three resume files.

    The multipart body carries the candidate as a JSON string in the
    ``candidateData`` field and the files as ``documents`` parts. Files are
    staged to disk first; the coordinator removes them again on any failure.
    """
    staged: List[StagedFile] = []
    try:
        for upload in documents or []:
            staged.append(await file_storage.stage(upload))
    except Exception as e:
        file_storage.discard([s.temp_path for s in staged])
        logger.error(f"Failed to stage uploaded files: {e}", exc_info=True)
        raise StorageError("Failed to save uploaded files", cause=e)

    candidate = SubmissionCoordinator(repo, file_storage).submit(candidate_data, staged)
    return CandidateEnvelope(data=CandidateResponse.model_validate(candidate))

@router.get("", response_model=CandidateListEnvelope)
def list_candidates_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    repo: CandidateRepository = Depends(get_candidate_repository),
):
    """Lists candidates, newest first."""
    try:
        candidates, total = repo.get_paginated(page=page, limit=limit)
    except SQLAlchemyError as e:
        raise StorageError("An error occurred while fetching candidates", cause=e)

    return CandidateListEnvelope(data=CandidateListData(
        candidates=[CandidateResponse.model_validate(c) for c in candidates],
        pagination=PaginationInfo(
            total=total, page=page, limit=limit, total_pages=math.ceil(total / limit)
        ),
    ))

@router.get("/{candidate_id}", response_model=CandidateEnvelope, responses={404: {"model": ErrorResponse}})
def get_candidate_endpoint(candidate_id: int, repo: CandidateRepository = Depends(get_candidate_repository)):
    """Retrieves a candidate with nested educations, experiences and documents."""
    candidate = _get_candidate_or_404(repo, candidate_id)
    return CandidateEnvelope(data=CandidateResponse.model_validate(candidate))

@router.get("/{candidate_id}/documents/{document_id}/download", responses={404: {"model": ErrorResponse}})
def download_document_endpoint(
    candidate_id: int,
    document_id: int,
    repo: CandidateRepository = Depends(get_candidate_repository),
    file_storage: LocalFileStorage = Depends(get_file_storage),
):
    """Downloads a stored resume under the name it was uploaded with."""
    candidate = _get_candidate_or_404(repo, candidate_id)
    document = next((d for d in candidate.documents if d.id == document_id), None)
    if not document:
        raise NotFoundError("Document not found")

    path = file_storage.resolve(document.file_name)
    if path is None:
        logger.warning(f"Document {document_id} has no file on disk ('{document.file_name}').")
        raise NotFoundError("Document file not found")

    return FileResponse(path, media_type=document.file_type, filename=document.original_name)
