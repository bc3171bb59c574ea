# ats_intake/services/submission.py

"""
Create-candidate orchestration.

A request moves through RECEIVED -> VALIDATED -> PERSISTING -> COMMITTED, or
ends early in REJECTED (validation errors, duplicate email) or ROLLED_BACK
(store or file failure during persist). Effects always happen in the order:
files staged (by the caller) -> validate -> uniqueness check -> rows flushed
-> files promoted -> commit. Whatever the exit path, if the request did not
reach COMMITTED every staged or promoted file is deleted before the error
leaves this module.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ats_intake.core.exceptions import ConflictError, StorageError, SubmissionValidationError
from ats_intake.db.models import Candidate, Document, Education, Experience
from ats_intake.schemas.submission import CandidateSubmission, parse_submission
from ats_intake.services.crud_candidates import CandidateRepository
from ats_intake.storage.local_files import LocalFileStorage, StagedFile
from ats_intake.validation.rules import validate_files, validate_submission
from ats_intake.validation.validators import normalize_email, parse_date

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "A candidate with this email already exists"
CREATE_FAILED_MESSAGE = "An error occurred while creating the candidate"
LOAD_FAILED_MESSAGE = "The candidate was created but could not be loaded"


class SubmissionState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    PERSISTING = "persisting"
    COMMITTED = "committed"
    REJECTED = "rejected"
    ROLLED_BACK = "rolled_back"


def _clean(value: Optional[str]) -> Optional[str]:
    """Trims a string; blank strings become None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class SubmissionCoordinator:
    """Runs one create-candidate request. ``state`` holds where the last call ended."""

    def __init__(self, repository: CandidateRepository, file_storage: LocalFileStorage):
        self.repository = repository
        self.file_storage = file_storage
        self.state = SubmissionState.RECEIVED

    def submit(self, raw_payload: Optional[str], staged_files: Sequence[StagedFile]) -> Candidate:
        """
        Validates and persists a candidate submission.

        Args:
            raw_payload: The JSON-encoded candidateData form field.
            staged_files: Uploads already written to the staging area.

        Returns:
            The committed Candidate with its relations loaded.

        Raises:
            SubmissionValidationError: The payload or files failed validation.
            ConflictError: A candidate with the same email already exists.
            StorageError: The database or file store failed while persisting, or
                the committed candidate could not be read back. In the latter case
                the candidate and its files are kept.
        """
        self.state = SubmissionState.RECEIVED
        promoted: List[Path] = []
        try:
            submission = self._validate(raw_payload, staged_files)
            self.state = SubmissionState.VALIDATED

            email = normalize_email(submission.email)
            self._ensure_unique_email(email)

            self.state = SubmissionState.PERSISTING
            candidate_id = self._persist(submission, email, staged_files, promoted)
            self.state = SubmissionState.COMMITTED
            logger.info(f"SUBMISSION: Candidate {candidate_id} created with {len(promoted)} document(s).")
        finally:
            if self.state != SubmissionState.COMMITTED:
                leftovers = [staged.temp_path for staged in staged_files] + promoted
                if leftovers:
                    logger.info(f"SUBMISSION: Ended in state '{self.state.value}', removing {len(leftovers)} file(s).")
                self.file_storage.discard(leftovers)

        return self._load_committed(candidate_id)

    def _load_committed(self, candidate_id: int) -> Candidate:
        # Rows and files are durable once COMMITTED; a failed read must not undo them.
        try:
            return self.repository.get_by_id(candidate_id)
        except SQLAlchemyError as e:
            logger.error(f"SUBMISSION: Candidate {candidate_id} committed but reload failed: {e}", exc_info=True)
            raise StorageError(LOAD_FAILED_MESSAGE, cause=e)

    def _validate(self, raw_payload: Optional[str], staged_files: Sequence[StagedFile]) -> CandidateSubmission:
        submission, type_errors = parse_submission(raw_payload)
        if submission is None:
            errors = type_errors + validate_files(staged_files)
        else:
            errors = validate_submission(submission, staged_files, type_errors)

        if errors:
            self.state = SubmissionState.REJECTED
            logger.info(f"SUBMISSION: Rejected with {len(errors)} validation error(s).")
            raise SubmissionValidationError(errors)
        return submission

    def _ensure_unique_email(self, email: str) -> None:
        try:
            existing = self.repository.find_by_email(email)
        except SQLAlchemyError as e:
            self.state = SubmissionState.REJECTED
            logger.error(f"SUBMISSION: Email lookup failed: {e}", exc_info=True)
            raise StorageError(CREATE_FAILED_MESSAGE, cause=e)

        if existing is not None:
            self.state = SubmissionState.REJECTED
            logger.info(f"SUBMISSION: Rejected duplicate email '{email}'.")
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

    def _persist(
        self,
        submission: CandidateSubmission,
        email: str,
        staged_files: Sequence[StagedFile],
        promoted: List[Path],
    ) -> int:
        candidate, educations, experiences, documents = self._build_rows(submission, email, staged_files)

        def promote_files() -> None:
            for staged in staged_files:
                promoted.append(self.file_storage.promote(staged))

        try:
            return self.repository.create_candidate_transactional(
                candidate, educations, experiences, documents,
                before_commit=promote_files,
            )
        except IntegrityError as e:
            self.state = SubmissionState.ROLLED_BACK
            # A concurrent request may have taken the email between the
            # pre-check and the flush; the unique index is the final arbiter.
            if self._email_taken(email):
                logger.info(f"SUBMISSION: Unique constraint hit for '{email}' during persist.")
                raise ConflictError(DUPLICATE_EMAIL_MESSAGE)
            logger.error(f"SUBMISSION: Integrity error while persisting candidate: {e}", exc_info=True)
            raise StorageError(CREATE_FAILED_MESSAGE, cause=e)
        except Exception as e:
            self.state = SubmissionState.ROLLED_BACK
            logger.error(f"SUBMISSION: Failed to persist candidate: {e}", exc_info=True)
            raise StorageError(CREATE_FAILED_MESSAGE, cause=e)

    def _email_taken(self, email: str) -> bool:
        try:
            return self.repository.find_by_email(email) is not None
        except SQLAlchemyError:
            return False

    def _build_rows(
        self,
        submission: CandidateSubmission,
        email: str,
        staged_files: Sequence[StagedFile],
    ) -> Tuple[Candidate, List[Education], List[Experience], List[Document]]:
        candidate = Candidate(
            first_name=submission.first_name.strip(),
            last_name=submission.last_name.strip(),
            email=email,
            phone=submission.phone.strip(),
            address=_clean(submission.address),
            linked_in=_clean(submission.linked_in),
            portfolio=_clean(submission.portfolio),
        )
        educations = [
            Education(
                institution=edu.institution.strip(),
                degree=edu.degree.strip(),
                field_of_study=edu.field_of_study.strip(),
                start_date=parse_date(edu.start_date),
                end_date=None if edu.current else parse_date(edu.end_date),
                current=edu.current,
                description=_clean(edu.description),
            )
            for edu in submission.educations
        ]
        experiences = [
            Experience(
                company=exp.company.strip(),
                position=exp.position.strip(),
                description=_clean(exp.description),
                start_date=parse_date(exp.start_date),
                end_date=None if exp.current else parse_date(exp.end_date),
                current=exp.current,
            )
            for exp in submission.experiences
        ]
        documents = [
            Document(
                file_name=staged.file_name,
                original_name=staged.original_name,
                file_type=staged.mime_type,
                file_size=staged.size,
                file_path=str(self.file_storage.permanent_path(staged.file_name)),
                document_type="resume",
            )
            for staged in staged_files
        ]
        return candidate, educations, experiences, documents
