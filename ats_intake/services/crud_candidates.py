# ats_intake/services/crud_candidates.py

import logging
from typing import Callable, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ats_intake.db.models import Candidate, Document, Education, Experience

logger = logging.getLogger(__name__)

# Text columns that back the autocomplete endpoints.
SEARCHABLE_FIELDS = {
    "institution": Education.institution,
    "company": Experience.company,
}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class CandidateRepository:
    """
    Persistence operations for candidates and their related rows.
    One instance wraps one request-scoped Session.
    """

    def __init__(self, db: Session):
        self.db = db

    # --- Reads ---

    def get_by_id(self, candidate_id: int) -> Optional[Candidate]:
        """Fetches a candidate with educations, experiences and documents loaded."""
        return self.db.query(Candidate).options(
            selectinload(Candidate.educations),
            selectinload(Candidate.experiences),
            selectinload(Candidate.documents),
        ).filter(Candidate.id == candidate_id).first()

    def find_by_email(self, email: str) -> Optional[Candidate]:
        """Case-insensitive lookup; emails are stored lowercased."""
        if not email:
            return None
        return self.db.query(Candidate).filter(
            Candidate.email == email.strip().lower()
        ).first()

    def get_paginated(self, page: int = 1, limit: int = 10) -> Tuple[List[Candidate], int]:
        """Returns (candidates on this page, total count), newest first."""
        offset = (page - 1) * limit
        candidates = self.db.query(Candidate).options(
            selectinload(Candidate.educations),
            selectinload(Candidate.experiences),
            selectinload(Candidate.documents),
        ).order_by(
            Candidate.created_at.desc(), Candidate.id.desc()
        ).offset(offset).limit(limit).all()
        total = self.db.query(func.count(Candidate.id)).scalar()
        return candidates, total

    def search_distinct(self, field: str, query: str, limit: int) -> List[str]:
        """
        Distinct values of an autocomplete field containing ``query``.

        Matching and de-duplication are case-insensitive; results are ordered
        alphabetically ignoring case. When several spellings differ only in
        case, one representative is returned.
        """
        column = SEARCHABLE_FIELDS.get(field)
        if column is None:
            raise ValueError(f"Unsupported autocomplete field: {field}")

        lowered = func.lower(column)
        rows = self.db.query(func.min(column)).filter(
            column.ilike(f"%{_escape_like(query)}%", escape="\\")
        ).group_by(lowered).order_by(lowered).limit(limit).all()
        return [row[0] for row in rows]

    # --- Creation ---

    def create_candidate_transactional(
        self,
        candidate: Candidate,
        educations: Iterable[Education],
        experiences: Iterable[Experience],
        documents: Iterable[Document],
        before_commit: Optional[Callable[[], None]] = None,
    ) -> int:
        """
        Persists a candidate and all related rows as one unit.

        Rows are flushed first so constraint violations surface before
        ``before_commit`` runs; if anything fails the whole transaction is
        rolled back and the exception re-raised.

        Args:
            candidate: The new Candidate (not yet added to the session).
            educations, experiences, documents: Related rows, in order.
            before_commit: Called after a successful flush, right before commit.

        Returns:
            The id of the committed Candidate. Nothing after the commit touches
            the database, so a return means the rows are durable; load them
            with ``get_by_id``.
        """
        try:
            candidate.educations = list(educations)
            candidate.experiences = list(experiences)
            candidate.documents = list(documents)
            self.db.add(candidate)
            self.db.flush()
            candidate_id, email = candidate.id, candidate.email
            if before_commit is not None:
                before_commit()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Committed candidate {candidate_id} ('{email}').")
        return candidate_id
