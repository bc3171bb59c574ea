# ats_intake/services/autocomplete.py

import logging
from typing import List

from ats_intake.core.config import settings
from ats_intake.services.crud_candidates import CandidateRepository

logger = logging.getLogger(__name__)


class AutocompleteService:
    """
    Suggestions for institution and company fields from previously stored
    candidates. Autocomplete must never break the form, so a failing store
    yields an empty list instead of an error.
    """

    def __init__(
        self,
        repository: CandidateRepository,
        limit: int = settings.AUTOCOMPLETE_LIMIT,
        min_query_length: int = settings.AUTOCOMPLETE_MIN_QUERY_LENGTH,
    ):
        self.repository = repository
        self.limit = limit
        self.min_query_length = min_query_length

    def suggest(self, field: str, query: str) -> List[str]:
        query = (query or "").strip()
        if len(query) < self.min_query_length:
            return []

        try:
            suggestions = self.repository.search_distinct(field, query, self.limit)
        except Exception as e:
            logger.error(f"Autocomplete lookup failed for {field} '{query}': {e}", exc_info=True)
            return []
        return suggestions[:self.limit]

    def institutions(self, query: str) -> List[str]:
        return self.suggest("institution", query)

    def companies(self, query: str) -> List[str]:
        return self.suggest("company", query)
