"""
ORCID Connector
===============

Researcher-ID publication lookup against the ORCID public API. The
search term must be an ORCID iD (0000-0002-1825-0097); any other term
yields no candidates.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from ..catalog.models import ContentKind, ImportCandidate
from .base import BaseConnector

logger = logging.getLogger(__name__)

ORCID_ID_PATTERN = re.compile(r"^\d{4}-\d{4}-\d{4}-\d{3}[\dX]$")


class OrcidConnector(BaseConnector):
    """List the works registered under an ORCID iD."""

    WORKS_URL = "https://pub.orcid.org/v3.0/{orcid_id}/works"
    PROFILE_URL = "https://orcid.org/{orcid_id}"

    source_tag = "orcid"
    kind = ContentKind.PUBLICATIONS

    def search(self, term: str, max_results: int) -> List[ImportCandidate]:
        orcid_id = term.strip().upper()
        if not ORCID_ID_PATTERN.match(orcid_id):
            logger.debug(f"'{term}' is not an ORCID iD, skipping")
            return []

        data = self._get_json(
            self.WORKS_URL.format(orcid_id=orcid_id),
            headers={"Accept": "application/json"},
        )

        candidates = []
        for group in (data.get("group") or [])[:max_results]:
            summaries = group.get("work-summary") or []
            if summaries:
                candidates.append(self._to_candidate(orcid_id, summaries[0]))
        return candidates

    def _to_candidate(self, orcid_id: str, work: Dict[str, Any]) -> ImportCandidate:
        title = _value(work.get("title"), "title") or "Untitled"
        year = _value(work.get("publication-date"), "year")

        doi = None
        for ext in (work.get("external-ids") or {}).get("external-id") or []:
            if ext.get("external-id-type") == "doi" and ext.get("external-id-value"):
                doi = ext["external-id-value"].strip()
                break

        return ImportCandidate(
            title=title.strip(),
            abstract_or_description="",
            external_identifier=doi,
            source_tag=self.source_tag,
            raw_fields={
                "orcid_id": orcid_id,
                "authors": [],
                "journal": _value(work, "journal-title"),
                "publication_date": f"{year}-01-01" if year else None,
                "url": _value(work, "url") or self.PROFILE_URL.format(orcid_id=orcid_id),
            },
        )


def _value(node: Optional[Dict[str, Any]], key: str) -> Optional[str]:
    """Read ORCID's {"key": {"value": ...}} nesting."""
    inner = (node or {}).get(key)
    if isinstance(inner, dict):
        return inner.get("value")
    return None
