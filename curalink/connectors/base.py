# CuraLink - Import Connector Base
# ================================
"""
Import Connectors
=================
One connector per external source. Every connector returns a
ConnectorResult instead of raising, so callers handle failures in one
uniform way:

    result = connector.fetch("lung cancer", max_results=5)
    if result.ok:
        candidates = result.candidates
    else:
        logger.warning(result.error)

A timeout is reported exactly like any other failure (no candidates).
"""

import time
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from ..catalog.models import ContentKind, ImportCandidate

logger = logging.getLogger(__name__)


@dataclass
class ConnectorResult:
    """Outcome of one connector call."""
    source: str
    candidates: List[ImportCandidate] = field(default_factory=list)
    error: Optional[str] = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, source: str, error: str, elapsed_ms: float = 0.0) -> "ConnectorResult":
        return cls(source=source, candidates=[], error=error, elapsed_ms=elapsed_ms)


class BaseConnector(ABC):
    """
    Abstract base class for external sources.

    Subclasses implement search(), which may raise freely; fetch() turns
    every exception into a failed ConnectorResult.
    """

    source_tag: str = ""
    kind: ContentKind = ContentKind.PUBLICATIONS

    def __init__(self, timeout: float = 10.0, session: Optional[requests.Session] = None):
        """
        Initialize connector.

        Args:
            timeout: Per-request timeout in seconds
            session: requests session (a fake one in tests)
        """
        self.timeout = timeout
        self.session = session or requests.Session()

    @abstractmethod
    def search(self, term: str, max_results: int) -> List[ImportCandidate]:
        """Query the source; may raise on any failure."""
        pass

    def fetch(self, term: str, max_results: int = 5) -> ConnectorResult:
        """
        Query the source without raising.

        Args:
            term: Search term (canonical tag or raw text)
            max_results: Upper bound on candidates

        Returns:
            ConnectorResult with candidates, or with error set on failure
        """
        start_time = time.time()

        if not (term or "").strip() or max_results <= 0:
            return ConnectorResult(source=self.source_tag)

        try:
            candidates = self.search(term.strip(), max_results)[:max_results]
        except requests.Timeout as e:
            elapsed = (time.time() - start_time) * 1000
            logger.warning(f"{self.source_tag} timed out after {elapsed:.0f}ms for '{term}': {e}")
            return ConnectorResult.failure(self.source_tag, f"timeout: {e}", elapsed)
        except Exception as e:
            elapsed = (time.time() - start_time) * 1000
            logger.warning(f"{self.source_tag} failed for '{term}': {e}")
            return ConnectorResult.failure(self.source_tag, str(e), elapsed)

        elapsed = (time.time() - start_time) * 1000
        logger.info(f"{self.source_tag} returned {len(candidates)} candidates for '{term}' ({elapsed:.0f}ms)")
        return ConnectorResult(source=self.source_tag, candidates=candidates, elapsed_ms=elapsed)

    def fetch_candidates(self, term: str, max_results: int = 5) -> List[ImportCandidate]:
        """List view over fetch(); empty on failure."""
        return self.fetch(term, max_results).candidates

    def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """GET a JSON document, raising on HTTP errors."""
        response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json()
