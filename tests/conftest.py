# Pytest configuration for CuraLink tests
"""
Shared fixtures: throwaway SQLite catalogs, fake HTTP sessions and stub
connectors. No test touches the network.
"""

import time
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from curalink.catalog import CatalogDB, ContentKind, ImportCandidate
from curalink.connectors import BaseConnector
from curalink.enrichment import TruncatingSummarizer


class StubConnector(BaseConnector):
    """Connector that serves canned candidates, optionally slow or failing."""

    def __init__(self, kind, candidates=None, source_tag="stub", error=None, delay=0.0):
        super().__init__(timeout=1.0, session=MagicMock())
        self.kind = kind
        self.source_tag = source_tag
        self.candidates = candidates if candidates is not None else []
        self.error = error
        self.delay = delay
        self.calls = []

    def search(self, term, max_results):
        self.calls.append(term)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if isinstance(self.candidates, dict):
            return list(self.candidates.get(term, []))
        return list(self.candidates)


@pytest.fixture
def catalog_db(tmp_path):
    """Empty catalog in a temporary SQLite file."""
    return CatalogDB(str(tmp_path / "catalog.db"))


@pytest.fixture
def stub_connector():
    """Factory for StubConnector instances."""
    return StubConnector


@pytest.fixture
def candidate():
    """Factory for ImportCandidate instances."""
    def _make(title, abstract="", doi=None, source="stub", **raw):
        return ImportCandidate(
            title=title,
            abstract_or_description=abstract,
            external_identifier=doi,
            source_tag=source,
            raw_fields=raw,
        )
    return _make


@pytest.fixture
def summarizer():
    return TruncatingSummarizer()


@pytest.fixture
def fake_session():
    """Factory for a requests-like session returning JSON payloads in order."""
    def _make(*payloads):
        session = MagicMock()
        responses = []
        for payload in payloads:
            response = MagicMock()
            response.json.return_value = payload
            responses.append(response)
        session.get.side_effect = responses
        return session
    return _make


@pytest.fixture
def timestamps():
    """Strictly increasing creation times, oldest first."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [base + timedelta(days=i) for i in range(10)]
