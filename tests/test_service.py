"""
Tests for the RecommendationService facade and configuration.
"""

import logging
import os
import pytest

from curalink.catalog import ContentKind, Trial
from curalink.config import CuralinkConfig
from curalink.enrichment import SummaryConfig, SummaryProvider, TruncatingSummarizer
from curalink.service import RecommendationService, default_connectors
from curalink.connectors import ClinicalTrialsGovConnector, OrcidConnector, PubMedConnector


@pytest.fixture
def config(tmp_path):
    return CuralinkConfig(
        db_path=str(tmp_path / "service.db"),
        summary=SummaryConfig(provider=SummaryProvider.NONE),
    )


@pytest.fixture
def service(config, stub_connector, candidate):
    trials = stub_connector(ContentKind.TRIALS, {"Brain Cancer": [candidate("Glioma Vaccine")]})
    return RecommendationService(config, connectors=[trials])


class TestRecommendationService:

    def test_normalize(self, service):
        assert service.normalize("I was diagnosed with a brain tumor") == {"Brain Cancer"}

    def test_recommend_normalizes_conditions(self, service):
        service.db.add_item(Trial(title="Glioblastoma Trial", tags=["Brain Cancer"]))
        service.db.add_item(Trial(title="Asthma Trial", tags=["Asthma"]))

        results = service.recommend(["brain tumor"], ContentKind.TRIALS)

        assert [t.title for t in results] == ["Glioblastoma Trial"]

    def test_recommend_without_conditions(self, service):
        assert service.recommend([], ContentKind.EXPERTS) == []

    def test_fallback_text_is_matched(self, service):
        """Unrecognized wording is still searched as text."""
        service.db.add_item(Trial(title="Study of frobnitz syndrome"))
        results = service.recommend(["Frobnitz Syndrome"], ContentKind.TRIALS)
        assert len(results) == 1

    def test_import_content(self, service):
        report = service.import_content(["Brain Cancer"], ContentKind.TRIALS)
        assert report.persisted == 1
        assert service.import_content(["Brain Cancer"], "trials").persisted == 0

    def test_sync_platform_expert(self, service):
        first = service.sync_platform_expert("acct-9", "Dr. Ada", specialties=["Oncology"])
        second = service.sync_platform_expert("acct-9", "Dr. Ada", specialties=["Neurology"])
        assert first.id == second.id
        assert second.specialties == ["Neurology"]

    def test_summarizer_from_config(self, service):
        assert isinstance(service.pipeline.summarizer, TruncatingSummarizer)

    def test_default_connectors(self, config):
        connectors = default_connectors(config)
        assert [type(c) for c in connectors] == [PubMedConnector, OrcidConnector, ClinicalTrialsGovConnector]
        assert all(c.timeout == config.connector_timeout for c in connectors)


class TestCuralinkConfig:

    def test_defaults(self):
        config = CuralinkConfig()
        assert config.personalized_page_size == 20
        assert config.browse_page_size == 50
        assert config.bootstrap_terms == 2
        assert config.import_max_results == 5
        assert config.seed_terms == 3
        assert config.collect_timeout == 20.0

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CURALINK_DB_PATH", str(tmp_path / "env.db"))
        monkeypatch.setenv("CURALINK_PERSONALIZED_PAGE_SIZE", "7")
        monkeypatch.setenv("CURALINK_CONNECTOR_TIMEOUT", "2.5")
        monkeypatch.setenv("PUBMED_API_KEY", "pm-key")

        config = CuralinkConfig.from_env(str(tmp_path / "missing.env"))

        assert config.db_path == str(tmp_path / "env.db")
        assert config.personalized_page_size == 7
        assert config.connector_timeout == 2.5
        assert config.pubmed_api_key == "pm-key"

    def test_invalid_number_uses_default(self, monkeypatch, tmp_path, caplog):
        monkeypatch.setenv("CURALINK_BROWSE_PAGE_SIZE", "lots")
        with caplog.at_level(logging.WARNING):
            config = CuralinkConfig.from_env(str(tmp_path / "missing.env"))
        assert config.browse_page_size == 50
        assert "CURALINK_BROWSE_PAGE_SIZE" in caplog.text

    def test_env_file_loaded(self, monkeypatch, tmp_path):
        monkeypatch.delenv("CURALINK_SEED_TERMS", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("CURALINK_SEED_TERMS=4\n")
        try:
            config = CuralinkConfig.from_env(str(env_file))
            assert config.seed_terms == 4
        finally:
            os.environ.pop("CURALINK_SEED_TERMS", None)
