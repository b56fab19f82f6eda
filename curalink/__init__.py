# CuraLink - Matching Core
# ========================
"""
CuraLink Matching Core
======================
Matches patients to clinical trials, publications and health experts.

This package provides:
- Condition normalization from free text to canonical condition tags
- A SQLite content catalog for trials, publications and experts
- Import connectors for PubMed, ORCID and ClinicalTrials.gov
- A deduplicating import pipeline with generated summaries
- Personalized matching with cold-start fallbacks
"""

__version__ = "1.0.0"
