# CuraLink - Configuration
# ========================
"""
Runtime configuration, read from the environment. A .env file in the
project root (or the path passed to from_env) is loaded first; values
already set in the environment win.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .enrichment.summarizer import SummaryConfig

logger = logging.getLogger(__name__)

project_root = Path(__file__).parent.parent


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid {name} '{raw}', defaulting to {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid {name} '{raw}', defaulting to {default}")
        return default


@dataclass
class CuralinkConfig:
    """Configuration for the matching core."""
    db_path: Optional[str] = None              # None -> <project>/data/curalink.db
    personalized_page_size: int = 20
    browse_page_size: int = 50
    bootstrap_terms: int = 2                   # Tags used by lazy bootstrap
    import_max_results: int = 5                # Per connector per term
    seed_terms: int = 3                        # Conditions used by cold-start seeding
    connector_timeout: float = 10.0
    pubmed_api_key: Optional[str] = None
    summary: SummaryConfig = field(default_factory=SummaryConfig)

    @property
    def collect_timeout(self) -> float:
        """Wait for all connectors of one term; PubMed makes two requests."""
        return self.connector_timeout * 2

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "CuralinkConfig":
        """Create config from environment variables."""
        env_path = Path(env_file) if env_file else project_root / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded .env from {env_path}")

        return cls(
            db_path=os.getenv("CURALINK_DB_PATH"),
            personalized_page_size=_env_int("CURALINK_PERSONALIZED_PAGE_SIZE", 20),
            browse_page_size=_env_int("CURALINK_BROWSE_PAGE_SIZE", 50),
            bootstrap_terms=_env_int("CURALINK_BOOTSTRAP_TERMS", 2),
            import_max_results=_env_int("CURALINK_IMPORT_MAX_RESULTS", 5),
            seed_terms=_env_int("CURALINK_SEED_TERMS", 3),
            connector_timeout=_env_float("CURALINK_CONNECTOR_TIMEOUT", 10.0),
            pubmed_api_key=os.getenv("PUBMED_API_KEY") or None,
            summary=SummaryConfig.from_env(),
        )
