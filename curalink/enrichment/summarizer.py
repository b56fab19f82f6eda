# CuraLink - Summary Generator
# ============================
"""
Summary Generator
=================
Short, patient-friendly summaries for imported content:
- Claude (Anthropic API) when an API key is configured
- Truncation fallback otherwise

summarize() never raises. Any backend failure degrades to the first
SUMMARY_FALLBACK_CHARS characters of the input, tidied into sentences.
"""

import os
import re
import time
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import anthropic

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

class SummaryProvider(str, Enum):
    """Supported summary backends."""
    CLAUDE = "claude"
    NONE = "none"      # Truncation only


@dataclass
class SummaryConfig:
    """Configuration for the summary generator."""
    provider: SummaryProvider = SummaryProvider.CLAUDE
    anthropic_api_key: Optional[str] = None
    model: str = "claude-3-5-haiku-20241022"
    max_tokens: int = 150
    temperature: float = 0.7
    timeout: int = 30
    fallback_chars: int = 200

    @classmethod
    def from_env(cls) -> "SummaryConfig":
        """Create config from environment variables."""
        provider_str = os.getenv("SUMMARY_PROVIDER", "claude").lower()
        try:
            provider = SummaryProvider(provider_str)
        except ValueError:
            logger.warning(f"Unknown SUMMARY_PROVIDER '{provider_str}', defaulting to claude")
            provider = SummaryProvider.CLAUDE

        return cls(
            provider=provider,
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            model=os.getenv("SUMMARY_MODEL", "claude-3-5-haiku-20241022"),
            max_tokens=int(os.getenv("SUMMARY_MAX_TOKENS", "150")),
            timeout=int(os.getenv("SUMMARY_TIMEOUT_SECONDS", "30")),
            fallback_chars=int(os.getenv("SUMMARY_FALLBACK_CHARS", "200")),
        )


SYSTEM_PROMPT = (
    "You are a medical assistant that creates simple, easy-to-understand "
    "summaries of medical content for patients. Keep summaries concise "
    "(2-3 sentences) and use plain language."
)


# =============================================================================
# PROSE FORMATTING
# =============================================================================

_TERMINAL = re.compile(r"[.!?]$")
_SENTENCE_CHUNKS = re.compile(r"[^.!?]+[.!?]|[^.!?]+$")
_BULLET = re.compile(r"^\s*[-*•]\s+")
_TITLE_MAX_WORDS = 12


def enforce_full_sentence_prose(text: Optional[str], drop_title: bool = True) -> str:
    """
    Turn model or truncated output into plain sentences.

    Bullets and line breaks become spaces, a short unpunctuated title
    line in front of the body is dropped (unless drop_title is False),
    and every sentence is capitalized and terminated.

    Example:
        >>> enforce_full_sentence_prose("Key findings\\n- insulin helps\\n- diet matters")
        'Insulin helps diet matters.'
    """
    if not text or not isinstance(text, str):
        return ""

    lines = [_BULLET.sub("", line).strip() for line in text.splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        return ""

    first = lines[0]
    if (
        drop_title
        and len(lines) > 1
        and not _TERMINAL.search(first)
        and len(first.split()) <= _TITLE_MAX_WORDS
    ):
        lines = lines[1:]

    flattened = re.sub(r"\s{2,}", " ", " ".join(lines)).strip()
    chunks = _SENTENCE_CHUNKS.findall(flattened) or [flattened]

    sentences = []
    for chunk in chunks:
        sentence = chunk.strip()
        if not sentence:
            continue
        sentence = sentence[0].upper() + sentence[1:]
        if not _TERMINAL.search(sentence):
            sentence += "."
        sentences.append(sentence)

    return " ".join(sentences)


# =============================================================================
# SUMMARIZERS
# =============================================================================

class BaseSummarizer(ABC):
    """Abstract base class for summary backends."""

    def __init__(self, config: Optional[SummaryConfig] = None):
        self.config = config or SummaryConfig(provider=SummaryProvider.NONE)

    @abstractmethod
    def _generate(self, text: str) -> str:
        """Produce a summary; may raise."""
        pass

    def _polish(self, generated: str) -> str:
        return enforce_full_sentence_prose(generated)

    def fallback(self, text: str) -> str:
        """Truncated prefix of the input, as prose. Every line is kept."""
        return enforce_full_sentence_prose(text[:self.config.fallback_chars], drop_title=False)

    def summarize(self, text: Optional[str]) -> str:
        """
        Summarize text without ever raising.

        Args:
            text: Abstract, description or title

        Returns:
            Summary string; empty for empty input
        """
        text = (text or "").strip()
        if not text:
            return ""

        try:
            summary = self._polish(self._generate(text))
        except Exception as e:
            logger.warning(f"Summary generation failed, using truncation: {e}")
            return self.fallback(text)

        return summary or self.fallback(text)


class TruncatingSummarizer(BaseSummarizer):
    """Summary = first fallback_chars characters of the input."""

    def _generate(self, text: str) -> str:
        return text[:self.config.fallback_chars]

    def _polish(self, generated: str) -> str:
        return enforce_full_sentence_prose(generated, drop_title=False)


class ClaudeSummarizer(BaseSummarizer):
    """Patient-friendly summaries from Claude."""

    def __init__(self, config: SummaryConfig):
        super().__init__(config)
        self.api_key = config.anthropic_api_key
        self.model = config.model
        self._client = None

    def _get_client(self):
        """Get or create Anthropic client."""
        if self._client is None:
            if not self.api_key:
                raise ValueError("ANTHROPIC_API_KEY not set; cannot generate summaries with Claude")
            self._client = anthropic.Anthropic(api_key=self.api_key, timeout=self.config.timeout)
        return self._client

    def _generate(self, text: str) -> str:
        start_time = time.time()
        client = self._get_client()

        response = client.messages.create(
            model=self.model,
            max_tokens=self.config.max_tokens,
            system=SYSTEM_PROMPT,
            messages=[{
                "role": "user",
                "content": (
                    "Please provide a simple, easy-to-understand summary of the "
                    f"following medical content:\n\n{text}"
                ),
            }],
            temperature=self.config.temperature,
        )

        content = ""
        for block in response.content or []:
            if hasattr(block, "text"):
                content += block.text

        logger.debug(f"Claude summary in {(time.time() - start_time) * 1000:.0f}ms")
        return content.strip()


# =============================================================================
# FACTORY
# =============================================================================

def create_summarizer(config: Optional[SummaryConfig] = None) -> BaseSummarizer:
    """
    Create a summarizer based on configuration.

    Args:
        config: Summary configuration (uses env vars if not provided)

    Returns:
        ClaudeSummarizer when a key is configured, else TruncatingSummarizer
    """
    if config is None:
        config = SummaryConfig.from_env()

    if config.provider == SummaryProvider.NONE:
        return TruncatingSummarizer(config)

    if not config.anthropic_api_key:
        logger.info("ANTHROPIC_API_KEY not set, summaries will be truncated text")
        return TruncatingSummarizer(config)

    logger.info(f"Creating Claude summarizer: {config.model}")
    return ClaudeSummarizer(config)
