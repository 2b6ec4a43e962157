"""Summarization strategies."""

from dataclasses import dataclass, field
from typing import Optional, Protocol

from digest_api.db.models import Report


@dataclass
class SummaryResult:
    """Result of summarizing a content source."""

    title: str
    key_points: list[str] = field(default_factory=list)
    word_count: int = 0
    full_text: Optional[str] = None


class Summarizer(Protocol):
    async def summarize(self, report: Report) -> SummaryResult: ...


class PlaceholderSummarizer:
    """Returns a fixed digest regardless of the source."""

    TITLE = "AI Agent Revolution - Cognitive Era"
    KEY_POINTS = (
        "LLMs are redefining reasoning",
        "Agents are the next paradigm",
        "Cognitive architectures enable complex workflows",
    )
    WORD_COUNT = 523
    FULL_TEXT = "This is a placeholder for the full summary text..."

    async def summarize(self, report: Report) -> SummaryResult:
        return SummaryResult(
            title=self.TITLE,
            key_points=list(self.KEY_POINTS),
            word_count=self.WORD_COUNT,
            full_text=self.FULL_TEXT,
        )
