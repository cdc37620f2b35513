"""Base provider interface for LLM implementations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from models.category import Taxonomy
from models.transaction import SOURCE_AI, Transaction


@dataclass
class AIClassification:
    """A category guess returned by a provider for one transaction."""

    major_category: str
    category: str
    confidence: float  # 0.0 to 1.0
    reasoning: str
    sub_category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    version: str = "unknown"
    source: str = SOURCE_AI


@dataclass
class ParsedDocumentRow:
    """A transaction row extracted from an unstructured document."""

    date: str
    description: str
    amount: float
    balance: Optional[float] = None


def clamp_confidence(value) -> float:
    """Coerce a provider confidence into [0, 1]; unreadable values become 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    return min(1.0, max(0.0, number))


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    Callers check ``is_configured`` before calling and pick a fallback path
    when it is False. Operations raise ``llm.errors`` types on failure.
    """

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the provider has what it needs to make calls."""

    @abstractmethod
    def classify_transaction(
        self,
        transaction: Transaction,
        examples: Sequence[Transaction],
        taxonomy: Taxonomy,
    ) -> AIClassification:
        """Classify one transaction.

        Args:
            transaction: The transaction to classify.
            examples: Recently categorized transactions (at most 100).
            taxonomy: Allowed categories; the answer must come from it.

        Raises:
            ServiceUnavailableError, RateLimitedError, TransientError.
        """

    @abstractmethod
    def parse_document(self, text: str, bank: str) -> List[ParsedDocumentRow]:
        """Extract transaction rows from the text of a statement.

        Raises:
            ServiceUnavailableError, RateLimitedError, TransientError.
        """
