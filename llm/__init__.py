"""LLM integration module for transaction categorization and document parsing."""

from llm.factory import get_llm_provider
from llm.errors import (
    ClassificationError,
    RateLimitedError,
    ServiceUnavailableError,
    TransientError,
)

__all__ = [
    "get_llm_provider",
    "ClassificationError",
    "RateLimitedError",
    "ServiceUnavailableError",
    "TransientError",
]
