"""OpenAI provider implementation using structured outputs."""

from typing import List, Optional, Sequence

import openai
from openai import OpenAI
from pydantic import BaseModel, Field

from llm.errors import RateLimitedError, ServiceUnavailableError, TransientError
from llm.prompts.loader import PromptManager
from llm.providers.base import (
    AIClassification,
    LLMProvider,
    ParsedDocumentRow,
    clamp_confidence,
)
from models.category import Taxonomy
from models.transaction import Transaction
from logger import get_logger

logger = get_logger()

MAX_EXAMPLES = 100


# Pydantic models for structured output
class TransactionCategorization(BaseModel):
    """Single transaction categorization result."""

    major_category: str
    category: str
    sub_category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    confidence: float
    reasoning: str


class DocumentTransaction(BaseModel):
    date: str
    description: str
    amount: float
    balance: Optional[float] = None


class DocumentParseResponse(BaseModel):
    """All transactions found in a statement plus anything the model skipped."""

    transactions: List[DocumentTransaction]
    notes: List[str] = Field(default_factory=list)


class OpenAIProvider(LLMProvider):
    """OpenAI implementation using structured outputs for reliable JSON parsing."""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        client: Optional[OpenAI] = None,
        prompt_manager: Optional[PromptManager] = None,
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key.
            model: Model to use (e.g., "gpt-4o-mini"). If None, uses prompt default.
            client: Pre-built client, mainly for tests. Built lazily otherwise.
            prompt_manager: Prompt loader; defaults to llm/prompts.
        """
        self.api_key = api_key or ""
        self.model = model
        self._client = client
        self.prompt_manager = prompt_manager or PromptManager()

    def is_configured(self) -> bool:
        if self._client is not None:
            return True
        key = self.api_key
        return len(key) > 10 and "your_" not in key

    @property
    def client(self) -> OpenAI:
        if not self.is_configured():
            raise ServiceUnavailableError(
                "OpenAI is not configured. Set llm.openai.api_key in the config "
                "or the OPENAI_API_KEY environment variable."
            )
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def classify_transaction(
        self,
        transaction: Transaction,
        examples: Sequence[Transaction],
        taxonomy: Taxonomy,
    ) -> AIClassification:
        """Classify one transaction against the taxonomy.

        Raises:
            ServiceUnavailableError: No usable API key.
            RateLimitedError: OpenAI rate limit or quota exceeded.
            TransientError: Any other API failure, or an answer outside the taxonomy.
        """
        rendered = self.prompt_manager.render_prompt(
            "categorization",
            {
                "transaction": self._format_transaction(transaction),
                "examples": self._format_examples(examples[:MAX_EXAMPLES]),
                "taxonomy": taxonomy.describe(),
            },
        )

        result = self._parse(rendered, TransactionCategorization)

        if taxonomy.majors and not taxonomy.is_valid(
            result.major_category, result.category
        ):
            raise TransientError(
                f"AI returned a category outside the taxonomy: "
                f"{result.major_category} / {result.category}"
            )

        sub_category = result.sub_category or None
        if sub_category and taxonomy.majors and not taxonomy.is_valid(
            result.major_category, result.category, sub_category
        ):
            logger.debug(f"Dropping unknown sub-category from AI answer: {sub_category}")
            sub_category = None

        return AIClassification(
            major_category=result.major_category,
            category=result.category,
            sub_category=sub_category,
            tags=[tag for tag in result.tags if isinstance(tag, str)],
            confidence=clamp_confidence(result.confidence),
            reasoning=result.reasoning or "AI classification",
            version=rendered["version"],
        )

    def parse_document(self, text: str, bank: str) -> List[ParsedDocumentRow]:
        """Extract transactions from statement text.

        Raises:
            ServiceUnavailableError, RateLimitedError, TransientError.
        """
        rendered = self.prompt_manager.render_prompt(
            "document_parsing", {"text": text, "bank": bank}
        )
        result = self._parse(rendered, DocumentParseResponse)

        for note in result.notes:
            logger.info(f"Document parsing note: {note}")

        return [
            ParsedDocumentRow(
                date=row.date,
                description=row.description,
                amount=row.amount,
                balance=row.balance,
            )
            for row in result.transactions
        ]

    def _parse(self, rendered: dict, response_format):
        """Call the chat completions parse endpoint and map errors to llm.errors."""
        client = self.client
        parameters = rendered["parameters"]
        model = self.model or parameters.get("model", "gpt-4o-mini")

        logger.debug(f"Using model: {model}, prompt version: {rendered['version']}")

        try:
            response = client.chat.completions.parse(
                model=model,
                messages=[
                    {"role": "system", "content": rendered["system_prompt"]},
                    {"role": "user", "content": rendered["user_prompt"]},
                ],
                temperature=parameters.get("temperature", 0.1),
                max_tokens=parameters.get("max_tokens", 800),
                response_format=response_format,
            )
        except openai.RateLimitError as e:
            logger.warning(f"OpenAI rate limit: {e}")
            raise RateLimitedError(str(e)) from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            logger.error(f"OpenAI rejected credentials: {e}")
            raise ServiceUnavailableError(str(e)) from e
        except openai.OpenAIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise TransientError(str(e)) from e

        parsed = response.choices[0].message.parsed
        if parsed is None:
            raise TransientError("OpenAI returned no parsed response")
        return parsed

    def _format_transaction(self, transaction: Transaction) -> str:
        kind = "expense" if transaction.raw_amount < 0 else "income"
        return (
            f"- Description: '{transaction.raw_description}'\n"
            f"- Amount: €{transaction.raw_amount:.2f} ({kind})\n"
            f"- Date: {transaction.raw_date.date().isoformat()}\n"
            f"- Bank: {transaction.bank}"
        )

    def _format_examples(self, examples: Sequence[Transaction]) -> str:
        if not examples:
            return "No historical examples available."

        lines = []
        for txn in examples:
            path = f"{txn.major_category} > {txn.category}"
            if txn.sub_category:
                path += f" > {txn.sub_category}"
            tags = f", Tags: {', '.join(txn.tags)}" if txn.tags else ""
            lines.append(
                f"- '{txn.raw_description}' (€{txn.raw_amount:.2f}) -> {path}{tags}"
            )
        return "\n".join(lines)
