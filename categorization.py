"""Auto-categorization of transactions.

Each uncategorized transaction goes through, in order:

1. Keyword rules (``rules.apply_rules``). A hit is final: source ``rule``.
2. The LLM provider, when AI is requested and ``provider.is_configured()``.
   Answers below the confidence threshold are kept but flagged for review.
   A transient failure leaves the transaction uncategorized with the error
   recorded; there is no retry within the batch. When the provider is
   unavailable or rate limited, categorization falls through to step 3.
3. Similarity with recently categorized history (``similarity.find_best_match``):
   source ``pattern``.

Transactions that already have a category are skipped unless the caller asks
for an explicit re-classification (``force=True``).
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from config import Config
from llm.errors import ClassificationError, RateLimitedError, ServiceUnavailableError
from llm.providers.base import LLMProvider
from models.category import Taxonomy
from models.rule import Rule
from models.transaction import (
    SOURCE_AI,
    SOURCE_PATTERN,
    SOURCE_RULE,
    Transaction,
)
from rules import apply_rules
from similarity import find_best_match
from logger import get_logger

logger = get_logger()

RULE_VERSION = "rules-v1"
PATTERN_VERSION = "pattern-v1"

REASON_ALREADY_CATEGORIZED = "Already categorized"
REASON_NO_MATCH = "No match"


@dataclass
class CategorizationOutcome:
    """What categorization decided for one transaction."""

    transaction_id: str
    categorized: bool = False
    source: Optional[str] = None
    major_category: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    confidence: Optional[float] = None
    reasoning: Optional[str] = None
    version: Optional[str] = None
    flagged: bool = False
    skipped: bool = False
    reason: str = ""
    error: Optional[str] = None
    error_kind: Optional[str] = None


@dataclass
class BatchResult:
    outcomes: List[CategorizationOutcome] = field(default_factory=list)
    deferred: int = 0

    @property
    def categorized(self) -> List[CategorizationOutcome]:
        return [o for o in self.outcomes if o.categorized]

    @property
    def errors(self) -> List[CategorizationOutcome]:
        return [o for o in self.outcomes if o.error is not None and not o.categorized]

    @property
    def skipped(self) -> List[CategorizationOutcome]:
        return [o for o in self.outcomes if o.skipped]

    @property
    def flagged_count(self) -> int:
        return sum(1 for o in self.categorized if o.flagged)

    def count_by_source(self) -> Dict[str, int]:
        counts = {SOURCE_RULE: 0, SOURCE_PATTERN: 0, SOURCE_AI: 0}
        for outcome in self.categorized:
            counts[outcome.source] = counts.get(outcome.source, 0) + 1
        return counts


class Categorizer:
    """Applies rules, the LLM and history similarity to transactions.

    All inputs are loaded by the caller for a single operation; the
    categorizer does not read or write the database.
    """

    def __init__(
        self,
        rules: Sequence[Rule],
        history: Sequence[Transaction],
        taxonomy: Optional[Taxonomy] = None,
        provider: Optional[LLMProvider] = None,
        config: Optional[Config] = None,
    ):
        self.rules = list(rules)
        self.history = [t for t in history if t.is_categorized and not t.is_deleted]
        self.taxonomy = taxonomy or Taxonomy()
        self.provider = provider

        self.confidence_threshold = config.confidence_threshold if config else 0.7
        self.similarity_threshold = config.similarity_threshold if config else 0.7
        self.examples_limit = min(config.ai_examples_limit if config else 100, 100)
        self.batch_limit = config.ai_batch_limit if config else 50
        self.concurrency = max(1, config.ai_concurrency if config else 5)

        self._rate_limited = threading.Event()

    def ai_available(self) -> bool:
        return self.provider is not None and self.provider.is_configured()

    def categorize(
        self, transaction: Transaction, use_ai: bool = False, force: bool = False
    ) -> CategorizationOutcome:
        """Categorize a single transaction without persisting anything.

        Args:
            transaction: Transaction to categorize.
            use_ai: Whether the LLM may be called.
            force: Re-classify even if the transaction already has a category.

        Returns:
            CategorizationOutcome describing the decision.
        """
        if transaction.is_categorized and not force:
            return CategorizationOutcome(
                transaction_id=transaction.id,
                skipped=True,
                reason=REASON_ALREADY_CATEGORIZED,
            )

        outcome = self._match_rule(transaction)
        if outcome is not None:
            return outcome

        ai_error: Optional[ClassificationError] = None
        if use_ai and self.ai_available() and not self._rate_limited.is_set():
            try:
                return self._classify_with_ai(transaction)
            except (ServiceUnavailableError, RateLimitedError) as e:
                if isinstance(e, RateLimitedError):
                    self._rate_limited.set()
                logger.warning(
                    f"AI unavailable for {transaction.id[:8]} ({e.kind}); "
                    "falling back to history matching"
                )
                ai_error = e
            except ClassificationError as e:
                logger.error(f"AI classification failed for {transaction.id[:8]}: {e}")
                return CategorizationOutcome(
                    transaction_id=transaction.id,
                    flagged=transaction.flagged,
                    reason="AI classification failed",
                    error=str(e),
                    error_kind=e.kind,
                )

        outcome = self._match_history(transaction)
        if outcome is None:
            outcome = CategorizationOutcome(
                transaction_id=transaction.id,
                flagged=transaction.flagged,
                reason=REASON_NO_MATCH,
            )
        if ai_error is not None:
            outcome.error = str(ai_error)
            outcome.error_kind = ai_error.kind
        return outcome

    def suggest(self, transaction: Transaction) -> Optional[CategorizationOutcome]:
        """Best non-AI suggestion for a transaction, regardless of its current category."""
        return self._match_rule(transaction) or self._match_history(transaction)

    def categorize_batch(
        self,
        transactions: Iterable[Transaction],
        use_ai: bool = False,
        force: bool = False,
    ) -> BatchResult:
        """Categorize many transactions within one call.

        Rule matching runs first for everything. When AI is used, at most
        ``ai_batch_limit`` remaining transactions are processed and LLM calls run
        on a pool of ``ai_concurrency`` workers; the rest are reported as deferred.
        """
        result = BatchResult()
        remaining: List[Transaction] = []

        for transaction in transactions:
            if transaction.is_categorized and not force:
                result.outcomes.append(
                    CategorizationOutcome(
                        transaction_id=transaction.id,
                        skipped=True,
                        reason=REASON_ALREADY_CATEGORIZED,
                    )
                )
                continue

            outcome = self._match_rule(transaction)
            if outcome is not None:
                result.outcomes.append(outcome)
            else:
                remaining.append(transaction)

        if not (use_ai and self.ai_available()):
            for transaction in remaining:
                result.outcomes.append(self.categorize(transaction, force=True))
            self._log_batch(result)
            return result

        if len(remaining) > self.batch_limit:
            result.deferred = len(remaining) - self.batch_limit
            logger.info(
                f"AI batch limited to {self.batch_limit} transactions; "
                f"{result.deferred} deferred to a later run"
            )
            remaining = remaining[: self.batch_limit]

        with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
            outcomes = executor.map(
                lambda t: self.categorize(t, use_ai=True, force=True), remaining
            )
            result.outcomes.extend(outcomes)

        self._log_batch(result)
        return result

    def _match_rule(self, transaction: Transaction) -> Optional[CategorizationOutcome]:
        match = apply_rules(transaction.raw_description, self.rules)
        if match is None:
            return None

        logger.debug(
            f"Transaction {transaction.id[:8]} matched rule '{match.rule.keyword}'"
        )
        return CategorizationOutcome(
            transaction_id=transaction.id,
            categorized=True,
            source=SOURCE_RULE,
            major_category=match.major_category,
            category=match.category,
            sub_category=match.sub_category,
            tags=match.tags,
            confidence=1.0,
            reasoning=f"Matched rule '{match.rule.keyword}'",
            version=RULE_VERSION,
        )

    def _match_history(
        self, transaction: Transaction
    ) -> Optional[CategorizationOutcome]:
        pool = [t for t in self.history if t.id != transaction.id]
        match = find_best_match(
            transaction.raw_description,
            transaction.raw_amount,
            pool,
            threshold=self.similarity_threshold,
        )
        if match is None:
            return None

        source_txn = match.transaction
        logger.debug(
            f"Transaction {transaction.id[:8]} matched history "
            f"'{source_txn.raw_description}' ({match.score:.2f})"
        )
        return CategorizationOutcome(
            transaction_id=transaction.id,
            categorized=True,
            source=SOURCE_PATTERN,
            major_category=source_txn.major_category,
            category=source_txn.category,
            sub_category=source_txn.sub_category,
            tags=list(source_txn.tags),
            confidence=match.score,
            reasoning=f"Similar to '{source_txn.raw_description}'",
            version=PATTERN_VERSION,
        )

    def _classify_with_ai(self, transaction: Transaction) -> CategorizationOutcome:
        examples = self.history[: self.examples_limit]
        classification = self.provider.classify_transaction(
            transaction, examples, self.taxonomy
        )
        flagged = classification.confidence < self.confidence_threshold
        if flagged:
            logger.info(
                f"Low-confidence AI classification for {transaction.id[:8]} "
                f"({classification.confidence:.2f}); flagged for review"
            )
        return CategorizationOutcome(
            transaction_id=transaction.id,
            categorized=True,
            source=SOURCE_AI,
            major_category=classification.major_category,
            category=classification.category,
            sub_category=classification.sub_category,
            tags=list(classification.tags),
            confidence=classification.confidence,
            reasoning=classification.reasoning,
            version=classification.version,
            flagged=flagged,
        )

    def _log_batch(self, result: BatchResult) -> None:
        counts = result.count_by_source()
        logger.info(
            f"Categorized {len(result.categorized)}/{len(result.outcomes)} transactions "
            f"(rule: {counts[SOURCE_RULE]}, pattern: {counts[SOURCE_PATTERN]}, "
            f"ai: {counts[SOURCE_AI]}, flagged: {result.flagged_count}, "
            f"errors: {len(result.errors)}, skipped: {len(result.skipped)})"
        )


def apply_outcomes(services, outcomes: Iterable[CategorizationOutcome]) -> int:
    """Persist categorized outcomes. Returns the number of transactions updated."""
    updated = 0
    for outcome in outcomes:
        if outcome.categorized and services.transactions.apply_categorization(outcome):
            updated += 1
    return updated


def build_categorizer(services, provider: Optional[LLMProvider] = None) -> Categorizer:
    """Load rules, history and taxonomy fresh for one categorization run."""
    config = services.config
    return Categorizer(
        rules=services.rules.find_active(),
        history=services.transactions.find_categorized_history(config.history_limit),
        taxonomy=services.categories.get_taxonomy(),
        provider=provider,
        config=config,
    )


def auto_categorize_pending(
    services,
    provider: Optional[LLMProvider] = None,
    use_ai: bool = False,
    transaction_ids: Optional[List[str]] = None,
    force: bool = False,
) -> BatchResult:
    """Categorize pending transactions (or the given ones) and save the results.

    Args:
        services: Services container.
        provider: LLM provider, or None to use rules and history only.
        use_ai: Whether the LLM may be called.
        transaction_ids: Restrict to these transactions instead of all pending ones.
        force: Re-classify transactions that already have a category.

    Returns:
        BatchResult with one outcome per transaction considered.
    """
    if transaction_ids is not None:
        transactions = services.transactions.find_many(transaction_ids)
    else:
        transactions = services.transactions.find_pending()

    logger.info(
        f"Auto-categorization called with {len(transactions)} transactions "
        f"(AI {'requested' if use_ai else 'off'})"
    )

    categorizer = build_categorizer(services, provider)
    if use_ai and not categorizer.ai_available():
        logger.info("LLM provider not configured; using rules and history only")

    result = categorizer.categorize_batch(transactions, use_ai=use_ai, force=force)
    updated = apply_outcomes(services, result.outcomes)
    logger.info(f"Saved categories for {updated} transaction(s)")
    return result
