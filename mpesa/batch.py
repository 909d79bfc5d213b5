"""
Batch Parsing

Re-parses many messages at once, e.g. a backlog of historical SMS exports.

parse() is a pure function of its input, so messages are spread over a
thread pool without any locking. Results come back in input order.
"""

import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from loguru import logger

from .config import EngineSettings
from .engine import MessageParser
from .models import ParseOutcome, ParseTier


@dataclass
class BatchSummary:
    """Statistics over one batch of outcomes."""
    total: int = 0
    valid: int = 0
    by_tier: dict[str, int] = field(default_factory=dict)
    by_pattern: dict[str, int] = field(default_factory=dict)
    average_confidence: Optional[float] = None
    duplicate_transaction_ids: list[str] = field(default_factory=list)
    processing_time_ms: int = 0

    @property
    def invalid(self) -> int:
        return self.total - self.valid

    @classmethod
    def from_outcomes(cls, outcomes: list[ParseOutcome], processing_time_ms: int = 0) -> 'BatchSummary':
        tiers = Counter(o.tier.value for o in outcomes)
        patterns = Counter(o.pattern_used for o in outcomes if o.pattern_used)

        scores = [o.confidence for o in outcomes if isinstance(o.confidence, float)]
        average = round(sum(scores) / len(scores), 4) if scores else None

        # Reported only; de-duplication policy belongs to the caller
        ids = Counter(
            o.fields.transaction_id for o in outcomes
            if o.is_valid and o.fields.transaction_id
        )
        duplicates = sorted(tx_id for tx_id, count in ids.items() if count > 1)

        return cls(
            total=len(outcomes),
            valid=sum(1 for o in outcomes if o.is_valid),
            by_tier={tier.value: tiers.get(tier.value, 0) for tier in ParseTier},
            by_pattern=dict(patterns),
            average_confidence=average,
            duplicate_transaction_ids=duplicates,
            processing_time_ms=processing_time_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            'total': self.total,
            'valid': self.valid,
            'invalid': self.invalid,
            'by_tier': dict(self.by_tier),
            'by_pattern': dict(self.by_pattern),
            'average_confidence': self.average_confidence,
            'duplicate_transaction_ids': list(self.duplicate_transaction_ids),
            'processing_time_ms': self.processing_time_ms,
        }


def parse_batch(
    messages: Iterable[str],
    settings: Optional[EngineSettings] = None,
    workers: Optional[int] = None,
) -> tuple[list[ParseOutcome], BatchSummary]:
    """
    Parse many messages in parallel.

    Args:
        messages: Raw message texts
        settings: Engine settings (defaults if omitted)
        workers: Thread count; defaults to settings.batch_workers

    Returns:
        Tuple of (outcomes in input order, summary)
    """
    settings = settings or EngineSettings()
    parser = MessageParser(settings)
    items = list(messages)
    num_workers = max(1, workers or settings.batch_workers)

    start = time.perf_counter()

    if num_workers == 1 or len(items) <= 1:
        outcomes = [parser.parse(m) for m in items]
    else:
        with ThreadPoolExecutor(max_workers=num_workers, thread_name_prefix='parser') as executor:
            outcomes = list(executor.map(parser.parse, items))

    elapsed_ms = int((time.perf_counter() - start) * 1000)
    summary = BatchSummary.from_outcomes(outcomes, elapsed_ms)

    logger.info(
        f"Parsed {summary.total} messages: {summary.valid} valid, "
        f"{summary.invalid} invalid ({elapsed_ms} ms)"
    )
    if summary.duplicate_transaction_ids:
        logger.warning(
            f"Duplicate transaction ids in batch: {', '.join(summary.duplicate_transaction_ids)}"
        )

    return outcomes, summary
