"""
Confidence scoring for parse outcomes.

Catalog matches get a number between 0 and 1: a base for the tier plus small
bonuses for each field that downstream bookkeeping relies on. Outcomes from
the fallback tier and total failures are not scored numerically; they carry a
qualitative tier instead.
"""

from typing import Optional, Union

from .models import (
    ConfidenceTier,
    ParsedTransaction,
    ParseOutcome,
    ParseTier,
)


class ConfidenceScorer:
    """Computes completeness/trust scores."""

    TIER_BASE = {
        ParseTier.PRIMARY: 0.7,
        ParseTier.ALTERNATIVE: 0.4,
    }

    FIELD_BONUS = (
        ('amount', 0.1),
        ('transaction_id', 0.1),
        ('transaction_date', 0.05),
        ('org_account_balance', 0.05),
    )

    TIER_BUCKET = {
        ParseTier.PRIMARY: ConfidenceTier.HIGH,
        ParseTier.ALTERNATIVE: ConfidenceTier.LOW,
        ParseTier.BASIC: ConfidenceTier.VERY_LOW,
    }

    def score(self, tier: ParseTier, fields: ParsedTransaction) -> float:
        """
        Numeric score for a catalog-tier result.

        Raises:
            ValueError: tier is not a catalog tier
        """
        if tier not in self.TIER_BASE:
            raise ValueError(f"No numeric confidence for tier '{tier.value}'")

        score = self.TIER_BASE[tier]
        for attr, bonus in self.FIELD_BONUS:
            if getattr(fields, attr) is not None:
                score += bonus

        return round(min(score, 1.0), 4)

    def bucket(self, tier: ParseTier) -> Optional[ConfidenceTier]:
        """Qualitative tier for an outcome tier (None for failures)."""
        return self.TIER_BUCKET.get(tier)

    def confidence(self, tier: ParseTier, fields: ParsedTransaction) -> Optional[Union[float, ConfidenceTier]]:
        """Numeric score for catalog tiers, qualitative tier otherwise."""
        if tier in self.TIER_BASE:
            return self.score(tier, fields)
        return self.bucket(tier)


_scorer = ConfidenceScorer()


def confidence(outcome: ParseOutcome) -> Optional[Union[float, ConfidenceTier]]:
    """Confidence of an outcome: score for catalog matches, tier otherwise."""
    return _scorer.confidence(outcome.tier, outcome.fields)
