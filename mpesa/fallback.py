"""
Basic Info Extractor

Last-resort scavenger for messages no template recognizes. It does not try
to understand the message; it collects whatever looks like an amount, a
phone number or a name, and guesses the transaction type from keywords.

Results from this tier are never trusted as a transaction: they exist so a
human (or a later rule) has something to start from.
"""

import re

from .models import BasicInfo, TransactionType
from .normalizers import AmountNormalizer


class BasicInfoExtractor:
    """
    Heuristic extraction when no catalog template matched.

    Usage:
        info = BasicInfoExtractor().extract(text)
        if info.has_any_info:
            print(info.amount, info.phone_numbers, info.names)
    """

    AMOUNT = re.compile(r'Ksh\s?(\d[\d,]*+(?:\.\d*+)?)', re.IGNORECASE)
    PHONE = re.compile(r'\b\d{9,12}\b')
    NAME = re.compile(r'\b[A-Z][a-z]++(?:\s+[A-Z][a-z]++)*\b')

    # Checked in order, first keyword found wins
    TYPE_KEYWORDS: tuple[tuple[str, TransactionType], ...] = (
        ('received', TransactionType.RECEIVED),
        ('sent', TransactionType.SENT),
        ('paid', TransactionType.PAYMENT),
        ('withdrawn', TransactionType.WITHDRAWAL),
        ('deposited', TransactionType.DEPOSIT),
    )

    def __init__(self):
        self.amount_normalizer = AmountNormalizer()

    def extract(self, text: str) -> BasicInfo:
        """Run every scavenge over the text."""
        return BasicInfo(
            amount=self.extract_amount(text),
            phone_numbers=self.extract_phone_numbers(text),
            names=self.extract_names(text),
            transaction_type=self.guess_type(text),
        )

    def extract_amount(self, text: str):
        """First currency-prefixed number anywhere in the text."""
        match = self.AMOUNT.search(text)
        if not match:
            return None
        return self.amount_normalizer.normalize_or_none(match.group(1))

    def extract_phone_numbers(self, text: str) -> list[str]:
        """Every standalone run of 9 to 12 digits."""
        return self.PHONE.findall(text)

    def extract_names(self, text: str) -> list[str]:
        """Capitalized words (or runs of them) longer than two characters."""
        return [name for name in self.NAME.findall(text) if len(name) > 2]

    def guess_type(self, text: str) -> TransactionType:
        """Keyword-based type guess; UNKNOWN when nothing matches."""
        lowered = text.lower()
        for keyword, transaction_type in self.TYPE_KEYWORDS:
            if keyword in lowered:
                return transaction_type
        return TransactionType.UNKNOWN
