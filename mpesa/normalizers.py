"""
Normalizers Module

This module turns the raw tokens captured from an SMS into clean values.

What normalization does:
- Message text → one line, single spaces, trimmed
- Amounts → Decimal without thousands separators ("1,500.00" → 1500.00)
- Timestamps → datetime ("12/01/24 3:45PM" → 2024-01-12 15:45)

Why this matters:
Notifications reach us copied out of phones, forwarded through gateways and
pasted into forms. The same message shows up with stray newlines, doubled
spaces, 2- or 4-digit years and 12- or 24-hour clocks. Templates and
downstream bookkeeping both need one canonical form.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from loguru import logger

from .exceptions import DateParseFailure, MalformedNumericToken


class TextNormalizer:
    """Normalizes message text."""

    _WHITESPACE = re.compile(r'\s+')

    @staticmethod
    def normalize_whitespace(text: Optional[str]) -> str:
        """
        Collapse every whitespace run (spaces, tabs, newlines, carriage
        returns) to a single space and strip the ends.

        Idempotent: normalizing an already normalized string returns it
        unchanged.
        """
        if not text:
            return ""

        return TextNormalizer._WHITESPACE.sub(' ', text).strip()

    @staticmethod
    def truncate(text: str, max_length: int, suffix: str = '...') -> str:
        """Truncate text to max length, adding suffix if truncated."""
        if not text or len(text) <= max_length:
            return text

        return text[:max(max_length - len(suffix), 0)] + suffix


class AmountNormalizer:
    """Normalizes currency amounts captured after the Ksh marker."""

    # Digits with optional thousands separators and an optional decimal part
    TOKEN = re.compile(r'^\d[\d,]*(?:\.\d*)?$')

    def normalize(self, value: str) -> Decimal:
        """
        Convert an amount token to a Decimal.

        Raises:
            MalformedNumericToken: token is empty or not a number
        """
        if value is None:
            raise MalformedNumericToken("Empty amount token")

        raw = str(value).strip()
        if not self.TOKEN.match(raw):
            raise MalformedNumericToken(f"Malformed amount token: {raw!r}")

        try:
            return Decimal(raw.replace(',', ''))
        except InvalidOperation as e:
            raise MalformedNumericToken(f"Malformed amount token: {raw!r}") from e

    def normalize_or_none(self, value: Optional[str]) -> Optional[Decimal]:
        """Like normalize(), but leaves the field unset on a bad token."""
        try:
            return self.normalize(value)
        except MalformedNumericToken as e:
            logger.warning(f"{e}; leaving amount unset")
            return None


class DateNormalizer:
    """
    Normalizes notification timestamps.

    Accepts day/month/year followed by hour:minute and an optional AM/PM
    marker, slash- or dash-delimited:

        15/03/24 2:30PM
        15-03-2024 14:30
        1/1/2024 12:05 am

    Unreadable tokens fall back to the current time. The fallback is logged
    but is not an error for the caller: the rest of the message may still be
    perfectly good.
    """

    FORMATS = (
        re.compile(
            r'(\d{1,2})/(\d{1,2})/(\d{2,4})\s+(\d{1,2}):(\d{2})(?:\s*([AP]M))?',
            re.IGNORECASE,
        ),
        re.compile(
            r'(\d{1,2})-(\d{1,2})-(\d{2,4})\s+(\d{1,2}):(\d{2})(?:\s*([AP]M))?',
            re.IGNORECASE,
        ),
    )

    def parse(self, value: str) -> datetime:
        """
        Parse a timestamp token.

        Raises:
            DateParseFailure: no known form matches or the values are out of range
        """
        text = str(value or '').strip()

        for fmt in self.FORMATS:
            match = fmt.search(text)
            if not match:
                continue

            day, month, year, hour, minute, meridiem = match.groups()

            year_num = int(year)
            if len(year) == 2:
                year_num += 2000

            hour_num = int(hour)
            if meridiem:
                meridiem = meridiem.upper()
                if meridiem == 'PM' and hour_num < 12:
                    hour_num += 12
                elif meridiem == 'AM' and hour_num == 12:
                    hour_num = 0

            try:
                return datetime(year_num, int(month), int(day), hour_num, int(minute))
            except ValueError as e:
                raise DateParseFailure(f"Invalid date {text!r}: {e}") from e

        raise DateParseFailure(f"Unrecognized date format: {text!r}")

    def normalize(self, value: str) -> datetime:
        """Parse a timestamp token, falling back to now() on failure."""
        try:
            return self.parse(value)
        except DateParseFailure as e:
            logger.warning(f"Failed to parse date, using current time: {e}")
        except Exception as e:
            logger.warning(f"Failed to parse date {value!r}, using current time: {e}")

        return datetime.now()


# Convenience functions

def normalize_text(value: Optional[str]) -> str:
    """Collapse whitespace in a message."""
    return TextNormalizer.normalize_whitespace(value)


def normalize_amount(value: str) -> Optional[Decimal]:
    """Convert an amount token to a Decimal, or None if it is malformed."""
    return AmountNormalizer().normalize_or_none(value)


def normalize_date(value: str) -> datetime:
    """Convert a timestamp token to a datetime (now() on failure)."""
    return DateNormalizer().normalize(value)
