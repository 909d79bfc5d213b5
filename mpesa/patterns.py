"""
Pattern Catalog

This module defines the notification templates the parser knows about and
the matcher that applies them.

Architecture:
1. Templates are grouped in two tiers
   - PRIMARY: the full canonical shape (amount, counter-party, timestamp,
     transaction id, balance)
   - ALTERNATIVE: shorter shapes carrying only amount and counter-party
2. Within a tier, templates are tried strictly in declaration order and the
   first match wins. This is a priority list, not a best-match search: when
   two templates could both match a message, the earlier one decides the
   transaction type.
3. Each template maps its named groups onto ParsedTransaction fields,
   normalizing amounts and timestamps on the way.

Backtracking:
Every variable-length token uses a possessive quantifier, and multi-word
captures are built as "word (space word)*" where a word can never contain
whitespace. No template has two quantifiers competing for the same
characters, so matching stays linear in the message length.
"""

import re
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from .models import ParsedTransaction, PatternTier, TransactionType
from .normalizers import AmountNormalizer, DateNormalizer


# Token building blocks
_MARKER = r'(?:MPESA|M-PESA)'
_CURRENCY = r'Ksh\s?'
_NUMBER = r'\d[\d,]*+(?:\.\d*+)?'
_PHONE = r'(?P<phone>\d++)'
_SHORT_CODE = r'(?P<code>[A-Z0-9]++)'
_NAME_WORD = r"[A-Z][\w'.&-]*+"
_NAME = rf'(?P<name>{_NAME_WORD}(?:\s+{_NAME_WORD})*)'
_ACCOUNT = r'(?P<account>[\w-]++(?:\s+[\w-]++)*)'
_DATE = r'(?P<date>\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\s+\d{1,2}:\d{2}(?:\s*[AP]M)?)'
_TRANSACTION_ID = r'(?P<txid>[A-Z0-9]++)'
_AMOUNT = rf'{_CURRENCY}(?P<amount>{_NUMBER})'
_BALANCE = rf'New\s+M-?PESA\s+balance\s+is\s+{_CURRENCY}(?P<balance>{_NUMBER})'

_TAIL = rf'{_DATE}\s+{_TRANSACTION_ID}\s+{_BALANCE}'


def _compile(*parts: str) -> re.Pattern:
    """Join template parts with whitespace and compile case-insensitively."""
    return re.compile(r'\s+'.join(parts), re.IGNORECASE)


_amount_normalizer = AmountNormalizer()
_date_normalizer = DateNormalizer()


@dataclass(frozen=True)
class PatternDefinition:
    """
    One notification template.

    `field_map` pairs regex group names with ParsedTransaction attributes.
    Amount-like fields are converted to Decimal, the timestamp to datetime,
    everything else is stripped text.
    """
    name: str
    tier: PatternTier
    transaction_type: TransactionType
    regex: re.Pattern
    field_map: tuple[tuple[str, str], ...]

    def match(self, text: str) -> Optional[re.Match]:
        return self.regex.search(text)

    def extract(self, match: re.Match) -> ParsedTransaction:
        """Map captured groups onto a ParsedTransaction."""
        result = ParsedTransaction(type=self.transaction_type)

        for group, attr in self.field_map:
            raw = match.group(group)
            if raw is None:
                continue

            if attr in ('amount', 'org_account_balance'):
                value = _amount_normalizer.normalize_or_none(raw)
            elif attr == 'transaction_date':
                value = _date_normalizer.normalize(raw)
            else:
                value = raw.strip() or None

            setattr(result, attr, value)

        return result


_COMMON_TAIL_FIELDS = (
    ('date', 'transaction_date'),
    ('txid', 'transaction_id'),
    ('balance', 'org_account_balance'),
)


PRIMARY_PATTERNS: tuple[PatternDefinition, ...] = (
    PatternDefinition(
        name='MONEY_RECEIVED',
        tier=PatternTier.PRIMARY,
        transaction_type=TransactionType.RECEIVED,
        regex=_compile(_MARKER, 'received', _AMOUNT, 'from', _PHONE, _NAME, _TAIL),
        field_map=(
            ('amount', 'amount'),
            ('phone', 'sender_phone'),
            ('name', 'sender_name'),
        ) + _COMMON_TAIL_FIELDS,
    ),
    PatternDefinition(
        name='MONEY_SENT',
        tier=PatternTier.PRIMARY,
        transaction_type=TransactionType.SENT,
        regex=_compile(_MARKER, _AMOUNT, 'sent', 'to', _PHONE, _NAME, _TAIL),
        field_map=(
            ('amount', 'amount'),
            ('phone', 'recipient_phone'),
            ('name', 'recipient_name'),
        ) + _COMMON_TAIL_FIELDS,
    ),
    PatternDefinition(
        name='PAYMENT_TO_BUSINESS',
        tier=PatternTier.PRIMARY,
        transaction_type=TransactionType.PAYMENT,
        regex=_compile(_MARKER, _AMOUNT, 'paid', 'to', _SHORT_CODE, _NAME, _TAIL),
        field_map=(
            ('amount', 'amount'),
            ('code', 'business_short_code'),
            ('name', 'business_name'),
        ) + _COMMON_TAIL_FIELDS,
    ),
    PatternDefinition(
        name='WITHDRAWAL',
        tier=PatternTier.PRIMARY,
        transaction_type=TransactionType.WITHDRAWAL,
        regex=_compile(_MARKER, _AMOUNT, 'withdrawn', 'from', _PHONE, _NAME, _TAIL),
        field_map=(
            ('amount', 'amount'),
            ('phone', 'agent_phone'),
            ('name', 'agent_name'),
        ) + _COMMON_TAIL_FIELDS,
    ),
    PatternDefinition(
        name='DEPOSIT',
        tier=PatternTier.PRIMARY,
        transaction_type=TransactionType.DEPOSIT,
        regex=_compile(_MARKER, _AMOUNT, 'deposited', 'to', _PHONE, _NAME, _TAIL),
        field_map=(
            ('amount', 'amount'),
            ('phone', 'agent_phone'),
            ('name', 'agent_name'),
        ) + _COMMON_TAIL_FIELDS,
    ),
    PatternDefinition(
        name='BUY_AIRTIME',
        tier=PatternTier.PRIMARY,
        transaction_type=TransactionType.AIRTIME,
        regex=_compile(_MARKER, _AMOUNT, 'paid', 'for', 'airtime', _PHONE, _TAIL),
        field_map=(
            ('amount', 'amount'),
            ('phone', 'phone_number'),
        ) + _COMMON_TAIL_FIELDS,
    ),
    PatternDefinition(
        name='PAY_BILL',
        tier=PatternTier.PRIMARY,
        transaction_type=TransactionType.PAYBILL,
        regex=_compile(_MARKER, _AMOUNT, 'paid', 'to', _SHORT_CODE, 'Account', _ACCOUNT, _TAIL),
        field_map=(
            ('amount', 'amount'),
            ('code', 'business_short_code'),
            ('account', 'account_number'),
        ) + _COMMON_TAIL_FIELDS,
    ),
)

ALTERNATIVE_PATTERNS: tuple[PatternDefinition, ...] = (
    PatternDefinition(
        name='SIMPLE_RECEIVED',
        tier=PatternTier.ALTERNATIVE,
        transaction_type=TransactionType.RECEIVED,
        regex=_compile('received', _AMOUNT, 'from', _PHONE, _NAME),
        field_map=(
            ('amount', 'amount'),
            ('phone', 'sender_phone'),
            ('name', 'sender_name'),
        ),
    ),
    PatternDefinition(
        name='SIMPLE_SENT',
        tier=PatternTier.ALTERNATIVE,
        transaction_type=TransactionType.SENT,
        regex=_compile('sent', _AMOUNT, 'to', _PHONE, _NAME),
        field_map=(
            ('amount', 'amount'),
            ('phone', 'recipient_phone'),
            ('name', 'recipient_name'),
        ),
    ),
)

CATALOG: tuple[PatternDefinition, ...] = PRIMARY_PATTERNS + ALTERNATIVE_PATTERNS


def pattern_names() -> tuple[str, ...]:
    """Names of all templates, primary tier first, in priority order."""
    return tuple(p.name for p in CATALOG)


def get_pattern(name: str) -> Optional[PatternDefinition]:
    """Look up a template by name."""
    for pattern in CATALOG:
        if pattern.name == name:
            return pattern
    return None


class PatternMatcher:
    """
    Applies an ordered list of templates to normalized text.

    Usage:
        matcher = PatternMatcher(PRIMARY_PATTERNS)
        hit = matcher.match(text)
        if hit:
            pattern, fields = hit
    """

    def __init__(self, patterns: tuple[PatternDefinition, ...]):
        self.patterns = patterns

    def match(self, text: str) -> Optional[tuple[PatternDefinition, ParsedTransaction]]:
        """Return the first template that matches, with its extracted fields."""
        for pattern in self.patterns:
            found = pattern.match(text)
            if found:
                logger.debug(f"Template {pattern.name} matched")
                return pattern, pattern.extract(found)

        return None
