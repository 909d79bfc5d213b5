"""
Data Models

Structures shared by every stage of SMS parsing. A parse call creates these,
fills them in, and hands the final ParseOutcome back to the caller; nothing
here outlives a single call.

Why explicit types instead of dicts:
The ingestion layer, the CLI and the exporters all read the same outcome.
Keeping "unset" as None (never an empty string) and amounts as Decimal means
every consumer sees the same shape no matter which tier produced the data.
"""

from dataclasses import dataclass, field, fields as dataclass_fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union


class TransactionType(str, Enum):
    """Kind of money movement described by a notification."""
    RECEIVED = "received"
    SENT = "sent"
    PAYMENT = "payment"
    WITHDRAWAL = "withdrawal"
    DEPOSIT = "deposit"
    AIRTIME = "airtime"
    PAYBILL = "paybill"
    UNKNOWN = "unknown"


class PatternTier(str, Enum):
    """Catalog tier a template belongs to."""
    PRIMARY = "primary"
    ALTERNATIVE = "alternative"


class ParseTier(str, Enum):
    """Which stage of the cascade produced an outcome."""
    PRIMARY = "primary"
    ALTERNATIVE = "alternative"
    BASIC = "basic"
    FAILED = "failed"


class ConfidenceTier(str, Enum):
    """Qualitative confidence bucket."""
    HIGH = "high"
    LOW = "low"
    VERY_LOW = "very_low"


@dataclass
class ParsedTransaction:
    """
    Transaction fields extracted from one message.

    Only `type` is always present. Which other fields get filled depends on
    the template (or fallback) that produced the data.
    """
    type: TransactionType = TransactionType.UNKNOWN
    amount: Optional[Decimal] = None
    sender_name: Optional[str] = None
    sender_phone: Optional[str] = None
    recipient_name: Optional[str] = None
    recipient_phone: Optional[str] = None
    business_short_code: Optional[str] = None
    business_name: Optional[str] = None
    account_number: Optional[str] = None
    agent_name: Optional[str] = None
    agent_phone: Optional[str] = None
    phone_number: Optional[str] = None          # Airtime target number
    transaction_id: Optional[str] = None
    transaction_date: Optional[datetime] = None
    org_account_balance: Optional[Decimal] = None

    def populated(self) -> dict[str, Any]:
        """Fields that carry a value, in declaration order."""
        return {
            f.name: getattr(self, f.name)
            for f in dataclass_fields(self)
            if getattr(self, f.name) is not None
        }

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe mapping of all fields (unset fields are None)."""
        return {
            f.name: _jsonable(getattr(self, f.name))
            for f in dataclass_fields(self)
        }


@dataclass
class BasicInfo:
    """Best-effort scraps collected by the fallback extractor."""
    amount: Optional[Decimal] = None
    phone_numbers: list[str] = field(default_factory=list)
    names: list[str] = field(default_factory=list)
    transaction_type: TransactionType = TransactionType.UNKNOWN

    @property
    def has_any_info(self) -> bool:
        return (
            self.amount is not None
            or bool(self.phone_numbers)
            or bool(self.names)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            'amount': _jsonable(self.amount),
            'phone_numbers': list(self.phone_numbers),
            'names': list(self.names),
            'transaction_type': self.transaction_type.value,
            'has_any_info': self.has_any_info,
        }


@dataclass
class ParseOutcome:
    """
    Complete result of parsing one message.

    Invariant: when `is_valid` is True, `fields.type` is set and
    `fields.amount` is a positive Decimal.
    """
    is_valid: bool
    fields: ParsedTransaction
    tier: ParseTier
    original_text: str
    normalized_text: str
    pattern_used: Optional[str] = None
    confidence: Optional[Union[float, ConfidenceTier]] = None
    confidence_tier: Optional[ConfidenceTier] = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    basic_info: Optional[BasicInfo] = None

    @property
    def has_any_info(self) -> bool:
        """Whether any tier managed to pull something out of the message."""
        if self.tier in (ParseTier.PRIMARY, ParseTier.ALTERNATIVE):
            return True
        return self.basic_info is not None and self.basic_info.has_any_info

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe mapping of the outcome."""
        return {
            'is_valid': self.is_valid,
            'tier': self.tier.value,
            'pattern_used': self.pattern_used,
            'confidence': _jsonable(self.confidence),
            'confidence_tier': _jsonable(self.confidence_tier),
            'has_any_info': self.has_any_info,
            'fields': self.fields.to_dict(),
            'basic_info': self.basic_info.to_dict() if self.basic_info else None,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'original_text': self.original_text,
            'normalized_text': self.normalized_text,
        }


def _jsonable(value: Any) -> Any:
    """Convert Decimals, datetimes and enums to plain JSON values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value
