"""
Transaction records.

Bridges between the parser and the storage layer that lives outside this
package:

- to_transaction_record() turns a valid ParseOutcome into the row shape the
  transactions table expects.
- ImportedTransaction validates already-structured records coming from bulk
  import, which skips parsing entirely.

Neither function touches a database; de-duplication, categorization and
persistence stay with the caller.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from dateutil import parser as date_parser
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .models import ParseOutcome, TransactionType


# Types accepted from manual entry and bulk import
IMPORTABLE_TYPES = (
    TransactionType.RECEIVED.value,
    TransactionType.SENT.value,
    TransactionType.WITHDRAWAL.value,
    TransactionType.DEPOSIT.value,
)


def to_transaction_record(outcome: ParseOutcome) -> dict[str, Any]:
    """
    Map a valid parse outcome onto a transactions-table row.

    Agent and business counter-parties are folded into the sender/recipient
    columns: deposits come from the agent, withdrawals, payments and airtime
    go to the agent, business or topped-up number.

    Raises:
        ValueError: outcome is not valid
    """
    if not outcome.is_valid:
        raise ValueError(
            f"Cannot build a transaction record from an invalid outcome: {outcome.errors}"
        )

    f = outcome.fields
    sender_name, sender_phone = f.sender_name, f.sender_phone
    recipient_name, recipient_phone = f.recipient_name, f.recipient_phone

    if f.type == TransactionType.DEPOSIT:
        sender_name = sender_name or f.agent_name
        sender_phone = sender_phone or f.agent_phone
    else:
        recipient_name = recipient_name or f.business_name or f.agent_name
        recipient_phone = recipient_phone or f.agent_phone or f.phone_number

    return {
        'mpesa_transaction_id': f.transaction_id,
        'amount': f.amount,
        'transaction_type': f.type.value,
        'sender_name': sender_name,
        'sender_phone': sender_phone,
        'recipient_name': recipient_name,
        'recipient_phone': recipient_phone,
        'account_number': f.account_number,
        'business_short_code': f.business_short_code,
        'org_account_balance': f.org_account_balance,
        'sms_content': outcome.original_text,
        'parsed_data': outcome.to_dict(),
        'transaction_date': f.transaction_date or datetime.now(),
    }


def generate_manual_id() -> str:
    """Transaction id for records entered without one."""
    millis = int(datetime.now().timestamp() * 1000)
    return f"MANUAL_{millis}_{uuid.uuid4().hex[:9]}"


class ImportedTransaction(BaseModel):
    """
    Pydantic model for bulk-imported transaction records.

    Unknown keys are dropped. A missing date becomes "now" and a missing
    transaction id gets a generated MANUAL_ id.
    """
    model_config = ConfigDict(extra='ignore')

    amount: Decimal = Field(ge=0)
    transaction_type: str
    mpesa_transaction_id: Optional[str] = None
    sender_name: Optional[str] = None
    sender_phone: Optional[str] = None
    recipient_name: Optional[str] = None
    recipient_phone: Optional[str] = None
    account_number: Optional[str] = None
    business_short_code: Optional[str] = None
    category: Optional[str] = None
    transaction_date: Optional[datetime] = None

    @field_validator('transaction_type')
    @classmethod
    def validate_type(cls, v):
        """Only the manual-entry transaction types are importable."""
        v = str(v).strip().lower()
        if v not in IMPORTABLE_TYPES:
            raise ValueError(f"Invalid transaction type: {v}")
        return v

    @field_validator('transaction_date', mode='before')
    @classmethod
    def parse_iso_date(cls, v):
        """Dates must be ISO-8601 strings (or datetimes)."""
        if v is None or isinstance(v, datetime):
            return v
        try:
            return date_parser.isoparse(str(v))
        except (ValueError, OverflowError) as e:
            raise ValueError(f"transaction_date is not ISO-8601: {v}") from e

    @model_validator(mode='after')
    def fill_defaults(self):
        if self.transaction_date is None:
            self.transaction_date = datetime.now()
        if not self.mpesa_transaction_id:
            self.mpesa_transaction_id = generate_manual_id()
        return self


@dataclass
class ImportReport:
    """Outcome of validating a bulk import."""
    processed: list[ImportedTransaction] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)

    @property
    def success(self) -> int:
        return len(self.processed)

    @property
    def errors(self) -> int:
        return len(self.failed)

    def to_dict(self) -> dict[str, Any]:
        return {
            'success': self.success,
            'errors': self.errors,
            'processed': [r.model_dump(mode='json') for r in self.processed],
            'failed': self.failed,
        }


def validate_import_batch(records: list[dict[str, Any]]) -> ImportReport:
    """
    Validate a list of structured records for bulk import.

    Every record is checked independently; one bad record does not stop
    the rest.

    Raises:
        ValueError: records is not a non-empty list
    """
    if not isinstance(records, list) or not records:
        raise ValueError("Transactions array is required")

    report = ImportReport()

    for record in records:
        try:
            if not isinstance(record, dict):
                raise ValueError(f"Expected an object, got {type(record).__name__}")
            report.processed.append(ImportedTransaction.model_validate(record))
        except (ValidationError, ValueError) as e:
            report.failed.append({'transaction': record, 'error': str(e)})

    logger.info(f"Bulk import validated: {report.success} accepted, {report.errors} rejected")
    return report
