"""
Validators Module

Minimal checks on extracted transaction fields.

The validator does not care which tier produced the fields. It only reports
what bookkeeping cannot do without: a positive amount, a transaction id to
de-duplicate on, and a transaction type. Whether a finding makes the outcome
invalid is decided by the parser, not here.
"""

from typing import Optional

from .models import ParsedTransaction


class TransactionValidator:
    """
    Checks the invariants every stored transaction needs.

    Usage:
        validator = TransactionValidator()
        errors = validator.validate(outcome.fields)
    """

    INVALID_AMOUNT = "Invalid amount"
    MISSING_TRANSACTION_ID = "Missing transaction ID"
    MISSING_TYPE = "Missing transaction type"

    def validate(self, fields: Optional[ParsedTransaction]) -> list[str]:
        """Return violations in a fixed order; empty when the fields are usable."""
        if fields is None:
            return [self.INVALID_AMOUNT, self.MISSING_TRANSACTION_ID, self.MISSING_TYPE]

        errors = []

        if fields.amount is None or fields.amount <= 0:
            errors.append(self.INVALID_AMOUNT)

        if not fields.transaction_id:
            errors.append(self.MISSING_TRANSACTION_ID)

        if fields.type is None:
            errors.append(self.MISSING_TYPE)

        return errors


_validator = TransactionValidator()


def validate(fields: Optional[ParsedTransaction]) -> list[str]:
    """Violations for a set of parsed fields."""
    return _validator.validate(fields)
