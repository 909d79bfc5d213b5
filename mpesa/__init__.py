"""
M-Pesa SMS Parser Package

Turns mobile-money notification messages into structured transactions.
It includes:
- Text, amount and timestamp normalization
- An ordered catalog of notification templates (primary + alternative tiers)
- A heuristic fallback for messages no template recognizes
- Confidence scoring and minimal validation

Usage:
    from mpesa import parse, validate, confidence

    outcome = parse(sms_text)
    if outcome.is_valid:
        print(outcome.fields.type, outcome.fields.amount)
        print(confidence(outcome))      # 0.0 - 1.0
    else:
        print(outcome.errors)

    # Validation findings for any set of fields
    violations = validate(outcome.fields)
"""

__version__ = '1.0.0'

from .models import (
    TransactionType,
    PatternTier,
    ParseTier,
    ConfidenceTier,
    ParsedTransaction,
    BasicInfo,
    ParseOutcome,
)

from .exceptions import (
    ParsingError,
    NoPatternMatch,
    InsufficientFallbackInfo,
    DateParseFailure,
    MalformedNumericToken,
    InternalParsingException,
    ConfigError,
)

from .normalizers import (
    TextNormalizer,
    AmountNormalizer,
    DateNormalizer,
    normalize_text,
    normalize_amount,
    normalize_date,
)

from .patterns import (
    PatternDefinition,
    PatternMatcher,
    PRIMARY_PATTERNS,
    ALTERNATIVE_PATTERNS,
    CATALOG,
    pattern_names,
    get_pattern,
)

from .fallback import BasicInfoExtractor
from .scoring import ConfidenceScorer, confidence
from .validators import TransactionValidator, validate
from .config import EngineSettings, ConfigLoader, load_settings
from .engine import MessageParser, ParseState, parse
from .batch import BatchSummary, parse_batch
from .records import (
    ImportedTransaction,
    ImportReport,
    to_transaction_record,
    validate_import_batch,
)

__all__ = [
    '__version__',

    # Entry points
    'parse',
    'validate',
    'confidence',
    'pattern_names',
    'parse_batch',

    # Models
    'TransactionType',
    'PatternTier',
    'ParseTier',
    'ConfidenceTier',
    'ParsedTransaction',
    'BasicInfo',
    'ParseOutcome',

    # Errors
    'ParsingError',
    'NoPatternMatch',
    'InsufficientFallbackInfo',
    'DateParseFailure',
    'MalformedNumericToken',
    'InternalParsingException',
    'ConfigError',

    # Components
    'TextNormalizer',
    'AmountNormalizer',
    'DateNormalizer',
    'normalize_text',
    'normalize_amount',
    'normalize_date',
    'PatternDefinition',
    'PatternMatcher',
    'PRIMARY_PATTERNS',
    'ALTERNATIVE_PATTERNS',
    'CATALOG',
    'get_pattern',
    'BasicInfoExtractor',
    'ConfidenceScorer',
    'TransactionValidator',
    'MessageParser',
    'ParseState',
    'BatchSummary',

    # Settings
    'EngineSettings',
    'ConfigLoader',
    'load_settings',

    # Records
    'ImportedTransaction',
    'ImportReport',
    'to_transaction_record',
    'validate_import_batch',
]
