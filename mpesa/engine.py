"""
Parse Orchestrator

Entry point of the parser. Runs a message through the tiers in a fixed
order and assembles one ParseOutcome:

    PRIMARY    full canonical templates
       │ no match
       ▼
    ALTERNATE  short amount + counter-party templates
       │ no match
       ▼
    BASIC      keyword / token scavenging (never valid)
       │ nothing found
       ▼
    FAIL

Each state is tried once and the first success ends the cascade. `parse()`
never raises: every failure, expected or not, comes back as an invalid
outcome with the reason in `errors`.
"""

from enum import Enum
from typing import Any, Callable, Optional

from loguru import logger

from .config import EngineSettings
from .exceptions import (
    InsufficientFallbackInfo,
    InternalParsingException,
    NoPatternMatch,
)
from .fallback import BasicInfoExtractor
from .models import (
    BasicInfo,
    ConfidenceTier,
    ParsedTransaction,
    ParseOutcome,
    ParseTier,
)
from .normalizers import TextNormalizer
from .patterns import ALTERNATIVE_PATTERNS, PRIMARY_PATTERNS, PatternMatcher
from .scoring import ConfidenceScorer
from .validators import TransactionValidator


NO_EXACT_MATCH = "No exact MPESA pattern match found"
UNABLE_TO_PARSE = "Unable to parse MPESA SMS format"


class ParseState(Enum):
    """States of the parsing cascade, in the order they are attempted."""
    PRIMARY = "primary"
    ALTERNATE = "alternate"
    BASIC = "basic"
    FAIL = "fail"


class MessageParser:
    """
    Parses M-Pesa notification messages into transactions.

    Usage:
        parser = MessageParser()
        outcome = parser.parse(sms_text)
        if outcome.is_valid:
            print(outcome.fields.amount, outcome.fields.transaction_id)
        else:
            print(outcome.errors)

    The parser holds no per-call state; one instance can be shared between
    threads.
    """

    SEQUENCE = (ParseState.PRIMARY, ParseState.ALTERNATE, ParseState.BASIC)

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()

        self.primary_matcher = PatternMatcher(PRIMARY_PATTERNS)
        self.alternative_matcher = PatternMatcher(ALTERNATIVE_PATTERNS)
        self.basic_extractor = BasicInfoExtractor()
        self.scorer = ConfidenceScorer()
        self.validator = TransactionValidator()

        self._handlers: dict[ParseState, Callable[[str, str], ParseOutcome]] = {
            ParseState.PRIMARY: self._parse_primary,
            ParseState.ALTERNATE: self._parse_alternative,
            ParseState.BASIC: self._parse_basic,
        }

    def parse(self, text: Any) -> ParseOutcome:
        """
        Parse one message.

        Args:
            text: Raw notification text. None is treated as empty, other
                non-string values are converted with str().

        Returns:
            ParseOutcome; never raises.
        """
        original = ''
        normalized = ''

        try:
            original = '' if text is None else str(text)
            normalized = TextNormalizer.normalize_whitespace(original)

            preview = TextNormalizer.truncate(normalized, self.settings.log_preview_length)
            logger.info(f"Parsing MPESA SMS: {preview}")

            states = self.SEQUENCE
            notes = []

            limit = self.settings.max_message_length
            if limit is not None and len(normalized) > limit:
                logger.warning(f"Message of {len(normalized)} characters skips template matching")
                states = (ParseState.BASIC,)
                notes.append(
                    f"Message exceeds maximum length of {limit} characters; templates skipped"
                )

            info = None
            for state in states:
                try:
                    outcome = self._handlers[state](original, normalized)
                    outcome.warnings.extend(notes)
                    return outcome
                except NoPatternMatch as e:
                    logger.debug(f"{state.name}: {e}")
                except InsufficientFallbackInfo as e:
                    logger.debug(f"{state.name}: {e}")
                    info = e.info

            logger.error(f"{ParseState.FAIL.name}: failed to parse MPESA SMS: {preview}")
            outcome = self._failure(original, normalized, [UNABLE_TO_PARSE], info)
            outcome.warnings.extend(notes)
            return outcome

        except Exception as e:
            error = InternalParsingException(str(e) or type(e).__name__)
            logger.exception(f"Error parsing MPESA SMS: {error}")
            return self._failure(original, normalized, [str(error)])

    # Tier handlers

    def _parse_primary(self, original: str, normalized: str) -> ParseOutcome:
        return self._parse_catalog(
            self.primary_matcher, ParseTier.PRIMARY, original, normalized
        )

    def _parse_alternative(self, original: str, normalized: str) -> ParseOutcome:
        return self._parse_catalog(
            self.alternative_matcher, ParseTier.ALTERNATIVE, original, normalized
        )

    def _parse_catalog(
        self,
        matcher: PatternMatcher,
        tier: ParseTier,
        original: str,
        normalized: str,
    ) -> ParseOutcome:
        hit = matcher.match(normalized)
        if hit is None:
            raise NoPatternMatch(f"no {tier.value} template matched")

        pattern, fields = hit
        logger.info(f"Matched {tier.value} pattern: {pattern.name}")

        violations = self.validator.validate(fields)
        amount_ok = fields.amount is not None and fields.amount > 0

        if self.settings.strict_validation or not amount_ok:
            errors, warnings = list(violations), []
        else:
            errors, warnings = [], list(violations)

        if errors:
            logger.warning(f"Pattern {pattern.name} matched but failed validation: {errors}")

        return ParseOutcome(
            is_valid=not errors,
            fields=fields,
            tier=tier,
            original_text=original,
            normalized_text=normalized,
            pattern_used=pattern.name,
            confidence=self.scorer.score(tier, fields),
            confidence_tier=self.scorer.bucket(tier),
            errors=errors,
            warnings=warnings,
        )

    def _parse_basic(self, original: str, normalized: str) -> ParseOutcome:
        info = self.basic_extractor.extract(normalized)
        if not info.has_any_info:
            raise InsufficientFallbackInfo("no amount, phone number or name found", info)

        logger.warning("No exact pattern match, using basic extraction")

        return ParseOutcome(
            is_valid=False,
            fields=ParsedTransaction(type=info.transaction_type, amount=info.amount),
            tier=ParseTier.BASIC,
            original_text=original,
            normalized_text=normalized,
            confidence=ConfidenceTier.VERY_LOW,
            confidence_tier=ConfidenceTier.VERY_LOW,
            errors=[NO_EXACT_MATCH],
            basic_info=info,
        )

    def _failure(
        self,
        original: str,
        normalized: str,
        errors: list[str],
        info: Optional[BasicInfo] = None,
    ) -> ParseOutcome:
        return ParseOutcome(
            is_valid=False,
            fields=ParsedTransaction(),
            tier=ParseTier.FAILED,
            original_text=original,
            normalized_text=normalized,
            errors=errors,
            basic_info=info,
        )


_default_parser = MessageParser()


def parse(text: Any) -> ParseOutcome:
    """Parse one message with the default settings."""
    return _default_parser.parse(text)
