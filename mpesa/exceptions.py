"""
Parsing error kinds.

None of these escape `parse()`: the engine catches them at each tier boundary
and records them in the outcome or in the log. They exist so the log and the
internal control flow can name what went wrong.
"""


class ParsingError(Exception):
    """Base class for every parsing failure kind."""


class NoPatternMatch(ParsingError):
    """No primary or alternative template matched the message."""


class InsufficientFallbackInfo(ParsingError):
    """The fallback extractor found nothing usable."""

    def __init__(self, message: str, info=None):
        super().__init__(message)
        self.info = info


class DateParseFailure(ParsingError):
    """A timestamp token could not be read; the current time is used instead."""


class MalformedNumericToken(ParsingError):
    """An amount token was captured but is not a valid number."""


class InternalParsingException(ParsingError):
    """Unexpected failure inside one of the tiers."""


class ConfigError(Exception):
    """Settings file is missing, unreadable or malformed."""
