"""
Error kinds raised by the activity parsing pipeline.

  UnsupportedFormatError  → the router could not identify FIT, TCX or GPX content
  FormatDecodeError       → a recognised format whose content is structurally broken
  EmptyActivityError      → decoded fine, but there is nothing to analyse

A missing sensor channel (no HR strap, no foot pod) is never an error: those
fields come out as 0 in CanonicalMetrics.
"""
from typing import Optional

SUPPORTED_FORMATS = ("FIT", "TCX", "GPX")


class ActivityParseError(Exception):
    """Base class for every error the parsing pipeline raises."""

    kind = "parse_error"


class UnsupportedFormatError(ActivityParseError):
    """Raised when the uploaded bytes match none of the supported formats."""

    kind = "unsupported_format"

    def __init__(self, filename: str = ""):
        self.filename = filename
        super().__init__(
            "Unsupported file format. Please upload a "
            f"{', '.join(SUPPORTED_FORMATS[:-1])}, or {SUPPORTED_FORMATS[-1]} file."
        )


class FormatDecodeError(ActivityParseError):
    """Raised when a recognised format cannot be decoded."""

    kind = "decode_error"

    def __init__(self, fmt: str, message: str, cause: Optional[BaseException] = None):
        self.format = fmt
        self.cause = cause
        super().__init__(f"{fmt.upper()} parsing error: {message}")


class EmptyActivityError(FormatDecodeError):
    """Raised when a file decodes but holds no trackpoints, laps or records."""

    kind = "empty_activity"
