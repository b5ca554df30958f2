"""
Activity file parsers.

Three formats are supported: FIT (binary), TCX and GPX (XML). Use
`parse_activity()` for the full pipeline or `detect()` to only identify a file.
"""
from runmetrics.parsers.errors import (
    ActivityParseError,
    EmptyActivityError,
    FormatDecodeError,
    UnsupportedFormatError,
)
from runmetrics.parsers.router import ActivityFormat, detect, parse_activity, supported_formats

__all__ = [
    "ActivityFormat",
    "ActivityParseError",
    "EmptyActivityError",
    "FormatDecodeError",
    "UnsupportedFormatError",
    "detect",
    "parse_activity",
    "supported_formats",
]
