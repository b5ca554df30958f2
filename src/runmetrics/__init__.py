"""runmetrics: FIT / TCX / GPX activity parsing into one normalized metrics record."""
from runmetrics.models.metrics import CanonicalMetrics, Lap, Sample
from runmetrics.parsers import (
    ActivityFormat,
    ActivityParseError,
    EmptyActivityError,
    FormatDecodeError,
    UnsupportedFormatError,
    detect,
    parse_activity,
    supported_formats,
)

__version__ = "0.1.0"

__all__ = [
    "ActivityFormat",
    "ActivityParseError",
    "CanonicalMetrics",
    "EmptyActivityError",
    "FormatDecodeError",
    "Lap",
    "Sample",
    "UnsupportedFormatError",
    "detect",
    "parse_activity",
    "supported_formats",
]
