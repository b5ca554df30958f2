"""
Format detection and the parse pipeline entry point.

    detect() → decoder.decode() → MetricsNormalizer.normalize() → elevation summary

Detection tries the filename extension first, but only trusts it when the
content sniff for that format agrees. Otherwise the content is sniffed in a
fixed order: FIT signature, then TCX markers, then GPX markers. The extension
is a hint, never authoritative: FIT bytes named "run.gpx" are still FIT.
"""
import enum
import logging
from typing import Callable, Dict, List, Tuple

from runmetrics.elevation import DEFAULT_THRESHOLD_M, DEFAULT_WINDOW, elevation_gain_loss
from runmetrics.models.metrics import CanonicalMetrics
from runmetrics.normalizer import MetricsNormalizer
from runmetrics.parsers.errors import SUPPORTED_FORMATS, UnsupportedFormatError
from runmetrics.parsers.fit_decoder import FitDecoder, is_fit_content
from runmetrics.parsers.gpx_decoder import GpxDecoder, is_gpx_content
from runmetrics.parsers.laps import DEFAULT_LAP_DISTANCE_KM
from runmetrics.parsers.tcx_decoder import TcxDecoder, is_tcx_content

logger = logging.getLogger(__name__)


class ActivityFormat(str, enum.Enum):
    FIT = "fit"
    TCX = "tcx"
    GPX = "gpx"
    UNKNOWN = "unknown"


# Content sniffing priority order
_SNIFFERS: List[Tuple[ActivityFormat, Callable[[bytes], bool]]] = [
    (ActivityFormat.FIT, is_fit_content),
    (ActivityFormat.TCX, is_tcx_content),
    (ActivityFormat.GPX, is_gpx_content),
]


def supported_formats() -> List[str]:
    return list(SUPPORTED_FORMATS)


def detect(data: bytes, filename: str = "") -> ActivityFormat:
    """Identify the activity format. Never raises; UNKNOWN when nothing matches."""
    if not data:
        return ActivityFormat.UNKNOWN

    lower_name = (filename or "").lower()
    for fmt, sniff in _SNIFFERS:
        if lower_name.endswith(f".{fmt.value}") and sniff(data):
            return fmt

    for fmt, sniff in _SNIFFERS:
        if sniff(data):
            return fmt

    return ActivityFormat.UNKNOWN


def _decoder_for(fmt: ActivityFormat, lap_distance_km: float):
    decoders: Dict[ActivityFormat, Callable[[], object]] = {
        ActivityFormat.FIT: FitDecoder,
        ActivityFormat.TCX: TcxDecoder,
        ActivityFormat.GPX: lambda: GpxDecoder(lap_distance_km=lap_distance_km),
    }
    return decoders[fmt]()


def parse_activity(
    data: bytes,
    filename: str = "",
    lap_distance_km: float = DEFAULT_LAP_DISTANCE_KM,
    elevation_window: int = DEFAULT_WINDOW,
    elevation_threshold_m: float = DEFAULT_THRESHOLD_M,
) -> CanonicalMetrics:
    """
    Parse an activity file held in memory into CanonicalMetrics.

    Args:
        data: the complete file contents
        filename: original filename, used only as a format hint
        lap_distance_km: length of synthesized laps for formats without native laps
        elevation_window, elevation_threshold_m: elevation smoothing parameters

    Returns:
        Fully populated CanonicalMetrics.

    Raises:
        UnsupportedFormatError: content is not FIT, TCX or GPX
        FormatDecodeError: the detected format could not be decoded
        EmptyActivityError: the file holds no trackpoints, laps or records
    """
    fmt = detect(data, filename)
    if fmt is ActivityFormat.UNKNOWN:
        logger.warning("Unsupported activity file %r (%d bytes)", filename, len(data or b""))
        raise UnsupportedFormatError(filename)

    logger.info("Parsing %r as %s (%d bytes)", filename, fmt.value.upper(), len(data))

    raw = _decoder_for(fmt, lap_distance_km).decode(data)
    metrics = MetricsNormalizer(lap_distance_km=lap_distance_km).normalize(raw, fmt.value)

    gain, loss = elevation_gain_loss(
        (r.altitude for r in metrics.records),
        window=elevation_window,
        threshold_m=elevation_threshold_m,
    )
    metrics.elevation_gain = gain
    metrics.elevation_loss = loss
    return metrics
