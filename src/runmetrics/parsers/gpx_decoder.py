"""
GPX decoder: continuous-track GPS Exchange Format → RawActivity.

GPX has no session totals and no laps:
  - distance is the sum of great-circle distances between consecutive points
  - time is the sum of consecutive timestamp deltas (a pair with a missing
    timestamp is skipped, never interpolated)
  - laps are synthesized at 1 km boundaries by synthesize_laps()

Heart rate and cadence live in vendor <extensions>. Producers disagree on
namespaces (Garmin TrackPointExtension v1 vs v2, unprefixed elements, custom
prefixes) and on whether the wrapper element itself is namespaced, so each
value is looked up through an ordered list of strategies, first hit wins:

  1. known wrapper element → known value element
  2. known value element directly under <extensions>
  3. any descendant of <extensions> whose local name contains the field name

Readings outside the plausible range (HR ≤ 0 or ≥ 250, cadence ≤ 0 or ≥ 200
before doubling) are dropped so sentinel values never reach an average.

Units arriving here: kilometers (distance), half cadence, no speed.
"""
import logging
from statistics import mean
from typing import Callable, Iterable, List, Optional, Sequence

import gpxpy
import gpxpy.gpx
from lxml import etree

from runmetrics.geo import haversine_km
from runmetrics.parsers.errors import EmptyActivityError, FormatDecodeError
from runmetrics.parsers.laps import DEFAULT_LAP_DISTANCE_KM, synthesize_laps
from runmetrics.parsers.raw import RawActivity, RawSample, RawSession

logger = logging.getLogger(__name__)

GARMIN_TPX_V1 = "http://www.garmin.com/xmlschemas/TrackPointExtension/v1"
GARMIN_TPX_V2 = "http://www.garmin.com/xmlschemas/TrackPointExtension/v2"

# Namespace candidates in priority order; "" is the unprefixed element
KNOWN_NAMESPACES = (GARMIN_TPX_V1, GARMIN_TPX_V2, "")
KNOWN_WRAPPERS = ("TrackPointExtension",)

HR_RANGE = (0, 250)        # exclusive bounds, bpm
CADENCE_RANGE = (0, 200)   # exclusive bounds, one-foot spm

Extractor = Callable[[Sequence, str, Sequence[str]], Optional[float]]


def is_gpx_content(data: bytes) -> bool:
    """Substring pre-filter, not schema validation. Any declared encoding is accepted."""
    if not data:
        return False
    text = data.decode("utf-8", errors="replace")
    return "<gpx" in text and "<trk" in text


def _document_text(data: bytes) -> str:
    """
    Decode GPX bytes to text the way the XML prolog declares (UTF-8 when it
    declares nothing), so latin-1 exports with accented names survive.
    gpxpy only accepts text, hence the round trip through lxml.
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
    root = etree.fromstring(data, parser=parser)
    return etree.tostring(root, encoding="unicode")


def _qualified(namespace: str, name: str) -> str:
    return f"{{{namespace}}}{name}" if namespace else name


def _local(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _to_float(text: Optional[str]) -> Optional[float]:
    if text is None:
        return None
    try:
        return float(text.strip())
    except ValueError:
        return None


def _find_child(el, name: str) -> Optional[float]:
    for namespace in KNOWN_NAMESPACES:
        child = el.find(_qualified(namespace, name))
        if child is not None:
            value = _to_float(child.text)
            if value is not None:
                return value
    return None


def _from_known_wrapper(extensions: Sequence, field: str, substrings: Sequence[str]) -> Optional[float]:
    for wrapper_name in KNOWN_WRAPPERS:
        for namespace in KNOWN_NAMESPACES:
            tag = _qualified(namespace, wrapper_name)
            for ext in extensions:
                if ext.tag == tag:
                    value = _find_child(ext, field)
                    if value is not None:
                        return value
    return None


def _from_top_level(extensions: Sequence, field: str, substrings: Sequence[str]) -> Optional[float]:
    for namespace in KNOWN_NAMESPACES:
        tag = _qualified(namespace, field)
        for ext in extensions:
            if ext.tag == tag:
                value = _to_float(ext.text)
                if value is not None:
                    return value
    return None


def _from_generic_scan(extensions: Sequence, field: str, substrings: Sequence[str]) -> Optional[float]:
    for ext in extensions:
        for node in ext.iter():
            name = _local(node.tag).lower()
            if any(s in name for s in substrings):
                value = _to_float(node.text)
                if value is not None:
                    return value
    return None


EXTRACTORS: List[Extractor] = [_from_known_wrapper, _from_top_level, _from_generic_scan]


def extension_value(extensions: Sequence, field: str, substrings: Sequence[str]) -> Optional[float]:
    """Run the extractors in order and return the first value found."""
    if not extensions:
        return None
    for extractor in EXTRACTORS:
        value = extractor(extensions, field, substrings)
        if value is not None:
            return value
    return None


def _plausible(value: Optional[float], bounds) -> Optional[float]:
    low, high = bounds
    if value is None or not (low < value < high):
        return None
    return value


def _average(values: Iterable[Optional[float]]) -> Optional[float]:
    valid = [v for v in values if v]
    return mean(valid) if valid else None


def _maximum(values: Iterable[Optional[float]]) -> Optional[float]:
    valid = [v for v in values if v]
    return max(valid) if valid else None


class GpxDecoder:
    """Decodes GPX bytes. One instance per parse call."""

    format_name = "gpx"

    def __init__(self, lap_distance_km: float = DEFAULT_LAP_DISTANCE_KM):
        self.lap_distance_km = lap_distance_km

    def decode(self, data: bytes) -> RawActivity:
        """
        Decode the first track of a GPX file.

        Raises:
            FormatDecodeError: malformed XML or invalid trackpoint attributes
            EmptyActivityError: no track, or a track without trackpoints
        """
        try:
            gpx = gpxpy.parse(_document_text(data))
        except (etree.XMLSyntaxError, gpxpy.gpx.GPXException, ValueError) as exc:
            raise FormatDecodeError(self.format_name, str(exc), cause=exc) from exc

        if not gpx.tracks:
            raise EmptyActivityError(self.format_name, "no tracks found in GPX file")

        points: List[gpxpy.gpx.GPXTrackPoint] = []
        for segment in gpx.tracks[0].segments:
            points.extend(segment.points)
        if not points:
            raise EmptyActivityError(self.format_name, "no trackpoints found in GPX file")

        samples: List[RawSample] = []
        cumulative: List[float] = []
        segment_times: List[Optional[float]] = []
        total_distance = 0.0
        prev = None
        for point in points:
            if prev is not None:
                total_distance += haversine_km(
                    prev.latitude, prev.longitude, point.latitude, point.longitude
                )
                if prev.time is not None and point.time is not None:
                    segment_times.append((point.time - prev.time).total_seconds())
                else:
                    segment_times.append(None)
            cumulative.append(total_distance)
            samples.append(self._sample(point, total_distance))
            prev = point

        total_time = sum(dt for dt in segment_times if dt is not None)

        heart_rates = [s.heart_rate for s in samples]
        cadences = [s.cadence for s in samples]
        session = RawSession(
            start_time=points[0].time,
            total_time=total_time,
            total_distance=total_distance,
            avg_heart_rate=_average(heart_rates),
            max_heart_rate=_maximum(heart_rates),
            avg_cadence=_average(cadences),
            max_cadence=_maximum(cadences),
        )

        laps = synthesize_laps(samples, cumulative, segment_times, self.lap_distance_km)

        logger.debug(
            "GPX decoded: %d trackpoints, %.3f km, %.0f s, %d synthesized laps",
            len(samples), total_distance, total_time, len(laps),
        )
        return RawActivity(
            session=session,
            laps=laps,
            records=samples,
            distance_unit="km",
            speed_unit="km/h",
            half_cadence=True,
            laps_synthesized=True,
        )

    @staticmethod
    def _sample(point, cumulative_km: float) -> RawSample:
        extensions = point.extensions or []
        heart_rate = _plausible(
            extension_value(extensions, "hr", ("hr", "heartrate")), HR_RANGE
        )
        cadence = _plausible(
            extension_value(extensions, "cad", ("cad",)), CADENCE_RANGE
        )
        temperature = extension_value(extensions, "atemp", ("atemp", "temp"))
        return RawSample(
            timestamp=point.time,
            distance=cumulative_km,
            speed=None,
            heart_rate=heart_rate,
            cadence=cadence,
            altitude=point.elevation,
            temperature=temperature,
            lat=point.latitude,
            lon=point.longitude,
        )
