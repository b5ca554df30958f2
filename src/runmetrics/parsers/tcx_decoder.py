"""
TCX decoder: Garmin Training Center XML → RawActivity.

Structure: TrainingCenterDatabase / Activities / Activity / Lap / Track / Trackpoint.

Elements are matched by local name, so files written with or without the
TrainingCenterDatabase/v2 default namespace decode the same way. Garmin's
ActivityExtension/v2 (TPX on trackpoints, LX on laps) is read for speed and
run cadence when the core elements are absent.

Session totals are the sums over laps (TotalTimeSeconds, DistanceMeters,
Calories). Trackpoints are only used for the sample stream and for session
heart rate / cadence, so the two do not have to reconcile.

Units arriving here: meters, m/s, half cadence.
"""
import logging
from datetime import datetime
from statistics import mean
from typing import List, Optional

from lxml import etree

from runmetrics.parsers.errors import EmptyActivityError, FormatDecodeError
from runmetrics.parsers.raw import RawActivity, RawLap, RawSample, RawSession

logger = logging.getLogger(__name__)


def is_tcx_content(data: bytes) -> bool:
    """Substring pre-filter, not schema validation. Any declared encoding is accepted."""
    if not data:
        return False
    text = data.decode("utf-8", errors="replace")
    return "TrainingCenterDatabase" in text and "<Activities" in text


def _local(el) -> str:
    tag = el.tag
    if not isinstance(tag, str):
        return ""
    return etree.QName(tag).localname


def _children(el, name: str) -> list:
    if el is None:
        return []
    return [child for child in el if _local(child) == name]


def _child(el, *path: str):
    """Walk direct children by local name; None as soon as a step is missing."""
    for name in path:
        found = _children(el, name)
        if not found:
            return None
        el = found[0]
    return el


def _float(el, *path: str) -> Optional[float]:
    node = _child(el, *path)
    if node is None or node.text is None:
        return None
    try:
        return float(node.text.strip())
    except ValueError:
        return None


def _extension_value(el, container: str, name: str) -> Optional[float]:
    """Value of Extensions/<container>/<name>, e.g. Extensions/TPX/Speed."""
    return _float(el, "Extensions", container, name)


def _parse_time(text: Optional[str]) -> Optional[datetime]:
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


class TcxDecoder:
    """Decodes TCX bytes. One instance per parse call."""

    format_name = "tcx"

    def decode(self, data: bytes) -> RawActivity:
        """
        Decode a TCX file.

        Raises:
            FormatDecodeError: malformed XML or missing TrainingCenterDatabase root
            EmptyActivityError: no Activity, or an activity with neither laps nor trackpoints
        """
        parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
        try:
            root = etree.fromstring(data, parser=parser)
        except etree.XMLSyntaxError as exc:
            raise FormatDecodeError(self.format_name, str(exc), cause=exc) from exc

        if _local(root) != "TrainingCenterDatabase":
            raise FormatDecodeError(
                self.format_name, f"unexpected root element <{_local(root)}>"
            )

        activities = _children(_child(root, "Activities"), "Activity")
        if not activities:
            raise EmptyActivityError(self.format_name, "no activities found in TCX file")

        activity = activities[0]
        lap_elements = _children(activity, "Lap")

        laps: List[RawLap] = []
        records: List[RawSample] = []
        for position, lap_el in enumerate(lap_elements):
            laps.append(self._lap(lap_el, position))
            for track in _children(lap_el, "Track"):
                for trackpoint in _children(track, "Trackpoint"):
                    records.append(self._trackpoint(trackpoint))

        raw = RawActivity(
            session=self._session(lap_elements, laps, records),
            laps=laps,
            records=records,
            distance_unit="m",
            speed_unit="m/s",
            half_cadence=True,
        )
        if raw.is_empty():
            raise EmptyActivityError(self.format_name, "activity has no laps or trackpoints")

        logger.debug(
            "TCX decoded: %d laps, %d trackpoints, %.0f m",
            len(laps), len(records), raw.session.total_distance or 0.0,
        )
        return raw

    @staticmethod
    def _lap(lap_el, position: int) -> RawLap:
        cadence = _float(lap_el, "Cadence")
        if cadence is None:
            cadence = _extension_value(lap_el, "LX", "AvgRunCadence")
        return RawLap(
            index=position + 1,
            distance=_float(lap_el, "DistanceMeters"),
            time=_float(lap_el, "TotalTimeSeconds"),
            avg_speed=_extension_value(lap_el, "LX", "AvgSpeed"),
            max_speed=_float(lap_el, "MaximumSpeed"),
            avg_heart_rate=_float(lap_el, "AverageHeartRateBpm", "Value"),
            max_heart_rate=_float(lap_el, "MaximumHeartRateBpm", "Value"),
            avg_cadence=cadence,
            max_cadence=_extension_value(lap_el, "LX", "MaxRunCadence"),
            calories=_float(lap_el, "Calories"),
        )

    @staticmethod
    def _trackpoint(tp) -> RawSample:
        cadence = _float(tp, "Cadence")
        if cadence is None:
            cadence = _extension_value(tp, "TPX", "RunCadence")
        time_el = _child(tp, "Time")
        return RawSample(
            timestamp=_parse_time(time_el.text if time_el is not None else None),
            distance=_float(tp, "DistanceMeters"),
            speed=_extension_value(tp, "TPX", "Speed"),
            heart_rate=_float(tp, "HeartRateBpm", "Value"),
            cadence=cadence,
            altitude=_float(tp, "AltitudeMeters"),
            lat=_float(tp, "Position", "LatitudeDegrees"),
            lon=_float(tp, "Position", "LongitudeDegrees"),
        )

    @staticmethod
    def _session(lap_elements, laps: List[RawLap], records: List[RawSample]) -> RawSession:
        heart_rates = [r.heart_rate for r in records if r.heart_rate and r.heart_rate > 0]
        cadences = [r.cadence for r in records if r.cadence and r.cadence > 0]

        start_time = None
        if lap_elements:
            start_time = _parse_time(lap_elements[0].get("StartTime"))
        if start_time is None and records:
            start_time = records[0].timestamp

        max_speeds = [lap.max_speed for lap in laps if lap.max_speed]
        return RawSession(
            start_time=start_time,
            total_time=sum(lap.time or 0.0 for lap in laps),
            total_distance=sum(lap.distance or 0.0 for lap in laps),
            max_speed=max(max_speeds) if max_speeds else None,
            avg_heart_rate=mean(heart_rates) if heart_rates else None,
            max_heart_rate=max(heart_rates) if heart_rates else None,
            avg_cadence=mean(cadences) if cadences else None,
            max_cadence=max(cadences) if cadences else None,
            total_calories=sum(lap.calories or 0.0 for lap in laps),
        )
