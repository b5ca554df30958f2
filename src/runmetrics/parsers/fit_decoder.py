"""
FIT decoder: converts Garmin .fit binary content into a RawActivity.

Frame tokenisation (definition/data message pairing, per-definition byte
order, compressed timestamp headers, header and file CRC) is done by
fitparse. This module validates the file header itself, then maps the
session, lap and record messages onto RawSession / RawLap / RawSample.

fitparse's default processor yields SI units, so the RawActivity is tagged
distance_unit="m", speed_unit="m/s". Cadence stays as the half cadence the
device stores.

Field mapping from FIT to the raw schema:
  FIT field                                → raw field
  session.total_elapsed_time               → session.total_time (s)
  session.total_distance                   → session.total_distance (m)
  session.enhanced_avg_speed / avg_speed   → session.avg_speed (m/s)
  session.avg_cadence / max_cadence        → session.avg_cadence (half, rpm)
  session.avg_step_length                  → session.avg_stride_length (mm → m)
  session.avg_vertical_oscillation         → session.vertical_oscillation (mm)
  session.avg_stance_time                  → session.ground_contact_time (ms)
  lap.message_index                        → lap.index (0-based → 1-based)
  record.enhanced_altitude / altitude      → sample.altitude (m)
  record.stance_time                       → sample.ground_contact_time (ms)
  record.position_lat / position_long      → sample.lat / lon (semicircles → degrees)
"""
import io
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import fitparse

from runmetrics.parsers.errors import EmptyActivityError, FormatDecodeError
from runmetrics.parsers.raw import RawActivity, RawLap, RawSample, RawSession

logger = logging.getLogger(__name__)

# Garmin stores lat/lon as 32-bit signed integers in "semicircles"
# Degrees = semicircles * (180 / 2^31)
_SEMICIRCLE_TO_DEGREES = 180.0 / (2**31)

FIT_SIGNATURE = b".FIT"
MIN_HEADER_SIZE = 12
MAX_PROTOCOL_VERSION = 20


def is_fit_content(data: bytes) -> bool:
    """Cheap header check: header size ≥ 12, protocol byte ≤ 20, '.FIT' at offset 8."""
    if not data or len(data) < MIN_HEADER_SIZE:
        return False
    header_size = data[0]
    protocol_version = data[1]
    return (
        header_size >= MIN_HEADER_SIZE
        and protocol_version <= MAX_PROTOCOL_VERSION
        and data[8:12] == FIT_SIGNATURE
    )


def _first(values: Dict[str, Any], *keys: str) -> Optional[Any]:
    """First non-None value among `keys` (enhanced field names go first)."""
    for key in keys:
        value = values.get(key)
        if value is not None:
            return value
    return None


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _datetime(value: Any) -> Optional[datetime]:
    return value if isinstance(value, datetime) else None


def _unwrap_index(value: Any) -> Optional[int]:
    """
    Resolve a FIT message_index into an int.

    Depending on the profile and the field's type it arrives as a plain int,
    as an object carrying `.value`, or as a {"value": n} mapping.
    """
    if isinstance(value, dict):
        value = value.get("value")
    elif value is not None and not isinstance(value, (int, float, str)):
        value = getattr(value, "value", None)
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _stride_length_m(values: Dict[str, Any]) -> Optional[float]:
    stride = _number(values.get("avg_stride_length"))
    if stride is not None:
        return stride
    step_mm = _number(values.get("avg_step_length"))
    if step_mm is not None:
        return step_mm / 1000.0
    return None


class FitDecoder:
    """Decodes FIT bytes. One instance per parse call; holds no state between calls."""

    format_name = "fit"

    def decode(self, data: bytes) -> RawActivity:
        """
        Decode a FIT file into a RawActivity.

        Raises:
            FormatDecodeError: bad header signature, CRC mismatch, truncated stream
            EmptyActivityError: no session, lap or record messages
        """
        if not is_fit_content(data):
            raise FormatDecodeError(self.format_name, "missing or invalid .FIT file header")

        try:
            fit = fitparse.FitFile(io.BytesIO(data))
            messages = list(fit.get_messages(["session", "lap", "record"]))
        except Exception as exc:
            raise FormatDecodeError(self.format_name, str(exc), cause=exc) from exc

        session_values: Optional[Dict[str, Any]] = None
        lap_values: List[Dict[str, Any]] = []
        record_values: List[Dict[str, Any]] = []
        for message in messages:
            if message.name == "session":
                # multisport files carry one session per leg; the first one wins
                if session_values is None:
                    session_values = message.get_values()
            elif message.name == "lap":
                lap_values.append(message.get_values())
            elif message.name == "record":
                record_values.append(message.get_values())

        if session_values is None and not lap_values and not record_values:
            raise EmptyActivityError(
                self.format_name, "no session, lap or record messages found"
            )

        raw = RawActivity(
            session=self._session(session_values or {}),
            laps=[self._lap(values, position) for position, values in enumerate(lap_values)],
            records=[self._record(values) for values in record_values],
            distance_unit="m",
            speed_unit="m/s",
            half_cadence=True,
        )
        if raw.session.start_time is None and raw.records:
            raw.session.start_time = raw.records[0].timestamp

        logger.debug(
            "FIT decoded: session distance=%s m time=%s s, %d laps, %d records",
            raw.session.total_distance,
            raw.session.total_time,
            len(raw.laps),
            len(raw.records),
        )
        return raw

    @staticmethod
    def _session(values: Dict[str, Any]) -> RawSession:
        return RawSession(
            start_time=_datetime(values.get("start_time")),
            total_time=_number(values.get("total_elapsed_time")),
            total_distance=_number(values.get("total_distance")),
            avg_speed=_number(_first(values, "enhanced_avg_speed", "avg_speed")),
            max_speed=_number(_first(values, "enhanced_max_speed", "max_speed")),
            avg_heart_rate=_number(values.get("avg_heart_rate")),
            max_heart_rate=_number(values.get("max_heart_rate")),
            avg_cadence=_number(values.get("avg_cadence")),
            max_cadence=_number(values.get("max_cadence")),
            total_calories=_number(values.get("total_calories")),
            avg_stride_length=_stride_length_m(values),
            vertical_oscillation=_number(values.get("avg_vertical_oscillation")),
            ground_contact_time=_number(values.get("avg_stance_time")),
            training_effect=_number(values.get("total_training_effect")),
        )

    @staticmethod
    def _lap(values: Dict[str, Any], position: int) -> RawLap:
        index = _unwrap_index(values.get("message_index"))
        return RawLap(
            index=index + 1 if index is not None else position + 1,
            distance=_number(values.get("total_distance")),
            time=_number(values.get("total_elapsed_time")),
            avg_speed=_number(_first(values, "enhanced_avg_speed", "avg_speed")),
            max_speed=_number(_first(values, "enhanced_max_speed", "max_speed")),
            avg_heart_rate=_number(values.get("avg_heart_rate")),
            max_heart_rate=_number(values.get("max_heart_rate")),
            avg_cadence=_number(values.get("avg_cadence")),
            max_cadence=_number(values.get("max_cadence")),
            calories=_number(values.get("total_calories")),
        )

    @staticmethod
    def _record(values: Dict[str, Any]) -> RawSample:
        lat: Optional[float] = None
        lon: Optional[float] = None
        raw_lat = _number(values.get("position_lat"))
        raw_lon = _number(values.get("position_long"))
        if raw_lat is not None:
            lat = raw_lat * _SEMICIRCLE_TO_DEGREES
        if raw_lon is not None:
            lon = raw_lon * _SEMICIRCLE_TO_DEGREES

        return RawSample(
            timestamp=_datetime(values.get("timestamp")),
            distance=_number(values.get("distance")),
            speed=_number(_first(values, "enhanced_speed", "speed")),
            heart_rate=_number(values.get("heart_rate")),
            cadence=_number(values.get("cadence")),
            # Elevation: prefer enhanced_altitude (higher precision)
            altitude=_number(_first(values, "enhanced_altitude", "altitude")),
            temperature=_number(values.get("temperature")),
            vertical_oscillation=_number(values.get("vertical_oscillation")),
            ground_contact_time=_number(values.get("stance_time")),
            lat=lat,
            lon=lon,
        )
