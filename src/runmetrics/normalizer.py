"""
RawActivity → CanonicalMetrics.

Every unit conversion happens here, exactly once:
  - distance → km according to RawActivity.distance_unit ("m" or "km")
  - speed → km/h according to RawActivity.speed_unit ("m/s" or "km/h")
  - cadence doubled when RawActivity.half_cadence is set (FIT, TCX and GPX
    extensions all report one-foot cadence)
  - vertical oscillation mm → cm

Pace (min/km) is always derived, never read from the file:
  - from an average speed when the source has one: 60 / km/h
  - otherwise from distance and time: (seconds / 60) / km
  - 0 whenever distance or speed is 0

Missing values become 0. Laps are renumbered 1..n and sample distances are
clamped to be non-decreasing, so the canonical invariants hold whichever
decoder produced the input.
"""
import logging
import math
from typing import List, Optional

from runmetrics.models.metrics import CanonicalMetrics, Lap, Sample
from runmetrics.parsers.laps import DEFAULT_LAP_DISTANCE_KM, synthesize_laps
from runmetrics.parsers.raw import RawActivity, RawLap, RawSample

logger = logging.getLogger(__name__)

_DISTANCE_TO_KM = {"m": 0.001, "km": 1.0}
_SPEED_TO_KMH = {"m/s": 3.6, "km/h": 1.0}


def pace_from_kmh(speed_kmh: Optional[float]) -> float:
    """Convert km/h to min/km. Returns 0 if speed is zero or missing."""
    if not speed_kmh or speed_kmh <= 0 or not math.isfinite(speed_kmh):
        return 0.0
    return 60.0 / speed_kmh


def pace_from_distance(distance_km: Optional[float], time_s: Optional[float]) -> float:
    """Minutes per km from distance and elapsed time. Returns 0 if distance is zero."""
    if not distance_km or distance_km <= 0 or not time_s or time_s <= 0:
        return 0.0
    return (time_s / 60.0) / distance_km


def _nonneg(value: Optional[float]) -> float:
    if value is None or not math.isfinite(value) or value < 0:
        return 0.0
    return float(value)


def _count(value: Optional[float], factor: float = 1.0) -> int:
    """Round a rate/count to a non-negative int; None → 0."""
    return int(round(_nonneg(value) * factor))


class MetricsNormalizer:
    """Maps one RawActivity onto the canonical schema. Stateless apart from settings."""

    def __init__(self, lap_distance_km: float = DEFAULT_LAP_DISTANCE_KM):
        self.lap_distance_km = lap_distance_km

    def normalize(self, raw: RawActivity, source_format: str) -> CanonicalMetrics:
        try:
            distance_factor = _DISTANCE_TO_KM[raw.distance_unit]
            speed_factor = _SPEED_TO_KMH[raw.speed_unit]
        except KeyError as exc:
            raise ValueError(f"Unknown unit on raw activity: {exc}") from exc
        cadence_factor = 2.0 if raw.half_cadence else 1.0

        session = raw.session
        total_distance = _nonneg(session.total_distance) * distance_factor
        total_time = _nonneg(session.total_time)

        avg_speed_kmh = _nonneg(session.avg_speed) * speed_factor
        avg_pace = pace_from_kmh(avg_speed_kmh) if total_distance > 0 else 0.0
        if avg_pace == 0.0:
            # formats without a population-level average speed
            avg_pace = pace_from_distance(total_distance, total_time)

        records = self._records(raw.records, distance_factor, speed_factor, cadence_factor)

        raw_laps = raw.laps
        if not raw_laps and len(records) >= 2:
            raw_laps = self._laps_from_records(raw.records, records)
            lap_distance_factor = 1.0  # synthesized from km records
        else:
            lap_distance_factor = distance_factor
        laps = self._laps(raw_laps, lap_distance_factor, speed_factor, cadence_factor)
        if raw.laps_synthesized or raw_laps is not raw.laps:
            logger.debug("%s: %d synthesized %.3f km laps", source_format, len(laps), self.lap_distance_km)

        metrics = CanonicalMetrics(
            total_time=total_time,
            total_distance=total_distance,
            avg_pace=avg_pace,
            avg_heart_rate=_count(session.avg_heart_rate),
            max_heart_rate=_count(session.max_heart_rate),
            avg_cadence=_count(session.avg_cadence, cadence_factor),
            max_cadence=_count(session.max_cadence, cadence_factor),
            total_calories=_count(session.total_calories),
            avg_stride_length=_nonneg(session.avg_stride_length),
            vertical_oscillation=_nonneg(session.vertical_oscillation) / 10.0,
            ground_contact_time=_nonneg(session.ground_contact_time),
            training_effect=_nonneg(session.training_effect),
            laps=laps,
            records=records,
            source_format=source_format,
            start_time=session.start_time,
        )

        logger.debug(
            "Normalized %s: %.2f km in %.0f s, pace %.2f min/km, %d laps, %d records",
            source_format,
            metrics.total_distance,
            metrics.total_time,
            metrics.avg_pace,
            len(metrics.laps),
            len(metrics.records),
        )
        return metrics

    @staticmethod
    def _laps(
        raw_laps: List[RawLap],
        distance_factor: float,
        speed_factor: float,
        cadence_factor: float,
    ) -> List[Lap]:
        laps = []
        # renumbered by position: the source index may skip or repeat
        for number, raw_lap in enumerate(raw_laps, start=1):
            distance = _nonneg(raw_lap.distance) * distance_factor
            time = _nonneg(raw_lap.time)
            pace = 0.0
            if distance > 0:
                pace = pace_from_kmh(_nonneg(raw_lap.avg_speed) * speed_factor)
                if pace == 0.0:
                    pace = pace_from_distance(distance, time)
            if raw_lap.index is not None and raw_lap.index != number:
                logger.debug("Lap index %s renumbered to %d", raw_lap.index, number)
            laps.append(Lap(
                lap_number=number,
                distance=distance,
                time=time,
                pace=pace,
                avg_heart_rate=_count(raw_lap.avg_heart_rate),
                max_heart_rate=_count(raw_lap.max_heart_rate),
                avg_cadence=_count(raw_lap.avg_cadence, cadence_factor),
                max_cadence=_count(raw_lap.max_cadence, cadence_factor),
            ))
        return laps

    @staticmethod
    def _records(
        raw_records: List[RawSample],
        distance_factor: float,
        speed_factor: float,
        cadence_factor: float,
    ) -> List[Sample]:
        samples = []
        running_max = 0.0
        for raw_sample in raw_records:
            distance = _nonneg(raw_sample.distance) * distance_factor
            # odometer/GPS jitter must not make cumulative distance go backwards
            running_max = max(running_max, distance)
            altitude = raw_sample.altitude
            samples.append(Sample(
                timestamp=raw_sample.timestamp,
                distance=running_max,
                speed=_nonneg(raw_sample.speed) * speed_factor,
                heart_rate=_count(raw_sample.heart_rate),
                cadence=_count(raw_sample.cadence, cadence_factor),
                altitude=altitude if altitude is not None and math.isfinite(altitude) else 0.0,
                temperature=raw_sample.temperature,
                vertical_oscillation=_nonneg(raw_sample.vertical_oscillation) / 10.0,
                ground_contact_time=_nonneg(raw_sample.ground_contact_time),
            ))
        return samples

    def _laps_from_records(self, raw_records: List[RawSample], records: List[Sample]) -> List[RawLap]:
        """Fixed-distance laps for sources that recorded samples but no lap messages."""
        if not any(r.distance for r in records):
            return []
        distances = [r.distance for r in records]
        segment_times = []
        for prev, curr in zip(records, records[1:]):
            if prev.timestamp is not None and curr.timestamp is not None:
                segment_times.append((curr.timestamp - prev.timestamp).total_seconds())
            else:
                segment_times.append(None)
        return synthesize_laps(raw_records, distances, segment_times, self.lap_distance_km)


def normalize(raw: RawActivity, source_format: str) -> CanonicalMetrics:
    """Normalize with default settings."""
    return MetricsNormalizer().normalize(raw, source_format)
