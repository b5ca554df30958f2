"""
Fixed-distance lap synthesis for sources without native laps (GPX, FIT files
with no lap messages).

A lap closes when the cumulative distance reaches the next whole lap
boundary (1 km by default) or when the stream ends. Laps are cut exactly at
the boundary: the time at the boundary is interpolated linearly inside the
segment that crosses it, and the remainder of that segment carries over into
the next lap. A uniform-pace 3.4 km track therefore yields 1.0 / 1.0 / 1.0 /
0.4 km laps.

Trackpoint membership: a point belongs to the lap in which its cumulative
distance lies; a point exactly on a closing boundary belongs to the lap it
closes. Each point is counted in exactly one lap.
"""
import logging
from bisect import bisect_left
from statistics import mean
from typing import List, Optional, Sequence

from runmetrics.parsers.raw import RawLap, RawSample

logger = logging.getLogger(__name__)

DEFAULT_LAP_DISTANCE_KM = 1.0

# Distances closer than this (km, ~1 mm) are treated as equal
_EPSILON = 1e-6


def _time_at(distance: float, distances: Sequence[float], elapsed: Sequence[float]) -> float:
    """Elapsed seconds at which `distance` was reached, interpolated linearly."""
    idx = bisect_left(distances, distance)
    if idx == 0:
        return elapsed[0]
    if idx >= len(distances):
        return elapsed[-1]
    d0, d1 = distances[idx - 1], distances[idx]
    if d1 <= d0:
        return elapsed[idx]
    frac = (distance - d0) / (d1 - d0)
    return elapsed[idx - 1] + frac * (elapsed[idx] - elapsed[idx - 1])


def _valid(values) -> List[float]:
    return [v for v in values if v is not None and v > 0]


def _build_lap(number: int, distance: float, time: float, members: List[RawSample]) -> RawLap:
    hrs = _valid(p.heart_rate for p in members)
    cads = _valid(p.cadence for p in members)
    return RawLap(
        index=number,
        distance=max(distance, 0.0),
        time=max(time, 0.0),
        avg_heart_rate=mean(hrs) if hrs else None,
        max_heart_rate=max(hrs) if hrs else None,
        avg_cadence=mean(cads) if cads else None,
        max_cadence=max(cads) if cads else None,
    )


def synthesize_laps(
    points: Sequence[RawSample],
    cumulative_distances: Sequence[float],
    segment_times: Sequence[Optional[float]],
    lap_distance: float = DEFAULT_LAP_DISTANCE_KM,
) -> List[RawLap]:
    """
    Split a continuous trackpoint stream into fixed-distance laps.

    Args:
        points: trackpoints in order; heart_rate / cadence already range-filtered
        cumulative_distances: cumulative distance at each point (non-decreasing),
            in the same unit as `lap_distance`
        segment_times: seconds between point i and i+1 (None/0 when unknown)
        lap_distance: lap length, default 1.0 km

    Returns:
        Laps numbered 1..n. Empty when fewer than 2 distance samples exist or
        no distance was covered.
    """
    n = min(len(points), len(cumulative_distances))
    if n < 2 or lap_distance <= 0:
        return []

    distances = list(cumulative_distances[:n])
    elapsed = [0.0]
    for i in range(n - 1):
        dt = segment_times[i] if i < len(segment_times) else None
        elapsed.append(elapsed[-1] + (dt if dt and dt > 0 else 0.0))

    origin = distances[0]
    final = distances[-1]

    laps: List[RawLap] = []
    lap_number = 1
    start_distance = origin
    start_time = 0.0
    cursor = 0

    while final - start_distance > _EPSILON:
        boundary = origin + lap_number * lap_distance
        last = boundary >= final - _EPSILON
        if last:
            end_distance, end_time = final, elapsed[-1]
        else:
            end_distance, end_time = boundary, _time_at(boundary, distances, elapsed)

        members = []
        while cursor < n and (last or distances[cursor] <= end_distance + _EPSILON):
            members.append(points[cursor])
            cursor += 1

        laps.append(_build_lap(
            lap_number,
            end_distance - start_distance,
            end_time - start_time,
            members,
        ))
        if last:
            break

        start_distance, start_time = end_distance, end_time
        lap_number += 1

    logger.debug("Synthesized %d laps over %.3f", len(laps), final - origin)
    return laps
