"""
Elevation gain / loss from a raw altitude series.

GPS and barometric altitude are noisy at 1 Hz, so the series is first
smoothed with a centered moving average, then only deltas larger than
`threshold_m` count towards gain or loss.
"""
from typing import Iterable, Tuple

DEFAULT_WINDOW = 5
DEFAULT_THRESHOLD_M = 0.5


def smooth_altitudes(altitudes: Iterable[float], window: int = DEFAULT_WINDOW) -> list:
    """Centered moving average; the window shrinks at both ends of the series."""
    values = list(altitudes)
    half = max(window, 1) // 2
    smoothed = []
    for i in range(len(values)):
        chunk = values[max(0, i - half):min(len(values), i + half + 1)]
        smoothed.append(sum(chunk) / len(chunk))
    return smoothed


def elevation_gain_loss(
    altitudes: Iterable[float],
    window: int = DEFAULT_WINDOW,
    threshold_m: float = DEFAULT_THRESHOLD_M,
) -> Tuple[float, float]:
    """
    Total climb and descent in meters, rounded to whole meters.

    Args:
        altitudes: altitude per sample, in meters
        window: moving-average window (samples)
        threshold_m: minimum change between consecutive smoothed samples

    Returns:
        (gain, loss), both ≥ 0. (0, 0) for an empty series.
    """
    smoothed = smooth_altitudes(altitudes, window)
    gain = 0.0
    loss = 0.0
    for prev, curr in zip(smoothed, smoothed[1:]):
        diff = curr - prev
        if diff > threshold_m:
            gain += diff
        elif diff < -threshold_m:
            loss += -diff
    return float(round(gain)), float(round(loss))
