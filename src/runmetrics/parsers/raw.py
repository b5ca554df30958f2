"""
Intermediate decoder output, still in source units.

Every decoder returns a RawActivity. Nothing here is converted: cadence is the
half cadence the device reported, distances and speeds are in whatever unit
the format (or its library) hands back, declared on the RawActivity itself via
`distance_unit` / `speed_unit`. MetricsNormalizer owns every conversion.

All measurement fields are Optional; None means "not in the file".
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class RawSample:
    """One trackpoint / FIT record message."""

    timestamp: Optional[datetime] = None
    distance: Optional[float] = None              # cumulative, RawActivity.distance_unit
    speed: Optional[float] = None                 # RawActivity.speed_unit
    heart_rate: Optional[float] = None            # bpm
    cadence: Optional[float] = None               # half cadence (one foot)
    altitude: Optional[float] = None              # meters
    temperature: Optional[float] = None           # Celsius
    vertical_oscillation: Optional[float] = None  # millimeters
    ground_contact_time: Optional[float] = None   # milliseconds
    lat: Optional[float] = None                   # decimal degrees
    lon: Optional[float] = None


@dataclass
class RawLap:
    """One lap, native or synthesized."""

    index: Optional[int] = None                   # 1-based lap number as reported
    distance: Optional[float] = None              # RawActivity.distance_unit
    time: Optional[float] = None                  # seconds
    avg_speed: Optional[float] = None             # RawActivity.speed_unit
    max_speed: Optional[float] = None
    avg_heart_rate: Optional[float] = None
    max_heart_rate: Optional[float] = None
    avg_cadence: Optional[float] = None           # half cadence
    max_cadence: Optional[float] = None
    calories: Optional[float] = None


@dataclass
class RawSession:
    """Session-level summary as the source reports it (FIT session, summed TCX laps, ...)."""

    start_time: Optional[datetime] = None
    total_time: Optional[float] = None            # seconds
    total_distance: Optional[float] = None        # RawActivity.distance_unit
    avg_speed: Optional[float] = None             # RawActivity.speed_unit
    max_speed: Optional[float] = None
    avg_heart_rate: Optional[float] = None
    max_heart_rate: Optional[float] = None
    avg_cadence: Optional[float] = None           # half cadence
    max_cadence: Optional[float] = None
    total_calories: Optional[float] = None
    avg_stride_length: Optional[float] = None     # meters
    vertical_oscillation: Optional[float] = None  # millimeters
    ground_contact_time: Optional[float] = None   # milliseconds
    training_effect: Optional[float] = None


@dataclass
class RawActivity:
    """Everything one decoder extracted from one file."""

    session: RawSession = field(default_factory=RawSession)
    laps: List[RawLap] = field(default_factory=list)
    records: List[RawSample] = field(default_factory=list)

    # Units the values above arrive in. "m" / "km" and "m/s" / "km/h".
    distance_unit: str = "m"
    speed_unit: str = "m/s"

    # True when cadence fields are one-foot (half) cadence.
    half_cadence: bool = True

    # True when `laps` were synthesized rather than read from the file.
    laps_synthesized: bool = False

    def is_empty(self) -> bool:
        return not self.laps and not self.records
