"""
Canonical metrics models: the single output shape of every parser.

Python attributes are snake_case; serialisation (to_dict / API responses) uses
the camelCase names downstream consumers expect (totalTime, avgPace, ...).

Units:
  distance          kilometers
  time              seconds
  pace              minutes per kilometer (0 when distance or speed is 0)
  speed             km/h
  cadence           full steps per minute (both feet)
  vertical osc.     centimeters
  ground contact    milliseconds

A missing sensor is represented as 0, never None. The only nullable fields are
timestamps and temperature.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    NonNegativeInt,
    model_validator,
)
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Lap(_CamelModel):
    """One lap, native from the file or synthesized at 1 km boundaries."""

    lap_number: int = Field(ge=1)
    distance: NonNegativeFloat = 0.0
    time: NonNegativeFloat = 0.0
    pace: NonNegativeFloat = 0.0
    avg_heart_rate: NonNegativeInt = 0
    max_heart_rate: NonNegativeInt = 0
    avg_cadence: NonNegativeInt = 0
    max_cadence: NonNegativeInt = 0


class Sample(_CamelModel):
    """One raw sensor reading."""

    timestamp: Optional[datetime] = None
    distance: NonNegativeFloat = 0.0          # cumulative km
    speed: NonNegativeFloat = 0.0             # km/h
    heart_rate: NonNegativeInt = 0
    cadence: NonNegativeInt = 0
    altitude: float = 0.0                     # meters, may be below sea level
    temperature: Optional[float] = None
    vertical_oscillation: NonNegativeFloat = 0.0
    ground_contact_time: NonNegativeFloat = 0.0


class CanonicalMetrics(_CamelModel):
    """Normalized metrics for one activity, independent of the source format."""

    total_time: NonNegativeFloat = 0.0
    total_distance: NonNegativeFloat = 0.0
    avg_pace: NonNegativeFloat = 0.0
    avg_heart_rate: NonNegativeInt = 0
    max_heart_rate: NonNegativeInt = 0
    avg_cadence: NonNegativeInt = 0
    max_cadence: NonNegativeInt = 0
    total_calories: NonNegativeInt = 0
    avg_stride_length: NonNegativeFloat = 0.0
    vertical_oscillation: NonNegativeFloat = 0.0
    ground_contact_time: NonNegativeFloat = 0.0
    training_effect: NonNegativeFloat = 0.0
    laps: List[Lap] = Field(default_factory=list)
    records: List[Sample] = Field(default_factory=list)

    # Filled by the elevation summary step before hand-off
    elevation_gain: NonNegativeFloat = 0.0
    elevation_loss: NonNegativeFloat = 0.0

    # Informational, consumers must not branch on it
    source_format: str = ""
    start_time: Optional[datetime] = None

    @model_validator(mode="after")
    def _laps_numbered_sequentially(self) -> "CanonicalMetrics":
        for i, lap in enumerate(self.laps):
            if lap.lap_number != i + 1:
                raise ValueError(
                    f"lap {i} has lap_number {lap.lap_number}, expected {i + 1}"
                )
        return self

    def to_dict(self, include_records: bool = True) -> Dict[str, Any]:
        """JSON-ready camelCase dict."""
        exclude = None if include_records else {"records"}
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)
