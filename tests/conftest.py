"""Shared fixtures: activity files built in memory, one per format."""
import pytest

from fitbuilder import FitBuilder, build_run
from trackbuilder import (
    GARMIN_TPX_NS,
    gpx_document,
    straight_track,
    tcx_document,
    tcx_lap,
    tcx_trackpoint,
)


@pytest.fixture(name="fit_builder")
def fit_builder_fixture() -> FitBuilder:
    return FitBuilder()


@pytest.fixture(name="steady_fit")
def steady_fit_fixture() -> bytes:
    """5.0 km in 1800 s at 10 km/h, half cadence 84, five 1 km laps."""
    return build_run()


@pytest.fixture(name="steady_gpx")
def steady_gpx_fixture() -> bytes:
    """3.4 km northbound at 6:00/km with Garmin TrackPointExtension v1 HR/cadence."""
    return gpx_document(straight_track(3.4), namespaces=GARMIN_TPX_NS)


@pytest.fixture(name="two_lap_tcx")
def two_lap_tcx_fixture() -> bytes:
    lap1 = tcx_lap(
        300, 1000.0,
        [tcx_trackpoint(0, 0.0, 140, 80), tcx_trackpoint(150, 500.0, 150, 84),
         tcx_trackpoint(300, 1000.0, 160, 88)],
        avg_hr=150, max_hr=160, cadence=84, calories=70,
    )
    lap2 = tcx_lap(
        330, 1000.0,
        [tcx_trackpoint(465, 1500.0, 162, 86), tcx_trackpoint(630, 2000.0, 168, 90)],
        avg_hr=165, max_hr=168, cadence=88, calories=75,
        start="2024-11-01T08:05:00Z",
    )
    return tcx_document([lap1, lap2])
