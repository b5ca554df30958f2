"""
Minimal FIT encoder for building test fixtures in memory.

Writes a 14-byte header, one definition message per distinct field layout,
little-endian data messages and the trailing file CRC, which is enough for
fitparse to decode session / lap / record messages without a binary fixture
on disk.

Values are given in profile units (meters, seconds, m/s, ...) and scaled to
raw integers with the profile's scale/offset.
"""
import struct
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from fitparse.records import Crc

# seconds between the unix epoch and the FIT epoch (1989-12-31T00:00:00Z)
FIT_EPOCH_OFFSET = 631065600

# base type id, struct code, invalid value
_BASE_TYPES = {
    "enum": (0x00, "B", 0xFF),
    "sint8": (0x01, "b", 0x7F),
    "uint8": (0x02, "B", 0xFF),
    "sint16": (0x83, "h", 0x7FFF),
    "uint16": (0x84, "H", 0xFFFF),
    "sint32": (0x85, "i", 0x7FFFFFFF),
    "uint32": (0x86, "I", 0xFFFFFFFF),
}

# message name → (global number, {field: (field number, base type, scale, offset)})
MESSAGES: Dict[str, Tuple[int, Dict[str, Tuple[int, str, float, float]]]] = {
    "file_id": (0, {
        "type": (0, "enum", 1, 0),
        "manufacturer": (1, "uint16", 1, 0),
        "time_created": (4, "uint32", 1, 0),
    }),
    "session": (18, {
        "timestamp": (253, "uint32", 1, 0),
        "start_time": (2, "uint32", 1, 0),
        "sport": (5, "enum", 1, 0),
        "total_elapsed_time": (7, "uint32", 1000, 0),
        "total_timer_time": (8, "uint32", 1000, 0),
        "total_distance": (9, "uint32", 100, 0),
        "total_calories": (11, "uint16", 1, 0),
        "avg_speed": (14, "uint16", 1000, 0),
        "max_speed": (15, "uint16", 1000, 0),
        "avg_heart_rate": (16, "uint8", 1, 0),
        "max_heart_rate": (17, "uint8", 1, 0),
        "avg_cadence": (18, "uint8", 1, 0),
        "max_cadence": (19, "uint8", 1, 0),
        "total_training_effect": (24, "uint8", 10, 0),
        "avg_vertical_oscillation": (89, "uint16", 10, 0),
        "avg_stance_time": (91, "uint16", 10, 0),
    }),
    "lap": (19, {
        "message_index": (254, "uint16", 1, 0),
        "timestamp": (253, "uint32", 1, 0),
        "start_time": (2, "uint32", 1, 0),
        "total_elapsed_time": (7, "uint32", 1000, 0),
        "total_timer_time": (8, "uint32", 1000, 0),
        "total_distance": (9, "uint32", 100, 0),
        "total_calories": (11, "uint16", 1, 0),
        "avg_speed": (13, "uint16", 1000, 0),
        "max_speed": (14, "uint16", 1000, 0),
        "avg_heart_rate": (15, "uint8", 1, 0),
        "max_heart_rate": (16, "uint8", 1, 0),
        "avg_cadence": (17, "uint8", 1, 0),
        "max_cadence": (18, "uint8", 1, 0),
    }),
    "record": (20, {
        "timestamp": (253, "uint32", 1, 0),
        "position_lat": (0, "sint32", 1, 0),
        "position_long": (1, "sint32", 1, 0),
        "altitude": (2, "uint16", 5, 500),
        "heart_rate": (3, "uint8", 1, 0),
        "cadence": (4, "uint8", 1, 0),
        "distance": (5, "uint32", 100, 0),
        "speed": (6, "uint16", 1000, 0),
        "temperature": (13, "sint8", 1, 0),
        "vertical_oscillation": (39, "uint16", 10, 0),
        "stance_time": (41, "uint16", 10, 0),
    }),
}


def fit_timestamp(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp()) - FIT_EPOCH_OFFSET


class FitBuilder:
    """Accumulates messages and renders a complete FIT file."""

    def __init__(self):
        self._data = bytearray()
        self._slot_layout: Dict[int, Tuple[str, Tuple[str, ...]]] = {}
        self._next_slot = 0

    def add(self, message: str, **values) -> "FitBuilder":
        global_num, fields = MESSAGES[message]
        names = tuple(values)
        layout = (message, names)

        slot = next((s for s, l in self._slot_layout.items() if l == layout), None)
        if slot is None:
            slot = self._next_slot % 16
            self._next_slot += 1
            self._slot_layout[slot] = layout
            self._write_definition(slot, global_num, [fields[n] for n in names])

        self._data.append(slot)
        for name in names:
            number, base, scale, offset = fields[name]
            _, code, invalid = _BASE_TYPES[base]
            self._data += struct.pack("<" + code, self._raw(values[name], scale, offset, invalid))
        return self

    def _write_definition(self, slot: int, global_num: int, fields: List[tuple]) -> None:
        self._data.append(0x40 | slot)
        self._data += struct.pack("<BBHB", 0, 0, global_num, len(fields))
        for number, base, _scale, _offset in fields:
            base_id, code, _invalid = _BASE_TYPES[base]
            self._data += struct.pack("<BBB", number, struct.calcsize(code), base_id)

    @staticmethod
    def _raw(value, scale: float, offset: float, invalid: int) -> int:
        if value is None:
            return invalid
        if isinstance(value, datetime):
            return fit_timestamp(value)
        return int(round((value + offset) * scale))

    def build(self, protocol_version: int = 0x10, profile_version: int = 2093) -> bytes:
        header = struct.pack(
            "<BBHI4s", 14, protocol_version, profile_version, len(self._data), b".FIT"
        )
        header += struct.pack("<H", Crc.calculate(header))
        body = header + bytes(self._data)
        return body + struct.pack("<H", Crc.calculate(body))


def build_run(
    distance_m: float = 5000.0,
    elapsed_s: float = 1800.0,
    avg_speed_ms: Optional[float] = 10.0 / 3.6,
    avg_half_cadence: Optional[int] = 84,
    laps: int = 5,
    record_every_s: int = 60,
    start: datetime = datetime(2024, 11, 1, 8, 0, 0),
    heart_rate: Optional[int] = 150,
) -> bytes:
    """A steady run: file_id, evenly spaced records, equal laps, one session."""
    builder = FitBuilder()
    builder.add("file_id", type=4, manufacturer=1, time_created=start)

    speed = distance_m / elapsed_s if elapsed_s else 0.0
    t = 0
    while t <= elapsed_s:
        builder.add(
            "record",
            timestamp=start + timedelta(seconds=t),
            distance=speed * t,
            speed=speed,
            heart_rate=heart_rate,
            cadence=avg_half_cadence,
            altitude=100.0,
        )
        t += record_every_s

    for i in range(laps):
        builder.add(
            "lap",
            message_index=i,
            total_elapsed_time=elapsed_s / laps,
            total_distance=distance_m / laps,
            avg_speed=avg_speed_ms,
            avg_heart_rate=heart_rate,
            max_heart_rate=(heart_rate + 10) if heart_rate else None,
            avg_cadence=avg_half_cadence,
            max_cadence=(avg_half_cadence + 4) if avg_half_cadence else None,
        )

    builder.add(
        "session",
        start_time=start,
        total_elapsed_time=elapsed_s,
        total_timer_time=elapsed_s,
        total_distance=distance_m,
        total_calories=420,
        avg_speed=avg_speed_ms,
        max_speed=(avg_speed_ms * 1.2) if avg_speed_ms else None,
        avg_heart_rate=heart_rate,
        max_heart_rate=(heart_rate + 15) if heart_rate else None,
        avg_cadence=avg_half_cadence,
        max_cadence=(avg_half_cadence + 6) if avg_half_cadence else None,
        total_training_effect=3.2,
    )
    return builder.build()
