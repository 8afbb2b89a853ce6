"""
Sample decoder.

Telemetry values arrive in a few shapes depending on where they were read
from: plain Python scalars (pyirsdk), arrays for per-car variables, or raw
variable buffers tagged with the SDK's variable type code. Everything is
normalised here to a bool, int or float. Decoding never raises; anything
that cannot be read becomes 0 (or False).
"""

import math
import struct
import logging
from enum import Enum, IntEnum
from numbers import Real
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .models import TelemetrySample

logger = logging.getLogger(__name__)

Scalar = Union[bool, int, float]


class VarType(IntEnum):
    """irsdk_VarType codes."""
    CHAR = 0
    BOOL = 1
    INT = 2
    BITFIELD = 3
    FLOAT = 4
    DOUBLE = 5


class FieldKind(Enum):
    BOOL = 'bool'
    INT = 'int'
    FLOAT = 'float'


@dataclass(frozen=True)
class TypedBuffer:
    """Raw variable bytes plus the SDK type code describing them."""
    var_type: int
    data: bytes


# Little-endian struct formats per variable type
_BUFFER_FORMATS: Dict[int, str] = {
    VarType.CHAR: '<b',
    VarType.BOOL: '<i',
    VarType.INT: '<i',
    VarType.BITFIELD: '<I',
    VarType.FLOAT: '<f',
    VarType.DOUBLE: '<d',
}

# Telemetry variable name -> (sample attribute, kind)
TELEMETRY_FIELDS: Dict[str, Tuple[str, FieldKind]] = {
    'SessionTime': ('sessionTime', FieldKind.FLOAT),
    'SessionTimeRemain': ('sessionTimeRemain', FieldKind.FLOAT),
    'Lap': ('lap', FieldKind.INT),
    'LapCompleted': ('lapCompleted', FieldKind.INT),
    'LapDistPct': ('lapDistPct', FieldKind.FLOAT),
    'LapCurrentLapTime': ('lapCurrentTime', FieldKind.FLOAT),
    'LapLastLapTime': ('lapLastTime', FieldKind.FLOAT),
    'LapBestLapTime': ('lapBestTime', FieldKind.FLOAT),
    'FuelLevel': ('fuelLevel', FieldKind.FLOAT),
    'FuelLevelPct': ('fuelLevelPct', FieldKind.FLOAT),
    'FuelUsePerHour': ('fuelUsePerHour', FieldKind.FLOAT),
    'OnPitRoad': ('onPitRoad', FieldKind.BOOL),
    'PitstopActive': ('pitstopActive', FieldKind.BOOL),
    'PlayerCarIdx': ('carIdx', FieldKind.INT),
    'PlayerCarPosition': ('position', FieldKind.INT),
    'PlayerCarClassPosition': ('classPosition', FieldKind.INT),
    'Speed': ('speed', FieldKind.FLOAT),
    'SessionFlags': ('sessionFlags', FieldKind.INT),
    'TrackTemp': ('trackTemp', FieldKind.FLOAT),
    'AirTemp': ('airTemp', FieldKind.FLOAT),
}


def _unpack_buffer(buf: TypedBuffer) -> Optional[float]:
    data = bytes(buf.data)
    if not data:
        return None
    fmt = _BUFFER_FORMATS.get(buf.var_type)
    if fmt is None:
        return None
    if buf.var_type == VarType.BOOL and len(data) < 4:
        # The simulator itself stores bools as a single byte
        fmt = '<b'
    size = struct.calcsize(fmt)
    if len(data) < size:
        return None
    return struct.unpack_from(fmt, data)[0]


def _to_number(raw: Any) -> Optional[float]:
    """Reduce a raw value to a number, or None when it cannot be read."""
    if raw is None:
        return None
    if isinstance(raw, bool):
        return 1 if raw else 0
    if isinstance(raw, TypedBuffer):
        return _unpack_buffer(raw)
    if isinstance(raw, (bytes, bytearray, memoryview)):
        # Untagged bytes carry no width information
        return None
    if isinstance(raw, Real):
        return raw
    if isinstance(raw, str):
        try:
            return float(raw.strip())
        except ValueError:
            return None
    try:
        items = list(raw)
    except TypeError:
        return None
    if not items:
        return None
    return _to_number(items[0])


def decode(raw: Any, kind: FieldKind = FieldKind.FLOAT) -> Scalar:
    """Normalise one raw telemetry value to the scalar type of `kind`."""
    try:
        value = _to_number(raw)
        if value is None or (isinstance(value, float) and not math.isfinite(value)):
            value = 0
        if kind is FieldKind.BOOL:
            return bool(value != 0)
        if kind is FieldKind.INT:
            return int(value)
        return float(value)
    except Exception as e:
        # e.g. an integer too large for a float
        logger.debug(f"Undecodable telemetry value {raw!r}: {e}")
        if kind is FieldKind.BOOL:
            return False
        if kind is FieldKind.INT:
            return 0
        return 0.0


def decode_sample(values: Mapping[str, Any]) -> TelemetrySample:
    """Decode a flat mapping of telemetry variables into a TelemetrySample."""
    decoded = {}
    for name, (attr, kind) in TELEMETRY_FIELDS.items():
        decoded[attr] = decode(values.get(name), kind)
    return TelemetrySample(**decoded)
