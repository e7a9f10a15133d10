"""Three-component vectors, vector ring buffers and mounting-layout rotation."""

from __future__ import annotations

from dataclasses import astuple, dataclass
from enum import IntEnum
from typing import Iterator, List, MutableSequence

FMAX = 3.4028234663852886e38
"""Largest single-precision float; marks an unfilled buffer slot."""

EPSILON = 1.1920928955078125e-07
"""Single-precision machine epsilon."""

PI = 3.141592654
HDATA_SIZE = 32
ADATA_SIZE = 32


class FusionError(Exception):
    """Raised when a compass-fusion computation cannot be carried out."""


@dataclass(frozen=True)
class Vector:
    """An immutable three-dimensional vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def initial(cls) -> "Vector":
        """Return the marker vector used for slots that hold no data yet."""
        return cls(FMAX, FMAX, FMAX)

    def is_initial(self) -> bool:
        """Return True if any component carries the unfilled-slot marker."""
        return any(component >= FMAX for component in self)

    def __iter__(self) -> Iterator[float]:
        return iter(astuple(self))

    def __getitem__(self, index: int) -> float:
        return astuple(self)[index]


class Pattern(IntEnum):
    """Mounting orientation of the magnetometer on the board."""

    INVALID = 0
    PAT1 = 1  # obverse: 1st pin is right down
    PAT2 = 2  # obverse: 1st pin is left down
    PAT3 = 3  # obverse: 1st pin is left top
    PAT4 = 4  # obverse: 1st pin is right top
    PAT5 = 5  # reverse: 1st pin is left down
    PAT6 = 6  # reverse: 1st pin is left top
    PAT7 = 7  # reverse: 1st pin is right top
    PAT8 = 8  # reverse: 1st pin is right down


def init_buffer(size: int) -> List[Vector]:
    """Return a buffer of ``size`` unfilled vectors."""
    if size <= 0:
        raise FusionError(f"buffer size must be positive, got {size}")
    return [Vector.initial() for _ in range(size)]


def buf_shift(buffer: MutableSequence[Vector], shift: int) -> None:
    """Shift the buffer contents ``shift`` slots towards its end, in place.

    The first ``shift`` slots keep their old contents; the last ``shift``
    entries fall off the end.
    """
    length = len(buffer)
    if shift < 1 or length < shift:
        raise FusionError(f"invalid shift {shift} for buffer of length {length}")
    buffer[shift:] = list(buffer[: length - shift])


def rotate(pattern: int, vector: Vector) -> Vector:
    """Return ``vector`` converted from the given layout to the device frame."""
    try:
        pat = Pattern(pattern)
    except ValueError:
        raise FusionError(f"unknown layout pattern {pattern}") from None

    x, y, z = vector
    if pat is Pattern.PAT1:
        return Vector(x, y, z)
    if pat is Pattern.PAT2:
        return Vector(y, -x, z)
    if pat is Pattern.PAT3:
        return Vector(-x, -y, z)
    if pat is Pattern.PAT4:
        return Vector(-y, x, z)
    if pat is Pattern.PAT5:
        return Vector(-x, y, -z)
    if pat is Pattern.PAT6:
        return Vector(y, x, -z)
    if pat is Pattern.PAT7:
        return Vector(x, -y, -z)
    if pat is Pattern.PAT8:
        return Vector(-y, -x, -z)
    raise FusionError(f"unknown layout pattern {pattern}")


def rad2deg(rad: float) -> float:
    """Convert radians to degrees."""
    return rad * 180.0 / PI