"""Azimuth, pitch and roll from averaged magnetic and acceleration vectors."""

from __future__ import annotations

import math
from typing import Sequence, Tuple

from smdksensors.vectors import FusionError, Vector, rad2deg
from smdksensors.vnorm import vb_ave


def _clamp_unit(value: float) -> float:
    return max(-1.0, min(1.0, value))


def angle(avec: Vector) -> Tuple[float, float]:
    """Return (pitch, roll) in radians for an acceleration vector.

    A zero vector gives NaN for both angles.
    """
    size = math.sqrt(avec.x * avec.x + avec.y * avec.y + avec.z * avec.z)
    if size == 0.0:
        return math.nan, math.nan
    pitch = math.asin(_clamp_unit(-avec.y / size))
    roll = math.asin(_clamp_unit(avec.x / size))
    return pitch, roll


def azimuth(hvec: Vector, pitch: float, roll: float) -> float:
    """Return the azimuth in radians of a magnetic vector, tilt-compensated."""
    sin_p = math.sin(pitch)
    cos_p = math.cos(pitch)
    sin_r = math.sin(roll)
    cos_r = math.cos(roll)

    yh = -hvec.x * cos_r + hvec.z * sin_r
    xh = hvec.x * sin_p * sin_r + hvec.y * cos_p + hvec.z * sin_p * cos_r
    return math.atan2(yh, xh)


def direction(
    hvec: Sequence[Vector],
    hnave: int,
    avec: Sequence[Vector],
    anave: int,
) -> Tuple[float, float, float]:
    """Return (azimuth, pitch, roll) in degrees, azimuth in [0, 360).

    The first ``hnave`` magnetic and ``anave`` acceleration vectors are averaged.
    """
    if len(hvec) <= 0 or len(avec) <= 0 or hnave <= 0 or anave <= 0:
        raise FusionError("buffer sizes and averaging counts must be positive")
    if len(hvec) < hnave or len(avec) < anave:
        raise FusionError("averaging count exceeds buffer size")

    have = vb_ave(hvec, hnave)
    aave = vb_ave(avec, anave)

    pitch_rad, roll_rad = angle(aave)
    azimuth_rad = azimuth(have, pitch_rad, roll_rad)

    azimuth_deg = rad2deg(azimuth_rad)
    if azimuth_deg < 0:
        azimuth_deg += 360.0
    return azimuth_deg, rad2deg(pitch_rad), rad2deg(roll_rad)