"""Automatic offset calibration of the magnetometer from buffered samples."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from itertools import combinations
from typing import List, Optional, Sequence, Tuple

from smdksensors.vectors import EPSILON, FusionError, Vector

HBUF_SIZE = 20
"""Number of raw magnetic samples kept for the sphere fit."""

HOBUF_SIZE = 4
"""Number of offset estimates kept for the stability check."""

HR_TH = 10.0
"""Minimum distance between the four fit points."""

HO_TH = 0.15
"""Allowed spread of offset estimates, as a fraction of the fitted radius."""


def _distance(a: Vector, b: Vector) -> float:
    return math.sqrt(sum((p - q) * (p - q) for p, q in zip(a, b)))


def _sub(a: Vector, b: Vector) -> Vector:
    return Vector(a.x - b.x, a.y - b.y, a.z - b.z)


def _cross(a: Vector, b: Vector) -> Vector:
    return Vector(
        a.y * b.z - a.z * b.y,
        a.z * b.x - a.x * b.z,
        a.x * b.y - a.y * b.x,
    )


def _dot(a: Vector, b: Vector) -> float:
    return a.x * b.x + a.y * b.y + a.z * b.z


def sphere_from_points(points: Sequence[Vector]) -> Tuple[Vector, float]:
    """Return the centre and radius of the sphere through four points.

    Raises :class:`FusionError` when the points do not determine a sphere.
    """
    if len(points) != 4:
        raise FusionError(f"a sphere needs exactly four points, got {len(points)}")

    last = points[3]
    dif = []
    r2 = []
    for point in points[:3]:
        dif.append([p - q for p, q in zip(point, last)])
        r2.append(0.5 * sum(p * p - q * q for p, q in zip(point, last)))

    a = dif[0][0] * dif[2][2] - dif[0][2] * dif[2][0]
    b = dif[0][1] * dif[2][0] - dif[0][0] * dif[2][1]
    c = dif[0][0] * dif[2][1] - dif[0][1] * dif[2][0]
    d = dif[0][0] * r2[2] - dif[2][0] * r2[0]
    e = dif[0][0] * dif[1][1] - dif[0][1] * dif[1][0]
    f = dif[1][0] * dif[0][2] - dif[0][0] * dif[1][2]
    g = dif[0][0] * r2[1] - dif[1][0] * r2[0]

    denominator = c * f + a * e
    if abs(denominator) < EPSILON:
        raise FusionError("points are degenerate")
    cz = (d * e + b * g) / denominator

    if abs(e) < EPSILON:
        raise FusionError("points are degenerate")
    cy = (f * cz + g) / e

    if abs(dif[0][0]) < EPSILON:
        raise FusionError("points are degenerate")
    cx = (r2[0] - dif[0][1] * cy - dif[0][2] * cz) / dif[0][0]

    center = Vector(cx, cy, cz)
    return center, _distance(points[0], center)


def _mean_var(vectors: Sequence[Vector]) -> Tuple[Vector, Vector]:
    """Return the mid-range and the range of each component."""
    lows = [min(component) for component in zip(*vectors)]
    highs = [max(component) for component in zip(*vectors)]
    mean = Vector(*((hi + lo) / 2.0 for hi, lo in zip(highs, lows)))
    spread = Vector(*(hi - lo for hi, lo in zip(highs, lows)))
    return mean, spread


def _four_points(samples: Sequence[Vector]) -> List[Vector]:
    """Pick four well-spread samples, starting from the newest one."""
    first = samples[0]
    rest = samples[1:]

    second = first
    best = 0.0
    for point in rest:
        dist = _distance(point, first)
        if best < dist:
            best, second = dist, point

    base = _sub(second, first)
    diffs = [_sub(point, first) for point in rest]

    third = first
    normal = Vector()
    best = 0.0
    for point, diff in zip(rest, diffs):
        cross = _cross(base, diff)
        size = _dot(cross, cross)
        if best < size:
            best, third, normal = size, point, cross

    fourth = first
    best = 0.0
    for point, diff in zip(rest, diffs):
        height = abs(_dot(diff, normal))
        if best < height:
            best, fourth = height, point

    return [first, second, third, fourth]


def _initial_buffer(size: int) -> List[Vector]:
    return [Vector.initial() for _ in range(size)]


@dataclass
class AocState:
    """Sample and offset buffers of the offset estimator."""

    hbuf: List[Vector] = field(default_factory=lambda: _initial_buffer(HBUF_SIZE))
    hobuf: List[Vector] = field(default_factory=lambda: _initial_buffer(HOBUF_SIZE))
    hraoc: float = 0.0

    def reset(self) -> None:
        """Mark every buffered sample and offset as unfilled."""
        self.hbuf = _initial_buffer(HBUF_SIZE)
        self.hobuf = _initial_buffer(HOBUF_SIZE)
        self.hraoc = 0.0

    def update(self, hdata: Vector) -> Optional[Vector]:
        """Add a magnetic sample; return a new offset estimate, or None if there is none."""
        self.hbuf[1:] = self.hbuf[:-1]
        self.hbuf[0] = hdata

        num = next(
            (i for i in range(HBUF_SIZE, 3, -1) if not self.hbuf[i - 1].is_initial()),
            0,
        )
        if num < 4:
            return None

        points = _four_points(self.hbuf[:num])
        try:
            center, radius = sphere_from_points(points)
        except FusionError:
            return None
        self.hraoc = radius

        for i, j in combinations(range(4), 2):
            dist = _distance(points[i], points[j])
            if dist < self.hraoc or dist < HR_TH:
                return None

        self.hobuf[1:] = self.hobuf[:-1]
        self.hobuf[0] = center

        half = HBUF_SIZE >> 1
        self.hbuf[half:] = _initial_buffer(HBUF_SIZE - half)

        if self.hobuf[-1].is_initial():
            return None

        threshold = self.hraoc * HO_TH
        mean, spread = _mean_var(self.hobuf)
        if any(component >= threshold for component in spread):
            return None
        return mean