"""Compass fusion state: magnetic field, acceleration and orientation outputs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from smdksensors.ak8975 import (
    ASENSE_DEFAULT,
    ASENSE_TARGET,
    HSENSE_DEFAULT,
    HSENSE_TARGET,
    decompose,
)
from smdksensors.aoc import HBUF_SIZE, HOBUF_SIZE, AocState
from smdksensors.direction import direction
from smdksensors.params import PathLike, load_offset, save_offset
from smdksensors.vectors import (
    ADATA_SIZE,
    HDATA_SIZE,
    FusionError,
    Pattern,
    Vector,
    buf_shift,
    init_buffer,
    rotate,
)
from smdksensors.vnorm import vb_ave, vb_norm

log = logging.getLogger(__name__)

HNAVE_D = 4
"""Magnetic samples averaged for orientation."""

ANAVE_D = 4
"""Acceleration samples averaged for orientation."""

HNAVE_V = 8
"""Magnetic samples averaged for the field vector."""

ANAVE_V = 8
"""Acceleration samples averaged for the acceleration vector."""

SETTING_FILE = "/data/misc/akmdfs.txt"
"""Default location of the offset settings file."""

GEOMAG_MAX = 70
"""Largest plausible geomagnetic field magnitude, in microtesla."""


@dataclass(frozen=True)
class Reading:
    """One output of the fusion library: three values and an accuracy."""

    x: float
    y: float
    z: float
    accuracy: int


def _zeros(size: int) -> List[Vector]:
    return [Vector() for _ in range(size)]


class Compass:
    """Holds the buffers and calibration of the magnetometer/accelerometer fusion."""

    def __init__(self, pattern: int, asa: Sequence[int]) -> None:
        self.pattern = pattern
        self.asa = (int(asa[0]), int(asa[1]), int(asa[2]))

        self.hdata: List[Vector] = _zeros(HDATA_SIZE)
        self.hvbuf: List[Vector] = _zeros(HDATA_SIZE)
        self.adata: List[Vector] = _zeros(ADATA_SIZE)
        self.avbuf: List[Vector] = _zeros(ADATA_SIZE)

        self.aoc = AocState(hbuf=_zeros(HBUF_SIZE), hobuf=_zeros(HOBUF_SIZE))

        self.ho = Vector()
        self.hs = Vector(HSENSE_DEFAULT, HSENSE_DEFAULT, HSENSE_DEFAULT)
        self.ao = Vector()
        self.as_ = Vector(ASENSE_DEFAULT, ASENSE_DEFAULT, ASENSE_DEFAULT)

        self.hvec = Vector()
        self.avec = Vector()
        self.hstatus = 0

        self.azimuth = 0.0
        self.pitch = 0.0
        self.roll = 0.0

    def start(self, path: PathLike = SETTING_FILE) -> None:
        """Load the saved offset (if possible) and reset all buffers."""
        try:
            self.ho = load_offset(path)
        except (OSError, FusionError) as exc:
            log.error("unable to load parameters from %s: %s", path, exc)

        self.hdata = init_buffer(HDATA_SIZE)
        self.hvbuf = init_buffer(HDATA_SIZE)
        self.adata = init_buffer(ADATA_SIZE)
        self.avbuf = init_buffer(ADATA_SIZE)

        self.aoc.reset()
        self.hstatus = 0

    def stop(self, path: PathLike = SETTING_FILE) -> None:
        """Save the current magnetic offset; failures are logged."""
        try:
            save_offset(path, self.ho)
        except OSError as exc:
            log.error("unable to save parameters to %s: %s", path, exc)

    def magnetic_field(self, mag: Sequence[int], status: int) -> Reading:
        """Process a raw magnetometer sample and return the field in microtesla.

        Raises :class:`FusionError` if the sample or layout is invalid.
        """
        decompose(mag, status, self.asa, self.hdata)
        self.hdata[0] = rotate(self.pattern, self.hdata[0])

        offset: Optional[Vector] = self.aoc.update(self.hdata[0])
        if offset is not None:
            self.ho = offset

        vb_norm(self.hdata, 1, self.ho, self.hs, HSENSE_TARGET, self.hvbuf)
        self.hvec = vb_ave(self.hvbuf, HNAVE_V)

        radius = (
            self.hvec.x * self.hvec.x
            + self.hvec.y * self.hvec.y
            + self.hvec.z * self.hvec.z
        ) ** 0.5
        if radius > GEOMAG_MAX:
            self.hstatus = 0
        elif offset is not None:
            self.hstatus = 3

        return Reading(self.hvec.x, self.hvec.y, self.hvec.z, self.hstatus)

    def accelerometer(self, acc: Sequence[int], status: int) -> Reading:
        """Process a raw accelerometer sample and return it in m/s^2."""
        buf_shift(self.adata, 1)
        self.adata[0] = Vector(float(acc[0]), float(acc[1]), float(acc[2]))

        vb_norm(self.adata, 1, self.ao, self.as_, ASENSE_TARGET, self.avbuf)
        self.avec = vb_ave(self.avbuf, ANAVE_V)

        return Reading(self.avec.x, self.avec.y, self.avec.z, 3)

    def orientation(self) -> Reading:
        """Return azimuth, pitch and roll in degrees from the buffered vectors."""
        self.azimuth, self.pitch, self.roll = direction(
            self.hvbuf, HNAVE_D, self.avbuf, ANAVE_D
        )
        return Reading(self.azimuth, self.pitch, self.roll, self.hstatus)


__all__ = ["Compass", "Reading", "Pattern", "SETTING_FILE", "GEOMAG_MAX"]