"""AK8975 magnetometer registers, modes and raw-data decomposition."""

from __future__ import annotations

from enum import IntEnum
from typing import MutableSequence, Sequence

from smdksensors.vectors import FusionError, Vector, buf_shift

SENSOR_DATA_SIZE = 8
"""Size of a measurement block: ST1, HXL..HZH, ST2."""

RWBUF_SIZE = 16
BDATA_SIZE = 8

HSENSE_DEFAULT = 1
HSENSE_TARGET = 0.3
ASENSE_DEFAULT = 720
ASENSE_TARGET = 9.80665


class Register(IntEnum):
    """AK8975 register and fuse-ROM addresses."""

    WIA = 0x00
    INFO = 0x01
    ST1 = 0x02
    HXL = 0x03
    HXH = 0x04
    HYL = 0x05
    HYH = 0x06
    HZL = 0x07
    HZH = 0x08
    ST2 = 0x09
    CNTL = 0x0A
    RSV = 0x0B
    ASTC = 0x0C
    TS1 = 0x0D
    TS2 = 0x0E
    I2CDIS = 0x0F
    FUSE_ASAX = 0x10
    FUSE_ASAY = 0x11
    FUSE_ASAZ = 0x12


class Mode(IntEnum):
    """AK8975 operating modes written to the CNTL register."""

    POWER_DOWN = 0x00
    SNG_MEASURE = 0x01
    SELF_TEST = 0x08
    FUSE_ACCESS = 0x0F


def status_error(status: int) -> bool:
    """Return True unless the status has data ready and no error/overflow bit."""
    return (status & 0x09) != 0x01


def _asa_factor(asa: int) -> float:
    return asa / 256.0 + 0.5


def hdata_convert(hi: int, low: int, asa: int) -> float:
    """Combine a high/low register pair into a sensitivity-adjusted value."""
    raw = ((hi & 0xFF) << 8) + (low & 0xFF)
    if raw >= 0x8000:
        raw -= 0x10000
    return raw * _asa_factor(asa)


def decompose(
    mag: Sequence[int],
    status: int,
    asa: Sequence[int],
    hdata: MutableSequence[Vector],
) -> None:
    """Push an adjusted magnetic sample onto the front of ``hdata``.

    Raises :class:`FusionError` if ``status`` reports an error.
    """
    if status_error(status):
        raise FusionError(f"magnetometer status 0x{status:02x} reports an error")
    buf_shift(hdata, 1)
    hdata[0] = Vector(
        mag[0] * _asa_factor(asa[0]),
        mag[1] * _asa_factor(asa[1]),
        mag[2] * _asa_factor(asa[2]),
    )