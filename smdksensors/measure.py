"""Measurement loop, self-test and console helpers for the AK8975 compass."""

from __future__ import annotations

import logging
import threading
import time
from enum import IntEnum
from typing import List, Optional, Protocol, Sequence, Tuple

from smdksensors.ak8975 import SENSOR_DATA_SIZE, Mode, Register, hdata_convert
from smdksensors.compass import SETTING_FILE, Compass, Reading
from smdksensors.params import PathLike
from smdksensors.vectors import FusionError

log = logging.getLogger(__name__)

NUM_SENSORS = 3
"""Sensors whose delays the driver reports: accelerometer, magnetometer, orientation."""

ACC_DATA_READY = 1 << 0
MAG_DATA_READY = 1 << 1
ORI_DATA_READY = 1 << 2

YPR_DATA_SIZE = 12
"""Number of integers in a result buffer handed to the driver."""

SELFTEST_MIN_X = -100
SELFTEST_MAX_X = 100
SELFTEST_MIN_Y = -100
SELFTEST_MAX_Y = 100
SELFTEST_MIN_Z = -1000
SELFTEST_MAX_Z = -300

DEFAULT_MINIMUM_NS = 1_000_000_000

MENU_TEXT = (
    " --------------------  AK8975 Console Application -------------------- \n"
    "   1. Start measurement. \n"
    "   2. Self-test. \n"
    "   Q. Quit application. \n"
    " --------------------------------------------------------------------- \n"
    " Please select a number.\n"
    "   ---> "
)


class MenuMode(IntEnum):
    """Choices of the console menu."""

    ERROR = 0
    MEASURE = 1
    SELF_TEST = 2
    QUIT = 3


class Driver(Protocol):
    """Access to the magnetometer device; every method raises OSError on failure."""

    def set_mode(self, mode: int) -> None:
        """Switch the magnetometer to ``mode``."""

    def rx_data(self, address: int, length: int) -> bytes:
        """Read ``length`` bytes starting at register ``address``."""

    def tx_data(self, address: int, data: bytes) -> None:
        """Write ``data`` starting at register ``address``."""

    def get_magnetic_data(self) -> bytes:
        """Wait for a measurement and return ST1, HXL..HZH, ST2."""

    def get_delay(self) -> Sequence[int]:
        """Return the requested delays in ns for accelerometer, magnetometer, orientation."""

    def get_acceleration_data(self) -> Sequence[int]:
        """Return the raw acceleration sample (x, y, z)."""

    def set_ypr(self, buf: Sequence[int]) -> None:
        """Hand a result buffer to the driver."""


def calc_sleep(end_ns: int, start_ns: int, minimum: int) -> int:
    """Return how many ns to sleep so that one loop lasts ``minimum`` ns; never negative."""
    return max(0, minimum - (end_ns - start_ns))


def interval_from_delays(delays: Sequence[int]) -> Tuple[int, int]:
    """Return (ready flag, minimum delay) from the per-sensor delays.

    A negative delay means that sensor is disabled.
    """
    flag = 0
    minimum = DEFAULT_MINIMUM_NS
    for index, delay in enumerate(delays[:NUM_SENSORS]):
        if delay >= 0:
            flag |= 1 << index
            minimum = min(minimum, delay)
    return flag, minimum


def _convert_acc(value: float) -> int:
    return int(value * 720 / 9.8)


def _convert_mag(value: float) -> int:
    return int(value / 0.06)


def _convert_ori(value: float) -> int:
    return int(value * 64)


def result_buffer(flag: int, acc: Reading, mag: Reading, ori: Reading) -> List[int]:
    """Pack the three readings into the integer layout the driver expects."""
    return [
        flag,
        _convert_acc(acc.x),
        _convert_acc(acc.y),
        _convert_acc(acc.z),
        acc.accuracy,
        _convert_mag(mag.x),
        _convert_mag(mag.y),
        _convert_mag(mag.z),
        mag.accuracy,
        _convert_ori(ori.x),
        _convert_ori(ori.y),
        _convert_ori(ori.z),
    ]


def format_result(buf: Sequence[int]) -> str:
    """Render a result buffer as console text."""
    if len(buf) < YPR_DATA_SIZE:
        raise ValueError(f"result buffer needs {YPR_DATA_SIZE} values, got {len(buf)}")
    acc = [v * 9.8 / 720.0 for v in buf[1:4]]
    mag = [v * 0.06 for v in buf[5:8]]
    ori = [v / 64.0 for v in buf[9:12]]
    return (
        f"Flag={buf[0]}\n"
        f"Acc({buf[4]}):{acc[0]:8.2f}, {acc[1]:8.2f}, {acc[2]:8.2f}\n"
        f"Mag({buf[8]}):{mag[0]:8.2f}, {mag[1]:8.2f}, {mag[2]:8.2f}\n"
        f"Ori({buf[8]})={ori[0]:8.2f}, {ori[1]:8.2f}, {ori[2]:8.2f}\n"
    )


def parse_menu_choice(text: str) -> MenuMode:
    """Map console input to a menu mode; only the first character counts."""
    first = text[:1]
    if first == "1":
        return MenuMode.MEASURE
    if first == "2":
        return MenuMode.SELF_TEST
    if first in ("Q", "q"):
        return MenuMode.QUIT
    return MenuMode.ERROR


def self_test_passed(hdata: Sequence[float]) -> bool:
    """Return True if self-test field values lie within the allowed ranges."""
    x, y, z = hdata[0], hdata[1], hdata[2]
    return (
        SELFTEST_MIN_X <= x <= SELFTEST_MAX_X
        and SELFTEST_MIN_Y <= y <= SELFTEST_MAX_Y
        and SELFTEST_MIN_Z <= z <= SELFTEST_MAX_Z
    )


def read_fuse_rom(driver: Driver) -> Tuple[int, int, int]:
    """Read the sensitivity adjustment values ASAX, ASAY, ASAZ from fuse ROM."""
    driver.set_mode(Mode.FUSE_ACCESS)
    data = driver.rx_data(Register.FUSE_ASAX, 3)
    driver.set_mode(Mode.POWER_DOWN)
    asa = (data[0], data[1], data[2])
    log.debug("asa(dec)=%d,%d,%d", *asa)
    return asa


def self_test(driver: Driver) -> bool:
    """Run the magnetometer self-test and return whether it passed."""
    asa = read_fuse_rom(driver)
    driver.tx_data(Register.ASTC, bytes([0x40]))
    driver.set_mode(Mode.SELF_TEST)
    data = driver.get_magnetic_data()

    hdata = [
        hdata_convert(data[2], data[1], asa[0]),
        hdata_convert(data[4], data[3], asa[1]),
        hdata_convert(data[6], data[5], asa[2]),
    ]
    passed = self_test_passed(hdata)
    log.debug(
        "Test(%s):%8.2f, %8.2f, %8.2f",
        "Success" if passed else "fail",
        *hdata,
    )
    return passed


def _to_int16(hi: int, low: int) -> int:
    value = ((hi & 0xFF) << 8) | (low & 0xFF)
    return value - 0x10000 if value >= 0x8000 else value


def _zero_reading() -> Reading:
    return Reading(0.0, 0.0, 0.0, 0)


def measure_loop(
    driver: Driver,
    compass: Compass,
    stop_event: threading.Event,
    path: PathLike = SETTING_FILE,
) -> None:
    """Measure until ``stop_event`` is set or the driver fails, then power down and save."""
    sv_acc = _zero_reading()
    sv_mag = _zero_reading()
    sv_ori = _zero_reading()

    try:
        compass.start(path)
        while not stop_event.is_set():
            start_ns = time.monotonic_ns()
            flag, minimum = interval_from_delays(driver.get_delay())

            if flag & (ACC_DATA_READY | ORI_DATA_READY):
                acc = driver.get_acceleration_data()
                try:
                    sv_acc = compass.accelerometer(acc, 0)
                except FusionError:
                    flag &= ~(ACC_DATA_READY | ORI_DATA_READY)

            if flag & (MAG_DATA_READY | ORI_DATA_READY):
                driver.set_mode(Mode.SNG_MEASURE)
                data = driver.get_magnetic_data()
                if len(data) < SENSOR_DATA_SIZE:
                    raise OSError(f"short magnetic data: {len(data)} bytes")
                mag = (
                    _to_int16(data[2], data[1]),
                    _to_int16(data[4], data[3]),
                    _to_int16(data[6], data[5]),
                )
                mstat = data[0] | data[7]
                try:
                    sv_mag = compass.magnetic_field(mag, mstat)
                except FusionError:
                    flag &= ~(MAG_DATA_READY | ORI_DATA_READY)

            if flag & ORI_DATA_READY:
                try:
                    sv_ori = compass.orientation()
                except FusionError:
                    flag &= ~ORI_DATA_READY

            buf = result_buffer(flag, sv_acc, sv_mag, sv_ori)
            log.debug("%s", format_result(buf))
            driver.set_ypr(buf)

            doze = calc_sleep(time.monotonic_ns(), start_ns, minimum)
            stop_event.wait(doze / 1e9)
    except OSError as exc:
        log.error("measurement stopped: %s", exc)

    try:
        driver.set_mode(Mode.POWER_DOWN)
    except OSError as exc:
        log.error("unable to power down: %s", exc)
        return

    compass.stop(path)


def _choice(value: Optional[str]) -> MenuMode:
    return parse_menu_choice(value or "")