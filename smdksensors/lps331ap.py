"""LPS331AP barometric pressure sensor."""

from __future__ import annotations

import errno
from typing import List

from smdksensors.input import (
    EV_REL,
    EV_SYN,
    REL_X,
    SYN_REPORT,
    SensorEvent,
    SensorHandler,
    SensorType,
    sysfs_value_write,
)

MIN_DELAY_NS = 10_000_000
"""Delays below this are written as the minimum of 10 ms."""


def pressure_convert(value: int) -> float:
    """Return the pressure in hPa for a raw reading."""
    return value / 4096.0


def delay_to_ms(delay: int) -> int:
    """Convert a delay in nanoseconds to the milliseconds the driver takes."""
    if delay < MIN_DELAY_NS:
        return 10
    return delay // 1_000_000


class PressureSensor(SensorHandler):
    """LPS331AP pressure sensor."""

    name = "LPS331AP"
    handle = SensorType.PRESSURE
    input_name = "barometer_sensor"

    def set_delay(self, delay: int) -> None:
        """Write the polling delay, in milliseconds, to sysfs."""
        sysfs_value_write(self._require(self.path_delay), delay_to_ms(delay))

    def read(self, flush: bool = False) -> List[SensorEvent]:
        """Read one frame and return the pressure event, after a flush event if pending.

        Raises :class:`OSError` when a sync arrives before any pressure value.
        """
        events = self._start_read(flush)
        event: SensorEvent = self._new_event()
        for input_event in self._frame():
            if input_event.type == EV_REL:
                if input_event.code == REL_X:
                    event.values[0] = pressure_convert(input_event.value)
            elif input_event.type == EV_SYN:
                if input_event.code == SYN_REPORT and event.pressure != 0:
                    event.timestamp = input_event.timestamp
                else:
                    raise OSError(errno.EIO, f"{self.name}: frame without pressure")
        events.append(event)
        return events