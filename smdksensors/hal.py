"""The sensors device: sensor list, handler dispatch and polling."""

from __future__ import annotations

import errno
import logging
import select
from dataclasses import dataclass
from typing import List, Optional, Sequence

from smdksensors.cm36651 import LightSensor, ProximitySensor
from smdksensors.gyroscope import GyroscopeSensor
from smdksensors.input import NEEDED_API, SensorEvent, SensorHandler, SensorType
from smdksensors.lps331ap import PressureSensor

log = logging.getLogger(__name__)

GRAVITY_EARTH = 9.80665
_PI = 3.1415926535

FLAG_WAKE_UP = 1
FLAG_CONTINUOUS_MODE = 0
FLAG_ON_CHANGE_MODE = 2


@dataclass(frozen=True)
class SensorInfo:
    """Static description of one sensor offered to the framework."""

    name: str
    vendor: str
    version: int
    handle: int
    type: int
    max_range: float
    resolution: float
    power: float
    min_delay: int
    fifo_reserved_event_count: int
    fifo_max_event_count: int
    string_type: str
    required_permission: Optional[str]
    max_delay: int
    flags: int


_SENSORS = (
    SensorInfo("LSM330DLC Acceleration Sensor", "STMicroelectronics", 1,
               SensorType.ACCELEROMETER, SensorType.ACCELEROMETER,
               2 * GRAVITY_EARTH, 0.0096, 0.23, 10000, 0, 0,
               "android.sensor.accelerometer", None, 0, FLAG_ON_CHANGE_MODE),
    SensorInfo("AKM8975 Magnetic Sensor", "Asahi Kasei", 1,
               SensorType.MAGNETIC_FIELD, SensorType.MAGNETIC_FIELD,
               2000.0, 1.0 / 16, 6.8, 10000, 0, 0,
               "android.sensor.magnetic_field", None, 0, FLAG_ON_CHANGE_MODE),
    SensorInfo("CM36651 Light Sensor", "Capella", 1,
               SensorType.LIGHT, SensorType.LIGHT,
               121240.0, 1.0, 0.2, 0, 0, 0,
               "android.sensor.light", None, 0, FLAG_ON_CHANGE_MODE),
    SensorInfo("CM36651 Proximity Sensor", "Capella", 1,
               SensorType.PROXIMITY, SensorType.PROXIMITY,
               8.0, 8.0, 1.3, 0, 0, 0,
               "android.sensor.proximity", None, 0,
               FLAG_WAKE_UP | FLAG_ON_CHANGE_MODE),
    SensorInfo("LSM330DLC Gyroscope Sensor", "STMicroelectronics", 1,
               SensorType.GYROSCOPE, SensorType.GYROSCOPE,
               500.0 * (_PI / 180.0), (70.0 / 4000.0) * (_PI / 180.0), 6.1, 5000, 0, 0,
               "android.sensor.gyroscope", None, 0, FLAG_ON_CHANGE_MODE),
    SensorInfo("LPS331AP Pressure Sensor", "STMicroelectronics", 1,
               SensorType.PRESSURE, SensorType.PRESSURE,
               1260.0, 1.0 / 4096, 0.045, 40000, 0, 0,
               "android.sensor.pressure", None, 20000, FLAG_CONTINUOUS_MODE),
)


def sensors_list() -> List[SensorInfo]:
    """Return the descriptions of all sensors of the board."""
    return list(_SENSORS)


def default_handlers() -> List[SensorHandler]:
    """Return fresh handlers for the sensors read through input devices."""
    return [ProximitySensor(), LightSensor(), GyroscopeSensor(), PressureSensor()]


class SensorsDevice:
    """Dispatches framework requests to the sensor handlers and polls their devices."""

    def __init__(self, handlers: Optional[Sequence[SensorHandler]] = None) -> None:
        self.handlers: List[SensorHandler] = (
            list(handlers) if handlers is not None else default_handlers()
        )
        self.flushed = 0
        self._poll_fds: List[int] = []

    def open(self) -> None:
        """Open every handler; those that fail to open are left out of polling."""
        self._poll_fds = []
        for handler in self.handlers:
            try:
                handler.open()
            except OSError as exc:
                log.error("unable to open %s: %s", handler.name, exc)
                continue
            if handler.poll_fd >= 0:
                self._poll_fds.append(handler.poll_fd)

    def close(self) -> None:
        """Close every handler."""
        self._poll_fds = []
        for handler in self.handlers:
            handler.close()

    def _find(self, handle: int) -> Optional[SensorHandler]:
        return next((h for h in self.handlers if h.handle == handle), None)

    def activate(self, handle: int, enabled: bool) -> None:
        """Enable or disable the sensor with ``handle``.

        Raises :class:`ValueError` if no handler has that handle.
        """
        handler = self._find(handle)
        if handler is None:
            raise ValueError(f"no sensor with handle {handle}")
        if enabled:
            handler.needed |= NEEDED_API
            if handler.needed == NEEDED_API:
                handler.activate()
        else:
            handler.needed &= ~NEEDED_API
            if handler.needed == 0:
                handler.deactivate()

    def set_delay(self, handle: int, ns: int) -> None:
        """Set the polling delay of a sensor; unknown handles are ignored."""
        handler = self._find(handle)
        if handler is not None:
            handler.set_delay(ns)

    def batch(self, handle: int, flags: int, period_ns: int, timeout: int) -> None:
        """Apply the sampling period; flags and timeout are ignored."""
        try:
            self.set_delay(handle, period_ns)
        except OSError as exc:
            log.error("unable to set delay of sensor %d: %s", handle, exc)

    def flush(self, handle: int) -> None:
        """Request a flush-complete event before the next reading of ``handle``."""
        self.flushed |= 1 << handle
        log.debug("flush: handle: %d", handle)

    def poll(self, count: int) -> List[SensorEvent]:
        """Wait for data and return the events read, reading at most ``count`` frames."""
        if not self.handlers or not self._poll_fds:
            raise OSError(errno.EINVAL, "no sensor devices to poll")

        poller = select.poll()
        for fd in self._poll_fds:
            poller.register(fd, select.POLLIN)

        events: List[SensorEvent] = []
        n = 0
        while True:
            try:
                ready = dict(poller.poll(0 if n > 0 else None))
            except OSError as exc:
                log.error("poll failed: %s", exc)
                return events
            poll_rc = len(ready)

            for fd in self._poll_fds:
                if not ready.get(fd, 0) & select.POLLIN:
                    continue
                for handler in self.handlers:
                    if handler.poll_fd != fd:
                        continue
                    bit = 1 << handler.handle
                    pending = bool(self.flushed & bit)
                    self.flushed &= ~bit
                    try:
                        events.extend(handler.read(pending))
                    except OSError as exc:
                        log.debug("read from %s failed: %s", handler.name, exc)
                        poll_rc = -1
                        break
                    n += 1
                    count -= 1

            if not ((poll_rc > 0 or n < 1) and count > 0):
                break
        return events