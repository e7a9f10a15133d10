"""LSM330DLC gyroscope sensor."""

from __future__ import annotations

from typing import List

from smdksensors.input import (
    EV_REL,
    EV_SYN,
    REL_RX,
    REL_RY,
    REL_RZ,
    SYN_REPORT,
    SensorEvent,
    SensorHandler,
    SensorType,
)

STATUS_ACCURACY_MEDIUM = 2

_PI = 3.1415926535
_SCALE = (70.0 / 4000.0) * (_PI / 180.0)

_AXES = {REL_RX: 0, REL_RY: 1, REL_RZ: 2}


def gyroscope_convert(value: int) -> float:
    """Return the angular rate in rad/s for a raw reading."""
    return value * _SCALE


class GyroscopeSensor(SensorHandler):
    """LSM330DLC gyroscope; axes missing from a frame keep their last value."""

    name = "LSM330DLC Gyroscope"
    handle = SensorType.GYROSCOPE
    input_name = "gyro_sensor"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._gyro = [0.0, 0.0, 0.0]

    def open(self) -> None:
        """Open the device and clear the remembered rates."""
        self._gyro = [0.0, 0.0, 0.0]
        super().open()

    def close(self) -> None:
        """Release the device and clear the remembered rates."""
        super().close()
        self._gyro = [0.0, 0.0, 0.0]

    def read(self, flush: bool = False) -> List[SensorEvent]:
        """Read one frame and return the rate event, after a flush event if pending."""
        events = self._start_read(flush)
        event = self._new_event()
        event.values = list(self._gyro)
        event.status = STATUS_ACCURACY_MEDIUM
        for input_event in self._frame():
            if input_event.type == EV_REL:
                axis = _AXES.get(input_event.code)
                if axis is not None:
                    event.values[axis] = gyroscope_convert(input_event.value)
            elif input_event.type == EV_SYN and input_event.code == SYN_REPORT:
                event.timestamp = input_event.timestamp
        self._gyro = list(event.values)
        events.append(event)
        return events