"""CM36651 ambient light and proximity sensors."""

from __future__ import annotations

import math
from typing import List

from smdksensors.input import (
    ABS_DISTANCE,
    EV_ABS,
    EV_REL,
    EV_SYN,
    REL_MISC,
    REL_Y,
    SYN_REPORT,
    SensorEvent,
    SensorHandler,
    SensorType,
)


def light_convert(white: int, green: int) -> float:
    """Return illuminance in lux from the white and green channel counts."""
    if green <= 4:
        return 0.0

    gwrel = green / white if white > 0 else 1.0

    r1 = math.floor(math.pow(green, 1.3341) * 0.0258)
    aux = math.floor((green * 0.18 * 9.44) / gwrel)
    r2 = aux
    r3 = aux * 0.77
    r4 = math.floor(green * ((gwrel * 1.546) - 0.46))

    if gwrel <= 0.5:
        return float(r1)
    if gwrel >= 0.9:
        return float(r2) if white <= 5999 else float(r3)
    return float(r4)


def proximity_convert(value: int) -> float:
    """Return the proximity distance for a raw reading."""
    return value * 6.0


class LightSensor(SensorHandler):
    """CM36651 ambient light sensor."""

    name = "CM36651 Light"
    handle = SensorType.LIGHT
    input_name = "light_sensor"

    def read(self, flush: bool = False) -> List[SensorEvent]:
        """Read one frame and return the light event, after a flush event if pending."""
        events = self._start_read(flush)
        event = self._new_event()
        green = 0
        white = 0
        for input_event in self._frame():
            if input_event.type == EV_REL:
                if input_event.code == REL_Y:
                    green = input_event.value
                if input_event.code == REL_MISC:
                    white = input_event.value
            elif input_event.type == EV_SYN and input_event.code == SYN_REPORT:
                event.timestamp = input_event.timestamp
        event.values[0] = light_convert(white, green)
        events.append(event)
        return events


class ProximitySensor(SensorHandler):
    """CM36651 proximity sensor."""

    name = "CM36651 Proximity"
    handle = SensorType.PROXIMITY
    input_name = "proximity_sensor"

    def set_delay(self, delay: int) -> None:
        """The proximity sensor has no adjustable delay; this does nothing."""

    def read(self, flush: bool = False) -> List[SensorEvent]:
        """Read one frame and return the distance event, after a flush event if pending."""
        events = self._start_read(flush)
        event = self._new_event()
        for input_event in self._frame():
            if input_event.type == EV_ABS:
                if input_event.code == ABS_DISTANCE:
                    event.values[0] = proximity_convert(input_event.value)
            elif input_event.type == EV_SYN and input_event.code == SYN_REPORT:
                event.timestamp = input_event.timestamp
        events.append(event)
        return events