import os

import pytest

from smdksensors.gyroscope import STATUS_ACCURACY_MEDIUM, GyroscopeSensor, gyroscope_convert
from smdksensors.input import EV_REL, EV_SYN, REL_RX, REL_RY, REL_RZ, SYN_REPORT, InputEvent, SensorType, timestamp


@pytest.fixture
def pipe():
    r, w = os.pipe()
    os.set_blocking(r, False)
    yield r, w
    for fd in (r, w):
        try:
            os.close(fd)
        except OSError:
            pass


def _write(fd, *events):
    for event in events:
        os.write(fd, event.to_bytes())


def test_convert_is_linear_and_odd():
    assert gyroscope_convert(0) == 0.0
    assert gyroscope_convert(-300) == pytest.approx(-gyroscope_convert(300))
    assert gyroscope_convert(200) == pytest.approx(2 * gyroscope_convert(100))


def test_read_full_frame(pipe):
    r, w = pipe
    sensor = GyroscopeSensor()
    sensor.poll_fd = r
    _write(
        w,
        InputEvent(EV_REL, REL_RX, 100),
        InputEvent(EV_REL, REL_RY, 200),
        InputEvent(EV_REL, REL_RZ, 300),
        InputEvent(EV_SYN, SYN_REPORT, 0, 3, 4),
    )
    (event,) = sensor.read()
    assert event.values == [gyroscope_convert(100), gyroscope_convert(200), gyroscope_convert(300)]
    assert event.status == STATUS_ACCURACY_MEDIUM
    assert event.sensor == SensorType.GYROSCOPE
    assert event.timestamp == timestamp(3, 4)


def test_missing_axes_keep_last_value(pipe):
    r, w = pipe
    sensor = GyroscopeSensor()
    sensor.poll_fd = r
    _write(
        w,
        InputEvent(EV_REL, REL_RX, 100),
        InputEvent(EV_REL, REL_RY, 200),
        InputEvent(EV_REL, REL_RZ, 300),
        InputEvent(EV_SYN, SYN_REPORT, 0),
    )
    sensor.read()
    _write(w, InputEvent(EV_REL, REL_RX, 50), InputEvent(EV_SYN, SYN_REPORT, 0))
    (event,) = sensor.read()
    assert event.values == [gyroscope_convert(50), gyroscope_convert(200), gyroscope_convert(300)]


def test_close_clears_remembered_values(pipe):
    r, w = pipe
    sensor = GyroscopeSensor()
    sensor.poll_fd = r
    _write(w, InputEvent(EV_REL, REL_RZ, 300), InputEvent(EV_SYN, SYN_REPORT, 0))
    sensor.read()
    sensor.close()
    assert sensor.poll_fd == -1
    r2, w2 = os.pipe()
    os.set_blocking(r2, False)
    try:
        sensor.poll_fd = r2
        (event,) = sensor.read()
        assert event.values == [0.0, 0.0, 0.0]
    finally:
        sensor.close()
        os.close(w2)


def test_flush_and_not_open(pipe):
    r, _ = pipe
    sensor = GyroscopeSensor()
    with pytest.raises(OSError):
        sensor.read()
    sensor.poll_fd = r
    events = sensor.read(flush=True)
    assert [e.type for e in events] == [SensorType.META_DATA, SensorType.GYROSCOPE]