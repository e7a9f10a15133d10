import os

import pytest

from smdksensors.input import (
    EV_REL,
    EV_SYN,
    EVENT_SIZE,
    REL_X,
    SYN_REPORT,
    InputEvent,
    SensorHandler,
    SensorType,
    find_input_device,
    flush_event,
    read_event,
    sysfs_path_prefix,
    sysfs_string_read,
    sysfs_string_write,
    sysfs_value_read,
    sysfs_value_write,
    timestamp,
)


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


def test_event_round_trip():
    event = InputEvent(EV_REL, REL_X, -42, 12, 345)
    data = event.to_bytes()
    assert len(data) == EVENT_SIZE
    assert InputEvent.from_bytes(data) == event


def test_event_from_short_bytes():
    with pytest.raises(ValueError):
        InputEvent.from_bytes(b"\x00" * (EVENT_SIZE - 1))


def test_timestamp_value():
    assert timestamp(1, 2) == 1_000_002_000
    event = InputEvent(EV_SYN, SYN_REPORT, 0, 3, 4)
    assert event.timestamp == timestamp(3, 4)


def test_now_sets_fields():
    event = InputEvent.now(EV_REL, REL_X, 7)
    assert (event.type, event.code, event.value) == (EV_REL, REL_X, 7)
    assert 0 <= event.usec < 1_000_000
    assert event.sec > 0


def test_read_event(pipe):
    r, w = pipe
    event = InputEvent(EV_REL, REL_X, 5, 1, 2)
    os.write(w, event.to_bytes())
    assert read_event(r) == event
    assert read_event(r) is None


def test_read_event_short(pipe):
    r, w = pipe
    os.write(w, b"\x01\x02")
    assert read_event(r) is None


def test_sysfs_path_prefix(tmp_path):
    (tmp_path / "input0").mkdir()
    (tmp_path / "input0" / "name").write_text("other\n")
    (tmp_path / "input1").mkdir()
    (tmp_path / "input1" / "name").write_text("light_sensor\n")
    (tmp_path / "input2").mkdir()
    assert sysfs_path_prefix("light_sensor", tmp_path) == str(tmp_path / "input1")
    with pytest.raises(FileNotFoundError):
        sysfs_path_prefix("gyro_sensor", tmp_path)


def test_find_input_device_not_found(tmp_path):
    (tmp_path / "event0").write_bytes(b"")
    with pytest.raises(FileNotFoundError):
        find_input_device("light_sensor", tmp_path)
    with pytest.raises(FileNotFoundError):
        find_input_device("light_sensor", tmp_path / "missing")


@pytest.mark.parametrize("value", [0, 1, -17, 200000000])
def test_value_round_trip(tmp_path, value):
    path = tmp_path / "value"
    path.write_text("")
    sysfs_value_write(path, value)
    assert path.read_text() == f"{value}\n"
    assert sysfs_value_read(path) == value


def test_value_read_non_numeric(tmp_path):
    path = tmp_path / "value"
    path.write_text("abc")
    assert sysfs_value_read(path) == 0


def test_value_read_errors(tmp_path):
    with pytest.raises(OSError):
        sysfs_value_read(tmp_path / "missing")
    empty = tmp_path / "empty"
    empty.write_text("")
    with pytest.raises(OSError):
        sysfs_value_read(empty)


def test_value_write_needs_existing_file(tmp_path):
    with pytest.raises(OSError):
        sysfs_value_write(tmp_path / "missing", 1)


def test_string_round_trip(tmp_path):
    path = tmp_path / "text"
    path.write_text("")
    sysfs_string_write(path, "hello\n")
    assert sysfs_string_read(path) == "hello\n"
    with pytest.raises(ValueError):
        sysfs_string_write(path, "")


def test_flush_event():
    event = flush_event(SensorType.LIGHT)
    assert event.type == SensorType.META_DATA
    assert event.sensor == SensorType.LIGHT


def test_handler_not_open():
    handler = SensorHandler("Test", SensorType.LIGHT, "test_sensor")
    with pytest.raises(OSError):
        handler.activate()
    with pytest.raises(OSError):
        handler.set_delay(10)
    with pytest.raises(OSError):
        handler.read()


def test_handler_open_failure(tmp_path):
    handler = SensorHandler(
        "Test", SensorType.LIGHT, "test_sensor", input_dir=tmp_path, sysfs_dir=tmp_path
    )
    with pytest.raises(FileNotFoundError):
        handler.open()
    assert handler.poll_fd == -1


def test_handler_sysfs_controls(tmp_path):
    handler = SensorHandler("Test", SensorType.LIGHT, "test_sensor")
    handler.path_enable = str(tmp_path / "enable")
    handler.path_delay = str(tmp_path / "poll_delay")
    (tmp_path / "enable").write_text("")
    (tmp_path / "poll_delay").write_text("")
    handler.activate()
    assert (tmp_path / "enable").read_text() == "1\n"
    assert handler.activated
    handler.deactivate()
    assert (tmp_path / "enable").read_text() == "0\n"
    handler.set_delay(66667000)
    assert sysfs_value_read(tmp_path / "poll_delay") == 66667000


def test_handler_read_and_close(pipe):
    r, w = pipe
    handler = SensorHandler("Test", SensorType.LIGHT, "test_sensor")
    handler.poll_fd = r
    os.write(w, InputEvent(EV_REL, REL_X, 1, 0, 0).to_bytes())
    os.write(w, InputEvent(EV_SYN, SYN_REPORT, 0, 9, 8).to_bytes())
    events = handler.read(flush=True)
    assert len(events) == 2
    assert events[0].type == SensorType.META_DATA
    assert events[1].sensor == SensorType.LIGHT
    assert events[1].timestamp == timestamp(9, 8)
    handler.close()
    assert handler.poll_fd == -1
    with pytest.raises(OSError):
        os.fstat(r)