import threading

import pytest

from smdksensors.ak8975 import Mode, Register
from smdksensors.compass import Compass, Reading
from smdksensors.measure import (
    ACC_DATA_READY,
    MAG_DATA_READY,
    ORI_DATA_READY,
    MenuMode,
    calc_sleep,
    format_result,
    interval_from_delays,
    measure_loop,
    parse_menu_choice,
    read_fuse_rom,
    result_buffer,
    self_test,
    self_test_passed,
)
from smdksensors.params import load_offset


def _mag_bytes(x, y, z, st1=0x01, st2=0x00):
    out = bytearray([st1])
    for value in (x, y, z):
        out += value.to_bytes(2, "little", signed=True)
    out.append(st2)
    return bytes(out)


class FakeDriver:
    def __init__(self, delays=(10, 10, 10), acc=(0, 0, 720),
                 mag=None, asa=(128, 128, 128), stop_event=None,
                 fail_delay=False, fail_power_down=False):
        self.delays = list(delays)
        self.acc = acc
        self.mag = mag if mag is not None else _mag_bytes(100, 0, 0)
        self.asa = bytes(asa)
        self.stop_event = stop_event
        self.fail_delay = fail_delay
        self.fail_power_down = fail_power_down
        self.modes = []
        self.writes = []
        self.ypr = []
        self.acc_calls = 0

    def set_mode(self, mode):
        self.modes.append(mode)
        if self.fail_power_down and mode == Mode.POWER_DOWN:
            raise OSError("power down failed")

    def rx_data(self, address, length):
        assert address == Register.FUSE_ASAX
        return self.asa[:length]

    def tx_data(self, address, data):
        self.writes.append((address, bytes(data)))

    def get_magnetic_data(self):
        return self.mag

    def get_delay(self):
        if self.fail_delay:
            raise OSError("ioctl failed")
        return self.delays

    def get_acceleration_data(self):
        self.acc_calls += 1
        return self.acc

    def set_ypr(self, buf):
        self.ypr.append(list(buf))
        if self.stop_event is not None:
            self.stop_event.set()


def test_calc_sleep_remaining_time():
    assert calc_sleep(100, 0, 1000) == 900


def test_calc_sleep_never_negative():
    assert calc_sleep(5000, 0, 1000) == 0


def test_interval_all_disabled():
    assert interval_from_delays([-1, -1, -1]) == (0, 1_000_000_000)


def test_interval_selects_enabled_and_minimum():
    flag, minimum = interval_from_delays([200, -1, 50])
    assert flag == ACC_DATA_READY | ORI_DATA_READY
    assert minimum == 50


def test_result_buffer_layout():
    acc = Reading(0.0, 0.0, 0.0, 3)
    mag = Reading(0.0, 0.0, 0.0, 2)
    ori = Reading(90.0, 0.0, -0.01, 1)
    buf = result_buffer(7, acc, mag, ori)
    assert len(buf) == 12
    assert buf[0] == 7
    assert buf[4] == 3
    assert buf[8] == 2
    assert buf[9] == 5760
    assert buf[11] == 0


def test_format_result_round_trip():
    ori = Reading(90.0, 45.0, 0.0, 3)
    buf = result_buffer(5, Reading(0.0, 0.0, 0.0, 3), Reading(0.0, 0.0, 0.0, 3), ori)
    text = format_result(buf)
    lines = text.splitlines()
    assert lines[0] == "Flag=5"
    assert lines[3] == f"Ori(3)={90.0:8.2f}, {45.0:8.2f}, {0.0:8.2f}"


def test_format_result_rejects_short_buffer():
    with pytest.raises(ValueError):
        format_result([1, 2, 3])


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1\n", MenuMode.MEASURE),
        ("12", MenuMode.MEASURE),
        ("2", MenuMode.SELF_TEST),
        ("q", MenuMode.QUIT),
        ("Q\n", MenuMode.QUIT),
        ("x", MenuMode.ERROR),
        ("", MenuMode.ERROR),
    ],
)
def test_parse_menu_choice(text, expected):
    assert parse_menu_choice(text) is expected


@pytest.mark.parametrize(
    "hdata, expected",
    [
        ((0, 0, -500), True),
        ((-100, 100, -1000), True),
        ((100, -100, -300), True),
        ((101, 0, -500), False),
        ((0, -101, -500), False),
        ((0, 0, -299), False),
        ((0, 0, -1001), False),
    ],
)
def test_self_test_passed(hdata, expected):
    assert self_test_passed(hdata) is expected


def test_read_fuse_rom():
    driver = FakeDriver(asa=(10, 20, 30))
    assert read_fuse_rom(driver) == (10, 20, 30)
    assert driver.modes == [Mode.FUSE_ACCESS, Mode.POWER_DOWN]


def test_self_test_success():
    driver = FakeDriver(mag=_mag_bytes(0, 0, -500))
    assert self_test(driver) is True
    assert driver.writes == [(Register.ASTC, b"\x40")]
    assert driver.modes[-1] == Mode.SELF_TEST


def test_self_test_failure():
    driver = FakeDriver(mag=_mag_bytes(0, 0, 0))
    assert self_test(driver) is False


def test_measure_loop_one_iteration(tmp_path):
    path = tmp_path / "akmdfs.txt"
    stop = threading.Event()
    driver = FakeDriver(stop_event=stop)
    compass = Compass(1, (128, 128, 128))
    measure_loop(driver, compass, stop, path)

    assert len(driver.ypr) == 1
    buf = driver.ypr[0]
    assert buf[0] == ACC_DATA_READY | MAG_DATA_READY | ORI_DATA_READY
    assert buf[3] == 720
    assert buf[4] == 3
    assert Mode.SNG_MEASURE in driver.modes
    assert driver.modes[-1] == Mode.POWER_DOWN
    assert load_offset(path).x == pytest.approx(compass.ho.x, abs=1e-5)


def test_measure_loop_status_error_clears_mag_and_ori(tmp_path):
    stop = threading.Event()
    driver = FakeDriver(stop_event=stop, mag=_mag_bytes(100, 0, 0, st1=0x00))
    compass = Compass(1, (128, 128, 128))
    measure_loop(driver, compass, stop, tmp_path / "akmdfs.txt")
    assert driver.ypr[0][0] == ACC_DATA_READY


def test_measure_loop_mag_only_skips_accelerometer(tmp_path):
    stop = threading.Event()
    driver = FakeDriver(delays=(-1, 5, -1), stop_event=stop)
    compass = Compass(1, (128, 128, 128))
    measure_loop(driver, compass, stop, tmp_path / "akmdfs.txt")
    assert driver.acc_calls == 0
    assert driver.ypr[0][0] == MAG_DATA_READY


def test_measure_loop_driver_error_powers_down_and_saves(tmp_path):
    path = tmp_path / "akmdfs.txt"
    stop = threading.Event()
    driver = FakeDriver(fail_delay=True)
    compass = Compass(1, (128, 128, 128))
    measure_loop(driver, compass, stop, path)
    assert driver.ypr == []
    assert driver.modes == [Mode.POWER_DOWN]
    assert path.exists()


def test_measure_loop_power_down_failure_skips_save(tmp_path):
    path = tmp_path / "akmdfs.txt"
    stop = threading.Event()
    driver = FakeDriver(fail_delay=True, fail_power_down=True)
    compass = Compass(1, (128, 128, 128))
    measure_loop(driver, compass, stop, path)
    assert not path.exists()


def test_measure_loop_not_entered_when_already_stopped(tmp_path):
    stop = threading.Event()
    stop.set()
    driver = FakeDriver()
    compass = Compass(1, (128, 128, 128))
    measure_loop(driver, compass, stop, tmp_path / "akmdfs.txt")
    assert driver.ypr == []
    assert driver.modes == [Mode.POWER_DOWN]