# smdksensors

A pure-Python library for the sensor stack of SMDK4x12-based phones. It
reads Linux input devices, switches sensors through sysfs, converts raw
readings into physical units, and runs the AK8975 compass fusion
(magnetic field, acceleration and orientation). It has no third-party
dependencies and needs Python 3.10 or later.

## Sensor handlers

`smdksensors.input.SensorHandler` is the base class for a sensor that is
read through an input device and controlled through sysfs:

- `open()` finds the input device by name and the matching sysfs directory.
  Both are searched under `/dev/input` and `/sys/class/input` by default.
  The `input_dir` and `sysfs_dir` keyword arguments redirect the search.
  A device that cannot be found raises `FileNotFoundError`.
- `activate()` and `deactivate()` write `1` or `0` to `enable`.
- `set_delay(delay)` writes to `poll_delay`.
- `read(flush=False)` reads one frame of input events up to the sync event.
  It returns a list of `SensorEvent`. When `flush` is true, a flush-complete
  meta event (`flush_event`) comes first.
- `close()` releases the device.

The concrete handlers are:

| Class | Module | Input name | Notes |
|---|---|---|---|
| `LightSensor` | `cm36651` | `light_sensor` | lux from the green and white channels |
| `ProximitySensor` | `cm36651` | `proximity_sensor` | `set_delay` does nothing |
| `PressureSensor` | `lps331ap` | `barometer_sensor` | delay written in ms; a frame without a pressure value raises `OSError` |
| `GyroscopeSensor` | `gyroscope` | `gyro_sensor` | axes missing from a frame keep their last value |

`smdksensors.input` also holds the lower-level helpers:

- `InputEvent`, with `from_bytes`, `to_bytes`, `now` and `timestamp`
- `read_event`
- `find_input_device`
- `sysfs_path_prefix`
- `sysfs_value_read` / `sysfs_value_write`
- `sysfs_string_read` / `sysfs_string_write`

## The sensors device

`smdksensors.hal.SensorsDevice` dispatches requests to its handlers. If you
give no handlers, it uses `default_handlers()`: proximity, light, gyroscope
and pressure.

```python
from smdksensors.hal import SensorsDevice
from smdksensors.input import SensorType

device = SensorsDevice()
device.open()                      # handlers that fail to open are skipped
device.activate(SensorType.LIGHT, True)
device.flush(SensorType.LIGHT)     # next light reading starts with a meta event
for event in device.poll(4):
    print(event.sensor, event.timestamp, event.values)
device.close()
```

The device has these behaviours:

- `activate` raises `ValueError` for an unknown handle.
- `set_delay` ignores unknown handles.
- `batch` applies only the period. It ignores the flags and the timeout.
- `poll` raises `OSError` if no device is open.

`sensors_list()` returns the `SensorInfo` records the board advertises:

- accelerometer
- magnetic field
- light
- proximity
- gyroscope
- pressure

## Conversions

```python
from smdksensors.cm36651 import light_convert, proximity_convert
from smdksensors.lps331ap import pressure_convert, delay_to_ms
from smdksensors.gyroscope import gyroscope_convert

light_convert(0, 3)           # 0.0: a green count of 4 or less reads as dark
proximity_convert(1)          # 6.0
pressure_convert(4096)        # 1.0 hPa
delay_to_ms(5_000_000)        # 10: delays under 10 ms become 10 ms
delay_to_ms(20_000_000)       # 20
gyroscope_convert(4000)       # rad/s
```

## Compass fusion

The building blocks are:

- `vectors`: `Vector`, `Pattern`, `init_buffer`, `buf_shift`, `rotate`, `rad2deg`
- `vnorm`: `vb_norm`, `vb_ave`
- `ak8975`: `Register`, `Mode`, `status_error`, `hdata_convert`, `decompose`
- `aoc`: automatic offset calibration with `AocState` and `sphere_from_points`
- `direction`: `angle`, `azimuth`, `direction`

`compass.Compass` gathers them:

```python
from smdksensors.compass import Compass
from smdksensors.vectors import Pattern

compass = Compass(Pattern.PAT1, (128, 128, 128))  # layout and fuse-ROM ASA values
compass.start("akmdfs.txt")        # loads the saved offset if it can, resets buffers
acc = compass.accelerometer((0, 0, 720), 0)       # Reading in m/s^2
mag = compass.magnetic_field((100, -50, 200), 0x01)  # Reading in microtesla
ori = compass.orientation()        # azimuth, pitch, roll in degrees
compass.stop("akmdfs.txt")         # saves the current offset
```

Each call returns a `Reading` with `x`, `y`, `z` and `accuracy`. Invalid
input raises `smdksensors.vectors.FusionError`, for example a magnetometer
status that reports an error, or an unknown layout pattern.

## Measurement loop and self-test

`smdksensors.measure` works against a `Driver` object that you supply. The
`Driver` protocol has these methods:

- `set_mode`
- `rx_data`
- `tx_data`
- `get_magnetic_data`
- `get_delay`
- `get_acceleration_data`
- `set_ypr`

Every method raises `OSError` on failure. The module provides:

- `read_fuse_rom(driver)` returns the three ASA values.
- `self_test(driver)` returns whether the self-test passed.
- `measure_loop(driver, compass, stop_event, path)` measures until the
  `threading.Event` is set or the driver fails. It then powers the
  magnetometer down and saves the offset.
- Helpers: `calc_sleep`, `interval_from_delays`, `result_buffer`,
  `format_result`, `parse_menu_choice` (returns a `MenuMode`) and
  `self_test_passed`.

## Offset file

```python
from smdksensors.params import load_offset, save_offset
from smdksensors.vectors import Vector

save_offset("akmdfs.txt", Vector(1.5, -2.0, 0.25))
offset = load_offset("akmdfs.txt")
```

The file holds `HO.x = ...`, `HO.y = ...` and `HO.z = ...` in that order.
Content that does not match raises `FusionError`. A file that cannot be
opened raises `OSError`.

## What this package does not do

- It installs no command and no background service. There is no
  interactive console menu and no daemon that waits for the compass to be
  opened. `measure_loop` has to be run from your own code.
- It contains no AK8975 device driver. The `Driver` used by `measure` must
  be supplied.
- The accelerometer and magnetic-field sensors appear in `sensors_list()`,
  but `default_handlers()` has no handler for them. `SensorsDevice`
  therefore does not read them.
- Device access uses `fcntl` ioctls and `select.poll`, so it needs a Linux
  system. The conversions, fusion code and file handling run anywhere.