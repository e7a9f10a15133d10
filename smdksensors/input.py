"""Linux input events, sysfs helpers and the base sensor handler."""

from __future__ import annotations

import errno
import fcntl
import os
import re
import struct
import time
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Iterator, List, Optional, Union

PathLike = Union[str, "os.PathLike[str]"]

DEFAULT_INPUT_DIR = "/dev/input"
DEFAULT_SYSFS_DIR = "/sys/class/input"

NEEDED_API = 1 << 0
"""Bit in :attr:`SensorHandler.needed` set while the framework wants the sensor."""

EV_SYN = 0x00
EV_REL = 0x02
EV_ABS = 0x03
SYN_REPORT = 0
REL_X = 0x00
REL_Y = 0x01
REL_Z = 0x02
REL_RX = 0x03
REL_RY = 0x04
REL_RZ = 0x05
REL_MISC = 0x09
ABS_DISTANCE = 0x19

_EVENT = struct.Struct("@llHHi")
EVENT_SIZE = _EVENT.size

_NAME_LENGTH = 80


def _eviocgname(length: int) -> int:
    # _IOC(_IOC_READ, 'E', 0x06, length)
    return (2 << 30) | (length << 16) | (ord("E") << 8) | 0x06


class SensorType(IntEnum):
    """Sensor types, also used as sensor handles."""

    META_DATA = 0
    ACCELEROMETER = 1
    MAGNETIC_FIELD = 2
    ORIENTATION = 3
    GYROSCOPE = 4
    LIGHT = 5
    PRESSURE = 6
    PROXIMITY = 8


def timestamp(sec: int, usec: int) -> int:
    """Return a time given as seconds and microseconds in nanoseconds."""
    return sec * 1_000_000_000 + usec * 1000


@dataclass
class InputEvent:
    """One kernel input event."""

    type: int
    code: int
    value: int
    sec: int = 0
    usec: int = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> "InputEvent":
        """Decode an event from its kernel wire form."""
        if len(data) < EVENT_SIZE:
            raise ValueError(f"input event needs {EVENT_SIZE} bytes, got {len(data)}")
        sec, usec, type_, code, value = _EVENT.unpack(data[:EVENT_SIZE])
        return cls(type_, code, value, sec, usec)

    def to_bytes(self) -> bytes:
        """Encode the event in its kernel wire form."""
        return _EVENT.pack(self.sec, self.usec, self.type, self.code, self.value)

    @classmethod
    def now(cls, type: int, code: int, value: int) -> "InputEvent":
        """Return an event stamped with the current time of day."""
        now_ns = time.time_ns()
        return cls(type, code, value, now_ns // 1_000_000_000, (now_ns // 1000) % 1_000_000)

    @property
    def timestamp(self) -> int:
        """Event time in nanoseconds."""
        return timestamp(self.sec, self.usec)


def read_event(fd: int) -> Optional[InputEvent]:
    """Read one event from ``fd``; return None if no whole event is available."""
    try:
        data = os.read(fd, EVENT_SIZE)
    except BlockingIOError:
        return None
    if len(data) < EVENT_SIZE:
        return None
    return InputEvent.from_bytes(data)


def _entries(directory: PathLike) -> List[Path]:
    return sorted(Path(directory).iterdir(), key=lambda p: p.name)


def find_input_device(name: str, directory: PathLike = DEFAULT_INPUT_DIR) -> int:
    """Open the input device called ``name`` and return its non-blocking descriptor.

    Raises :class:`FileNotFoundError` if no device of that name exists.
    """
    for entry in _entries(directory):
        try:
            fd = os.open(entry, os.O_RDONLY | os.O_NONBLOCK)
        except OSError:
            continue
        buffer = bytearray(_NAME_LENGTH)
        try:
            fcntl.ioctl(fd, _eviocgname(_NAME_LENGTH - 1), buffer, True)
        except OSError:
            os.close(fd)
            continue
        device_name = buffer.split(b"\0", 1)[0].split(b"\n", 1)[0]
        if device_name.decode("utf-8", "replace") == name:
            return fd
        os.close(fd)
    raise FileNotFoundError(errno.ENOENT, f"no input device named {name!r}", str(directory))


def sysfs_path_prefix(name: str, directory: PathLike = DEFAULT_SYSFS_DIR) -> str:
    """Return the sysfs directory of the input device called ``name``.

    Raises :class:`FileNotFoundError` if there is none.
    """
    for entry in _entries(directory):
        try:
            content = (entry / "name").read_bytes()[:_NAME_LENGTH]
        except OSError:
            continue
        device_name = content.split(b"\0", 1)[0].split(b"\n", 1)[0]
        if device_name.decode("utf-8", "replace") == name:
            return str(entry)
    raise FileNotFoundError(errno.ENOENT, f"no sysfs entry named {name!r}", str(directory))


_LEADING_INT = re.compile(r"\s*([-+]?\d+)")


def sysfs_value_read(path: PathLike) -> int:
    """Read the integer at the start of a sysfs file; non-numeric content gives 0."""
    text = sysfs_string_read(path)
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def sysfs_value_write(path: PathLike, value: int) -> None:
    """Write an integer followed by a newline to a sysfs file."""
    sysfs_string_write(path, f"{int(value)}\n")


def sysfs_string_read(path: PathLike) -> str:
    """Return the content of a sysfs file; an empty file is an error."""
    with open(path, "rb") as handle:
        data = handle.read(4096)
    if not data:
        raise OSError(errno.ENODATA, "empty sysfs file", str(path))
    return data.decode("utf-8", "replace")


def sysfs_string_write(path: PathLike, text: str) -> None:
    """Write ``text`` to an existing sysfs file."""
    if not text:
        raise ValueError("nothing to write")
    data = text.encode("utf-8")
    fd = os.open(path, os.O_WRONLY)
    try:
        written = os.write(fd, data)
    finally:
        os.close(fd)
    if written <= 0:
        raise OSError(errno.EIO, "short write", str(path))


@dataclass
class SensorEvent:
    """A sensor reading handed to the framework."""

    sensor: int
    type: int
    timestamp: int = 0
    values: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    status: int = 0

    @property
    def light(self) -> float:
        return self.values[0]

    @property
    def distance(self) -> float:
        return self.values[0]

    @property
    def pressure(self) -> float:
        return self.values[0]


def flush_event(sensor: int) -> SensorEvent:
    """Return the flush-complete meta event for ``sensor``."""
    return SensorEvent(sensor=sensor, type=SensorType.META_DATA)


class SensorHandler:
    """A sensor read through an input device and switched through sysfs."""

    name: str = ""
    handle: int = 0
    input_name: str = ""

    def __init__(
        self,
        name: Optional[str] = None,
        handle: Optional[int] = None,
        input_name: Optional[str] = None,
        *,
        input_dir: PathLike = DEFAULT_INPUT_DIR,
        sysfs_dir: PathLike = DEFAULT_SYSFS_DIR,
    ) -> None:
        if name is not None:
            self.name = name
        if handle is not None:
            self.handle = handle
        if input_name is not None:
            self.input_name = input_name
        self.input_dir = input_dir
        self.sysfs_dir = sysfs_dir
        self.activated = False
        self.needed = 0
        self.poll_fd = -1
        self.path_enable: Optional[str] = None
        self.path_delay: Optional[str] = None

    def open(self) -> None:
        """Open the input device and locate the sysfs controls."""
        fd = find_input_device(self.input_name, self.input_dir)
        try:
            prefix = sysfs_path_prefix(self.input_name, self.sysfs_dir)
        except OSError:
            os.close(fd)
            self.poll_fd = -1
            raise
        self.poll_fd = fd
        self.path_enable = os.path.join(prefix, "enable")
        self.path_delay = os.path.join(prefix, "poll_delay")

    def close(self) -> None:
        """Release the input device."""
        if self.poll_fd >= 0:
            os.close(self.poll_fd)
        self.poll_fd = -1
        self.path_enable = None
        self.path_delay = None

    def _require(self, path: Optional[str]) -> str:
        if path is None:
            raise OSError(errno.EINVAL, f"{self.name} is not open")
        return path

    def activate(self) -> None:
        """Enable the sensor."""
        sysfs_value_write(self._require(self.path_enable), 1)
        self.activated = True

    def deactivate(self) -> None:
        """Disable the sensor."""
        sysfs_value_write(self._require(self.path_enable), 0)
        # The activation flag is left set; only the sysfs enable is cleared.
        self.activated = True

    def set_delay(self, delay: int) -> None:
        """Write the polling delay to sysfs."""
        sysfs_value_write(self._require(self.path_delay), delay)

    def _start_read(self, flush: bool) -> List[SensorEvent]:
        events = [flush_event(self.handle)] if flush else []
        if self.poll_fd < 0:
            raise OSError(errno.EINVAL, f"{self.name} is not open")
        return events

    def _new_event(self) -> SensorEvent:
        return SensorEvent(sensor=self.handle, type=self.handle)

    def _frame(self) -> Iterator[InputEvent]:
        """Yield input events up to and including the next sync event."""
        while True:
            event = read_event(self.poll_fd)
            if event is None:
                return
            yield event
            if event.type == EV_SYN:
                return

    def read(self, flush: bool = False) -> List[SensorEvent]:
        """Read one frame; a pending flush puts a meta event first."""
        events = self._start_read(flush)
        event = self._new_event()
        for input_event in self._frame():
            if input_event.type == EV_SYN and input_event.code == SYN_REPORT:
                event.timestamp = input_event.timestamp
        events.append(event)
        return events