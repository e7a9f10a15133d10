"""Loading and saving the magnetometer offset settings file."""

from __future__ import annotations

import os
import re
from typing import Union

from smdksensors.vectors import FusionError, Vector

_NAMES = ("HO.x", "HO.y", "HO.z")
_ENTRY = re.compile(
    r"\s*(\S+)\s*=\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)"
)

PathLike = Union[str, "os.PathLike[str]"]


def load_offset(path: PathLike) -> Vector:
    """Read the magnetic offset from a settings file.

    The file holds ``HO.x``, ``HO.y`` and ``HO.z`` entries in that order,
    each as ``name = value``. Raises :class:`FusionError` if the content
    does not match; errors opening the file propagate as :class:`OSError`.
    """
    with open(path, "r", encoding="utf-8") as handle:
        text = handle.read()

    values = []
    position = 0
    for expected in _NAMES:
        match = _ENTRY.match(text, position)
        if match is None:
            raise FusionError(f"{path}: missing entry {expected}")
        name, value = match.groups()
        if name != expected:
            raise FusionError(f"{path}: expected {expected}, found {name}")
        values.append(float(value))
        position = match.end()

    return Vector(*values)


def save_offset(path: PathLike, offset: Vector) -> None:
    """Write the magnetic offset to a settings file, replacing its content."""
    with open(path, "w", encoding="utf-8") as handle:
        for name, value in zip(_NAMES, offset):
            handle.write(f"{name} = {value:f}\n")