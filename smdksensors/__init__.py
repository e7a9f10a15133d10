"""Sensor handlers, input and sysfs helpers, sensor conversions and AK8975 compass fusion for SMDK4x12 boards."""

__version__ = "0.1.0"