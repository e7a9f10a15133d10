[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "smdksensors"
version = "0.1.0"
description = "Sensor handling for SMDK4x12 boards: input events, sysfs control, sensor conversions and AK8975 compass fusion"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "sensors",
    "compass",
    "ak8975",
    "magnetometer",
    "accelerometer",
    "gyroscope",
    "barometer",
    "evdev",
    "sysfs",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["smdksensors"]

[tool.pytest.ini_options]
addopts = "-ra"
