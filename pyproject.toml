[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ipmonitor"
version = "0.1.0"
description = "IP traffic monitoring building blocks: packet capture, interface and LAN host statistics, and IP filters"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "network",
    "monitoring",
    "packet-capture",
    "traffic",
    "statistics",
    "ip-filter",
    "linux",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ipmonitor-capture = "ipmonitor.capture:main"

[tool.hatch.build.targets.wheel]
packages = ["ipmonitor"]

[tool.hatch.build.targets.sdist]
include = ["ipmonitor", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
