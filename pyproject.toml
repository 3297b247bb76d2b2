[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mayanet"
version = "0.1.0"
description = "A small pure-Python network stack (Ethernet, IPv4, ICMP, UDP, TCP, DNS, DHCP) over a simulated NIC, with low-level structure codecs and in-memory widgets"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "networking",
    "tcp",
    "udp",
    "icmp",
    "dhcp",
    "dns",
    "ethernet",
    "ipv4",
    "fat32",
    "multiboot",
    "idt",
    "widgets",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mayanet"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
