"""Shared fixtures for protop tests."""

import copy

import pytest

SNAPSHOT = {
    "hostname": "web-01",
    "kernel": "6.1.0-13-amd64",
    "rtc_time": "2024-03-01 12:00:00",
    "uptime": {"value": 93784, "text": "1 days, 02:03:04"},
    "cpus": [
        {"model": "Intel(R) Xeon(R) E5-2680", "cores": 1, "threads": 2, "mhz": [2400.0, 2400.0]},
        {"model": "Intel(R) Xeon(R) E5-2680", "cores": 1, "threads": 1, "mhz": [2400.0]},
    ],
    "cpus_stat": [0.5, 0.1, 0.2, 0.3],
    "load_average": {"one": 1.5, "five": 0.75, "fifteen": 0.3},
    "memory": {
        "total": {"value": 1000, "text": "1000 B"},
        "used": {"value": 250, "text": "250 B"},
        "buffer_cache": {"value": 100, "text": "100 B"},
    },
    "swap": {
        "total": {"value": 2000, "text": "2000 B"},
        "used": {"value": 500, "text": "500 B"},
        "cache": {"value": 20, "text": "20 B"},
    },
    "network": [
        {
            "interface": "eth0",
            "receive_rate": {"value": 2048, "text": "2.0 K/s"},
            "transmit_rate": {"value": 1024, "text": "1.0 K/s"},
            "receive_total": {"value": 10 * 1024**2, "text": "10.0 M"},
            "transmit_total": {"value": 5 * 1024**2, "text": "5.0 M"},
        },
    ],
    "volumes": [
        {
            "device": "/dev/sda1",
            "mount_points": ["/"],
            "size": {"value": 400, "text": "400 B"},
            "used": {"value": 100, "text": "100 B"},
            "read_rate": {"value": 4096, "text": "4.0 K/s"},
            "write_rate": {"value": 512, "text": "512 B/s"},
        },
        {
            "device": "/dev/sdb1",
            "mount_points": ["/data", "/srv"],
            "size": {"value": 1000, "text": "1000 B"},
            "used": {"value": 900, "text": "900 B"},
        },
    ],
}


@pytest.fixture
def raw_snapshot() -> dict:
    """A well-formed raw snapshot for a host with CPU groups of 2 and 1 threads."""
    return copy.deepcopy(SNAPSHOT)


@pytest.fixture
def envelope(raw_snapshot) -> dict:
    """A successful monitor API response wrapping ``raw_snapshot``."""
    return {"code": 0, "data": raw_snapshot}
