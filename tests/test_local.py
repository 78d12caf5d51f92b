"""Tests for the psutil-backed local fetcher."""

import itertools
from collections import namedtuple

import psutil

from protop.local import LocalFetcher, cpu_model_name
from protop.normalize import normalize
from protop.transport import ResultKind, classify


def test_cpu_model_name_is_not_empty():
    """Test a CPU model string is always available."""
    assert cpu_model_name()


def test_local_envelope_is_ok():
    """Test the local fetcher answers with a successful envelope."""
    fetcher = LocalFetcher()

    result = classify(fetcher(None))

    assert result.kind is ResultKind.OK


def test_local_snapshot_layout():
    """Test the snapshot carries one CPU group and matching utilization figures."""
    raw = LocalFetcher().collect()

    assert raw["hostname"]
    assert len(raw["cpus"]) == 1
    threads = raw["cpus"][0]["threads"]
    assert threads > 0
    assert len(raw["cpus_stat"]) == 1 + threads
    assert all(0.0 <= value <= 1.0 for value in raw["cpus_stat"])
    assert raw["memory"]["total"]["value"] > 0
    assert set(raw["load_average"]) == {"one", "five", "fifteen"}


def test_local_snapshot_normalizes():
    """Test the local snapshot goes through the normalizer."""
    vm = normalize(LocalFetcher().collect())

    assert vm.logical_cores > 0
    assert len(vm.cpus[0].usage) == vm.logical_cores
    assert 0.0 <= vm.memory_scale.used <= 100.0
    for volume in vm.volumes:
        assert volume.mount_points


def test_network_rates_use_previous_sample():
    """Test rates are derived from the counters of the previous call."""
    ticks = itertools.count(0.0, 1.0)
    fetcher = LocalFetcher(clock=lambda: next(ticks))

    fetcher.collect()
    raw = fetcher.collect()

    for interface in raw["network"]:
        assert interface["receive_rate"]["value"] >= 0
        assert interface["transmit_rate"]["value"] >= 0
        assert interface["receive_total"]["text"]


def test_volume_rates_use_previous_sample():
    """Test disk read and write rates are measured between calls."""
    ticks = itertools.count(0.0, 1.0)
    fetcher = LocalFetcher(clock=lambda: next(ticks))

    fetcher.collect()
    raw = fetcher.collect()

    for volume in raw["volumes"]:
        assert volume["read_rate"]["value"] >= 0
        assert volume["write_rate"]["value"] >= 0
        assert volume["read_rate"]["text"].endswith("/s")


def test_volume_rates_from_counter_deltas(monkeypatch):
    """Test rates are the byte deltas of the device's I/O counters over elapsed time."""
    Counter = namedtuple("Counter", "read_bytes write_bytes")
    Partition = namedtuple("Partition", "device mountpoint")
    Usage = namedtuple("Usage", "total used")
    samples = iter([
        {"sda1": Counter(1000, 500)},
        {"sda1": Counter(5000, 2500)},
    ])
    monkeypatch.setattr(psutil, "disk_io_counters", lambda perdisk=False: next(samples))
    monkeypatch.setattr(
        psutil,
        "disk_partitions",
        lambda all=False: [Partition("/dev/sda1", "/"), Partition("/dev/mapper/vg-home", "/home")],
    )
    monkeypatch.setattr(psutil, "disk_usage", lambda path: Usage(400, 100))
    # Network and disk baselines at 0s, the disk sample two seconds later
    ticks = iter([0.0, 0.0, 2.0])
    fetcher = LocalFetcher(clock=lambda: next(ticks))

    root, home = fetcher._collect_volumes()

    assert root["read_rate"]["value"] == 2000
    assert root["write_rate"]["value"] == 1000
    assert home["read_rate"]["value"] == 0.0
    assert home["write_rate"]["text"].endswith("/s")
