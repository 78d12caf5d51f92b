"""Local snapshot source backed by psutil."""

import logging
import os
import platform
import socket
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

import psutil

from protop.units import format_bytes, format_rate, format_uptime

logger = logging.getLogger(__name__)


def _reading(value: float, text: str) -> dict[str, Any]:
    return {"value": value, "text": text}


def _bytes(value: float) -> dict[str, Any]:
    return _reading(value, format_bytes(value))


def cpu_model_name() -> str:
    """Human CPU model string, from /proc/cpuinfo where available."""
    try:
        with open("/proc/cpuinfo", encoding="utf-8", errors="ignore") as cpuinfo:
            for line in cpuinfo:
                if line.lower().startswith("model name"):
                    return line.split(":", 1)[1].strip()
    except OSError:
        pass
    return platform.processor() or platform.machine() or "CPU"


class LocalFetcher:
    """
    Fetch capability that samples the local machine with psutil.

    Produces the same ``{code, data}`` envelope the monitor API returns, so the
    poller and renderer work unchanged for the local host. CPU utilization,
    network rates and disk I/O rates are measured between consecutive calls.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._model = cpu_model_name()
        # Initialize CPU percent (first call returns 0.0)
        psutil.cpu_percent(percpu=True)
        self._prev_net = psutil.net_io_counters(pernic=True)
        self._prev_net_time = clock()
        self._prev_disk = psutil.disk_io_counters(perdisk=True) or {}
        self._prev_disk_time = clock()

    def __call__(self, auth_key: str | None = None) -> dict[str, Any]:
        return {"code": 0, "data": self.collect()}

    def collect(self) -> dict[str, Any]:
        """Collect a raw snapshot of the current system state."""
        # Collect CPU percentages (non-blocking, uses previous call's data)
        per_thread = [percent / 100 for percent in psutil.cpu_percent(percpu=True)]
        aggregate = sum(per_thread) / len(per_thread) if per_thread else 0.0

        mem = psutil.virtual_memory()
        swap = psutil.swap_memory()
        load_one, load_five, load_fifteen = psutil.getloadavg()
        uptime = time.time() - psutil.boot_time()

        # Buffers and cached are only reported on some platforms
        buffer_cache = getattr(mem, "buffers", 0) + getattr(mem, "cached", 0)

        return {
            "hostname": socket.gethostname(),
            "kernel": platform.release(),
            "rtc_time": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            "uptime": _reading(uptime, format_uptime(uptime)),
            "cpus": [self._cpu_group(len(per_thread))],
            "cpus_stat": [aggregate, *per_thread],
            "load_average": {"one": load_one, "five": load_five, "fifteen": load_fifteen},
            "memory": {
                "total": _bytes(mem.total),
                "used": _bytes(mem.used),
                "buffer_cache": _bytes(buffer_cache),
            },
            "swap": {
                "total": _bytes(swap.total),
                "used": _bytes(swap.used),
                # psutil does not expose the swap cache
                "cache": _bytes(0),
            },
            "network": self._collect_network(),
            "volumes": self._collect_volumes(),
        }

    def _cpu_group(self, threads: int) -> dict[str, Any]:
        freqs = psutil.cpu_freq(percpu=True) or []
        return {
            "model": self._model,
            "cores": psutil.cpu_count(logical=False) or 0,
            "threads": threads,
            "mhz": [freq.current for freq in freqs],
        }

    def _collect_network(self) -> list[dict[str, Any]]:
        """Per-interface totals, with rates measured since the previous call."""
        counters = psutil.net_io_counters(pernic=True)
        now = self._clock()
        elapsed = max(0.001, now - self._prev_net_time)

        interfaces = []
        for name, counter in sorted(counters.items()):
            prev = self._prev_net.get(name)
            if prev is None:
                receive_rate = transmit_rate = 0.0
            else:
                receive_rate = max(0, counter.bytes_recv - prev.bytes_recv) / elapsed
                transmit_rate = max(0, counter.bytes_sent - prev.bytes_sent) / elapsed
            interfaces.append(
                {
                    "interface": name,
                    "receive_rate": _reading(receive_rate, format_rate(receive_rate)),
                    "transmit_rate": _reading(transmit_rate, format_rate(transmit_rate)),
                    "receive_total": _bytes(counter.bytes_recv),
                    "transmit_total": _bytes(counter.bytes_sent),
                }
            )

        self._prev_net = counters
        self._prev_net_time = now
        return interfaces

    def _collect_volumes(self) -> list[dict[str, Any]]:
        """
        Mounted volumes, one entry per device with all its mount points.

        Partitions whose usage cannot be read are skipped. Read and write rates
        are zero for devices without I/O counters.
        """
        counters = psutil.disk_io_counters(perdisk=True) or {}
        now = self._clock()
        elapsed = max(0.001, now - self._prev_disk_time)

        volumes: dict[str, dict[str, Any]] = {}
        for partition in psutil.disk_partitions(all=False):
            if partition.device in volumes:
                volumes[partition.device]["mount_points"].append(partition.mountpoint)
                continue
            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except OSError as exc:
                logger.debug("Skipping %s: %s", partition.mountpoint, exc)
                continue
            volumes[partition.device] = {
                "device": partition.device,
                "mount_points": [partition.mountpoint],
                "size": _bytes(usage.total),
                "used": _bytes(usage.used),
                **self._disk_rates(partition.device, counters, elapsed),
            }

        self._prev_disk = counters
        self._prev_disk_time = now
        return list(volumes.values())

    def _disk_rates(self, device: str, counters: dict[str, Any], elapsed: float) -> dict[str, Any]:
        # psutil keys I/O counters by device name without the /dev/ prefix
        name = os.path.basename(device)
        counter = counters.get(name)
        prev = self._prev_disk.get(name)
        if counter is None or prev is None:
            read_rate = write_rate = 0.0
        else:
            read_rate = max(0, counter.read_bytes - prev.read_bytes) / elapsed
            write_rate = max(0, counter.write_bytes - prev.write_bytes) / elapsed
        return {
            "read_rate": _reading(read_rate, format_rate(read_rate)),
            "write_rate": _reading(write_rate, format_rate(write_rate)),
        }
