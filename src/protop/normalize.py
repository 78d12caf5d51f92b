"""Normalization of raw monitor snapshots into view models."""

from collections.abc import Mapping, Sequence
from typing import Any

from protop.models import (
    CpuGroup,
    LoadAverage,
    Memory,
    MemoryScale,
    NetworkInterface,
    Reading,
    Swap,
    SwapScale,
    ViewModel,
    Volume,
)


class MalformedSnapshot(ValueError):
    """Raised when a snapshot cannot be turned into a consistent view model."""


def normalize(raw: Mapping[str, Any]) -> ViewModel:
    """
    Turn one raw snapshot into a view model.

    Kernel counters become percentages: load average relative to the logical
    core count, CPU fractions per thread, memory and swap relative to their
    totals, and volume usage relative to volume size. The input is not
    modified.

    Raises:
        MalformedSnapshot: If required fields are missing or mistyped, the
            snapshot declares no logical cores, or it carries no CPU figures.
    """
    try:
        return _normalize(raw)
    except MalformedSnapshot:
        raise
    except (KeyError, TypeError, ValueError, AttributeError, ArithmeticError) as exc:
        raise MalformedSnapshot(f"Malformed snapshot: {exc!r}") from exc


def _normalize(raw: Mapping[str, Any]) -> ViewModel:
    cpu_descriptors = raw["cpus"]
    cpus_stat = [float(value) for value in raw["cpus_stat"]]

    logical_cores = sum(int(cpu["threads"]) for cpu in cpu_descriptors)
    if logical_cores <= 0:
        raise MalformedSnapshot("Snapshot declares no logical cores")
    if not cpus_stat:
        raise MalformedSnapshot("Snapshot carries no CPU utilization figures")

    load_average = LoadAverage(
        one=float(raw["load_average"]["one"]),
        five=float(raw["load_average"]["five"]),
        fifteen=float(raw["load_average"]["fifteen"]),
    )
    load_average_scale = LoadAverage(
        one=load_average.one * 100 / logical_cores,
        five=load_average.five * 100 / logical_cores,
        fifteen=load_average.fifteen * 100 / logical_cores,
    )

    memory = Memory(
        total=_reading(raw["memory"]["total"]),
        used=_reading(raw["memory"]["used"]),
        buffer_cache=_reading(raw["memory"]["buffer_cache"]),
    )
    swap = Swap(
        total=_reading(raw["swap"]["total"]),
        used=_reading(raw["swap"]["used"]),
        cache=_reading(raw["swap"]["cache"]),
    )

    return ViewModel(
        hostname=str(raw["hostname"]),
        kernel=str(raw["kernel"]),
        rtc_time=str(raw.get("rtc_time", "")),
        uptime=_reading(raw.get("uptime", {"value": 0})),
        logical_cores=logical_cores,
        load_average=load_average,
        load_average_scale=load_average_scale,
        cpu=cpus_stat[0] * 100,
        cpus=split_cpu_usage(cpu_descriptors, cpus_stat),
        memory=memory,
        memory_scale=MemoryScale(
            used=_percent(memory.used.value, memory.total.value),
            buffer_cache=_percent(memory.buffer_cache.value, memory.total.value),
        ),
        swap=swap,
        swap_scale=SwapScale(
            used=_percent(swap.used.value, swap.total.value),
            cache=_percent(swap.cache.value, swap.total.value),
        ),
        network=tuple(_network_interface(entry) for entry in raw.get("network", ())),
        volumes=tuple(_volume(entry) for entry in raw.get("volumes", ())),
    )


def split_cpu_usage(
    cpu_descriptors: Sequence[Mapping[str, Any]],
    cpus_stat: Sequence[float],
) -> tuple[CpuGroup, ...]:
    """
    Slice the flat per-thread fractions into one percentage list per group.

    Index 0 of ``cpus_stat`` is the aggregate figure; the remaining entries
    belong to the groups contiguously, in group order. A short array only
    truncates the slices; the offset always advances by the declared thread
    count.
    """
    groups: list[CpuGroup] = []
    offset = 1
    for descriptor in cpu_descriptors:
        threads = int(descriptor["threads"])
        end = min(offset + threads, len(cpus_stat))
        usage = tuple(value * 100 for value in cpus_stat[offset:end])
        groups.append(
            CpuGroup(
                threads=threads,
                usage=usage,
                model=str(descriptor.get("model", "")),
                cores=int(descriptor.get("cores", 0)),
                mhz=tuple(float(mhz) for mhz in descriptor.get("mhz", ())),
            )
        )
        offset += threads
    return tuple(groups)


def _percent(part: float, whole: float) -> float:
    """Part as a percentage of whole; 0.0 when there is no whole."""
    if whole == 0:
        return 0.0
    return part * 100 / whole


def _reading(entry: Mapping[str, Any]) -> Reading:
    value = entry["value"]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedSnapshot(f"Expected a number, got {value!r}")
    return Reading(value=value, text=str(entry.get("text", "")))


def _volume(entry: Mapping[str, Any]) -> Volume:
    zero = {"value": 0}
    size = _reading(entry["size"])
    used = _reading(entry["used"])
    return Volume(
        device=str(entry.get("device", "")),
        mount_points=tuple(str(point) for point in entry.get("mount_points", ())),
        size=size,
        used=used,
        scale=_percent(used.value, size.value),
        read_rate=_reading(entry.get("read_rate", zero)),
        write_rate=_reading(entry.get("write_rate", zero)),
    )


def _network_interface(entry: Mapping[str, Any]) -> NetworkInterface:
    zero = {"value": 0}
    return NetworkInterface(
        interface=str(entry.get("interface", "")),
        receive_rate=_reading(entry.get("receive_rate", zero)),
        transmit_rate=_reading(entry.get("transmit_rate", zero)),
        receive_total=_reading(entry.get("receive_total", zero)),
        transmit_total=_reading(entry.get("transmit_total", zero)),
    )
