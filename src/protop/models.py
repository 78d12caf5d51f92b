"""Data models for protop."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True, frozen=True)
class Reading:
    """A raw figure together with the server's human-readable rendering."""

    value: float = 0
    text: str = ""


@dataclass(slots=True, frozen=True)
class LoadAverage:
    """Load average triple, or its scale relative to the logical cores."""

    one: float = 0.0
    five: float = 0.0
    fifteen: float = 0.0


@dataclass(slots=True, frozen=True)
class CpuGroup:
    """One CPU package with the utilization of each of its threads."""

    threads: int
    usage: tuple[float, ...]  # Per-thread percentages
    model: str = ""
    cores: int = 0
    mhz: tuple[float, ...] = ()


@dataclass(slots=True, frozen=True)
class Memory:
    """Memory figures in bytes."""

    total: Reading = field(default_factory=Reading)
    used: Reading = field(default_factory=Reading)
    buffer_cache: Reading = field(default_factory=Reading)


@dataclass(slots=True, frozen=True)
class MemoryScale:
    """Memory figures as percentages of the total."""

    used: float = 0.0
    buffer_cache: float = 0.0


@dataclass(slots=True, frozen=True)
class Swap:
    """Swap figures in bytes."""

    total: Reading = field(default_factory=Reading)
    used: Reading = field(default_factory=Reading)
    cache: Reading = field(default_factory=Reading)


@dataclass(slots=True, frozen=True)
class SwapScale:
    """Swap figures as percentages of the total."""

    used: float = 0.0
    cache: float = 0.0


@dataclass(slots=True, frozen=True)
class Volume:
    """A storage volume, its usage percentage and its I/O rates."""

    device: str
    mount_points: tuple[str, ...]
    size: Reading
    used: Reading
    scale: float  # used / size as a percentage
    read_rate: Reading = field(default_factory=Reading)
    write_rate: Reading = field(default_factory=Reading)


@dataclass(slots=True, frozen=True)
class NetworkInterface:
    """Traffic of a single network interface."""

    interface: str
    receive_rate: Reading = field(default_factory=Reading)
    transmit_rate: Reading = field(default_factory=Reading)
    receive_total: Reading = field(default_factory=Reading)
    transmit_total: Reading = field(default_factory=Reading)


@dataclass(slots=True, frozen=True)
class ViewModel:
    """
    Normalized view of one host snapshot, as consumed by the renderer.

    A zeroed instance stands in before the first successful fetch. Every
    successful cycle produces a new instance with a higher version; failed
    or skipped cycles leave the current one in place.
    """

    hostname: str = ""
    kernel: str = ""
    rtc_time: str = ""
    uptime: Reading = field(default_factory=Reading)
    logical_cores: int = 0
    load_average: LoadAverage = field(default_factory=LoadAverage)
    load_average_scale: LoadAverage = field(default_factory=LoadAverage)
    cpu: float = 0.0  # Aggregate percentage
    cpus: tuple[CpuGroup, ...] = ()
    memory: Memory = field(default_factory=Memory)
    memory_scale: MemoryScale = field(default_factory=MemoryScale)
    swap: Swap = field(default_factory=Swap)
    swap_scale: SwapScale = field(default_factory=SwapScale)
    network: tuple[NetworkInterface, ...] = ()
    volumes: tuple[Volume, ...] = ()
    last_update: datetime | None = None
    version: int = 0

    @property
    def last_update_text(self) -> str:
        """Local timestamp of the last refresh, or "Never"."""
        if self.last_update is None:
            return "Never"
        return self.last_update.strftime("%Y-%m-%d %H:%M:%S")
