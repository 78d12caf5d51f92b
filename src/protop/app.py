"""protop - Main Textual application."""

import logging
from collections.abc import Iterable
from queue import Empty, Queue
from typing import Any

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.css.query import NoMatches
from textual.widgets import DataTable, Footer, Static

from protop.config import Config, parse_args
from protop.local import LocalFetcher
from protop.logger import setup_logging
from protop.models import NetworkInterface, Reading, ViewModel, Volume
from protop.poller import Poller
from protop.transport import FetchFn, HttpFetcher
from protop.units import format_bytes, format_rate, format_uptime

logger = logging.getLogger(__name__)


def build_fetcher(config: Config) -> FetchFn:
    """Fetch from the configured monitor service, or sample this machine."""
    if config.url is None:
        return LocalFetcher()
    return HttpFetcher(config.url, timeout=config.timeout)


def usage_bar(percent: float, color: str, width: int = 20) -> str:
    """Render a percentage as a fixed-width bar with Rich markup."""
    bar_len = int(percent * width / 100)
    bar_len = max(0, min(bar_len, width))
    # Use escaped brackets for the bar container
    return f"\\[[{color}]{'█' * bar_len}[/{color}][dim]{'░' * (width - bar_len)}[/dim]]"


def reading_text(reading: Reading, fallback=format_bytes) -> str:
    """The server's rendering of a reading, or a local one when it sent none."""
    return reading.text or fallback(reading.value)


class HeaderStats(Static):
    """Header widget showing host, CPU and memory statistics."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 7;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._view_model = ViewModel()

    @property
    def view_model(self) -> ViewModel:
        return self._view_model

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_host_info(), id="host-info"),
            Static(self._get_cpu_info(), id="cpu-info"),
            Static(self._get_mem_info(), id="mem-info"),
        )

    def update_stats(self, view_model: ViewModel) -> None:
        """Update the statistics from a view model."""
        self._view_model = view_model
        self._refresh_display()

    def _refresh_display(self) -> None:
        """Refresh the display with current data."""
        try:
            self.query_one("#host-info", Static).update(self._get_host_info())
            self.query_one("#cpu-info", Static).update(self._get_cpu_info())
            self.query_one("#mem-info", Static).update(self._get_mem_info())
        except NoMatches:
            pass  # Widget not mounted yet

    def _get_host_info(self) -> str:
        """Get host, load average and refresh time display."""
        vm = self._view_model
        if vm.version == 0:
            return f"Waiting for data...\nLast update: {vm.last_update_text}"

        load, scale = vm.load_average, vm.load_average_scale
        return (
            f"[b]{vm.hostname}[/b]  {vm.kernel}\n"
            f"Time: {vm.rtc_time}\n"
            f"Uptime: {reading_text(vm.uptime, format_uptime)}\n"
            f"Load average: {load.one:.2f} {load.five:.2f} {load.fifteen:.2f}\n"
            f"  ({scale.one:.0f}% {scale.five:.0f}% {scale.fifteen:.0f}% of {vm.logical_cores} threads)\n"
            f"Last update: {vm.last_update_text}"
        )

    def _get_cpu_info(self) -> str:
        """Get CPU info display."""
        vm = self._view_model
        if not vm.cpus:
            return "Loading CPU info..."

        lines = [f"CPU   {usage_bar(vm.cpu, 'green')} {vm.cpu:5.1f}%"]
        for group in vm.cpus:
            title = group.model or "CPU"
            if group.cores:
                title += f" ({group.cores}C/{group.threads}T)"
            lines.append(f"[b]{title}[/b]")
            for i, usage in enumerate(group.usage):
                lines.append(f"CPU{i:<2} {usage_bar(usage, 'green')} {usage:5.1f}%")
        return "\n".join(lines)

    def _get_mem_info(self) -> str:
        """Get memory info display."""
        vm = self._view_model
        if vm.memory.total.value == 0:
            return "Loading memory info..."

        memory, swap = vm.memory, vm.swap
        return (
            f"Mem {usage_bar(vm.memory_scale.used, 'cyan')} "
            f"{reading_text(memory.used)}/{reading_text(memory.total)}\n"
            f"Buf {usage_bar(vm.memory_scale.buffer_cache, 'blue')} "
            f"{reading_text(memory.buffer_cache)}\n"
            f"Swp {usage_bar(vm.swap_scale.used, 'yellow')} "
            f"{reading_text(swap.used)}/{reading_text(swap.total)}\n"
            f"Cch {usage_bar(vm.swap_scale.cache, 'magenta')} "
            f"{reading_text(swap.cache)}"
        )


class SnapshotTable(Container):
    """Container for a data table whose rows are keyed across refreshes."""

    DEFAULT_CSS = """
    SnapshotTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    TABLE_ID = "snapshot-table"
    COLUMNS: list[tuple[str, str, int | None]] = []

    def __init__(self, *args, **kwargs) -> None:
        """Initialize SnapshotTable."""
        super().__init__(*args, **kwargs)
        self._current_keys: list[str] = []

    @property
    def current_keys(self) -> list[str]:
        return list(self._current_keys)

    def compose(self) -> ComposeResult:
        """Compose the data table."""
        yield DataTable(id=self.TABLE_ID)

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one(f"#{self.TABLE_ID}", DataTable)
        table.cursor_type = "row"
        for label, key, width in self.COLUMNS:
            table.add_column(label, key=key, width=width)

    def row_key(self, item: Any) -> str:
        """Key identifying the row for ``item``; subclasses must override."""
        raise NotImplementedError(f"{type(self).__name__} does not define row_key")

    def cells(self, item: Any) -> list[str]:
        """Cell texts for ``item`` in COLUMNS order; subclasses must override."""
        raise NotImplementedError(f"{type(self).__name__} does not define cells")

    def update_rows(self, items: Iterable[Any]) -> None:
        """
        Update the table with new data.

        Uses update_cell for existing rows to avoid re-rendering the whole table.
        """
        table = self.query_one(f"#{self.TABLE_ID}", DataTable)
        rows = {self.row_key(item): item for item in items}

        # Remove rows for items that no longer exist
        for key in self._current_keys:
            if key not in rows:
                table.remove_row(key)

        column_keys = [key for _, key, _ in self.COLUMNS]
        for key, item in rows.items():
            cells = self.cells(item)
            if key in self._current_keys:
                for column_key, value in zip(column_keys, cells):
                    table.update_cell(key, column_key, value)
            else:
                table.add_row(*cells, key=key)

        self._current_keys = list(rows)


class NetworkTable(SnapshotTable):
    """Per-interface network traffic."""

    TABLE_ID = "network-table"
    COLUMNS = [
        ("Interface", "interface", 16),
        ("Download", "receive_rate", 14),
        ("Upload", "transmit_rate", 14),
        ("Received", "receive_total", 12),
        ("Sent", "transmit_total", 12),
    ]

    def row_key(self, item: NetworkInterface) -> str:
        return item.interface

    def cells(self, item: NetworkInterface) -> list[str]:
        return [
            item.interface,
            reading_text(item.receive_rate, format_rate),
            reading_text(item.transmit_rate, format_rate),
            reading_text(item.receive_total),
            reading_text(item.transmit_total),
        ]


class VolumeTable(SnapshotTable):
    """Per-volume storage usage."""

    TABLE_ID = "volume-table"
    COLUMNS = [
        ("Device", "device", 20),
        ("Used", "used", 10),
        ("Size", "size", 10),
        ("Use%", "scale", 30),
        ("Read", "read_rate", 12),
        ("Write", "write_rate", 12),
        ("Mounted on", "mount_points", None),
    ]

    def row_key(self, item: Volume) -> str:
        return item.device or ",".join(item.mount_points)

    def cells(self, item: Volume) -> list[str]:
        return [
            item.device,
            reading_text(item.used),
            reading_text(item.size),
            f"{usage_bar(item.scale, 'cyan')} {item.scale:5.1f}%",
            reading_text(item.read_rate, format_rate),
            reading_text(item.write_rate, format_rate),
            ", ".join(item.mount_points),
        ]


class ProtopApp(App):
    """Main protop application."""

    TITLE = "protop"
    SUB_TITLE = "Live Host Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 8;
    }

    Horizontal {
        height: auto;
    }

    #host-info {
        width: 1fr;
        padding-right: 2;
    }

    #cpu-info {
        width: 1fr;
        padding-right: 2;
    }

    #mem-info {
        width: 1fr;
        padding-left: 2;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "reload", "Reload"),
    ]

    def __init__(self, config: Config | None = None, fetch: FetchFn | None = None) -> None:
        """Initialize the ProtopApp."""
        super().__init__()
        self._config = config if config is not None else Config()
        self._fetch = fetch if fetch is not None else build_fetcher(self._config)
        self._update_queue: Queue[ViewModel] = Queue()
        self._poller = Poller(
            self._fetch,
            self._update_queue,
            interval=self._config.interval,
            auth_key=self._config.auth_key,
            on_failure=self._on_poller_failure,
        )
        self._failure_message: str | None = None

    @property
    def poller(self) -> Poller:
        return self._poller

    @property
    def failure_message(self) -> str | None:
        return self._failure_message

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield NetworkTable()
        yield VolumeTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the poller when the app is mounted."""
        if self._config.url is not None:
            self.sub_title = self._config.url
        self._poller.start()
        # Set up a timer to poll the queue for updates
        self.set_interval(0.25, self._check_for_updates)

    def on_unmount(self) -> None:
        """Stop polling when the app shuts down."""
        self._poller.stop()

    def _check_for_updates(self) -> None:
        """Check the queue for new view models and refresh the UI."""
        # Get the latest view model (drain the queue to get most recent)
        view_model = None
        while True:
            try:
                view_model = self._update_queue.get_nowait()
            except Empty:
                break

        if view_model is not None:
            self.update_view(view_model)

    def update_view(self, view_model: ViewModel) -> None:
        """Update the UI with a new view model version."""
        try:
            self.query_one("#header-stats", HeaderStats).update_stats(view_model)
            self.query_one(NetworkTable).update_rows(view_model.network)
            self.query_one(VolumeTable).update_rows(view_model.volumes)
        except NoMatches:
            pass  # Screen is being torn down

    def _on_poller_failure(self, message: str) -> None:
        """Forward the poller's terminal failure to the UI thread."""
        self.call_from_thread(self.show_failure, message)

    def show_failure(self, message: str) -> None:
        """Show the terminal failure; the last data stays on screen."""
        self._failure_message = message
        self.sub_title = "Disconnected"
        self.notify(message, title="Error", severity="error", timeout=30)

    def action_reload(self) -> None:
        """Restart polling after the poller has given up."""
        if self._poller.is_running:
            return
        self._failure_message = None
        self.sub_title = self._config.url or self.SUB_TITLE
        self._poller.start()
        self.notify("Reconnecting...")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._poller.stop()
        close = getattr(self._fetch, "close", None)
        if close is not None:
            close()
        self.exit()


def main(argv: list[str] | None = None) -> None:
    """Entry point for protop application."""
    config = parse_args(argv)
    setup_logging(config.log_file, config.log_level)
    logger.info("Starting protop (%s)", config.url or "local machine")
    app = ProtopApp(config)
    app.run()


if __name__ == "__main__":
    main()
