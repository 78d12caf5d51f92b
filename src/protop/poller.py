"""Polling and retry scheduler for protop."""

import dataclasses
import logging
import threading
import time
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from queue import Queue

from protop.models import ViewModel
from protop.normalize import MalformedSnapshot, normalize
from protop.transport import FetchFn, FetchResult, ResultKind, classify

logger = logging.getLogger(__name__)

MAX_RETRIES = 10
RETRY_DELAY = 1.0
FAILURE_MESSAGE = (
    "The monitor API can not be invoked successfully. "
    "Press r to reload and try again."
)


class PollerState(Enum):
    """States of the polling state machine."""

    IDLE = "idle"
    FETCHING = "fetching"
    RETRY_WAITING = "retry_waiting"
    TERMINAL = "terminal"


class Poller:
    """
    Periodically fetches snapshots and publishes normalized view models.

    Runs in a separate daemon thread and pushes each new ViewModel version to
    a thread-safe Queue. Exactly one fetch is in flight at a time: the next
    cycle is only scheduled once the previous one has resolved. Cycle starts
    are paced to ``interval`` seconds regardless of request latency.

    A failed fetch is retried every ``retry_delay`` seconds. After
    MAX_RETRIES consecutive failures the poller goes terminal, calls
    ``on_failure`` once and stops scheduling.
    """

    def __init__(
        self,
        fetch: FetchFn,
        update_queue: Queue[ViewModel],
        interval: float = 3.0,
        auth_key: str | None = None,
        on_failure: Callable[[str], None] | None = None,
        retry_delay: float = RETRY_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the Poller.

        Args:
            fetch: Fetch capability returning a ``{code, data}`` envelope.
            update_queue: Thread-safe queue to push view models to.
            interval: Target time between cycle starts (in seconds).
            auth_key: Optional credential handed to ``fetch``.
            on_failure: Called with a message once retries are exhausted.
            retry_delay: Delay before retrying a failed fetch (in seconds).
            clock: Monotonic clock used to measure fetch latency.
        """
        self._fetch = fetch
        self._queue = update_queue
        self._interval = interval
        self._auth_key = auth_key
        self._on_failure = on_failure
        self._retry_delay = retry_delay
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._state = PollerState.IDLE
        self._retry_count = 0
        self._skipped_cycles = 0
        self._failure_notified = False
        self._view_model = ViewModel()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def skipped_cycles(self) -> int:
        """Number of cycles the server answered with a non-zero code."""
        return self._skipped_cycles

    @property
    def view_model(self) -> ViewModel:
        """The most recently published view model."""
        return self._view_model

    @property
    def is_running(self) -> bool:
        """Check if the polling thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """
        Start the polling thread, resetting any terminal state.

        If a stopped loop is still finishing its last fetch, wait for it so
        the new loop never overlaps it.
        """
        if self.is_running and not self._stop_event.is_set():
            return
        if self._thread is not None:
            self._thread.join()

        # Each run owns its stop token; a set token is never cleared
        self._stop_event = threading.Event()
        self._state = PollerState.IDLE
        self._retry_count = 0
        self._failure_notified = False
        self._thread = threading.Thread(
            target=self._poll_loop,
            args=(self._stop_event,),
            daemon=True,
            name="Poller",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the polling thread.

        A fetch already in flight is allowed to finish; nothing is scheduled
        after it. If it outlasts ``timeout`` the thread stays tracked until it
        exits.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if not self._thread.is_alive():
                self._thread = None

    def _poll_loop(self, stop_event: threading.Event) -> None:
        """Main polling loop running in the background thread."""
        while not stop_event.is_set():
            delay = self.run_cycle()
            if delay is None:
                break
            # Wait for the next cycle or until stop is requested
            if stop_event.wait(timeout=delay):
                break

    def run_cycle(self) -> float | None:
        """
        Run one fetch cycle.

        Returns:
            Seconds to wait before the next cycle, or None once retries are
            exhausted and the poller has gone terminal.
        """
        started = self._clock()
        self._state = PollerState.FETCHING
        result = self._fetch_result()
        if result.kind is ResultKind.OK:
            try:
                self._publish(normalize(result.data))
            except MalformedSnapshot as exc:
                result = FetchResult.error(str(exc))
            except Exception as exc:  # Nothing but view models leaves the cycle
                logger.exception("Could not publish snapshot")
                result = FetchResult.error(str(exc) or type(exc).__name__)

        if result.kind is ResultKind.ERROR:
            return self._handle_failure(result.reason)
        if result.kind is ResultKind.SKIP:
            self._skipped_cycles += 1
            logger.info("Monitor API answered code %s; skipping this cycle", result.code)

        self._retry_count = 0
        self._state = PollerState.IDLE
        elapsed = self._clock() - started
        return max(0.0, self._interval - elapsed)

    def _fetch_result(self) -> FetchResult:
        """Fetch and classify one envelope."""
        try:
            envelope = self._fetch(self._auth_key)
        except Exception as exc:  # Any transport failure is one failure event
            return FetchResult.error(str(exc) or type(exc).__name__)

        return classify(envelope)

    def _publish(self, view_model: ViewModel) -> None:
        """Replace the current view model with a new version and queue it."""
        view_model = dataclasses.replace(
            view_model,
            last_update=datetime.now(),
            version=self._view_model.version + 1,
        )
        self._view_model = view_model
        self._queue.put(view_model)
        logger.debug("Published view model version %d", view_model.version)

    def _handle_failure(self, reason: str) -> float | None:
        self._retry_count += 1
        if self._retry_count < MAX_RETRIES:
            logger.warning(
                "Monitor API call failed (%s); retrying in %g second(s) [%d/%d]",
                reason,
                self._retry_delay,
                self._retry_count,
                MAX_RETRIES,
            )
            self._state = PollerState.RETRY_WAITING
            return self._retry_delay

        logger.error("Monitor API call failed %d times in a row (%s); giving up", self._retry_count, reason)
        self._state = PollerState.TERMINAL
        if not self._failure_notified:
            self._failure_notified = True
            if self._on_failure is not None:
                try:
                    self._on_failure(FAILURE_MESSAGE)
                except Exception:
                    logger.exception("Failure callback raised")
        return None
