"""Verification Test: Chaos Monkey - Flaky transport resilience.

Randomly fail, stall and garble monitor API responses while the poller is
running, and ensure that:
- the poller never crashes and keeps publishing once the transport recovers;
- only well-formed view models ever reach the renderer;
- versions only ever increase.
"""

import random
import time
from queue import Empty, Queue

from protop.models import ViewModel
from protop.poller import Poller
from protop.transport import TransportError


class FlakyFetch:
    """Fetch capability that misbehaves at random."""

    def __init__(self, envelope: dict, seed: int = 1234) -> None:
        self._envelope = envelope
        self._random = random.Random(seed)
        self.calls = 0

    def __call__(self, auth_key=None):
        self.calls += 1
        roll = self._random.random()
        if roll < 0.1:
            raise TransportError("connection reset")
        if roll < 0.15:
            time.sleep(0.02)
            raise TimeoutError("read timed out")
        if roll < 0.25:
            return {"code": 1}
        if roll < 0.35:
            return {"code": 0, "data": {"cpus": [{"threads": 0}], "cpus_stat": []}}
        if roll < 0.4:
            return "<html>502 Bad Gateway</html>"
        return self._envelope


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_poller_survives_flaky_transport(self, envelope):
        """
        Test that the poller doesn't crash when the transport misbehaves.

        Close to a third of all fetches fail in one way or another; with fewer
        than ten failures in a row the poller must keep going.
        """
        queue: Queue[ViewModel] = Queue()
        fetch = FlakyFetch(envelope)
        poller = Poller(fetch, queue, interval=0.01, retry_delay=0.005)

        try:
            poller.start()

            received: list[ViewModel] = []
            start_time = time.time()
            while time.time() - start_time < 3.0 and len(received) < 50:
                try:
                    received.append(queue.get(timeout=0.5))
                except Empty:
                    continue

            assert poller.is_running, "Poller stopped under transient failures"
        finally:
            poller.stop()

        assert len(received) >= 10
        assert fetch.calls > len(received)
        for view_model in received:
            assert view_model.logical_cores == 3
            assert view_model.hostname == "web-01"
        versions = [view_model.version for view_model in received]
        assert versions == sorted(versions)
        assert len(set(versions)) == len(versions)
