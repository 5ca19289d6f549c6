from __future__ import annotations

import logging
import threading
from typing import Optional

from wqsim.core.simulator_engine import SimulatorEngine

logger = logging.getLogger(__name__)


class TickWorkerThread:
    """
    Worker thread driving the simulation clock.

    Responsibilities
    ----------------
    - Call `SimulatorEngine.step()` once every ``interval_s`` seconds.
    - Exit promptly when the stop event is set.

    Concurrency Model
    -----------------
    - The thread waits on the stop event with the tick interval as timeout, so
      a stop request interrupts the wait immediately.
    - `engine.step()` already isolates per-device failures; anything escaping
      it is logged and the loop keeps running.

    Parameters
    ----------
    engine
        Simulation engine to drive.
    interval_s
        Seconds between ticks.
    stop_event
        Thread stop signal. When set, the worker exits its loop.
    tick_immediately
        Run the first tick right after start instead of after one interval.
    """

    def __init__(
        self,
        engine: SimulatorEngine,
        interval_s: float,
        stop_event: Optional[threading.Event] = None,
        tick_immediately: bool = True,
    ):
        self._engine = engine
        self._interval_s = float(interval_s)
        self._stop = stop_event or threading.Event()
        self._tick_immediately = tick_immediately
        self._thread = threading.Thread(target=self._run, name="sim-tick", daemon=True)

    @property
    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> None:
        """
        Start the worker thread if it is not already running.
        """
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self) -> None:
        """
        Signal the worker thread to stop.
        """
        self._stop.set()

    def join(self, timeout: Optional[float] = 2.0) -> None:
        """
        Join the worker thread.

        Parameters
        ----------
        timeout
            Maximum time to wait for the thread to exit.
        """
        self._thread.join(timeout=timeout)

    def _run(self) -> None:
        logger.info("Tick worker started (interval %.1fs)", self._interval_s)
        if not self._tick_immediately:
            self._stop.wait(self._interval_s)

        while not self._stop.is_set():
            try:
                result = self._engine.step()
                if result.failed:
                    logger.warning("Tick finished with failed devices: %s", ", ".join(result.failed))
            except Exception:
                logger.exception("Simulation tick failed")
            self._stop.wait(self._interval_s)

        logger.info("Tick worker stopped")
