from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SimContext:
    """
    Immutable context passed into each stage of a device's tick pipeline.

    The engine constructs a `SimContext` once per device per step. Stages read
    the timestamp and elapsed time from here instead of calling the clock, which
    keeps them deterministic under test.

    Parameters
    ----------
    now
        Current simulation timestamp for this tick.
    dt_s
        Seconds since the device's previous update (0 on the first tick).
    """

    now: datetime
    dt_s: float
