from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Deque, Dict, List, Optional

from wqsim.domain.events import DeviceReading
from wqsim.domain.models import WaterSample, epoch_ms

HISTORY_PARAMETERS = ("wqi", "ph", "temperature", "tds", "turbidity")


@dataclass(frozen=True)
class HistoryPoint:
    """One stored value of one parameter."""
    timestamp: datetime
    value: float

    def to_dict(self) -> Dict[str, float]:
        return {"timestamp": epoch_ms(self.timestamp), "value": self.value}


@dataclass
class ParameterHistoryStore:
    """
    Bounded per-device, per-parameter history of published values.

    Each (device, parameter) series keeps the most recent ``max_points``
    points; older points are dropped first.

    Notes
    -----
    Guarded by its own lock; :meth:`record` is registered as an engine listener
    and runs on the tick thread while HTTP threads call :meth:`query`.
    """

    max_points: int = 48

    _series: Dict[str, Dict[str, Deque[HistoryPoint]]] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def record_sample(self, device_id: str, sample: WaterSample, wqi: int) -> None:
        values = dict(sample.values())
        values["wqi"] = float(wqi)
        with self._lock:
            series = self._series.setdefault(
                device_id, {p: deque(maxlen=self.max_points) for p in HISTORY_PARAMETERS}
            )
            for name in HISTORY_PARAMETERS:
                series[name].append(HistoryPoint(timestamp=sample.timestamp, value=float(values[name])))

    def record(self, reading: DeviceReading, now: datetime) -> None:
        """Engine listener: append the reading's sample and WQI."""
        self.record_sample(reading.device_id, reading.sample, reading.wqi)

    def query(
        self,
        device_id: str,
        parameter: str,
        hours: float = 24.0,
        now: Optional[datetime] = None,
    ) -> List[HistoryPoint]:
        """
        Return the points of one series newer than ``now - hours``, oldest first.

        Raises
        ------
        ValueError
            If ``parameter`` is not a supported history parameter.
        """
        key = parameter.lower()
        if key not in HISTORY_PARAMETERS:
            raise ValueError(f"Unsupported parameter {parameter!r}; supported: {', '.join(HISTORY_PARAMETERS)}")

        try:
            cutoff = (now or datetime.now()) - timedelta(hours=hours)
        except OverflowError:
            # window reaches past datetime.min: everything retained qualifies
            cutoff = datetime.min
        with self._lock:
            series = self._series.get(device_id)
            if series is None:
                return []
            return [p for p in series[key] if p.timestamp >= cutoff]

    def drop(self, device_id: str) -> None:
        with self._lock:
            self._series.pop(device_id, None)

    def clear(self) -> None:
        with self._lock:
            self._series.clear()
