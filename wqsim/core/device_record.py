from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Tuple

from wqsim.domain.models import DeviceConfig, DeviceSeed, TechnicalState, WaterSample, epoch_ms
from wqsim.environment.quality_cycle import QualityCycle
from wqsim.environment.trend import LongTermTrend, init_trends
from wqsim.scoring.wqi import ScoreResult, score


@dataclass
class DeviceRecord:
    """
    Complete per-device state held by the store.

    Parameters
    ----------
    config
        Static configuration (id, name, location, baseline, reliability).
    technical
        Power / radio / sensors / alerts sub-state.
    cycle
        Quality-cycle state machine.
    trends
        Long-term trend per canonical parameter.
    current
        Unrounded mean-reverting values (before the degradation overlay).
    sample
        Last published sample.
    score
        Score of ``sample``.
    is_online
        Whether the device currently reports as reachable.
    started_at
        When the device was registered (trend time origin).
    last_update
        Timestamp of the last completed tick (or calibration).
    """

    config: DeviceConfig
    technical: TechnicalState
    cycle: QualityCycle
    trends: Dict[str, LongTermTrend]
    current: Dict[str, float]
    sample: WaterSample
    score: ScoreResult
    is_online: bool
    started_at: datetime
    last_update: datetime

    @classmethod
    def create(cls, seed: DeviceSeed, now: datetime, rng: random.Random) -> "DeviceRecord":
        """Build the initial record for a newly registered device."""
        base = seed.config.baseline.values()
        sample = WaterSample.from_values(base, now, base)
        return cls(
            config=seed.config,
            technical=seed.technical,
            cycle=QualityCycle.stable(now),
            trends=init_trends(seed.config.baseline, rng),
            current=dict(base),
            sample=sample,
            score=score(sample),
            is_online=seed.is_online,
            started_at=now,
            last_update=now,
        )

    @property
    def device_id(self) -> str:
        return self.config.id

    def elapsed_s(self, now: datetime) -> float:
        return max(0.0, (now - self.started_at).total_seconds())

    def operating_time(self, now: datetime) -> Tuple[int, int]:
        """(hours, minutes) since the device was registered."""
        total_min = int(self.elapsed_s(now) // 60)
        return total_min // 60, total_min % 60

    def next_calibration_date(self) -> datetime:
        return self.technical.last_calibration + timedelta(seconds=self.technical.calibration_interval_s)

    def calibration_due(self, now: datetime) -> bool:
        return now > self.next_calibration_date()

    def reset_to_baseline(self, now: datetime) -> None:
        """Reset current values, sample and score to the configured baseline."""
        base = self.config.baseline.values()
        self.current = dict(base)
        self.sample = WaterSample.from_values(base, now, base)
        self.score = score(self.sample)
        self.last_update = now

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.config.id,
            "name": self.config.name,
            "location": self.config.location,
            "isOnline": self.is_online,
            "wqi": self.score.wqi,
            "lastUpdate": epoch_ms(self.last_update),
        }
