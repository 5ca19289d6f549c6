from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Dict, Tuple

from wqsim.domain.models import Baseline


@dataclass(frozen=True)
class TrendBounds:
    """Randomization bounds for one parameter's long-term trend.

    Parameters
    ----------
    max_rate
        Linear drift rate is drawn from [-max_rate, +max_rate] per second.
    period_s
        (low, high) bounds of one full oscillation, in seconds.
    amplitude
        (low, high) bounds of the oscillation amplitude.
    """

    max_rate: float
    period_s: Tuple[float, float]
    amplitude: Tuple[float, float]


TREND_BOUNDS: Dict[str, TrendBounds] = {
    "ph": TrendBounds(max_rate=0.00025, period_s=(300.0, 2100.0), amplitude=(0.05, 0.15)),
    "temperature": TrendBounds(max_rate=0.0005, period_s=(600.0, 2400.0), amplitude=(0.5, 1.5)),
    "tds": TrendBounds(max_rate=0.025, period_s=(900.0, 2400.0), amplitude=(10.0, 30.0)),
    "turbidity": TrendBounds(max_rate=0.0001, period_s=(600.0, 1800.0), amplitude=(0.03, 0.10)),
}


@dataclass(frozen=True)
class LongTermTrend:
    """Slow sinusoidal oscillation plus linear drift around a base value.

    ``value_at(t) = base_value + amplitude * sin(2*pi*t/period_s) + direction * t``

    Parameters are fixed at device creation. A degenerate trend (non-positive
    or non-finite period, non-finite amplitude or direction) contributes
    nothing but its base value, so callers never see NaN from here.
    """

    direction: float
    period_s: float
    amplitude: float
    base_value: float

    def value_at(self, elapsed_s: float) -> float:
        base = float(self.base_value)
        if not math.isfinite(elapsed_s):
            return base

        value = base
        if math.isfinite(self.period_s) and self.period_s > 0 and math.isfinite(self.amplitude):
            value += self.amplitude * math.sin(2.0 * math.pi * elapsed_s / self.period_s)
        if math.isfinite(self.direction):
            value += self.direction * elapsed_s

        return value if math.isfinite(value) else base

    @classmethod
    def random(cls, base_value: float, bounds: TrendBounds, rng: random.Random) -> "LongTermTrend":
        return cls(
            direction=rng.uniform(-bounds.max_rate, bounds.max_rate),
            period_s=rng.uniform(*bounds.period_s),
            amplitude=rng.uniform(*bounds.amplitude),
            base_value=float(base_value),
        )


def init_trends(baseline: Baseline, rng: random.Random) -> Dict[str, LongTermTrend]:
    """Draw one trend per parameter around the device baseline."""
    base = baseline.values()
    return {name: LongTermTrend.random(base[name], bounds, rng) for name, bounds in TREND_BOUNDS.items()}
