"""
Unit tests for wqsim.environment.trend.

Covers:
- closed-form value of a long-term trend (oscillation + linear drift)
- guards against degenerate / non-finite trend parameters
- randomized initialization within the documented bounds
"""

from __future__ import annotations

import math
import random

import pytest

from wqsim.domain.models import Baseline
from wqsim.environment.trend import TREND_BOUNDS, LongTermTrend, init_trends


def test_value_at_zero_is_base_value() -> None:
    t = LongTermTrend(direction=0.01, period_s=600.0, amplitude=2.0, base_value=7.0)
    assert t.value_at(0.0) == pytest.approx(7.0)


def test_value_at_quarter_period_adds_amplitude_and_drift() -> None:
    t = LongTermTrend(direction=0.001, period_s=400.0, amplitude=0.5, base_value=20.0)
    assert t.value_at(100.0) == pytest.approx(20.0 + 0.5 + 0.1)


def test_value_at_full_period_is_pure_drift() -> None:
    t = LongTermTrend(direction=-0.01, period_s=300.0, amplitude=3.0, base_value=300.0)
    assert t.value_at(300.0) == pytest.approx(300.0 - 3.0)


@pytest.mark.parametrize(
    "trend",
    [
        LongTermTrend(direction=0.0, period_s=0.0, amplitude=1.0, base_value=5.0),
        LongTermTrend(direction=0.0, period_s=float("nan"), amplitude=1.0, base_value=5.0),
        LongTermTrend(direction=float("inf"), period_s=100.0, amplitude=float("nan"), base_value=5.0),
    ],
)
def test_degenerate_trends_fall_back_to_base(trend: LongTermTrend) -> None:
    v = trend.value_at(250.0)
    assert math.isfinite(v)
    assert v == pytest.approx(5.0)


def test_non_finite_elapsed_returns_base() -> None:
    t = LongTermTrend(direction=0.1, period_s=100.0, amplitude=1.0, base_value=7.0)
    assert t.value_at(float("nan")) == 7.0


def test_init_trends_respects_bounds_and_baseline() -> None:
    baseline = Baseline(ph=7.2, temperature=20.0, tds=300.0, turbidity=0.8)
    trends = init_trends(baseline, random.Random(42))

    assert set(trends) == {"ph", "temperature", "tds", "turbidity"}
    for name, trend in trends.items():
        b = TREND_BOUNDS[name]
        assert trend.base_value == baseline.values()[name]
        assert -b.max_rate <= trend.direction <= b.max_rate
        assert b.period_s[0] <= trend.period_s <= b.period_s[1]
        assert b.amplitude[0] <= trend.amplitude <= b.amplitude[1]


def test_init_trends_is_reproducible_with_same_seed() -> None:
    baseline = Baseline(ph=6.8, temperature=23.0, tds=450.0, turbidity=1.2)
    assert init_trends(baseline, random.Random(7)) == init_trends(baseline, random.Random(7))
