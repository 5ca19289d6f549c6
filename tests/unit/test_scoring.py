"""
Unit tests for wqsim.scoring.wqi.

These tests validate the canonical WQI formula:
- reference samples (ideal water, critical tds)
- boundedness for extreme inputs
- critical caps (tds > 1000, turbidity > 5, pH outside [6, 9])
- turbidity monotonicity with the other parameters held ideal
- defaulting of missing / invalid fields
- category labels
"""

from __future__ import annotations

from datetime import datetime

import pytest

from wqsim.domain.models import WaterSample
from wqsim.scoring.wqi import (
    classify,
    score,
    score_ph,
    score_tds,
    score_temperature,
    score_turbidity,
)

IDEAL = {"pH": 7.0, "temperature": 20.0, "tds": 150.0, "turbidity": 0.3}


def test_ideal_sample_scores_100_excellent() -> None:
    res = score(IDEAL)

    assert res.wqi == 100
    assert res.category == "excellent"
    assert res.subscores.tds == 100.0
    assert res.subscores.turbidity == 100.0
    assert res.subscores.temperature == 100.0
    assert res.subscores.ph == pytest.approx(98.8)


def test_critical_tds_reference_sample_is_capped() -> None:
    res = score({"pH": 9.2, "temperature": 26.0, "tds": 650.0, "turbidity": 1.5})
    assert res.wqi <= 39


@pytest.mark.parametrize(
    "sample",
    [
        {"pH": -5.0, "temperature": -100.0, "tds": 1e9, "turbidity": 1e9},
        {"pH": 100.0, "temperature": 1e6, "tds": -50.0, "turbidity": -3.0},
        {"pH": 7.15, "temperature": 20.0, "tds": 0.0, "turbidity": 0.0},
    ],
)
def test_score_is_bounded_for_extreme_inputs(sample) -> None:
    res = score(sample)
    assert 0 <= res.wqi <= 100
    for v in res.subscores.to_dict().values():
        assert 0.0 <= v <= 100.0


def test_tds_above_1000_caps_at_29() -> None:
    # weighted sum would be ~60 without the cap
    res = score({"pH": 7.0, "temperature": 20.0, "tds": 1001.0, "turbidity": 0.3})
    assert res.wqi == 29


def test_turbidity_above_5_caps_at_39() -> None:
    # weighted sum would be ~52 without the cap
    res = score({"pH": 7.0, "temperature": 20.0, "tds": 150.0, "turbidity": 6.0})
    assert res.wqi == 39


@pytest.mark.parametrize("ph", [5.9, 9.1])
def test_ph_outside_6_9_caps_at_39(ph: float) -> None:
    res = score({**IDEAL, "pH": ph})
    assert res.wqi <= 39


def test_turbidity_monotonicity_with_ideal_other_parameters() -> None:
    previous = None
    for i in range(0, 98):
        turb = 0.3 + i * 0.1
        wqi = score({**IDEAL, "turbidity": turb}).wqi
        if previous is not None:
            assert wqi <= previous, f"wqi increased at turbidity={turb:.1f}"
        previous = wqi


def test_missing_fields_use_defaults() -> None:
    defaults = {"pH": 7.0, "temperature": 20.0, "tds": 300.0, "turbidity": 1.0}
    assert score({}) == score(defaults)


def test_non_finite_and_non_numeric_fields_use_defaults() -> None:
    defaults = {"pH": 7.0, "temperature": 20.0, "tds": 300.0, "turbidity": 1.0}
    weird = {"pH": float("nan"), "temperature": "warm", "tds": None, "turbidity": float("inf")}
    assert score(weird) == score(defaults)


def test_alias_keys_are_accepted() -> None:
    assert score({"ph": 7.0, "temp": 20.0, "tds": 150.0, "turbidity": 0.3}).wqi == 100


def test_water_sample_object_is_accepted() -> None:
    sample = WaterSample(ph=7.0, temperature=20.0, tds=150.0, turbidity=0.3, timestamp=datetime(2026, 1, 1))
    assert score(sample).wqi == 100


def test_sub_score_curves_at_band_edges() -> None:
    assert score_ph(7.15) == 100.0
    assert score_ph(6.5) == pytest.approx(77.5)
    assert score_ph(5.0) == 0.0
    assert score_ph(9.5) == 0.0

    assert score_temperature(20.0) == 100.0
    assert score_temperature(10.0) == pytest.approx(85.0)
    assert score_temperature(-20.0) == 30.0

    assert score_tds(150.0) == 100.0
    assert score_tds(250.0) == pytest.approx(65.0)
    assert score_tds(1000.0) == pytest.approx(0.0)
    assert score_tds(5000.0) == 0.0

    assert score_turbidity(0.3) == 100.0
    assert score_turbidity(1.0) == pytest.approx(40.0)
    assert score_turbidity(10.0) == pytest.approx(0.0)
    assert score_turbidity(50.0) == 0.0


@pytest.mark.parametrize(
    "wqi, label",
    [(100, "excellent"), (80, "excellent"), (79, "good"), (60, "good"), (59, "fair"), (40, "fair"),
     (39, "poor"), (20, "poor"), (19, "very_poor"), (0, "very_poor")],
)
def test_classify_labels(wqi: int, label: str) -> None:
    assert classify(wqi) == label


def test_to_dict_contains_wqi_category_and_subscores() -> None:
    d = score(IDEAL).to_dict()
    assert d["wqi"] == 100
    assert d["category"] == "excellent"
    assert set(d["subscores"]) == {"pH", "temperature", "tds", "turbidity"}
