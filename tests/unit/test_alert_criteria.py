"""
Unit tests for wqsim.alerts.alert_criteria.

Criteria are stateless: each test builds a record, evaluates one criterion and
checks the emitted AlertDecision list (no alert list is modified here).
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from wqsim.alerts.alert_base import AlertContext
from wqsim.alerts.alert_criteria import (
    BATTERY_CRITICAL,
    CALIBRATION_DUE,
    CONNECTION_LOST,
    CONNECTION_RESTORED,
    SENSOR_DRIFT,
    WATER_QUALITY_CRITICAL,
    WATER_QUALITY_WARNING,
    BatteryCriteria,
    CalibrationDueCriteria,
    ConnectivityCriteria,
    SensorDriftCriteria,
    WaterQualityCriteria,
    default_criteria,
)
from wqsim.domain.models import Alert, AlertSeverity, PowerType

T0 = datetime(2026, 1, 1, 12, 0, 0)
CTX = AlertContext(now=T0)


def _decisions(crit, rec):
    return [(d.alert_type, d.should_be_active) for d in crit.evaluate(rec, CTX)]


def _existing(alert_type: str) -> Alert:
    return Alert(id=f"a-{alert_type}", type=alert_type, severity=AlertSeverity.WARNING, message="", timestamp=T0)


# --- battery ---
def test_battery_mains_never_decides(make_record) -> None:
    rec = make_record(power_type=PowerType.MAINS, battery_level=17.0)
    assert _decisions(BatteryCriteria(), rec) == []


@pytest.mark.parametrize("power", [PowerType.BATTERY, PowerType.SOLAR])
def test_battery_inside_band_raises_critical(make_record, power: PowerType) -> None:
    rec = make_record(power_type=power, battery_level=17.5)

    decisions = list(BatteryCriteria().evaluate(rec, CTX))

    assert len(decisions) == 1
    d = decisions[0]
    assert d.alert_type == BATTERY_CRITICAL
    assert d.should_be_active is True
    assert d.severity == AlertSeverity.CRITICAL
    assert "17.5%" in d.message


def test_battery_recovered_clears_alert(make_record) -> None:
    rec = make_record(power_type=PowerType.SOLAR, battery_level=20.0)
    assert _decisions(BatteryCriteria(), rec) == [(BATTERY_CRITICAL, False)]


def test_battery_below_band_keeps_existing_state(make_record) -> None:
    rec = make_record(power_type=PowerType.BATTERY, battery_level=15.0)
    assert _decisions(BatteryCriteria(), rec) == []


# --- connectivity ---
def test_offline_raises_connection_lost(make_record) -> None:
    rec = make_record(is_online=False)
    assert _decisions(ConnectivityCriteria(), rec) == [(CONNECTION_LOST, True), (CONNECTION_RESTORED, False)]


def test_back_online_swaps_lost_for_restored(make_record) -> None:
    rec = make_record()
    rec.technical.alerts.append(_existing(CONNECTION_LOST))
    assert _decisions(ConnectivityCriteria(), rec) == [(CONNECTION_RESTORED, True), (CONNECTION_LOST, False)]


def test_online_without_history_is_silent(make_record) -> None:
    assert _decisions(ConnectivityCriteria(), make_record()) == []


# --- sensor drift ---
def test_drifting_sensor_raises_warning_naming_the_sensor(make_record) -> None:
    rec = make_record()
    rec.technical.sensor_health["ph"] = "drift_detected"

    (d,) = SensorDriftCriteria().evaluate(rec, CTX)

    assert d.alert_type == SENSOR_DRIFT
    assert d.should_be_active is True
    assert d.message == "Sensor drift detected: pH sensor"


def test_no_drift_clears_alert(make_record) -> None:
    assert _decisions(SensorDriftCriteria(), make_record()) == [(SENSOR_DRIFT, False)]


# --- water quality ---
def test_quality_above_critical_raises_critical_and_drops_warning(make_record) -> None:
    rec = make_record()
    rec.cycle.degradation_level = 0.75

    decisions = list(WaterQualityCriteria().evaluate(rec, CTX))

    assert [(d.alert_type, d.should_be_active) for d in decisions] == [
        (WATER_QUALITY_CRITICAL, True),
        (WATER_QUALITY_WARNING, False),
    ]
    assert decisions[0].message == "Critical water quality degradation (75.0%)"
    assert decisions[0].severity == AlertSeverity.CRITICAL


@pytest.mark.parametrize("level", [0.41, 0.55, 0.7])
def test_quality_in_warning_band_raises_warning(make_record, level: float) -> None:
    rec = make_record()
    rec.cycle.degradation_level = level

    (d,) = WaterQualityCriteria().evaluate(rec, CTX)

    assert d.alert_type == WATER_QUALITY_WARNING
    assert d.should_be_active is True
    assert d.message == f"Moderate water quality degradation ({level * 100:.1f}%)"


def test_warning_is_not_raised_while_critical_is_present(make_record) -> None:
    rec = make_record()
    rec.cycle.degradation_level = 0.5
    rec.technical.alerts.append(_existing(WATER_QUALITY_CRITICAL))
    assert _decisions(WaterQualityCriteria(), rec) == []


@pytest.mark.parametrize("level", [0.0, 0.2, 0.4])
def test_quality_below_warning_is_silent(make_record, level: float) -> None:
    rec = make_record()
    rec.cycle.degradation_level = level
    assert _decisions(WaterQualityCriteria(), rec) == []


# --- calibration due ---
def test_calibration_due_after_interval(make_record) -> None:
    rec = make_record(last_calibration=T0 - timedelta(days=31))

    (d,) = CalibrationDueCriteria().evaluate(rec, CTX)

    assert d.alert_type == CALIBRATION_DUE
    assert d.should_be_active is True
    assert (T0 - timedelta(days=1)).strftime("%Y-%m-%d") in d.message


def test_calibration_not_due_clears_alert(make_record) -> None:
    rec = make_record(last_calibration=T0 - timedelta(days=2))
    assert _decisions(CalibrationDueCriteria(), rec) == [(CALIBRATION_DUE, False)]


def test_default_criteria_uses_configured_thresholds() -> None:
    crits = default_criteria(battery_band=(10.0, 30.0), quality_warning=0.3, quality_critical=0.6)

    battery = next(c for c in crits if isinstance(c, BatteryCriteria))
    quality = next(c for c in crits if isinstance(c, WaterQualityCriteria))

    assert (battery.low, battery.high) == (10.0, 30.0)
    assert (quality.warning, quality.critical) == (0.3, 0.6)
    assert len(crits) == 5
