from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from wqsim.alerts.alert_base import AlertContext, AlertCriteria, AlertDecision
from wqsim.core.device_record import DeviceRecord
from wqsim.domain.constants import SENSOR_NAMES
from wqsim.domain.models import AlertSeverity, PowerType

BATTERY_CRITICAL = "battery_critical"
CONNECTION_LOST = "connection_lost"
CONNECTION_RESTORED = "connection_restored"
SENSOR_DRIFT = "sensor_drift"
WATER_QUALITY_WARNING = "water_quality_warning"
WATER_QUALITY_CRITICAL = "water_quality_critical"
CALIBRATION_DUE = "calibration_due"


@dataclass(frozen=True)
class BatteryCriteria(AlertCriteria):
    """
    Critically low battery on battery or solar devices.

    Logic
    -----
    - ``low < level < high``: raise ``battery_critical``
    - ``level >= high``: remove it (battery recovered, e.g. solar charge)
    - ``level <= low``: no decision; an existing alert is kept

    Mains devices never produce a decision.
    """

    low: float = 15.0
    high: float = 20.0

    def evaluate(self, record: DeviceRecord, ctx: AlertContext) -> Sequence[AlertDecision]:
        tech = record.technical
        if tech.power_type == PowerType.MAINS:
            return []

        level = float(tech.battery_level)
        if self.low < level < self.high:
            return [
                AlertDecision(
                    alert_type=BATTERY_CRITICAL,
                    severity=AlertSeverity.CRITICAL,
                    should_be_active=True,
                    message=f"Critically low battery level ({level:.1f}%)",
                    value=level,
                )
            ]
        if level >= self.high:
            return [AlertDecision(alert_type=BATTERY_CRITICAL, severity=AlertSeverity.CRITICAL, should_be_active=False)]
        return []


@dataclass(frozen=True)
class ConnectivityCriteria(AlertCriteria):
    """
    Connection lost / restored.

    Offline raises ``connection_lost`` and drops any ``connection_restored``.
    Coming back online while ``connection_lost`` is present swaps the two.
    """

    def evaluate(self, record: DeviceRecord, ctx: AlertContext) -> Sequence[AlertDecision]:
        if not record.is_online:
            return [
                AlertDecision(
                    alert_type=CONNECTION_LOST,
                    severity=AlertSeverity.ERROR,
                    should_be_active=True,
                    message="Connection to the device was lost",
                ),
                AlertDecision(alert_type=CONNECTION_RESTORED, severity=AlertSeverity.WARNING, should_be_active=False),
            ]

        if record.technical.find_alert(CONNECTION_LOST) is not None:
            return [
                AlertDecision(
                    alert_type=CONNECTION_RESTORED,
                    severity=AlertSeverity.WARNING,
                    should_be_active=True,
                    message="Connection to the device was restored",
                ),
                AlertDecision(alert_type=CONNECTION_LOST, severity=AlertSeverity.ERROR, should_be_active=False),
            ]
        return []


@dataclass(frozen=True)
class SensorDriftCriteria(AlertCriteria):
    """Warn while any sensor reports ``drift_detected``."""

    def evaluate(self, record: DeviceRecord, ctx: AlertContext) -> Sequence[AlertDecision]:
        drifting = record.technical.drifting_sensors()
        if not drifting:
            return [AlertDecision(alert_type=SENSOR_DRIFT, severity=AlertSeverity.WARNING, should_be_active=False)]

        names = ", ".join(SENSOR_NAMES.get(p, p) for p in drifting)
        return [
            AlertDecision(
                alert_type=SENSOR_DRIFT,
                severity=AlertSeverity.WARNING,
                should_be_active=True,
                message=f"Sensor drift detected: {names}",
                value=float(len(drifting)),
            )
        ]


@dataclass(frozen=True)
class WaterQualityCriteria(AlertCriteria):
    """
    Water-quality degradation alerts driven by the quality cycle.

    Logic
    -----
    - ``level > critical``: raise ``water_quality_critical`` and drop the
      warning
    - ``warning < level <= critical``: raise ``water_quality_warning`` unless a
      critical alert is already present

    Both alerts persist until calibration; a falling level never clears them.
    """

    warning: float = 0.4
    critical: float = 0.7

    def evaluate(self, record: DeviceRecord, ctx: AlertContext) -> Sequence[AlertDecision]:
        level = float(record.cycle.degradation_level)
        pct = level * 100.0

        if level > self.critical:
            return [
                AlertDecision(
                    alert_type=WATER_QUALITY_CRITICAL,
                    severity=AlertSeverity.CRITICAL,
                    should_be_active=True,
                    message=f"Critical water quality degradation ({pct:.1f}%)",
                    value=level,
                ),
                AlertDecision(alert_type=WATER_QUALITY_WARNING, severity=AlertSeverity.WARNING, should_be_active=False),
            ]

        if level > self.warning and record.technical.find_alert(WATER_QUALITY_CRITICAL) is None:
            return [
                AlertDecision(
                    alert_type=WATER_QUALITY_WARNING,
                    severity=AlertSeverity.WARNING,
                    should_be_active=True,
                    message=f"Moderate water quality degradation ({pct:.1f}%)",
                    value=level,
                )
            ]
        return []


@dataclass(frozen=True)
class CalibrationDueCriteria(AlertCriteria):
    """Warn once the calibration interval has elapsed since the last calibration."""

    def evaluate(self, record: DeviceRecord, ctx: AlertContext) -> Sequence[AlertDecision]:
        if not record.calibration_due(ctx.now):
            return [AlertDecision(alert_type=CALIBRATION_DUE, severity=AlertSeverity.WARNING, should_be_active=False)]

        due = record.next_calibration_date()
        return [
            AlertDecision(
                alert_type=CALIBRATION_DUE,
                severity=AlertSeverity.WARNING,
                should_be_active=True,
                message=f"Sensor calibration overdue since {due:%Y-%m-%d}",
            )
        ]


def default_criteria(
    battery_band: Sequence[float] = (15.0, 20.0),
    quality_warning: float = 0.4,
    quality_critical: float = 0.7,
) -> List[AlertCriteria]:
    """Criteria evaluated on every tick, in order."""
    low, high = battery_band
    return [
        BatteryCriteria(low=low, high=high),
        ConnectivityCriteria(),
        SensorDriftCriteria(),
        WaterQualityCriteria(warning=quality_warning, critical=quality_critical),
        CalibrationDueCriteria(),
    ]
