"""
Domain models and enums.

This module defines the core domain-level types used across the system:
- Power, connection, alert severity and quality phase enums
- Water samples and per-device baselines
- Alerts and the technical (power / radio / sensor) sub-state of a device
- Static device configuration, including its reliability profile

Samples, baselines, alerts and configs are immutable (frozen) dataclasses so
they can be shared between the tick thread and HTTP readers. The technical
state is mutable; it is only mutated on a private copy inside the store.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from wqsim.domain.constants import (
    ALL_SENSORS_ONLINE,
    DEFAULT_CALIBRATION_INTERVAL_S,
    PARAMETERS,
    PHYSICAL_RANGES,
    PRECISION,
)


def epoch_ms(ts: datetime) -> int:
    """Convert a datetime to integer milliseconds since the epoch."""
    return int(ts.timestamp() * 1000)


def clamp_parameter(name: str, value: float, fallback: float) -> float:
    """
    Clamp a parameter value to its physical range.

    Non-finite values (NaN, +/-inf) are replaced by ``fallback`` before
    clamping, so a single bad input can never leave the valid range.

    Parameters
    ----------
    name
        Canonical parameter key (see ``PARAMETERS``).
    value
        Candidate value.
    fallback
        Value used when ``value`` is not finite.

    Returns
    -------
    float
        Finite value inside the parameter's physical range.
    """
    lo, hi = PHYSICAL_RANGES[name]
    v = float(value) if isinstance(value, (int, float)) else fallback
    if not math.isfinite(v):
        v = fallback
    if not math.isfinite(v):
        v = lo
    return max(lo, min(hi, v))


class PowerType(str, Enum):
    """How a device is powered."""

    MAINS = "mains"
    BATTERY = "battery"
    SOLAR = "solar"


class ConnectionStatus(str, Enum):
    """Connection label derived from signal strength (or forced when offline)."""

    STABLE = "stable"
    MODERATE = "moderate"
    WEAK = "weak"
    DISCONNECTED = "disconnected"


class AlertSeverity(str, Enum):
    """
    Severity level for device alerts.

    Members
    -------
    WARNING
        Abnormal condition requiring attention.
    ERROR
        A device function failed (e.g. lost connection).
    CRITICAL
        Severe condition requiring immediate intervention.
    """

    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class QualityPhase(str, Enum):
    """Phase of a device's quality cycle."""

    STABLE = "stable"
    DEGRADING = "degrading"
    RECOVERING = "recovering"


class CalibrationErrorCode(str, Enum):
    """
    Distinct reasons a calibration request can be refused.

    Members
    -------
    DEVICE_NOT_FOUND
        No device with the requested id is registered.
    ALREADY_CALIBRATED
        The device was calibrated within the cooldown window.
    MAINTENANCE_MODE
        The device is flagged as under maintenance.
    SENSORS_ERROR
        At least one sensor reports a hard failure.
    """

    DEVICE_NOT_FOUND = "DEVICE_NOT_FOUND"
    ALREADY_CALIBRATED = "ALREADY_CALIBRATED"
    MAINTENANCE_MODE = "MAINTENANCE_MODE"
    SENSORS_ERROR = "SENSORS_ERROR"


@dataclass(frozen=True)
class Baseline:
    """
    Undisturbed / ideal reading of a device.

    Parameters
    ----------
    ph
        Baseline pH.
    temperature
        Baseline temperature in degrees Celsius.
    tds
        Baseline total dissolved solids in ppm.
    turbidity
        Baseline turbidity in NTU.
    """

    ph: float
    temperature: float
    tds: float
    turbidity: float

    def values(self) -> Dict[str, float]:
        """Return the baseline as a mapping keyed by canonical parameter name."""
        return {
            "ph": float(self.ph),
            "temperature": float(self.temperature),
            "tds": float(self.tds),
            "turbidity": float(self.turbidity),
        }


@dataclass(frozen=True)
class WaterSample:
    """
    One published water-parameter sample.

    Values are always inside their physical range and rounded to the
    parameter's precision (pH 2 decimals, temperature and turbidity 1 decimal,
    tds integer).

    Parameters
    ----------
    ph
        pH value in [0, 14].
    temperature
        Temperature in degrees Celsius, [0, 50].
    tds
        Total dissolved solids in ppm, [0, 3000].
    turbidity
        Turbidity in NTU, [0, 100].
    timestamp
        When the sample was produced.
    """

    ph: float
    temperature: float
    tds: float
    turbidity: float
    timestamp: datetime

    @classmethod
    def from_values(cls, values: Dict[str, float], timestamp: datetime, fallback: Dict[str, float]) -> "WaterSample":
        """
        Build a sample from raw values: clamp, guard non-finite values and round.

        Parameters
        ----------
        values
            Raw parameter values keyed by canonical name.
        timestamp
            Sample timestamp.
        fallback
            Per-parameter value used for missing or non-finite entries.
        """
        out: Dict[str, float] = {}
        for name in PARAMETERS:
            v = clamp_parameter(name, values.get(name, fallback[name]), fallback[name])
            digits = PRECISION[name]
            out[name] = float(round(v)) if digits == 0 else round(v, digits)
        return cls(timestamp=timestamp, **out)

    def values(self) -> Dict[str, float]:
        """Return the parameter values keyed by canonical name."""
        return {
            "ph": self.ph,
            "temperature": self.temperature,
            "tds": self.tds,
            "turbidity": self.turbidity,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pH": self.ph,
            "temperature": self.temperature,
            "tds": int(self.tds),
            "turbidity": self.turbidity,
            "timestamp": epoch_ms(self.timestamp),
        }


@dataclass(frozen=True)
class Alert:
    """
    Device alert.

    Parameters
    ----------
    id
        Unique id assigned on insertion.
    type
        Deduplication key (e.g. ``"battery_critical"``).
    severity
        Alert severity.
    message
        Human-readable description.
    timestamp
        When the alert was raised.
    acknowledged
        Whether an operator acknowledged the alert.
    """

    id: str
    type: str
    severity: AlertSeverity
    message: str
    timestamp: datetime
    acknowledged: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity.value,
            "message": self.message,
            "timestamp": epoch_ms(self.timestamp),
            "acknowledged": self.acknowledged,
        }


@dataclass(frozen=True)
class ReliabilityProfile:
    """
    Per-device intermittent-connectivity profile.

    Parameters
    ----------
    offline_probability
        Per-tick probability that an online device drops offline.
    recovery_probability
        Per-tick probability that an offline device comes back.
    """

    offline_probability: float = 0.0
    recovery_probability: float = 0.0

    @property
    def is_flaky(self) -> bool:
        return self.offline_probability > 0.0


@dataclass
class TechnicalState:
    """
    Technical sub-state of a device: power, radio, sensors and alerts.

    Parameters
    ----------
    power_type
        Mains, battery or solar.
    battery_level
        Battery charge in percent, [0, 100].
    signal_strength
        Radio signal in dBm, [-90, -20].
    connection_status
        Label derived from ``signal_strength`` (or DISCONNECTED when offline).
    last_calibration
        Timestamp of the last calibration.
    calibration_interval_s
        Recommended time between calibrations.
    sensor_status
        Free-form summary of sensor health.
    sensor_health
        Per-parameter health string (``"online"``, ``"drift_detected"``,
        ``"error"``, ``"offline"``).
    firmware_version, hardware_version
        Informational version strings.
    maintenance_mode
        When True, calibration requests are refused.
    alerts
        Ordered alert list, oldest first, bounded by the alert policy.
    """

    power_type: PowerType
    battery_level: float
    signal_strength: float
    last_calibration: datetime
    connection_status: ConnectionStatus = ConnectionStatus.STABLE
    calibration_interval_s: float = DEFAULT_CALIBRATION_INTERVAL_S
    sensor_status: str = ALL_SENSORS_ONLINE
    sensor_health: Dict[str, str] = field(default_factory=lambda: {p: "online" for p in PARAMETERS})
    firmware_version: str = ""
    hardware_version: str = ""
    maintenance_mode: bool = False
    alerts: List[Alert] = field(default_factory=list)

    def drifting_sensors(self) -> List[str]:
        return [p for p, h in self.sensor_health.items() if h == "drift_detected"]

    def failed_sensors(self) -> List[str]:
        return [p for p, h in self.sensor_health.items() if h in ("error", "offline")]

    def find_alert(self, alert_type: str) -> Optional[Alert]:
        for a in self.alerts:
            if a.type == alert_type:
                return a
        return None


@dataclass(frozen=True)
class DeviceConfig:
    """
    Static configuration of a monitored device.

    Parameters
    ----------
    id
        Device identifier.
    name
        Display name.
    location
        Free-form location label.
    baseline
        Undisturbed reading the simulation oscillates around.
    reliability
        Intermittent-connectivity profile.
    """

    id: str
    name: str
    baseline: Baseline
    location: str = ""
    reliability: ReliabilityProfile = field(default_factory=ReliabilityProfile)


@dataclass(frozen=True)
class DeviceSeed:
    """Seed data for registering a device: config, initial technical state, online flag."""

    config: DeviceConfig
    technical: TechnicalState
    is_online: bool = True
