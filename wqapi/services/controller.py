from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from wqapi.core.state.history_store import HISTORY_PARAMETERS, ParameterHistoryStore
from wqsim.core.device_record import DeviceRecord
from wqsim.core.device_store import DeviceStateStore
from wqsim.core.simulator_engine import SimulatorEngine
from wqsim.domain.constants import PHYSICAL_RANGES, SENSOR_NAMES, UNITS
from wqsim.domain.models import CalibrationErrorCode, DeviceSeed, WaterSample, epoch_ms

logger = logging.getLogger(__name__)

PARAMETER_INFO: Dict[str, Dict[str, str]] = {
    "wqi": {"name": "Water Quality Index", "unit": "", "description": "Aggregated 0-100 quality score"},
    "ph": {"name": "pH", "unit": UNITS["ph"], "description": "Acidity / alkalinity of the water"},
    "temperature": {"name": "Temperature", "unit": UNITS["temperature"], "description": "Water temperature"},
    "tds": {"name": "TDS", "unit": UNITS["tds"], "description": "Total dissolved solids"},
    "turbidity": {"name": "Turbidity", "unit": UNITS["turbidity"], "description": "Cloudiness of the water"},
}


@dataclass(frozen=True)
class CalibrationResult:
    """
    Outcome of a calibration request.

    Parameters
    ----------
    success
        Whether the device was calibrated.
    message
        Human-readable outcome.
    next_calibration_date
        When the next calibration is recommended (None if the device is unknown).
    error_code
        Refusal reason when ``success`` is False.
    """

    success: bool
    message: str
    next_calibration_date: Optional[datetime] = None
    error_code: Optional[CalibrationErrorCode] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.next_calibration_date is not None:
            out["nextCalibrationDate"] = self.next_calibration_date.isoformat()
        if self.error_code is not None:
            out["errorCode"] = self.error_code.value
        return out


@dataclass
class MonitoringService:
    """
    Serving-side facade over the device store, engine and history.

    Responsibilities
    ----------------
    - Read-only views of devices (sample, WQI, status, sensors, history).
    - Calibration with its refusal rules (cooldown, maintenance, sensor error).
    - Alert acknowledgement and runtime device add/remove.

    Notes
    -----
    Unknown device ids yield ``None`` (or a DEVICE_NOT_FOUND calibration
    result); translating those into HTTP status codes is the server's job.

    Parameters
    ----------
    store
        Device state store shared with the tick engine.
    engine
        Tick engine; used for registration and its alert policy.
    history
        Parameter history fed by the engine.
    calibration_cooldown_s
        Minimum time between two calibrations of the same device.
    clock
        Time source (injectable for tests).
    """

    store: DeviceStateStore
    engine: SimulatorEngine
    history: ParameterHistoryStore = field(default_factory=ParameterHistoryStore)
    calibration_cooldown_s: float = 3600.0
    clock: Callable[[], datetime] = datetime.now

    # --- Devices ---
    def list_devices(self) -> List[str]:
        return self.store.ids()

    def list_device_summaries(self) -> List[Dict[str, Any]]:
        return [rec.summary() for rec in self.store.snapshot()]

    def add_device(self, seed: DeviceSeed) -> DeviceRecord:
        """
        Register a device at runtime and record its initial sample.

        Raises
        ------
        ValueError
            If the id is already registered.
        """
        record = self.engine.register(seed, now=self.clock())
        self.history.record_sample(record.device_id, record.sample, record.score.wqi)
        return record

    def remove_device(self, device_id: str) -> bool:
        removed = self.store.remove(device_id)
        if removed:
            self.history.drop(device_id)
        return removed

    # --- Readings ---
    def get_sample(self, device_id: str) -> Optional[WaterSample]:
        rec = self.store.get(device_id)
        return rec.sample if rec is not None else None

    def get_wqi(self, device_id: str) -> Optional[Dict[str, Any]]:
        rec = self.store.get(device_id)
        if rec is None:
            return None
        return {
            "deviceId": rec.device_id,
            "wqi": rec.score.wqi,
            "category": rec.score.category,
            "parameters": rec.sample.to_dict(),
            "subscores": rec.score.subscores.to_dict(),
            "timestamp": epoch_ms(rec.sample.timestamp),
        }

    def quality_status(self, device_id: str) -> Optional[Dict[str, Any]]:
        rec = self.store.get(device_id)
        if rec is None:
            return None
        return rec.cycle.to_dict(self.clock())

    def get_device_status(self, device_id: str) -> Optional[Dict[str, Any]]:
        rec = self.store.get(device_id)
        if rec is None:
            return None

        now = self.clock()
        tech = rec.technical
        hours, minutes = rec.operating_time(now)
        return {
            "deviceId": rec.device_id,
            "name": rec.config.name,
            "isOnline": rec.is_online,
            "location": rec.config.location,
            "lastUpdate": epoch_ms(rec.last_update),
            "technical": {
                "powerType": tech.power_type.value,
                "batteryLevel": round(tech.battery_level, 1),
                "signalStrength": round(tech.signal_strength, 1),
                "connectionStatus": tech.connection_status.value,
                "sensorStatus": tech.sensor_status,
                "sensorHealth": dict(tech.sensor_health),
                "firmwareVersion": tech.firmware_version,
                "hardwareVersion": tech.hardware_version,
                "maintenanceMode": tech.maintenance_mode,
                "lastCalibration": tech.last_calibration.isoformat(),
                "nextCalibrationDate": rec.next_calibration_date().isoformat(),
                "calibrationDue": rec.calibration_due(now),
                "operatingTime": {"hours": hours, "minutes": minutes, "formatted": f"{hours} h {minutes} min"},
                "alerts": [a.to_dict() for a in tech.alerts],
            },
            "qualityStatus": rec.cycle.to_dict(now),
        }

    def list_available_sensors(self, device_id: str) -> Optional[List[Dict[str, Any]]]:
        rec = self.store.get(device_id)
        if rec is None:
            return None
        return [
            {
                "id": name,
                "name": SENSOR_NAMES[name],
                "status": status,
                "unit": UNITS[name],
                "range": list(PHYSICAL_RANGES[name]),
                "lastCalibration": rec.technical.last_calibration.isoformat(),
            }
            for name, status in rec.technical.sensor_health.items()
        ]

    def get_parameter_history(
        self, device_id: str, parameter: str, hours: float = 24.0
    ) -> Optional[List[Dict[str, float]]]:
        """
        History points of one parameter, oldest first.

        Returns None for an unknown device.

        Raises
        ------
        ValueError
            If ``parameter`` is unsupported or ``hours`` is not a positive
            finite number.
        """
        if not math.isfinite(hours) or hours <= 0:
            raise ValueError("hours must be a positive finite number")
        if device_id not in self.store:
            return None
        points = self.history.query(device_id, parameter, hours=hours, now=self.clock())
        return [p.to_dict() for p in points]

    def supported_parameters(self) -> List[Dict[str, str]]:
        return [{"id": key, **PARAMETER_INFO[key]} for key in HISTORY_PARAMETERS]

    # --- Actions ---
    def calibrate(self, device_id: str) -> CalibrationResult:
        """
        Calibrate a device unless a refusal rule applies.

        Rules are checked in order: unknown device, maintenance mode, failed
        sensor, cooldown. Check and reset happen in one store update.
        """
        now = self.clock()

        def _attempt(rec: DeviceRecord) -> CalibrationResult:
            tech = rec.technical
            if tech.maintenance_mode:
                return CalibrationResult(
                    success=False,
                    message="Device is in maintenance mode",
                    next_calibration_date=rec.next_calibration_date(),
                    error_code=CalibrationErrorCode.MAINTENANCE_MODE,
                )

            failed = tech.failed_sensors()
            if failed:
                names = ", ".join(SENSOR_NAMES.get(p, p) for p in failed)
                return CalibrationResult(
                    success=False,
                    message=f"Sensor error: {names}",
                    next_calibration_date=rec.next_calibration_date(),
                    error_code=CalibrationErrorCode.SENSORS_ERROR,
                )

            since = (now - tech.last_calibration).total_seconds()
            if 0 <= since < self.calibration_cooldown_s:
                return CalibrationResult(
                    success=False,
                    message="Sensors were calibrated recently",
                    next_calibration_date=rec.next_calibration_date(),
                    error_code=CalibrationErrorCode.ALREADY_CALIBRATED,
                )

            self.engine.alerts.apply_calibration(rec, now)
            return CalibrationResult(
                success=True,
                message="Sensors calibrated",
                next_calibration_date=rec.next_calibration_date(),
            )

        result = self.store.update(device_id, _attempt)
        if result is None:
            return CalibrationResult(
                success=False,
                message=f"Device not found: {device_id}",
                error_code=CalibrationErrorCode.DEVICE_NOT_FOUND,
            )

        if result.success:
            logger.info("Device %s calibrated", device_id)
            rec = self.store.get(device_id)
            if rec is not None:
                self.history.record_sample(device_id, rec.sample, rec.score.wqi)
        else:
            logger.info("Calibration of %s refused: %s", device_id, result.error_code.value if result.error_code else "")
        return result

    def acknowledge_alert(self, device_id: str, alert_id: str) -> Optional[bool]:
        """
        Mark one alert as acknowledged.

        Returns
        -------
        bool or None
            None if the device is unknown, False if the alert is unknown.
        """
        return self.store.update(device_id, lambda rec: self.engine.alerts.acknowledge(rec.technical, alert_id))
