from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from wqapi.services.controller import CalibrationResult
from wqsim.domain.models import CalibrationErrorCode

# statuses whose JSON body is a structured calibration refusal
_CALIBRATION_REFUSAL_STATUS = (404, 409, 423, 503)


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class ClientConfig:
    """
    Configuration for the monitoring HTTP client.

    Parameters
    ----------
    base_url
        API root, e.g. ``http://localhost:1880/api``.
    timeout_s
        Per-request timeout in seconds.
    verify_tls
        Whether to verify TLS certificates.
    """

    base_url: str = "http://localhost:1880/api"
    timeout_s: float = 5.0
    verify_tls: bool = True


class WaterQualityClient:
    """
    HTTP client for the monitoring API.

    Notes
    -----
    - This class performs side effects (network I/O).
    - HTTP errors are surfaced via ``raise_for_status()``, except for
      calibration refusals, which are decoded into :class:`CalibrationResult`.
    """

    def __init__(self, cfg: Optional[ClientConfig] = None):
        self._cfg = cfg or ClientConfig()

    def _url(self, path: str) -> str:
        return f"{self._cfg.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        r = requests.get(
            self._url(path),
            params=params,
            timeout=self._cfg.timeout_s,
            verify=self._cfg.verify_tls,
        )
        r.raise_for_status()
        return r.json()

    def list_devices(self) -> List[Dict[str, Any]]:
        return self._get("devices")["devices"]

    def get_current_wqi(self, device_id: str) -> Dict[str, Any]:
        return self._get("getWQI", {"device": device_id})

    def get_sample(self, device_id: str) -> Dict[str, Any]:
        return self._get("getSample", {"device": device_id})

    def get_device_status(self, device_id: str) -> Dict[str, Any]:
        return self._get("getDeviceStatus", {"device": device_id})

    def get_parameter_history(self, device_id: str, parameter: str, hours: float = 24.0) -> List[Dict[str, Any]]:
        data = self._get("getParameterHistory", {"device": device_id, "parameter": parameter, "hours": hours})
        return data["data"]

    def get_supported_parameters(self) -> List[Dict[str, Any]]:
        return self._get("getSupportedParameters")["parameters"]

    def list_available_sensors(self, device_id: str) -> List[Dict[str, Any]]:
        return self._get("listAvailableSensors", {"device": device_id})["sensors"]

    def calibrate_sensors(self, device_id: str) -> CalibrationResult:
        """
        Request calibration of one device.

        Raises
        ------
        requests.HTTPError
            For statuses other than success and the calibration refusals.
        requests.RequestException
            For network-related errors.
        """
        r = requests.post(
            self._url("calibrateSensors"),
            params={"device": device_id},
            timeout=self._cfg.timeout_s,
            verify=self._cfg.verify_tls,
        )
        if r.status_code in _CALIBRATION_REFUSAL_STATUS:
            body = r.json()
            code = body.get("errorCode")
            return CalibrationResult(
                success=False,
                message=str(body.get("message", "")),
                next_calibration_date=_parse_date(body.get("nextCalibrationDate")),
                error_code=CalibrationErrorCode(code) if code else None,
            )

        r.raise_for_status()
        body = r.json()
        return CalibrationResult(
            success=bool(body.get("success")),
            message=str(body.get("message", "")),
            next_calibration_date=_parse_date(body.get("nextCalibrationDate")),
        )

    def acknowledge_alert(self, device_id: str, alert_id: str) -> bool:
        r = requests.post(
            self._url("acknowledgeAlert"),
            params={"device": device_id, "alert": alert_id},
            timeout=self._cfg.timeout_s,
            verify=self._cfg.verify_tls,
        )
        if r.status_code == 404:
            return False
        r.raise_for_status()
        return True
