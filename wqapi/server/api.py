from __future__ import annotations

from typing import Any, Dict, Tuple

from flask import Flask, Response, jsonify, request

from wqapi.services.controller import MonitoringService
from wqsim.domain.models import CalibrationErrorCode

CALIBRATION_STATUS = {
    CalibrationErrorCode.DEVICE_NOT_FOUND: 404,
    CalibrationErrorCode.ALREADY_CALIBRATED: 409,
    CalibrationErrorCode.MAINTENANCE_MODE: 423,
    CalibrationErrorCode.SENSORS_ERROR: 503,
}


def _error(message: str, status: int, **extra: Any) -> Tuple[Response, int]:
    body: Dict[str, Any] = {"error": message}
    body.update(extra)
    return jsonify(body), status


def _device_arg() -> str:
    return (request.args.get("device") or "").strip()


def create_app(service: MonitoringService) -> Flask:
    """
    Build the Flask app exposing the monitoring service as JSON.

    Unknown devices map to 404, invalid query parameters to 400 and
    calibration refusals to 404 / 409 / 423 / 503.
    """
    app = Flask(__name__)
    app.json.sort_keys = False

    @app.after_request
    def _cors(resp: Response) -> Response:
        # the dashboard is served from another origin
        resp.headers["Access-Control-Allow-Origin"] = "*"
        resp.headers["Access-Control-Allow-Headers"] = "Content-Type"
        resp.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        return resp

    @app.get("/health")
    def health():
        now = service.clock().isoformat(timespec="seconds")
        return jsonify({"status": "ok", "devices": len(service.list_devices()), "time": now})

    @app.get("/api/devices")
    def devices():
        return jsonify({"devices": service.list_device_summaries()})

    @app.get("/api/getWQI")
    def get_wqi():
        device_id = _device_arg()
        if not device_id:
            return _error("missing 'device' parameter", 400)
        data = service.get_wqi(device_id)
        if data is None:
            return _error(f"device not found: {device_id}", 404)
        return jsonify(data)

    @app.get("/api/getSample")
    def get_sample():
        device_id = _device_arg()
        if not device_id:
            return _error("missing 'device' parameter", 400)
        sample = service.get_sample(device_id)
        if sample is None:
            return _error(f"device not found: {device_id}", 404)
        return jsonify(sample.to_dict())

    @app.get("/api/getDeviceStatus")
    def get_device_status():
        device_id = _device_arg()
        if not device_id:
            return _error("missing 'device' parameter", 400)
        status = service.get_device_status(device_id)
        if status is None:
            return _error(f"device not found: {device_id}", 404)
        return jsonify(status)

    @app.get("/api/getQualityStatus")
    def get_quality_status():
        device_id = _device_arg()
        if not device_id:
            return _error("missing 'device' parameter", 400)
        quality = service.quality_status(device_id)
        if quality is None:
            return _error(f"device not found: {device_id}", 404)
        return jsonify({"deviceId": device_id, **quality})

    @app.post("/api/calibrateSensors")
    def calibrate_sensors():
        device_id = _device_arg()
        if not device_id:
            return _error("missing 'device' parameter", 400, success=False, errorCode="INVALID_PARAMS")
        result = service.calibrate(device_id)
        status = 200 if result.success else CALIBRATION_STATUS.get(result.error_code, 400)
        return jsonify(result.to_dict()), status

    @app.post("/api/acknowledgeAlert")
    def acknowledge_alert():
        device_id = _device_arg()
        alert_id = (request.args.get("alert") or "").strip()
        if not device_id or not alert_id:
            return _error("missing 'device' or 'alert' parameter", 400)
        found = service.acknowledge_alert(device_id, alert_id)
        if found is None:
            return _error(f"device not found: {device_id}", 404)
        if not found:
            return _error(f"alert not found: {alert_id}", 404)
        return jsonify({"success": True, "alertId": alert_id})

    @app.get("/api/listAvailableSensors")
    def list_available_sensors():
        device_id = _device_arg()
        if not device_id:
            return _error("missing 'device' parameter", 400)
        sensors = service.list_available_sensors(device_id)
        if sensors is None:
            return _error(f"device not found: {device_id}", 404)
        return jsonify({"deviceId": device_id, "sensors": sensors})

    @app.get("/api/getParameterHistory")
    def get_parameter_history():
        device_id = _device_arg()
        parameter = (request.args.get("parameter") or "").strip()
        if not device_id or not parameter:
            return _error("missing 'device' or 'parameter' parameter", 400)
        try:
            hours = float(request.args.get("hours", 24))
        except ValueError:
            return _error("'hours' must be a number", 400)

        try:
            points = service.get_parameter_history(device_id, parameter, hours=hours)
        except ValueError as e:
            return _error(str(e), 400)
        if points is None:
            return _error(f"device not found: {device_id}", 404)
        return jsonify({"deviceId": device_id, "parameter": parameter.lower(), "hours": hours, "data": points})

    @app.get("/api/getSupportedParameters")
    def get_supported_parameters():
        return jsonify({"parameters": service.supported_parameters()})

    return app
