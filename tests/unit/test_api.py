"""
Unit tests for wqapi.server.api (Flask routes).

Requests go through Flask's test client against a seeded MonitoringService;
no server is started and no socket is opened.
"""

from __future__ import annotations

import pytest

from wqapi.server.api import create_app
from wqsim.domain.models import AlertSeverity


@pytest.fixture
def client(service):
    app = create_app(service)
    app.testing = True
    return app.test_client()


def test_health(client, clock) -> None:
    clock.advance(minutes=7)
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"
    assert resp.get_json()["devices"] == 1
    assert resp.get_json()["time"] == "2026-01-01T12:07:00"


def test_cors_headers_are_set(client) -> None:
    resp = client.get("/api/devices")
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_list_devices(client) -> None:
    body = client.get("/api/devices").get_json()
    assert [d["id"] for d in body["devices"]] == ["a"]


def test_get_wqi(client) -> None:
    resp = client.get("/api/getWQI?device=a")
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["deviceId"] == "a"
    assert 0 <= body["wqi"] <= 100
    assert "pH" in body["parameters"]


@pytest.mark.parametrize(
    "path",
    ["/api/getWQI", "/api/getSample", "/api/getDeviceStatus", "/api/getQualityStatus", "/api/listAvailableSensors"],
)
def test_device_routes_validate_device_param(client, path: str) -> None:
    assert client.get(path).status_code == 400
    assert client.get(f"{path}?device=").status_code == 400
    assert client.get(f"{path}?device=nope").status_code == 404
    assert client.get(f"{path}?device=a").status_code == 200


def test_get_sample_shape(client) -> None:
    body = client.get("/api/getSample?device=a").get_json()
    assert body == {"pH": 7.2, "temperature": 20.0, "tds": 300, "turbidity": 0.8, "timestamp": body["timestamp"]}


def test_device_status_shape(client) -> None:
    body = client.get("/api/getDeviceStatus?device=a").get_json()
    assert body["deviceId"] == "a"
    assert body["technical"]["connectionStatus"] == "stable"
    assert body["technical"]["operatingTime"]["formatted"] == "0 h 0 min"


def test_quality_status(client, clock) -> None:
    clock.advance(minutes=2)
    body = client.get("/api/getQualityStatus?device=a").get_json()

    assert body["deviceId"] == "a"
    assert body["phase"] == "stable"
    assert body["degradationLevel"] == 0.0
    assert body["timeInCurrentPhase"] == 120_000
    assert body["activeEvents"] == []


def test_list_available_sensors(client) -> None:
    body = client.get("/api/listAvailableSensors?device=a").get_json()
    assert len(body["sensors"]) == 4


# --- calibration ---
def test_calibrate_success_then_conflict(client) -> None:
    ok = client.post("/api/calibrateSensors?device=a")
    assert ok.status_code == 200
    assert ok.get_json()["success"] is True
    assert "nextCalibrationDate" in ok.get_json()

    again = client.post("/api/calibrateSensors?device=a")
    assert again.status_code == 409
    assert again.get_json()["errorCode"] == "ALREADY_CALIBRATED"


def test_calibrate_unknown_device_is_404(client) -> None:
    resp = client.post("/api/calibrateSensors?device=nope")
    assert resp.status_code == 404
    assert resp.get_json()["errorCode"] == "DEVICE_NOT_FOUND"


def test_calibrate_missing_device_is_400(client) -> None:
    resp = client.post("/api/calibrateSensors")
    assert resp.status_code == 400
    assert resp.get_json()["errorCode"] == "INVALID_PARAMS"


def test_calibrate_maintenance_is_423(service, client, make_seed) -> None:
    seed = make_seed("m")
    seed.technical.maintenance_mode = True
    service.add_device(seed)

    assert client.post("/api/calibrateSensors?device=m").status_code == 423


def test_calibrate_sensor_error_is_503(service, client, make_seed) -> None:
    seed = make_seed("e")
    seed.technical.sensor_health["ph"] = "offline"
    service.add_device(seed)

    resp = client.post("/api/calibrateSensors?device=e")
    assert resp.status_code == 503
    assert resp.get_json()["errorCode"] == "SENSORS_ERROR"


def test_calibrate_requires_post(client) -> None:
    assert client.get("/api/calibrateSensors?device=a").status_code == 405


# --- alerts ---
def test_acknowledge_alert(service, client, clock) -> None:
    alert = service.store.update(
        "a",
        lambda rec: service.engine.alerts.raise_alert(rec.technical, "x", AlertSeverity.WARNING, "", clock.now),
    )

    resp = client.post(f"/api/acknowledgeAlert?device=a&alert={alert.id}")
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "alertId": alert.id}

    assert client.post("/api/acknowledgeAlert?device=a&alert=missing").status_code == 404
    assert client.post(f"/api/acknowledgeAlert?device=nope&alert={alert.id}").status_code == 404
    assert client.post("/api/acknowledgeAlert?device=a").status_code == 400


# --- history ---
def test_parameter_history(service, client, clock) -> None:
    service.engine.add_listener(service.history.record)
    clock.advance(minutes=5)
    service.engine.step(clock.now)

    resp = client.get("/api/getParameterHistory?device=a&parameter=pH&hours=1")
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["parameter"] == "ph"
    assert body["hours"] == 1.0
    assert len(body["data"]) == 2


def test_parameter_history_huge_window_returns_everything(client) -> None:
    resp = client.get("/api/getParameterHistory?device=a&parameter=wqi&hours=100000000")

    assert resp.status_code == 200
    assert len(resp.get_json()["data"]) == 1


def test_parameter_history_time_window(service, client, clock) -> None:
    clock.advance(hours=3)
    body = client.get("/api/getParameterHistory?device=a&parameter=wqi&hours=2").get_json()
    assert body["data"] == []


@pytest.mark.parametrize(
    "query, status",
    [
        ("device=a", 400),
        ("parameter=ph", 400),
        ("device=a&parameter=oxygen", 400),
        ("device=a&parameter=ph&hours=abc", 400),
        ("device=a&parameter=ph&hours=0", 400),
        ("device=a&parameter=ph&hours=inf", 400),
        ("device=a&parameter=ph&hours=nan", 400),
        ("device=nope&parameter=ph", 404),
    ],
)
def test_parameter_history_errors(client, query: str, status: int) -> None:
    assert client.get(f"/api/getParameterHistory?{query}").status_code == status


def test_supported_parameters(client) -> None:
    body = client.get("/api/getSupportedParameters").get_json()
    assert [p["id"] for p in body["parameters"]] == ["wqi", "ph", "temperature", "tds", "turbidity"]
