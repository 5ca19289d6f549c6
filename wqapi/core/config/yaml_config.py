from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from wqsim.alerts.alert_policy import new_alert_id
from wqsim.domain.constants import DEFAULT_CALIBRATION_INTERVAL_S, PARAMETERS
from wqsim.domain.models import (
    Alert,
    AlertSeverity,
    Baseline,
    DeviceConfig,
    DeviceSeed,
    PowerType,
    ReliabilityProfile,
    TechnicalState,
)
from wqsim.environment.quality_cycle import QualityCycleParams


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server bind settings."""
    host: str = "127.0.0.1"
    port: int = 1880


@dataclass(frozen=True)
class ThresholdConfig:
    """Alert thresholds."""
    quality_warning: float = 0.4
    quality_critical: float = 0.7
    battery_band: Tuple[float, float] = (15.0, 20.0)


@dataclass(frozen=True)
class SimulationConfig:
    """Tick timing, RNG seed and quality-cycle tuning."""
    tick_interval_s: float = 300.0
    seed: Optional[int] = None
    quality_cycle: QualityCycleParams = field(default_factory=QualityCycleParams)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)


@dataclass(frozen=True)
class CalibrationConfig:
    """Calibration cooldown (ALREADY_CALIBRATED window)."""
    cooldown_s: float = 3600.0


@dataclass(frozen=True)
class HistoryConfig:
    """Parameter history retention."""
    max_points: int = 48


@dataclass(frozen=True)
class LoggingConfig:
    """Log level and optional log directory."""
    level: str = "INFO"
    log_dir: Optional[str] = None


@dataclass(frozen=True)
class AppConfig:
    """
    Root application configuration loaded from YAML.

    This is the single source of truth for device seeds and runtime-tunable
    values; nothing is patched into code or serialized flows.
    """
    devices: List[DeviceSeed]
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError("config.yaml must contain a YAML mapping at the root")
    return data


def _resolve_default_config_path() -> Path:
    """
    Resolve config.yaml location.

    Priority:
    1) APP_CONFIG env var if provided (a .env file may set it)
    2) ./config.yaml in current working directory
    """
    env = os.getenv("APP_CONFIG")
    if env:
        return Path(env).expanduser().resolve()
    return Path("config.yaml").resolve()


def parse_timestamp(value: Any, field_name: str) -> datetime:
    """
    Parse an ISO-8601 timestamp (or a YAML-native datetime) into naive local time.

    Raises
    ------
    ValueError
        If the value is not a timestamp.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"{field_name}: invalid timestamp {value!r}") from e
    else:
        raise ValueError(f"{field_name}: expected an ISO-8601 timestamp, got {value!r}")

    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def _pair(value: Any, default: Tuple[float, float], field_name: str) -> Tuple[float, float]:
    if value is None:
        return default
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"{field_name}: expected a [low, high] pair")
    lo, hi = float(value[0]), float(value[1])
    if lo > hi:
        raise ValueError(f"{field_name}: low {lo} is greater than high {hi}")
    return lo, hi


def _parse_baseline(raw: Any, prefix: str) -> Baseline:
    if not isinstance(raw, dict):
        raise ValueError(f"{prefix}.baseline: expected a mapping")
    try:
        return Baseline(
            ph=float(raw["ph"]),
            temperature=float(raw["temperature"]),
            tds=float(raw["tds"]),
            turbidity=float(raw["turbidity"]),
        )
    except KeyError as e:
        raise ValueError(f"{prefix}.baseline: missing field {e.args[0]!r}") from e


def _parse_technical(raw: Dict[str, Any], prefix: str, loaded_at: datetime) -> TechnicalState:
    power = str(raw.get("power_type", "mains"))
    try:
        power_type = PowerType(power)
    except ValueError as e:
        raise ValueError(f"{prefix}.technical.power_type: unknown power type {power!r}") from e

    health = {p: "online" for p in PARAMETERS}
    for name, status in (raw.get("sensor_health") or {}).items():
        if name not in health:
            raise ValueError(f"{prefix}.technical.sensor_health: unknown sensor {name!r}")
        health[name] = str(status)

    last_cal = raw.get("last_calibration")
    interval_days = raw.get("calibration_interval_days")

    tech = TechnicalState(
        power_type=power_type,
        battery_level=float(raw.get("battery_level", 100.0)),
        signal_strength=float(raw.get("signal_strength", -50.0)),
        last_calibration=(
            parse_timestamp(last_cal, f"{prefix}.technical.last_calibration") if last_cal is not None else loaded_at
        ),
        calibration_interval_s=(
            float(interval_days) * 24 * 3600 if interval_days is not None else DEFAULT_CALIBRATION_INTERVAL_S
        ),
        sensor_health=health,
        firmware_version=str(raw.get("firmware_version", "")),
        hardware_version=str(raw.get("hardware_version", "")),
        maintenance_mode=bool(raw.get("maintenance_mode", False)),
    )
    if raw.get("sensor_status") is not None:
        tech.sensor_status = str(raw["sensor_status"])
    return tech


def _parse_alerts(raw: Any, prefix: str, loaded_at: datetime) -> List[Alert]:
    alerts: List[Alert] = []
    for i, item in enumerate(raw or []):
        try:
            alerts.append(
                Alert(
                    id=new_alert_id(loaded_at),
                    type=str(item["type"]),
                    severity=AlertSeverity(str(item.get("severity", "warning"))),
                    message=str(item.get("message", "")),
                    timestamp=loaded_at,
                )
            )
        except (KeyError, ValueError) as e:
            raise ValueError(f"{prefix}.alerts[{i}]: invalid alert entry") from e
    return alerts


def parse_device(raw: Any, index: int = 0, loaded_at: Optional[datetime] = None) -> DeviceSeed:
    """
    Convert one YAML device entry into a :class:`DeviceSeed`.

    Raises
    ------
    ValueError
        If a required field is missing or a value is invalid; the message names
        the offending field.
    """
    prefix = f"devices[{index}]"
    if not isinstance(raw, dict):
        raise ValueError(f"{prefix}: expected a mapping")
    if "id" not in raw:
        raise ValueError(f"{prefix}.id: missing")
    loaded_at = loaded_at or datetime.now()

    rel = raw.get("reliability") or {}
    config = DeviceConfig(
        id=str(raw["id"]),
        name=str(raw.get("name", raw["id"])),
        location=str(raw.get("location", "")),
        baseline=_parse_baseline(raw.get("baseline"), prefix),
        reliability=ReliabilityProfile(
            offline_probability=float(rel.get("offline_probability", 0.0)),
            recovery_probability=float(rel.get("recovery_probability", 0.0)),
        ),
    )

    technical = _parse_technical(raw.get("technical") or {}, prefix, loaded_at)
    technical.alerts = _parse_alerts(raw.get("alerts"), prefix, loaded_at)

    return DeviceSeed(config=config, technical=technical, is_online=bool(raw.get("is_online", True)))


def _parse_simulation(raw: Dict[str, Any]) -> SimulationConfig:
    qc = raw.get("quality_cycle") or {}
    d = QualityCycleParams()
    cycle = QualityCycleParams(
        onset_probability=float(qc.get("onset_probability", d.onset_probability)),
        onset_window_s=float(qc.get("onset_window_s", d.onset_window_s)),
        min_stable_s=float(qc.get("min_stable_s", d.min_stable_s)),
        stable_decay=float(qc.get("stable_decay", d.stable_decay)),
        target_range=_pair(qc.get("target_range"), d.target_range, "simulation.quality_cycle.target_range"),
        event_duration_s=_pair(
            qc.get("event_duration_s"), d.event_duration_s, "simulation.quality_cycle.event_duration_s"
        ),
        degrading_s=_pair(qc.get("degrading_s"), d.degrading_s, "simulation.quality_cycle.degrading_s"),
        recovering_s=_pair(qc.get("recovering_s"), d.recovering_s, "simulation.quality_cycle.recovering_s"),
    )

    th = raw.get("thresholds") or {}
    thresholds = ThresholdConfig(
        quality_warning=float(th.get("quality_warning", 0.4)),
        quality_critical=float(th.get("quality_critical", 0.7)),
        battery_band=_pair(th.get("battery_band"), (15.0, 20.0), "simulation.thresholds.battery_band"),
    )
    if thresholds.quality_warning >= thresholds.quality_critical:
        raise ValueError("simulation.thresholds: quality_warning must be below quality_critical")

    tick = float(raw.get("tick_interval_s", 300.0))
    if tick <= 0:
        raise ValueError("simulation.tick_interval_s: must be positive")

    seed = raw.get("seed")
    return SimulationConfig(
        tick_interval_s=tick,
        seed=int(seed) if seed is not None else None,
        quality_cycle=cycle,
        thresholds=thresholds,
    )


def load_app_config(path: Optional[str] = None) -> AppConfig:
    """
    Load application configuration from YAML and convert into typed config objects.

    ``WQ_HOST``, ``WQ_PORT`` and ``LOG_LEVEL`` environment variables override
    the file's server and logging settings.

    Parameters
    ----------
    path
        Explicit path to config.yaml. If None, uses default resolution.

    Returns
    -------
    AppConfig
        Parsed and validated configuration.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If required fields are missing or invalid.
    """
    cfg_path = Path(path).expanduser().resolve() if path else _resolve_default_config_path()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config not found: {cfg_path}")

    raw = _read_yaml(cfg_path)
    loaded_at = datetime.now()

    # ---- devices ----
    devices_raw = raw.get("devices") or []
    if not isinstance(devices_raw, list):
        raise ValueError("devices: expected a list")
    devices = [parse_device(item, i, loaded_at) for i, item in enumerate(devices_raw)]
    ids = [d.config.id for d in devices]
    dupes = sorted({i for i in ids if ids.count(i) > 1})
    if dupes:
        raise ValueError(f"devices: duplicate ids {dupes}")

    # ---- simulation ----
    simulation = _parse_simulation(raw.get("simulation") or {})

    # ---- server ----
    s = raw.get("server") or {}
    server = ServerConfig(
        host=str(os.getenv("WQ_HOST") or s.get("host", "127.0.0.1")),
        port=int(os.getenv("WQ_PORT") or s.get("port", 1880)),
    )

    # ---- calibration / history ----
    c = raw.get("calibration") or {}
    calibration = CalibrationConfig(cooldown_s=float(c.get("cooldown_s", 3600.0)))

    h = raw.get("history") or {}
    history = HistoryConfig(max_points=int(h.get("max_points", 48)))
    if history.max_points <= 0:
        raise ValueError("history.max_points: must be positive")

    # ---- logging ----
    lg = raw.get("logging") or {}
    logging_cfg = LoggingConfig(
        level=str(os.getenv("LOG_LEVEL") or lg.get("level", "INFO")).upper(),
        log_dir=lg.get("log_dir"),
    )

    return AppConfig(
        devices=devices,
        simulation=simulation,
        server=server,
        calibration=calibration,
        history=history,
        logging=logging_cfg,
    )
