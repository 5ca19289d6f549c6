from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flask import Flask

from wqapi.core.config.yaml_config import AppConfig, load_app_config
from wqapi.core.state.history_store import ParameterHistoryStore
from wqapi.runtime.tick_thread import TickWorkerThread
from wqapi.server.api import create_app
from wqapi.services.controller import MonitoringService
from wqsim.alerts.alert_criteria import default_criteria
from wqsim.alerts.alert_policy import AlertPolicy
from wqsim.core.device_store import DeviceStateStore
from wqsim.core.simulator_engine import SimulatorEngine
from wqsim.sensors.technical import TechnicalStateUpdater
from wqsim.sensors.water import ParameterSimulator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppWiring:
    """Everything the entrypoint needs to run the system."""
    config: AppConfig
    store: DeviceStateStore
    engine: SimulatorEngine
    history: ParameterHistoryStore
    service: MonitoringService
    ticker: TickWorkerThread
    app: Flask


def build_engine(cfg: AppConfig, store: DeviceStateStore) -> SimulatorEngine:
    sim = cfg.simulation
    th = sim.thresholds

    # technical updater gets its own stream so both stay reproducible
    technical_seed = sim.seed + 1 if sim.seed is not None else None

    return SimulatorEngine(
        store=store,
        simulator=ParameterSimulator(cycle_params=sim.quality_cycle, seed=sim.seed),
        technical=TechnicalStateUpdater(seed=technical_seed),
        alerts=AlertPolicy(
            criteria=default_criteria(
                battery_band=th.battery_band,
                quality_warning=th.quality_warning,
                quality_critical=th.quality_critical,
            )
        ),
    )


def build_app_system(config_path: Optional[str] = None, cfg: Optional[AppConfig] = None) -> AppWiring:
    cfg = cfg or load_app_config(config_path)
    now = datetime.now()

    # --- STATE ---
    store = DeviceStateStore()
    history = ParameterHistoryStore(max_points=cfg.history.max_points)

    # --- ENGINE ---
    engine = build_engine(cfg, store)
    engine.add_listener(history.record)

    # --- SERVICE ---
    service = MonitoringService(
        store=store,
        engine=engine,
        history=history,
        calibration_cooldown_s=cfg.calibration.cooldown_s,
    )
    for seed in cfg.devices:
        record = engine.register(seed, now=now)
        history.record_sample(record.device_id, record.sample, record.score.wqi)

    # --- RUNTIME ---
    ticker = TickWorkerThread(engine=engine, interval_s=cfg.simulation.tick_interval_s)

    # --- HTTP ---
    app = create_app(service)

    logger.info("System built: %d devices, tick every %.0fs", len(store), cfg.simulation.tick_interval_s)
    return AppWiring(config=cfg, store=store, engine=engine, history=history, service=service, ticker=ticker, app=app)
