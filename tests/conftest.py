"""
Shared test factories.

Fixtures here return *factory functions* so each test can build devices with
exactly the fields it cares about. Everything uses fixed naive datetimes and
seeded RNGs; nothing touches the network or the wall clock.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import pytest

from wqapi.core.state.history_store import ParameterHistoryStore
from wqapi.services.controller import MonitoringService
from wqsim.core.device_record import DeviceRecord
from wqsim.core.device_store import DeviceStateStore
from wqsim.core.simulator_engine import SimulatorEngine
from wqsim.domain.models import (
    Baseline,
    DeviceConfig,
    DeviceSeed,
    PowerType,
    ReliabilityProfile,
    TechnicalState,
)
from wqsim.sensors.technical import TechnicalStateUpdater
from wqsim.sensors.water import ParameterSimulator

T0 = datetime(2026, 1, 1, 12, 0, 0)


def build_seed(
    device_id: str = "dev-1",
    baseline: Optional[Baseline] = None,
    power_type: PowerType = PowerType.MAINS,
    battery_level: float = 100.0,
    signal_strength: float = -40.0,
    last_calibration: Optional[datetime] = None,
    reliability: Optional[ReliabilityProfile] = None,
    is_online: bool = True,
) -> DeviceSeed:
    """Build a DeviceSeed with sensible defaults."""
    return DeviceSeed(
        config=DeviceConfig(
            id=device_id,
            name=f"Device {device_id}",
            location="Lab",
            baseline=baseline or Baseline(ph=7.2, temperature=20.0, tds=300.0, turbidity=0.8),
            reliability=reliability or ReliabilityProfile(),
        ),
        technical=TechnicalState(
            power_type=power_type,
            battery_level=battery_level,
            signal_strength=signal_strength,
            last_calibration=last_calibration or datetime(2025, 12, 20, 9, 0, 0),
        ),
        is_online=is_online,
    )


@pytest.fixture
def make_seed() -> Callable[..., DeviceSeed]:
    return build_seed


@pytest.fixture
def make_record() -> Callable[..., DeviceRecord]:
    """Factory: ``make_record(now=T0, rng_seed=1, **seed_kwargs)``."""

    def _make(now: datetime = T0, rng_seed: int = 1, **kwargs) -> DeviceRecord:
        return DeviceRecord.create(build_seed(**kwargs), now, random.Random(rng_seed))

    return _make


@pytest.fixture
def store() -> DeviceStateStore:
    return DeviceStateStore()


@dataclass
class FakeClock:
    """Settable time source for services that take a ``clock`` callable."""

    now: datetime = T0

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(clock: FakeClock) -> MonitoringService:
    """Seeded service holding one mains device ``"a"`` registered at T0."""
    store = DeviceStateStore()
    engine = SimulatorEngine(
        store=store,
        simulator=ParameterSimulator(seed=1),
        technical=TechnicalStateUpdater(seed=2),
    )
    svc = MonitoringService(store=store, engine=engine, history=ParameterHistoryStore(), clock=clock)
    svc.add_device(build_seed("a"))
    return svc
