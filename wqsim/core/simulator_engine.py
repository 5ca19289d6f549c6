"""
Simulation tick engine.

One call to :meth:`SimulatorEngine.step` runs the per-device pipeline for every
registered device, in registration order:

    ParameterSimulator.generate_sample -> TechnicalStateUpdater.update
    -> AlertPolicy.evaluate

Each device's pipeline runs inside ``DeviceStateStore.update`` so the record
is committed in one atomic swap. A device whose pipeline raises is logged,
reported in ``TickResult.failed`` and left untouched; the remaining devices
still tick.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from wqsim.alerts.alert_policy import AlertPolicy
from wqsim.core.device_record import DeviceRecord
from wqsim.core.device_store import DeviceStateStore
from wqsim.core.sim_context import SimContext
from wqsim.domain.events import DeviceReading
from wqsim.domain.models import DeviceSeed
from wqsim.sensors.technical import TechnicalStateUpdater
from wqsim.sensors.water import ParameterSimulator

logger = logging.getLogger(__name__)

ReadingListener = Callable[[DeviceReading, datetime], None]


@dataclass(frozen=True)
class TickResult:
    """
    Outcome of one engine step.

    Parameters
    ----------
    now
        Tick timestamp.
    readings
        One reading per device whose pipeline completed.
    failed
        Ids of devices whose pipeline raised.
    """

    now: datetime
    readings: List[DeviceReading]
    failed: List[str]


@dataclass
class SimulatorEngine:
    """
    Drives all devices held by a store through one tick at a time.

    Parameters
    ----------
    store
        Device state store.
    simulator
        Water-parameter simulator.
    technical
        Power/radio updater.
    alerts
        Alert policy.
    listeners
        Called with each completed reading after the tick (history, logging).
        A failing listener is logged and does not affect the tick.
    """

    store: DeviceStateStore
    simulator: ParameterSimulator = field(default_factory=ParameterSimulator)
    technical: TechnicalStateUpdater = field(default_factory=TechnicalStateUpdater)
    alerts: AlertPolicy = field(default_factory=AlertPolicy)
    listeners: List[ReadingListener] = field(default_factory=list)

    _tick_count: int = field(default=0, init=False, repr=False)

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def add_listener(self, listener: ReadingListener) -> None:
        self.listeners.append(listener)

    def register(self, seed: DeviceSeed, now: Optional[datetime] = None) -> DeviceRecord:
        """
        Create and store the record for a new device.

        Trends are drawn from the simulator's RNG so a seeded simulator yields
        reproducible devices.

        Raises
        ------
        ValueError
            If the device id is already registered.
        """
        if now is None:
            now = datetime.now()
        record = DeviceRecord.create(seed, now, self.simulator.rng)
        self.store.add(record)
        return record

    def step(self, now: Optional[datetime] = None) -> TickResult:
        """
        Run one tick for every registered device.

        Parameters
        ----------
        now
            Tick timestamp (defaults to the current time).

        Returns
        -------
        TickResult
            Completed readings and ids of failed devices.
        """
        if now is None:
            now = datetime.now()

        readings: List[DeviceReading] = []
        failed: List[str] = []

        for device_id in self.store.ids():
            try:
                reading = self.store.update(device_id, lambda rec: self._run_pipeline(rec, now))
            except Exception:
                logger.exception("Tick failed for device %s", device_id)
                failed.append(device_id)
                continue

            # removed between ids() and update()
            if reading is None:
                continue
            readings.append(reading)

        self._tick_count += 1
        self._notify(readings, now)

        logger.debug("Tick %d: %d devices updated, %d failed", self._tick_count, len(readings), len(failed))
        return TickResult(now=now, readings=readings, failed=failed)

    def _run_pipeline(self, record: DeviceRecord, now: datetime) -> DeviceReading:
        dt_s = max(0.0, (now - record.last_update).total_seconds())
        ctx = SimContext(now=now, dt_s=dt_s)

        sample = self.simulator.generate_sample(record, ctx)
        self.technical.update(record, ctx)
        events = self.alerts.evaluate(record, now)
        record.last_update = now

        return DeviceReading(
            device_id=record.device_id,
            sample=sample,
            wqi=record.score.wqi,
            phase=record.cycle.phase,
            degradation_level=record.cycle.degradation_level,
            is_online=record.is_online,
            alert_events=events,
        )

    def _notify(self, readings: List[DeviceReading], now: datetime) -> None:
        for listener in list(self.listeners):
            for reading in readings:
                try:
                    listener(reading, now)
                except Exception:
                    logger.exception("Reading listener failed for device %s", reading.device_id)
