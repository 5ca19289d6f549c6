from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Optional, Tuple

from wqsim.core.device_record import DeviceRecord
from wqsim.core.sim_context import SimContext
from wqsim.domain.constants import (
    BATTERY_RANGE,
    SIGNAL_MODERATE_DBM,
    SIGNAL_RANGE_DBM,
    SIGNAL_STABLE_DBM,
)
from wqsim.domain.models import ConnectionStatus, PowerType

logger = logging.getLogger(__name__)


def connection_label(signal_dbm: float) -> ConnectionStatus:
    """Derive the connection label from signal strength."""
    if signal_dbm > SIGNAL_STABLE_DBM:
        return ConnectionStatus.STABLE
    if signal_dbm > SIGNAL_MODERATE_DBM:
        return ConnectionStatus.MODERATE
    return ConnectionStatus.WEAK


@dataclass
class TechnicalStateUpdater:
    """
    Per-tick drift of a device's power and radio state.

    Behavior
    --------
    - Battery devices drain ``battery_drain`` per tick
    - Solar devices charge during daylight hours and drain slowly otherwise
    - Mains devices keep their battery level
    - Signal does a bounded random walk; the connection label follows it
    - Devices with a flaky reliability profile drop offline and recover at
      random

    Parameters
    ----------
    battery_drain
        Per-tick decrement for battery-powered devices.
    solar_charge, solar_drain
        Per-tick increment during daylight / decrement at night.
    daylight_hours
        Inclusive (first, last) local hour considered daylight.
    signal_step_dbm
        Half-width of the per-tick signal random walk.
    seed
        RNG seed for deterministic simulation runs.
    """

    battery_drain: float = 0.1
    solar_charge: float = 0.2
    solar_drain: float = 0.05
    daylight_hours: Tuple[int, int] = (6, 18)
    signal_step_dbm: float = 2.5
    seed: Optional[int] = None

    _rng: random.Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)

    def update(self, record: DeviceRecord, ctx: SimContext) -> None:
        tech = record.technical
        lo, hi = BATTERY_RANGE

        if tech.power_type == PowerType.BATTERY:
            tech.battery_level = max(lo, tech.battery_level - self.battery_drain)
        elif tech.power_type == PowerType.SOLAR:
            first, last = self.daylight_hours
            if first <= ctx.now.hour <= last:
                tech.battery_level = min(hi, tech.battery_level + self.solar_charge)
            else:
                tech.battery_level = max(lo, tech.battery_level - self.solar_drain)

        s_lo, s_hi = SIGNAL_RANGE_DBM
        step = self._rng.uniform(-self.signal_step_dbm, self.signal_step_dbm)
        tech.signal_strength = max(s_lo, min(s_hi, tech.signal_strength + step))

        profile = record.config.reliability
        if record.is_online:
            if profile.is_flaky and self._rng.random() < profile.offline_probability:
                record.is_online = False
                logger.warning("Device %s went offline", record.device_id)
        elif profile.recovery_probability > 0 and self._rng.random() < profile.recovery_probability:
            record.is_online = True
            logger.info("Device %s is back online", record.device_id)

        if record.is_online:
            tech.connection_status = connection_label(tech.signal_strength)
        else:
            tech.connection_status = ConnectionStatus.DISCONNECTED
