"""
Event domain models.

An `AlertEvent` represents *what happened* to a device's alert list at a
specific time, while the alert list on `TechnicalState` represents *what is
currently true*. A `DeviceReading` is the per-device outcome of one
simulation tick.

Events are typically used for:
- logging
- feeding the parameter history
- reporting back to the caller of a tick
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List

from wqsim.domain.models import Alert, QualityPhase, WaterSample


class AlertTransition(str, Enum):
    """
    Alert lifecycle transition.

    Members
    -------
    RAISED : str
        Alert was inserted into the device's list.
    CLEARED : str
        Alert was removed because its condition no longer holds.
    """

    RAISED = "RAISED"
    CLEARED = "CLEARED"


@dataclass(frozen=True)
class AlertEvent:
    """
    Alert transition on one device.

    Parameters
    ----------
    device_id
        Device whose alert list changed.
    transition
        RAISED or CLEARED.
    alert
        The alert that was inserted or removed.
    timestamp
        When the transition happened.
    """

    device_id: str
    transition: AlertTransition
    alert: Alert
    timestamp: datetime


@dataclass(frozen=True)
class DeviceReading:
    """
    Result of one device's tick pipeline.

    Parameters
    ----------
    device_id
        Device identifier.
    sample
        Published sample for this tick.
    wqi
        Score of ``sample``.
    phase
        Quality-cycle phase after the tick.
    degradation_level
        Degradation level after the tick, [0, 1].
    is_online
        Online flag after the technical update.
    alert_events
        Alert transitions produced during the tick.
    """

    device_id: str
    sample: WaterSample
    wqi: int
    phase: QualityPhase
    degradation_level: float
    is_online: bool
    alert_events: List[AlertEvent] = field(default_factory=list)
