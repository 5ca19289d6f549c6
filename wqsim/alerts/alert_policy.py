"""
Alert policy.

This module owns the per-device alert list: it turns stateless
`AlertDecision` outputs (from `AlertCriteria`) into insertions and removals on
`TechnicalState.alerts` and reports each change as an `AlertEvent`.

Invariants
----------
- At most one alert per ``type`` per device (deduplication by type, not by
  content).
- At most ``capacity`` alerts per device; the oldest are evicted first.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from wqsim.alerts.alert_base import AlertContext, AlertCriteria
from wqsim.alerts.alert_criteria import default_criteria
from wqsim.core.device_record import DeviceRecord
from wqsim.core.device_store import DeviceStateStore
from wqsim.domain.constants import ALL_SENSORS_ONLINE, MAX_ALERTS, PARAMETERS
from wqsim.domain.events import AlertEvent, AlertTransition
from wqsim.domain.models import Alert, AlertSeverity, TechnicalState, epoch_ms

logger = logging.getLogger(__name__)

# substrings of alert types removed by calibration
CALIBRATION_CLEARED_TYPES = ("water_quality", "calibration", "sensor_drift")


def new_alert_id(now: datetime) -> str:
    return f"alert_{epoch_ms(now)}_{uuid.uuid4().hex[:9]}"


@dataclass
class AlertPolicy:
    """
    Maintains the bounded, deduplicated alert list of each device.

    Parameters
    ----------
    criteria
        Evaluators run by :meth:`evaluate` on every tick, in order.
    capacity
        Maximum number of alerts retained per device.
    """

    criteria: Sequence[AlertCriteria] = field(default_factory=default_criteria)
    capacity: int = MAX_ALERTS

    def raise_alert(
        self,
        technical: TechnicalState,
        alert_type: str,
        severity: AlertSeverity,
        message: str,
        now: datetime,
    ) -> Optional[Alert]:
        """
        Insert an alert unless one of the same type is already present.

        Parameters
        ----------
        technical
            Technical state whose alert list is modified in place.
        alert_type
            Deduplication key.
        severity
            Alert severity.
        message
            Human-readable description.
        now
            Alert timestamp.

        Returns
        -------
        Alert or None
            The inserted alert, or None if it was deduplicated.
        """
        if technical.find_alert(alert_type) is not None:
            return None

        alert = Alert(id=new_alert_id(now), type=alert_type, severity=severity, message=message, timestamp=now)
        technical.alerts.append(alert)
        if len(technical.alerts) > self.capacity:
            technical.alerts = technical.alerts[-self.capacity:]
        return alert

    def resolve(self, technical: TechnicalState, alert_type: str) -> Optional[Alert]:
        """Remove the alert of ``alert_type``; returns it, or None if absent."""
        existing = technical.find_alert(alert_type)
        if existing is None:
            return None
        technical.alerts = [a for a in technical.alerts if a.type != alert_type]
        return existing

    def acknowledge(self, technical: TechnicalState, alert_id: str) -> bool:
        for i, a in enumerate(technical.alerts):
            if a.id == alert_id:
                technical.alerts[i] = dataclasses.replace(a, acknowledged=True)
                return True
        return False

    def evaluate(self, record: DeviceRecord, now: datetime) -> List[AlertEvent]:
        """
        Run all criteria against one record and apply their decisions.

        Parameters
        ----------
        record
            Device record; its alert list is modified in place.
        now
            Evaluation timestamp.

        Returns
        -------
        list of AlertEvent
            RAISED / CLEARED transitions applied on this call.
        """
        ctx = AlertContext(now=now)
        events: List[AlertEvent] = []
        tech = record.technical

        for crit in self.criteria:
            for d in crit.evaluate(record, ctx):
                if d.should_be_active:
                    alert = self.raise_alert(tech, d.alert_type, d.severity, d.message, now)
                    if alert is None:
                        continue
                    logger.warning("Device %s: alert %s raised: %s", record.device_id, alert.type, alert.message)
                    events.append(AlertEvent(record.device_id, AlertTransition.RAISED, alert, now))
                else:
                    removed = self.resolve(tech, d.alert_type)
                    if removed is None:
                        continue
                    logger.info("Device %s: alert %s cleared", record.device_id, removed.type)
                    events.append(AlertEvent(record.device_id, AlertTransition.CLEARED, removed, now))

        return events

    def apply_calibration(self, record: DeviceRecord, now: datetime) -> None:
        """
        Reset a record to its calibrated state.

        Clears quality, calibration and drift alerts, resets the quality cycle
        to ``stable``, resets the current values and sample to the baseline,
        marks every sensor online and stamps ``last_calibration``. Long-term
        trends are kept.
        """
        tech = record.technical
        tech.alerts = [a for a in tech.alerts if not any(t in a.type for t in CALIBRATION_CLEARED_TYPES)]
        tech.last_calibration = now
        tech.sensor_status = ALL_SENSORS_ONLINE
        tech.sensor_health = {p: "online" for p in PARAMETERS}
        record.cycle.reset(now)
        record.reset_to_baseline(now)

    def calibrate(self, store: DeviceStateStore, device_id: str, now: datetime) -> bool:
        """
        Calibrate a device held in ``store``.

        Returns
        -------
        bool
            False only if the device is unknown.
        """
        def _calibrate(rec: DeviceRecord) -> bool:
            self.apply_calibration(rec, now)
            return True

        if not store.update(device_id, _calibrate):
            return False
        logger.info("Device %s calibrated", device_id)
        return True
