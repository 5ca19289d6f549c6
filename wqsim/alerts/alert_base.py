"""
Alert evaluation contracts (context and decisions).

This module defines the data structures that form the contract between:

- Alert criteria (stateless evaluators) producing -> class:`AlertDecision`
- The alert policy (stateful, owns the bounded per-device alert list)
  consuming decisions and emitting -> class:`AlertEvent` transitions

Notes
-----
- The alert ``type`` is the deduplication key: a device holds at most one
  alert per type.
- ``should_be_active=False`` means "remove the alert of this type if present";
  criteria that want an alert to persist simply emit no decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Sequence

from wqsim.domain.models import AlertSeverity


@dataclass(frozen=True)
class AlertContext:
    """
    Context passed into alert evaluation.

    Parameters
    ----------
    now
        Evaluation timestamp for the current tick.
    """

    now: datetime


@dataclass(frozen=True)
class AlertDecision:
    """
    Result of evaluating a single alert condition for one device.

    Parameters
    ----------
    alert_type
        Deduplication key (e.g. ``"battery_critical"``).
    severity
        Severity used when the alert is raised.
    should_be_active
        True to raise (if absent), False to remove (if present).
    message
        Human-readable message used when the alert is raised.
    value
        Optional scalar associated with the condition (battery level,
        degradation level, ...).
    """

    alert_type: str
    severity: AlertSeverity
    should_be_active: bool
    message: str = ""
    value: Optional[float] = None


class AlertCriteria(Protocol):
    """
    Protocol interface for alert criteria evaluation.

    Criteria should be **stateless** and derive everything from the record and
    the context.

    Methods
    -------
    evaluate(record, ctx)
        Evaluate one device record and return zero or more decisions.
    """

    def evaluate(self, record: object, ctx: AlertContext) -> Sequence[AlertDecision]:
        ...
