from __future__ import annotations

import math
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from wqsim.domain.models import QualityPhase, epoch_ms


class PollutionType(str, Enum):
    """Kind of gradual pollution event that starts a degrading phase."""

    GRADUAL_POLLUTION = "gradual_pollution"
    SLOW_CHEMICAL_CHANGE = "slow_chemical_change"
    SEASONAL_VARIATION = "seasonal_variation"
    EQUIPMENT_AGING = "equipment_aging"
    WATER_SOURCE_CHANGE = "water_source_change"


PHASE_DESCRIPTIONS = {
    QualityPhase.STABLE: "Stable water quality",
    QualityPhase.DEGRADING: "Slow quality degradation",
    QualityPhase.RECOVERING: "Slow quality recovery",
}


@dataclass(frozen=True)
class QualityCycleParams:
    """Tuning of the stable -> degrading -> recovering state machine.

    Parameters
    ----------
    onset_probability
        Chance of an event per ``onset_window_s`` of stable time.
    onset_window_s
        Reference window for ``onset_probability``; the per-tick chance is
        scaled by ``dt_s / onset_window_s``.
    min_stable_s
        Minimum time in ``stable`` before an event can start.
    stable_decay
        Per-tick decrease of the degradation level while stable.
    target_range
        Bounds for the peak degradation of an event.
    event_duration_s
        Bounds for the lifetime of the recorded pollution event.
    degrading_s, recovering_s
        Bounds for the ease-in and ease-out windows.
    """

    onset_probability: float = 0.01
    onset_window_s: float = 30.0
    min_stable_s: float = 30.0
    stable_decay: float = 0.001
    target_range: Tuple[float, float] = (0.05, 0.20)
    event_duration_s: Tuple[float, float] = (900.0, 2100.0)
    degrading_s: Tuple[float, float] = (300.0, 900.0)
    recovering_s: Tuple[float, float] = (600.0, 1200.0)

    def onset_chance(self, dt_s: float) -> float:
        if self.onset_window_s <= 0:
            return self.onset_probability
        return max(0.0, min(1.0, self.onset_probability * dt_s / self.onset_window_s))


@dataclass(frozen=True)
class PollutionEvent:
    """A recorded pollution event; informational, expires after ``duration_s``."""

    id: str
    type: PollutionType
    started_at: datetime
    duration_s: float
    intensity: float

    def is_active(self, now: datetime) -> bool:
        return (now - self.started_at).total_seconds() < self.duration_s

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "startTime": epoch_ms(self.started_at),
            "duration": int(self.duration_s * 1000),
            "intensity": round(self.intensity, 4),
        }


@dataclass
class QualityCycle:
    """Per-device degradation/recovery state machine.

    Responsibilities
    ----------------
    - Decide when a pollution event starts (stable phase)
    - Ease the degradation level up to the target (sine) and back (cosine)
    - Keep the list of non-expired pollution events

    Notes
    -----
    Window lengths are drawn once when the event starts, so the easing curve
    is continuous for the whole phase.
    """

    phase: QualityPhase
    phase_start: datetime
    degradation_level: float = 0.0
    target_degradation: float = 0.0
    degrading_s: float = 0.0
    recovering_s: float = 0.0
    # -1 acidic, +1 alkaline; chosen per event
    ph_direction: int = 1
    events: List[PollutionEvent] = field(default_factory=list)

    @classmethod
    def stable(cls, now: datetime) -> "QualityCycle":
        return cls(phase=QualityPhase.STABLE, phase_start=now)

    def time_in_phase_s(self, now: datetime) -> float:
        return max(0.0, (now - self.phase_start).total_seconds())

    def describe(self) -> str:
        return PHASE_DESCRIPTIONS.get(self.phase, "Unknown state")

    def active_events(self, now: datetime) -> List[PollutionEvent]:
        return [e for e in self.events if e.is_active(now)]

    def start_degradation(self, now: datetime, rng: random.Random, params: QualityCycleParams) -> PollutionEvent:
        """Enter ``degrading`` and record a new pollution event."""
        self.phase = QualityPhase.DEGRADING
        self.phase_start = now
        self.target_degradation = rng.uniform(*params.target_range)
        self.degrading_s = rng.uniform(*params.degrading_s)
        self.recovering_s = rng.uniform(*params.recovering_s)
        self.ph_direction = -1 if rng.random() < 0.5 else 1

        event = PollutionEvent(
            id=f"degradation_{epoch_ms(now)}_{uuid.uuid4().hex[:9]}",
            type=rng.choice(list(PollutionType)),
            started_at=now,
            duration_s=rng.uniform(*params.event_duration_s),
            intensity=self.target_degradation,
        )
        self.events.append(event)
        return event

    def step(self, now: datetime, dt_s: float, rng: random.Random, params: QualityCycleParams) -> Optional[QualityPhase]:
        """
        Advance the state machine to ``now``.

        Parameters
        ----------
        now
            Current simulation timestamp.
        dt_s
            Seconds since the previous tick (scales the onset chance).
        rng
            Random source owned by the simulator.
        params
            Cycle tuning.

        Returns
        -------
        QualityPhase or None
            The new phase if a transition happened on this tick.
        """
        self.events = self.active_events(now)
        elapsed = self.time_in_phase_s(now)

        if self.phase == QualityPhase.STABLE:
            self.degradation_level = max(0.0, self.degradation_level - params.stable_decay)
            if elapsed >= params.min_stable_s and rng.random() < params.onset_chance(dt_s):
                self.start_degradation(now, rng, params)
                return self.phase
            return None

        if self.phase == QualityPhase.DEGRADING:
            progress = 1.0 if self.degrading_s <= 0 else min(1.0, elapsed / self.degrading_s)
            self.degradation_level = math.sin(progress * math.pi / 2.0) * self.target_degradation
            if progress >= 1.0:
                self.phase = QualityPhase.RECOVERING
                self.phase_start = now
                return self.phase
            return None

        # recovering
        progress = 1.0 if self.recovering_s <= 0 else min(1.0, elapsed / self.recovering_s)
        self.degradation_level = math.cos(progress * math.pi / 2.0) * self.target_degradation
        if progress >= 1.0:
            self.phase = QualityPhase.STABLE
            self.phase_start = now
            self.degradation_level = 0.0
            return self.phase
        return None

    def reset(self, now: datetime) -> None:
        """Back to ``stable`` with zero degradation and no events."""
        self.phase = QualityPhase.STABLE
        self.phase_start = now
        self.degradation_level = 0.0
        self.target_degradation = 0.0
        self.degrading_s = 0.0
        self.recovering_s = 0.0
        self.events = []

    def to_dict(self, now: datetime) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "degradationLevel": round(self.degradation_level, 4),
            "phaseDescription": self.describe(),
            "timeInCurrentPhase": int(self.time_in_phase_s(now) * 1000),
            "activeEvents": [e.to_dict() for e in self.active_events(now)],
        }
