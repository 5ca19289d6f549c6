from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, Optional

from wqsim.core.device_record import DeviceRecord
from wqsim.core.sim_context import SimContext
from wqsim.domain.constants import DEGRADATION_IMPACT, NOISE_AMPLITUDE, PARAMETERS, RETURN_FORCE
from wqsim.domain.models import WaterSample, clamp_parameter
from wqsim.environment.quality_cycle import QualityCycle, QualityCycleParams
from wqsim.scoring.wqi import score

logger = logging.getLogger(__name__)


@dataclass
class ParameterSimulator:
    """
    Produces one water sample per device per tick.

    Behavior
    --------
    - Advances the device's quality cycle
    - Computes each parameter's long-term trend target
    - Pulls the unrounded current value toward the target (mean reversion)
      and adds uniform noise
    - Overlays the degradation shift on the published sample only
    - Clamps, rounds and scores the result

    Parameters
    ----------
    cycle_params
        Quality-cycle tuning shared by all devices.
    noise_amplitude
        Half-width of the uniform per-tick noise per parameter.
    return_force
        Fraction of the distance to the trend target recovered per tick.
    seed
        RNG seed for deterministic simulation runs (None: system entropy).

    Notes
    -----
    Values are clamped after the trend, after the noise and after the
    degradation overlay, so NaN or out-of-range values cannot reach the
    stored sample or the score.
    """

    cycle_params: QualityCycleParams = field(default_factory=QualityCycleParams)
    noise_amplitude: Dict[str, float] = field(default_factory=lambda: dict(NOISE_AMPLITUDE))
    return_force: float = RETURN_FORCE
    seed: Optional[int] = None

    _rng: random.Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)

    @property
    def rng(self) -> random.Random:
        return self._rng

    def generate_sample(self, record: DeviceRecord, ctx: SimContext) -> WaterSample:
        """
        Advance one device by one tick and publish its new sample.

        Parameters
        ----------
        record
            Device record; mutated in place (cycle, current values, sample,
            score).
        ctx
            Tick context.

        Returns
        -------
        WaterSample
            The new published sample.
        """
        now = ctx.now
        transition = record.cycle.step(now, ctx.dt_s, self._rng, self.cycle_params)
        if transition is not None:
            logger.info(
                "Device %s: quality phase -> %s (target %.1f%%)",
                record.device_id,
                transition.value,
                record.cycle.target_degradation * 100.0,
            )

        elapsed = record.elapsed_s(now)
        baseline = record.config.baseline.values()

        for name in PARAMETERS:
            target = clamp_parameter(name, record.trends[name].value_at(elapsed), baseline[name])
            current = clamp_parameter(name, record.current.get(name, target), target)
            amp = float(self.noise_amplitude.get(name, 0.0))
            nxt = current + (target - current) * self.return_force + self._rng.uniform(-amp, amp)
            record.current[name] = clamp_parameter(name, nxt, target)

        published = self.apply_degradation(record.current, record.cycle)
        sample = WaterSample.from_values(published, now, baseline)

        record.sample = sample
        record.score = score(sample)
        return sample

    def apply_degradation(self, values: Dict[str, float], cycle: QualityCycle) -> Dict[str, float]:
        """
        Shift values in proportion to the cycle's degradation level.

        pH moves in the event's direction (acidic or alkaline); temperature,
        tds and turbidity only increase. Each magnitude is drawn per tick from
        its impact band.
        """
        out = dict(values)
        level = cycle.degradation_level
        if level <= 0:
            return out

        for name, (lo, hi) in DEGRADATION_IMPACT.items():
            shift = level * self._rng.uniform(lo, hi)
            if name == "ph":
                shift *= cycle.ph_direction
            out[name] = clamp_parameter(name, out[name] + shift, out[name])
        return out
