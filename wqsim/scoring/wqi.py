"""
Water Quality Index scoring.

This is the single implementation of the WQI formula. The simulator, the
service layer and the HTTP API all call :func:`score`; nothing else in the
code base computes a WQI.

Algorithm
---------
1. Four independent sub-scores in [0, 100] from piecewise-linear curves:
   - pH: best band 6.8-7.5, zero outside [5.5, 9.0]
   - temperature: best band 10-30 C, floor of 30 far outside
   - tds: 100 up to 150 ppm, zero above 1000 ppm
   - turbidity: 100 up to 0.3 NTU, zero above 10 NTU
2. Weighted sum (turbidity 0.50, tds 0.40, pH 0.08, temperature 0.02).
3. Critical caps: tds > 1000 caps at 29; otherwise tds > 500, turbidity > 5
   or pH outside [6.0, 9.0] caps at 39.
4. Round and clamp to [0, 100].
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple, Union

from wqsim.domain.constants import SCORING_DEFAULTS

WEIGHTS = {
    "turbidity": 0.50,
    "tds": 0.40,
    "ph": 0.08,
    "temperature": 0.02,
}

VERY_CRITICAL_TDS = 1000.0
CRITICAL_TDS = 500.0
CRITICAL_TURBIDITY = 5.0
CRITICAL_PH_RANGE = (6.0, 9.0)
VERY_CRITICAL_CAP = 29
CRITICAL_CAP = 39

# Accepted spellings per canonical key; first hit wins.
_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "ph": ("pH", "ph", "PH"),
    "temperature": ("temperature", "temp"),
    "tds": ("tds", "TDS"),
    "turbidity": ("turbidity",),
}

SampleLike = Union[Mapping[str, Any], Any]


@dataclass(frozen=True)
class SubScores:
    """Per-parameter sub-scores, each in [0, 100]."""

    ph: float
    temperature: float
    tds: float
    turbidity: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "pH": round(self.ph, 1),
            "temperature": round(self.temperature, 1),
            "tds": round(self.tds, 1),
            "turbidity": round(self.turbidity, 1),
        }


@dataclass(frozen=True)
class ScoreResult:
    """
    Result of scoring one sample.

    Parameters
    ----------
    wqi
        Integer Water Quality Index in [0, 100].
    subscores
        Per-parameter sub-scores used for the weighted sum.
    """

    wqi: int
    subscores: SubScores

    @property
    def category(self) -> str:
        return classify(self.wqi)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wqi": self.wqi,
            "category": self.category,
            "subscores": self.subscores.to_dict(),
        }


def _clamp_score(v: float) -> float:
    return max(0.0, min(100.0, v))


def score_ph(ph: float) -> float:
    if 6.8 <= ph <= 7.5:
        s = 100 - abs(7.15 - ph) * 8
    elif 6.5 <= ph < 6.8:
        s = 85 - (6.8 - ph) * 25
    elif 7.5 < ph <= 8.0:
        s = 85 - (ph - 7.5) * 25
    elif 6.0 <= ph < 6.5:
        s = 60 - (6.5 - ph) * 30
    elif 8.0 < ph <= 8.5:
        s = 60 - (ph - 8.0) * 30
    elif 5.5 <= ph < 6.0:
        s = 30 - (6.0 - ph) * 30
    elif 8.5 < ph <= 9.0:
        s = 30 - (ph - 8.5) * 30
    else:
        s = 0.0
    return _clamp_score(s)


def score_temperature(temperature: float) -> float:
    t = temperature
    if 10 <= t <= 30:
        s = 100 - abs(20 - t) * 1.5
    elif 0 <= t < 10:
        s = 85 - (10 - t) * 2
    elif 30 < t <= 40:
        s = 85 - (t - 30) * 2
    elif -5 <= t < 0:
        s = 70 - abs(t) * 5
    elif 40 < t <= 50:
        s = 65 - (t - 40) * 3
    else:
        s = max(30.0, 50 - abs(t - 25) * 2)
    return _clamp_score(s)


def score_tds(tds: float) -> float:
    if tds <= 150:
        s = 100.0
    elif tds <= 250:
        s = 85 - ((tds - 150) / 100) * 20
    elif tds <= 400:
        s = 65 - ((tds - 250) / 150) * 30
    elif tds <= 600:
        s = 35 - ((tds - 400) / 200) * 25
    elif tds <= 800:
        s = 10 - ((tds - 600) / 200) * 10
    elif tds <= 1000:
        s = 5 - ((tds - 800) / 200) * 5
    else:
        s = 0.0
    return _clamp_score(s)


def score_turbidity(turbidity: float) -> float:
    if turbidity <= 0.3:
        s = 100.0
    elif turbidity <= 0.6:
        s = 85 - ((turbidity - 0.3) / 0.3) * 20
    elif turbidity <= 1.0:
        s = 65 - ((turbidity - 0.6) / 0.4) * 25
    elif turbidity <= 2.0:
        s = 40 - ((turbidity - 1.0) / 1.0) * 25
    elif turbidity <= 5.0:
        s = 15 - ((turbidity - 2.0) / 3.0) * 15
    elif turbidity <= 10.0:
        s = 5 - ((turbidity - 5.0) / 5.0) * 5
    else:
        s = 0.0
    return _clamp_score(s)


def _read_field(sample: SampleLike, key: str) -> float:
    """
    Read one parameter from a mapping or an object, falling back to the default.

    Missing keys, ``None``, non-numeric values and non-finite numbers all
    resolve to ``SCORING_DEFAULTS[key]``.
    """
    raw: Any = None
    for alias in _FIELD_ALIASES[key]:
        if isinstance(sample, Mapping):
            if alias in sample:
                raw = sample[alias]
                break
        elif hasattr(sample, alias):
            raw = getattr(sample, alias)
            break

    if isinstance(raw, bool) or raw is None:
        return SCORING_DEFAULTS[key]
    try:
        v = float(raw)
    except (TypeError, ValueError):
        return SCORING_DEFAULTS[key]
    if not math.isfinite(v):
        return SCORING_DEFAULTS[key]
    return v


def score(sample: SampleLike) -> ScoreResult:
    """
    Score a water sample.

    Pure and total: any mapping (``{"pH": .., "temperature": .., "tds": ..,
    "turbidity": ..}``) or object with matching attributes is accepted.
    Missing or invalid fields default to pH 7, temperature 20, tds 300 and
    turbidity 1.

    Parameters
    ----------
    sample
        Mapping or object carrying the four parameters.

    Returns
    -------
    ScoreResult
        Integer WQI in [0, 100] and the per-parameter sub-scores.
    """
    ph = _read_field(sample, "ph")
    temperature = _read_field(sample, "temperature")
    tds = _read_field(sample, "tds")
    turbidity = _read_field(sample, "turbidity")

    subs = SubScores(
        ph=score_ph(ph),
        temperature=score_temperature(temperature),
        tds=score_tds(tds),
        turbidity=score_turbidity(turbidity),
    )

    wqi = (
        WEIGHTS["turbidity"] * subs.turbidity
        + WEIGHTS["tds"] * subs.tds
        + WEIGHTS["ph"] * subs.ph
        + WEIGHTS["temperature"] * subs.temperature
    )

    lo_ph, hi_ph = CRITICAL_PH_RANGE
    if tds > VERY_CRITICAL_TDS:
        wqi = min(wqi, VERY_CRITICAL_CAP)
    elif tds > CRITICAL_TDS or turbidity > CRITICAL_TURBIDITY or ph < lo_ph or ph > hi_ph:
        wqi = min(wqi, CRITICAL_CAP)

    return ScoreResult(wqi=int(max(0, min(100, round(wqi)))), subscores=subs)


def classify(wqi: float) -> str:
    """Map a WQI value to its quality category label."""
    if wqi >= 80:
        return "excellent"
    if wqi >= 60:
        return "good"
    if wqi >= 40:
        return "fair"
    if wqi >= 20:
        return "poor"
    return "very_poor"
