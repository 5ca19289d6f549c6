"""
Domain constants shared by the scoring function and the simulator.

Physical ranges are the hard limits every stored sample is clamped to.
Parameter keys are the canonical lower-case names used in every mapping.
"""

PARAMETERS = ("ph", "temperature", "tds", "turbidity")

PHYSICAL_RANGES = {
    "ph": (0.0, 14.0),
    "temperature": (0.0, 50.0),  # C
    "tds": (0.0, 3000.0),  # ppm
    "turbidity": (0.0, 100.0),  # NTU
}

# decimals kept on the published sample (tds is an integer ppm value)
PRECISION = {
    "ph": 2,
    "temperature": 1,
    "tds": 0,
    "turbidity": 1,
}

UNITS = {
    "ph": "",
    "temperature": "°C",
    "tds": "ppm",
    "turbidity": "NTU",
}

# substituted for missing / non-numeric fields when scoring
SCORING_DEFAULTS = {
    "ph": 7.0,
    "temperature": 20.0,
    "tds": 300.0,
    "turbidity": 1.0,
}

# half-width of the uniform per-tick noise
NOISE_AMPLITUDE = {
    "ph": 0.02,
    "temperature": 0.3,
    "tds": 8.0,
    "turbidity": 0.05,
}

# fraction of the distance to the trend target recovered per tick
RETURN_FORCE = 0.02

# per-unit-degradation impact bands (low, high); pH direction is chosen per event
DEGRADATION_IMPACT = {
    "ph": (0.05, 0.15),
    "temperature": (0.2, 0.5),
    "tds": (15.0, 40.0),
    "turbidity": (0.1, 0.3),
}

MAX_ALERTS = 8

BATTERY_RANGE = (0.0, 100.0)
SIGNAL_RANGE_DBM = (-90.0, -20.0)
SIGNAL_STABLE_DBM = -50.0
SIGNAL_MODERATE_DBM = -70.0

DEFAULT_CALIBRATION_INTERVAL_S = 30 * 24 * 3600.0

SENSOR_NAMES = {
    "ph": "pH sensor",
    "temperature": "Temperature sensor",
    "tds": "TDS sensor",
    "turbidity": "Turbidity sensor",
}

ALL_SENSORS_ONLINE = "All sensors online"
