"""
Forced and natural carbonation math.

CO2 solubility factors are volumes of CO2 per absolute PSI at a given
temperature (Celsius). Pressures are gauge PSI unless noted.
"""

import math
from typing import Dict, Literal

from core.units import round_half_up

CarbonationLevel = Literal["still", "petillant", "sparkling"]
SugarType = Literal["sucrose", "dextrose", "honey"]

ATMOSPHERIC_PRESSURE_PSI = 14.7

TEMPERATURE_FACTORS: Dict[float, float] = {
    0: 0.11417,
    2: 0.10568,
    4: 0.09474,
    6: 0.08899,
    8: 0.08458,
    10: 0.08016,
    12: 0.07470,
    15: 0.06923,
    18: 0.06417,
    20: 0.05911,
    22: 0.05506,
    25: 0.04959,
}

CO2_RANGES = {
    "still": {"min": 0.0, "max": 1.0, "description": "Still (no carbonation)"},
    "petillant": {"min": 1.0, "max": 2.5, "description": "Pétillant (lightly sparkling)"},
    "sparkling": {"min": 2.5, "max": 4.0, "description": "Sparkling (fully carbonated)"},
}

SAFETY_LIMITS = {
    "max_pressure_psi": 50.0,
    "min_temperature_c": -5.0,
    "max_temperature_c": 25.0,
    "optimal_min_temperature_c": 0.0,
    "optimal_max_temperature_c": 10.0,
}

# grams per liter needed for one volume of CO2
PRIMING_SUGAR_FACTORS: Dict[str, float] = {
    "sucrose": 4.0,
    "dextrose": 3.8,
    "honey": 3.5,
}


def get_temperature_factor(temperature_c: float) -> float:
    temps = sorted(TEMPERATURE_FACTORS)
    if temperature_c in TEMPERATURE_FACTORS:
        return TEMPERATURE_FACTORS[temperature_c]
    if temperature_c <= temps[0]:
        return TEMPERATURE_FACTORS[temps[0]]
    if temperature_c >= temps[-1]:
        return TEMPERATURE_FACTORS[temps[-1]]

    for lower, upper in zip(temps, temps[1:]):
        if lower <= temperature_c <= upper:
            ratio = (temperature_c - lower) / (upper - lower)
            f_low = TEMPERATURE_FACTORS[lower]
            f_high = TEMPERATURE_FACTORS[upper]
            return f_low + (f_high - f_low) * ratio

    return TEMPERATURE_FACTORS[temps[-1]]


def calculate_co2_volumes(pressure_psi: float, temperature_c: float) -> float:
    factor = get_temperature_factor(temperature_c)
    return round_half_up((pressure_psi + ATMOSPHERIC_PRESSURE_PSI) * factor, 2)


def calculate_required_pressure(target_co2: float, temperature_c: float) -> float:
    factor = get_temperature_factor(temperature_c)
    required = target_co2 / factor - ATMOSPHERIC_PRESSURE_PSI
    return round_half_up(max(0.0, required), 2)


def estimate_carbonation_duration(current_co2: float, target_co2: float, pressure_psi: float) -> float:
    """Rough headspace carbonation time in hours.

    Baseline is one day per volume at 15 PSI; higher pressure shortens it
    with the square root of the pressure ratio.
    """
    delta = target_co2 - current_co2
    if delta <= 0:
        return 0.0
    pressure_factor = math.sqrt(15 / max(1.0, pressure_psi))
    return round_half_up(delta * 24 * pressure_factor, 1)


def get_carbonation_level(co2_volumes: float) -> CarbonationLevel:
    if co2_volumes < CO2_RANGES["still"]["max"]:
        return "still"
    if co2_volumes < CO2_RANGES["petillant"]["max"]:
        return "petillant"
    return "sparkling"


def is_pressure_safe(pressure_psi: float, max_pressure_psi: float = SAFETY_LIMITS["max_pressure_psi"]) -> bool:
    return 0 <= pressure_psi <= max_pressure_psi


def is_temperature_safe(temperature_c: float) -> bool:
    return SAFETY_LIMITS["min_temperature_c"] <= temperature_c <= SAFETY_LIMITS["max_temperature_c"]


def validate_temperature(temperature_c: float) -> dict:
    if temperature_c < SAFETY_LIMITS["min_temperature_c"]:
        return {"is_valid": False, "is_optimal": False, "message": "Temperature too low (risk of freezing)"}
    if temperature_c > SAFETY_LIMITS["max_temperature_c"]:
        return {"is_valid": False, "is_optimal": False, "message": "Temperature too high (poor CO2 absorption)"}
    if SAFETY_LIMITS["optimal_min_temperature_c"] <= temperature_c <= SAFETY_LIMITS["optimal_max_temperature_c"]:
        return {"is_valid": True, "is_optimal": True, "message": None}
    return {
        "is_valid": True,
        "is_optimal": False,
        "message": "Temperature is valid but not optimal (best: 0-10°C)",
    }


def _sugar_factor(sugar_type: str) -> float:
    key = (sugar_type or "").strip().lower()
    if key not in PRIMING_SUGAR_FACTORS:
        raise ValueError(f"Unknown priming sugar type: {sugar_type}")
    return PRIMING_SUGAR_FACTORS[key]


def calculate_priming_sugar(
    target_co2: float,
    volume_l: float,
    residual_co2: float = 0.0,
    sugar_type: str = "sucrose",
) -> float:
    """Grams of priming sugar for bottle conditioning."""
    factor = _sugar_factor(sugar_type)
    delta = target_co2 - residual_co2
    if delta <= 0:
        return 0.0
    return round_half_up(delta * factor * volume_l, 1)


def calculate_co2_from_sugar(sugar_g_per_l: float, residual_co2: float = 0.0, sugar_type: str = "sucrose") -> float:
    factor = _sugar_factor(sugar_type)
    return round_half_up(residual_co2 + sugar_g_per_l / factor, 2)
