import math
from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal

GAL_TO_L = 3.78541
ML_TO_L = 0.001
LB_TO_KG = 0.453592
KG_TO_LB = 2.20462
FL_OZ_TO_L = 0.0295735

# liters per unit
_VOLUME_FACTORS = {
    "l": 1.0,
    "ml": ML_TO_L,
    "gal": GAL_TO_L,
}

# kilograms per unit
_WEIGHT_FACTORS = {
    "kg": 1.0,
    "g": 0.001,
    "lb": LB_TO_KG,
}


def round_half_up(value: float, places: int = 0) -> float:
    """Round ties toward positive infinity on the printed decimal, so 0.125 -> 0.13."""
    quantum = Decimal(1).scaleb(-places)
    rounding = ROUND_HALF_UP if value >= 0 else ROUND_HALF_DOWN
    return float(Decimal(str(value)).quantize(quantum, rounding=rounding))


def _norm(unit: str) -> str:
    return (unit or "").strip().lower()


def to_liters(value: float, unit: str) -> float:
    u = _norm(unit)
    if u not in _VOLUME_FACTORS:
        raise ValueError(f"Unknown volume unit: {unit}")
    return float(value) * _VOLUME_FACTORS[u]


def convert_volume(value: float, from_unit: str, to_unit: str) -> float:
    liters = to_liters(value, from_unit)
    u = _norm(to_unit)
    if u not in _VOLUME_FACTORS:
        raise ValueError(f"Unknown volume unit: {to_unit}")
    return liters / _VOLUME_FACTORS[u]


def to_kilograms(value: float, unit: str) -> float:
    u = _norm(unit)
    if u not in _WEIGHT_FACTORS:
        raise ValueError(f"Unknown weight unit: {unit}")
    return float(value) * _WEIGHT_FACTORS[u]


def convert_weight(value: float, from_unit: str, to_unit: str) -> float:
    kg = to_kilograms(value, from_unit)
    u = _norm(to_unit)
    if u not in _WEIGHT_FACTORS:
        raise ValueError(f"Unknown weight unit: {to_unit}")
    return kg / _WEIGHT_FACTORS[u]


def celsius_to_fahrenheit(c: float) -> float:
    return c * 9 / 5 + 32


def fahrenheit_to_celsius(f: float) -> float:
    return (f - 32) * 5 / 9


def format_volume(value: float, unit: str = "L") -> str:
    return f"{value:.2f} {unit}"


def format_weight(value: float, unit: str = "kg") -> str:
    return f"{value:.2f} {unit}"


def format_temperature(value: float, unit: str = "C") -> str:
    return f"{value:.1f}°{unit.upper()}"


def is_valid_volume(value) -> bool:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(v) and v > 0


def is_valid_weight(value) -> bool:
    return is_valid_volume(value)
