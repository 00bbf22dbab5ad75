"""ABV and gravity helpers for cider fermentation."""

ABV_FACTOR = 131.25
MIN_SPECIFIC_GRAVITY = 0.980
MAX_SPECIFIC_GRAVITY = 1.200


def _check_gravity_pair(og: float, fg: float) -> None:
    if og is None or fg is None or og <= 0 or fg <= 0:
        raise ValueError("Specific gravity readings must be positive numbers")
    if og < fg:
        raise ValueError("Original gravity must be greater than or equal to final gravity")


def calculate_abv(og: float, fg: float) -> float:
    _check_gravity_pair(og, fg)
    if not is_valid_specific_gravity(og):
        raise ValueError("Original gravity must be between 0.980 and 1.200")
    if not is_valid_specific_gravity(fg):
        raise ValueError("Final gravity must be between 0.980 and 1.200")
    return round((og - fg) * ABV_FACTOR, 2)


def calculate_potential_abv(og: float) -> float:
    """ABV if the must ferments fully dry (FG 1.000)."""
    return calculate_abv(og, 1.0)


def brix_to_specific_gravity(brix: float) -> float:
    if brix < 0 or brix > 50:
        raise ValueError("Brix must be between 0 and 50")
    sg = 1 + brix / (258.6 - (brix / 258.2) * 227.1)
    return round(sg, 3)


def calculate_abv_from_brix(og_brix: float, fg_brix: float) -> float:
    return calculate_abv(brix_to_specific_gravity(og_brix), brix_to_specific_gravity(fg_brix))


def calculate_attenuation(og: float, fg: float) -> float:
    """Apparent attenuation in percent."""
    _check_gravity_pair(og, fg)
    if og == 1.0:
        return 0.0
    return round((og - fg) / (og - 1.0) * 100, 2)


def is_valid_specific_gravity(sg: float) -> bool:
    return sg is not None and MIN_SPECIFIC_GRAVITY <= sg <= MAX_SPECIFIC_GRAVITY


def get_abv_category(abv: float) -> str:
    if abv < 0.5:
        return "Non-alcoholic"
    if abv < 3.5:
        return "Low alcohol"
    if abv < 7:
        return "Standard cider"
    if abv < 12:
        return "Strong cider"
    return "Very strong cider"
