import pytest

from core.carbonation import (
    SAFETY_LIMITS,
    calculate_co2_from_sugar,
    calculate_co2_volumes,
    calculate_priming_sugar,
    calculate_required_pressure,
    estimate_carbonation_duration,
    get_carbonation_level,
    get_temperature_factor,
    is_pressure_safe,
    is_temperature_safe,
    validate_temperature,
)


def test_temperature_factor_exact_and_interpolated():
    assert get_temperature_factor(4) == 0.09474
    assert get_temperature_factor(3) == pytest.approx((0.10568 + 0.09474) / 2)


def test_temperature_factor_clamps_outside_table():
    assert get_temperature_factor(-3) == 0.11417
    assert get_temperature_factor(30) == 0.04959


def test_required_pressure_and_back():
    psi = calculate_required_pressure(2.5, 4)
    assert psi == pytest.approx(11.69, abs=0.01)
    assert calculate_co2_volumes(psi, 4) == pytest.approx(2.5, abs=0.01)


def test_required_pressure_never_negative():
    assert calculate_required_pressure(0.5, 2) == 0.0


def test_duration_baseline_is_a_day_per_volume_at_15_psi():
    assert estimate_carbonation_duration(0, 2.5, 15) == 60.0
    assert estimate_carbonation_duration(2.0, 1.5, 15) == 0.0
    assert estimate_carbonation_duration(0, 1, 60) == 12.0


@pytest.mark.parametrize(
    "volumes, level",
    [(0.5, "still"), (1.0, "petillant"), (2.49, "petillant"), (2.5, "sparkling"), (3.8, "sparkling")],
)
def test_carbonation_level(volumes, level):
    assert get_carbonation_level(volumes) == level


def test_pressure_and_temperature_safety():
    assert is_pressure_safe(30)
    assert not is_pressure_safe(SAFETY_LIMITS["max_pressure_psi"] + 1)
    assert not is_pressure_safe(20, max_pressure_psi=15)
    assert not is_pressure_safe(-1)
    assert is_temperature_safe(-5)
    assert not is_temperature_safe(26)


def test_validate_temperature_messages():
    assert validate_temperature(4) == {"is_valid": True, "is_optimal": True, "message": None}

    warm = validate_temperature(15)
    assert warm["is_valid"] and not warm["is_optimal"]
    assert "not optimal" in warm["message"]

    frozen = validate_temperature(-10)
    assert not frozen["is_valid"]
    assert "freezing" in frozen["message"]


def test_priming_sugar_by_type():
    assert calculate_priming_sugar(2.5, 20) == 200.0
    assert calculate_priming_sugar(2.5, 20, sugar_type="honey") == 175.0
    assert calculate_priming_sugar(2.5, 20, residual_co2=3.0) == 0.0


def test_priming_sugar_unknown_type():
    with pytest.raises(ValueError, match="Unknown priming sugar type"):
        calculate_priming_sugar(2.5, 20, sugar_type="maple")


def test_co2_from_sugar():
    assert calculate_co2_from_sugar(10, residual_co2=0.5) == 3.0


def test_ties_round_up():
    assert calculate_co2_from_sugar(0.5) == 0.13
    assert calculate_priming_sugar(2.5, 1.0, residual_co2=2.4375) == 0.3
