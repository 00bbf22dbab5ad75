import pytest

from core.abv import (
    brix_to_specific_gravity,
    calculate_abv,
    calculate_abv_from_brix,
    calculate_attenuation,
    calculate_potential_abv,
    get_abv_category,
    is_valid_specific_gravity,
)
from core.units import (
    celsius_to_fahrenheit,
    convert_volume,
    convert_weight,
    fahrenheit_to_celsius,
    format_temperature,
    format_volume,
    is_valid_volume,
    round_half_up,
    to_liters,
)


def test_abv_from_gravity():
    assert calculate_abv(1.050, 1.000) == pytest.approx(6.56, abs=0.01)
    assert calculate_potential_abv(1.060) == pytest.approx(7.88, abs=0.01)


def test_abv_rejects_bad_readings():
    with pytest.raises(ValueError, match="greater than or equal"):
        calculate_abv(1.000, 1.050)
    with pytest.raises(ValueError, match="Original gravity must be between"):
        calculate_abv(1.300, 1.000)
    with pytest.raises(ValueError, match="positive"):
        calculate_abv(0, 1.0)


def test_brix_conversion():
    assert brix_to_specific_gravity(0) == 1.0
    assert brix_to_specific_gravity(12) == 1.048
    with pytest.raises(ValueError):
        brix_to_specific_gravity(55)
    assert calculate_abv_from_brix(12, 0) == pytest.approx(6.3, abs=0.01)


def test_attenuation():
    assert calculate_attenuation(1.050, 1.010) == pytest.approx(80.0)
    assert calculate_attenuation(1.0, 1.0) == 0.0


def test_gravity_range_and_categories():
    assert is_valid_specific_gravity(0.990)
    assert not is_valid_specific_gravity(1.25)
    assert get_abv_category(0.2) == "Non-alcoholic"
    assert get_abv_category(6.5) == "Standard cider"
    assert get_abv_category(8) == "Strong cider"


def test_volume_conversions():
    assert to_liters(750, "ml") == pytest.approx(0.75)
    assert to_liters(1, "GAL") == pytest.approx(3.78541)
    assert convert_volume(10, "L", "gal") == pytest.approx(2.6417, abs=1e-4)
    with pytest.raises(ValueError, match="Unknown volume unit"):
        to_liters(1, "barrel")


def test_weight_and_temperature_conversions():
    assert convert_weight(1, "kg", "lb") == pytest.approx(2.2046, abs=1e-4)
    assert convert_weight(500, "g", "kg") == pytest.approx(0.5)
    assert celsius_to_fahrenheit(10) == 50
    assert fahrenheit_to_celsius(212) == pytest.approx(100)


def test_formatting_and_validation():
    assert format_volume(12.3456) == "12.35 L"
    assert format_temperature(4) == "4.0°C"
    assert is_valid_volume("2.5")
    assert not is_valid_volume(0)
    assert not is_valid_volume("abc")
    assert not is_valid_volume(float("nan"))


def test_round_half_up():
    assert round_half_up(2.675, 2) == 2.68
    assert round_half_up(0.0625, 3) == 0.063
    assert round_half_up(-0.125, 2) == -0.12
    assert round_half_up(7.5) == 8.0
