import pytest

from energy_data import (
    ENERGY_ACTIONS_BY_ID, ENERGY_SAVING_ACTIONS, calculate_co2, calculate_energy_points, get_energy_message,
)


def test_calculate_co2():
    assert calculate_co2(900) == pytest.approx(334.8)
    assert calculate_co2(0) == 0


@pytest.mark.parametrize("current, previous, points", [
    (900, None, 0),     # first reading
    (900, 0, 0),
    (950, 900, 0),      # usage went up
    (900, 900, 0),
    (899, 900, 1),      # tiny reduction still earns a point
    (800, 900, 37),     # 100 kWh * 0.372 = 37.2
    (896, 900, 1),      # 1.488 rounds to 1
    (895, 900, 2),      # 1.86 rounds to 2
])
def test_calculate_energy_points(current, previous, points):
    assert calculate_energy_points(current, previous) == points


@pytest.mark.parametrize("current, previous, fragment", [
    (500, None, "First reading"),
    (700, 900, "over 20%"),
    (800, 900, "Over 10%"),
    (850, 900, "making progress"),
    (890, 900, "used less"),
    (920, 900, "Close to last month"),
    (1000, 900, "went up a bit"),
    (1200, 900, "Significant increase"),
])
def test_energy_message(current, previous, fragment):
    assert fragment in get_energy_message(current, previous)


def test_action_catalogue_is_indexed():
    assert len(ENERGY_ACTIONS_BY_ID) == len(ENERGY_SAVING_ACTIONS)
    assert ENERGY_ACTIONS_BY_ID['no_car'].points == 8
