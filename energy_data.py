"""
Energy tracking data for the WattSaver Charm: CO2 conversion factors,
quick energy-saving actions and monthly reading scoring.
"""

import math
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict

# US grid average: ~0.82 lbs CO2 per kWh
CO2_PER_KWH = 0.372
AVG_MONTHLY_KWH = 900
POINTS_PER_KG_CO2 = 1


class EnergySavingAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    co2_saved_kg: float
    points: int
    icon: str


ENERGY_SAVING_ACTIONS: List[EnergySavingAction] = [
    EnergySavingAction(id='lights_off', name='Turned Off Lights (1 hour)',
                       description='Saved energy by turning off lights when leaving a room',
                       co2_saved_kg=0.04, points=1, icon='💡'),
    EnergySavingAction(id='thermostat_adjust', name='Adjusted Thermostat (-2°F)',
                       description='Lowered heating or raised cooling by 2 degrees',
                       co2_saved_kg=0.5, points=3, icon='🌡️'),
    EnergySavingAction(id='cold_wash', name='Cold Water Laundry',
                       description='Washed clothes in cold water instead of hot',
                       co2_saved_kg=0.6, points=3, icon='🧺'),
    EnergySavingAction(id='line_dry', name='Air-Dried Clothes',
                       description='Skipped the dryer and line-dried clothes',
                       co2_saved_kg=2.0, points=5, icon='👕'),
    EnergySavingAction(id='unplug', name='Unplugged Electronics',
                       description='Unplugged idle electronics to stop phantom power draw',
                       co2_saved_kg=0.1, points=1, icon='🔌'),
    EnergySavingAction(id='short_shower', name='Shorter Shower (-5 min)',
                       description='Reduced shower time by 5 minutes, saving hot water',
                       co2_saved_kg=0.5, points=2, icon='🚿'),
    EnergySavingAction(id='no_car', name='Walked / Biked Instead',
                       description='Chose walking or biking over driving for a short trip',
                       co2_saved_kg=2.3, points=8, icon='🚶'),
    EnergySavingAction(id='meatless_meal', name='Meatless Meal',
                       description='Chose a plant-based meal instead of meat',
                       co2_saved_kg=1.5, points=5, icon='🥗'),
]

ENERGY_ACTIONS_BY_ID: Dict[str, EnergySavingAction] = {a.id: a for a in ENERGY_SAVING_ACTIONS}


def calculate_co2(kwh: float) -> float:
    return round(kwh * CO2_PER_KWH, 2)


def calculate_energy_points(current_kwh: float, previous_kwh: Optional[float]) -> int:
    """Points for a reduction against the previous reading; at least 1 for any reduction."""
    if not previous_kwh or previous_kwh <= 0:
        return 0
    saved = previous_kwh - current_kwh
    if saved <= 0:
        return 0
    co2_saved = saved * CO2_PER_KWH
    return max(math.floor(co2_saved * POINTS_PER_KG_CO2 + 0.5), 1)


def get_energy_message(current_kwh: float, previous_kwh: Optional[float]) -> str:
    if not previous_kwh:
        return 'First reading logged! Keep tracking to earn points by reducing your usage.'

    change = ((current_kwh - previous_kwh) / previous_kwh) * 100
    if change <= -20:
        return 'Incredible spell! You reduced usage by over 20%!'
    if change <= -10:
        return 'Powerful magic! Over 10% reduction - keep it up!'
    if change <= -5:
        return "Nice work, wizard! You're making progress!"
    if change <= 0:
        return 'Good - you used less than last time. Every bit counts!'
    if change <= 5:
        return 'Close to last month. Try a few energy-saving spells!'
    if change <= 15:
        return 'Usage went up a bit. Check our energy-saving tips!'
    return 'Significant increase detected. Time for some conservation spells!'
