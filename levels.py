"""
Wizard level progression. Users advance through ranks as they accumulate points.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class WizardLevel(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: int
    title: str
    min_points: int
    icon: str


WIZARD_LEVELS: List[WizardLevel] = [
    WizardLevel(level=level, title=title, min_points=min_points, icon=icon)
    for level, title, min_points, icon in [
        (1, 'Novice EcoMage', 0, '🌱'),
        (2, 'Climate Conjurer', 50, '🌿'),
        (3, 'Green Guardian', 150, '🍀'),
        (4, 'Nature Warlock', 300, '🌳'),
        (5, 'Earth Enchanter', 500, '✨'),
        (6, 'Storm Sage', 800, '⚡'),
        (7, 'Forest Oracle', 1200, '🔮'),
        (8, 'Phoenix Protector', 1800, '🔥'),
        (9, 'Dragon Defender', 2500, '🐉'),
        (10, 'Archmage of Climate', 5000, '👑'),
    ]
]


def get_level(total_points: int) -> WizardLevel:
    current = WIZARD_LEVELS[0]
    for level in WIZARD_LEVELS:
        if total_points < level.min_points:
            break
        current = level
    return current


def get_next_level(total_points: int) -> Optional[WizardLevel]:
    for level in WIZARD_LEVELS:
        if total_points < level.min_points:
            return level
    return None


def get_level_progress(total_points: int) -> float:
    """Progress to the next level as a fraction between 0 and 1. Max level is 1."""
    current = get_level(total_points)
    next_level = get_next_level(total_points)
    if next_level is None:
        return 1.0
    points_in_level = total_points - current.min_points
    points_needed = next_level.min_points - current.min_points
    return min(points_in_level / points_needed, 1.0)
