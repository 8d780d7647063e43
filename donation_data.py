"""
Food donation sites around Athens, GA and the impact credited for one
donation.
"""

import math
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict

# Average impact of one food donation
CO2_PER_DONATION = 2.5
POINTS_PER_DONATION = 30
MEALS_PER_DONATION = 5

EARTH_RADIUS_MILES = 3959

SITE_TYPE_LABELS: Dict[str, str] = {
    'food_bank': 'Food Bank',
    'community_fridge': 'Community Fridge',
    'shelter': 'Shelter',
    'pantry': 'Food Pantry',
}


class DonationSite(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    address: str
    type: str
    latitude: float
    longitude: float
    hours: str
    phone: Optional[str] = None
    accepted_items: Tuple[str, ...] = ()
    description: str = ''

    @property
    def type_label(self) -> str:
        return SITE_TYPE_LABELS.get(self.type, self.type)


DONATION_SITES: List[DonationSite] = [
    DonationSite(id='1', name='Athens Community Fridge', address='199 Prince Ave, Athens, GA 30601',
                 type='community_fridge', latitude=33.9607, longitude=-83.3831, hours='Open 24/7',
                 accepted_items=('Prepared foods', 'Fresh produce', 'Packaged snacks', 'Beverages'),
                 description='A free community fridge where anyone can leave or take food. No questions asked!'),
    DonationSite(id='2', name='Food Bank of Northeast Georgia', address='861 Newton Bridge Rd, Athens, GA 30607',
                 type='food_bank', latitude=33.9753, longitude=-83.4076, hours='Mon-Fri 8AM-4PM',
                 phone='(706) 354-8191',
                 accepted_items=('Canned goods', 'Dry goods', 'Fresh produce', 'Frozen meats', 'Dairy'),
                 description='Serving 14 counties in Northeast Georgia. Your donation feeds families in need.'),
    DonationSite(id='3', name='Campus Kitchen at UGA', address='280 E Broad St, Athens, GA 30601',
                 type='pantry', latitude=33.9544, longitude=-83.3737, hours='Mon-Thu 11AM-2PM',
                 accepted_items=('Leftover catering food', 'Fresh produce', 'Prepared meals'),
                 description='Student-run program that recovers surplus food from campus dining halls '
                             'and transforms it into meals for the community.'),
    DonationSite(id='4', name='Our Daily Bread Soup Kitchen', address='90 N Church St, Athens, GA 30601',
                 type='shelter', latitude=33.9612, longitude=-83.3774, hours='Daily 11AM-1PM',
                 phone='(706) 353-1076',
                 accepted_items=('Hot meals', 'Fresh bread', 'Canned soups', 'Fresh vegetables'),
                 description='Providing hot meals to those in need in the Athens community since 1983.'),
    DonationSite(id='5', name='Salvation Army Athens', address='345 N Lumpkin St, Athens, GA 30601',
                 type='shelter', latitude=33.9623, longitude=-83.3821, hours='Mon-Fri 9AM-5PM',
                 phone='(706) 543-3294',
                 accepted_items=('Non-perishable foods', 'Canned goods', 'Bottled water', 'Snacks'),
                 description='Community center offering meals, shelter, and support services to those in need.'),
]

DONATION_SITES_BY_ID: Dict[str, DonationSite] = {s.id: s for s in DONATION_SITES}


def distance_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance, rounded to 0.1 mile."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_MILES * c, 1)


def sites_by_distance(latitude: float, longitude: float) -> List[Tuple[DonationSite, float]]:
    """All sites with their distance from the given point, nearest first."""
    with_distance = [
        (site, distance_miles(latitude, longitude, site.latitude, site.longitude))
        for site in DONATION_SITES
    ]
    return sorted(with_distance, key=lambda pair: pair[1])
