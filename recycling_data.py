"""
Recycling reference data for the Recyclify Reveal scan.
Material profiles, resin codes, keyword rules for the classifier and the
evidence tables used to verify a recycling bin in a proof photo.

Everything in this module is built once at import and never mutated.
"""

from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict


class MaterialProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    display_name: str
    category: str  # plastic, metal, glass, paper, other
    is_recyclable: bool
    co2_saved_kg: float  # kg CO2 saved per item recycled
    point_value: int
    disposal_instructions: str
    fun_fact: str


class ClassificationRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    keyword: str
    target_material_id: str
    weight: int


class BinEvidenceRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    keyword: str
    weight: float


# --- MATERIAL PROFILES ---

# Plastic resin identification codes (1-7)
RESIN_CODE_PROFILES: Dict[str, MaterialProfile] = {
    '1': MaterialProfile(
        id='resin_1', code='1', display_name='PET (Polyethylene Terephthalate)', category='plastic',
        is_recyclable=True, co2_saved_kg=0.04, point_value=5,
        disposal_instructions='Widely recyclable in curbside programs. Rinse and place in recycling bin. Remove caps if required by your local program.',
        fun_fact='Recycling 10 PET bottles saves enough energy to power a laptop for over 25 hours!',
    ),
    '2': MaterialProfile(
        id='resin_2', code='2', display_name='HDPE (High-Density Polyethylene)', category='plastic',
        is_recyclable=True, co2_saved_kg=0.05, point_value=5,
        disposal_instructions='Commonly accepted. Includes milk jugs, detergent bottles. Rinse and recycle.',
        fun_fact='HDPE can be recycled into playground equipment, plastic lumber, and new bottles.',
    ),
    '3': MaterialProfile(
        id='resin_3', code='3', display_name='PVC (Polyvinyl Chloride)', category='plastic',
        is_recyclable=False, co2_saved_kg=0.0, point_value=1,
        disposal_instructions='Rarely accepted curbside. Check local specialty recyclers. Often found in pipes and packaging.',
        fun_fact='PVC is one of the hardest plastics to recycle but knowing this helps you make better choices!',
    ),
    '4': MaterialProfile(
        id='resin_4', code='4', display_name='LDPE (Low-Density Polyethylene)', category='plastic',
        is_recyclable=False, co2_saved_kg=0.02, point_value=3,
        disposal_instructions='Not typically curbside recyclable. Many grocery stores accept plastic bags and film. Bundle and drop off.',
        fun_fact='Plastic bags take 10-1,000 years to decompose in a landfill.',
    ),
    '5': MaterialProfile(
        id='resin_5', code='5', display_name='PP (Polypropylene)', category='plastic',
        is_recyclable=True, co2_saved_kg=0.03, point_value=4,
        disposal_instructions='Increasingly accepted. Includes yogurt cups, bottle caps, straws. Rinse before recycling.',
        fun_fact='PP can be recycled into brooms, bike racks, and auto parts.',
    ),
    '6': MaterialProfile(
        id='resin_6', code='6', display_name='PS (Polystyrene)', category='plastic',
        is_recyclable=False, co2_saved_kg=0.0, point_value=1,
        disposal_instructions='Rarely recyclable. Styrofoam is difficult to process. Check for local drop-off options.',
        fun_fact='Styrofoam can take over 500 years to decompose. Avoiding it is the best spell!',
    ),
    '7': MaterialProfile(
        id='resin_7', code='7', display_name='Other (Mixed Plastics)', category='plastic',
        is_recyclable=False, co2_saved_kg=0.0, point_value=1,
        disposal_instructions='Not typically recyclable. Includes multi-layer plastics. Reduce usage when possible.',
        fun_fact='Code 7 includes bioplastics too - check if your item is compostable!',
    ),
}

# General material types detected from image labels
MATERIAL_TYPES: Dict[str, MaterialProfile] = {
    'aluminum': MaterialProfile(
        id='aluminum', code='AL', display_name='Aluminum Can', category='metal',
        is_recyclable=True, co2_saved_kg=0.15, point_value=8,
        disposal_instructions='Highly recyclable! Rinse and toss in recycling bin. No need to crush.',
        fun_fact='Recycling one aluminum can saves enough energy to run a TV for 3 hours!',
    ),
    'glass': MaterialProfile(
        id='glass', code='GL', display_name='Glass Bottle/Jar', category='glass',
        is_recyclable=True, co2_saved_kg=0.3, point_value=10,
        disposal_instructions='Rinse and recycle. Remove lids. Glass can be recycled infinitely without quality loss!',
        fun_fact='Glass is 100% recyclable and can be recycled endlessly without losing quality or purity.',
    ),
    'paper': MaterialProfile(
        id='paper', code='PA', display_name='Paper/Cardboard', category='paper',
        is_recyclable=True, co2_saved_kg=0.06, point_value=4,
        disposal_instructions='Flatten cardboard. Keep paper dry and clean. Remove tape and staples if possible.',
        fun_fact='Recycling one ton of paper saves 17 trees and 7,000 gallons of water.',
    ),
    'cardboard': MaterialProfile(
        id='cardboard', code='CB', display_name='Cardboard Box', category='paper',
        is_recyclable=True, co2_saved_kg=0.08, point_value=5,
        disposal_instructions='Flatten and remove any packing materials inside. Keep dry.',
        fun_fact='About 80% of products sold in the US are packaged in cardboard.',
    ),
    'bottle': MaterialProfile(
        id='bottle', code='BT', display_name='Plastic Bottle', category='plastic',
        is_recyclable=True, co2_saved_kg=0.04, point_value=5,
        disposal_instructions='Empty, rinse, and replace the cap. Recycle in your curbside bin.',
        fun_fact="Americans throw away 35 billion plastic bottles every year. You're helping change that!",
    ),
    'can': MaterialProfile(
        id='can', code='CN', display_name='Metal Can', category='metal',
        is_recyclable=True, co2_saved_kg=0.12, point_value=7,
        disposal_instructions='Rinse empty cans. Both aluminum and steel/tin cans are recyclable.',
        fun_fact='Steel is the most recycled material in the world - more than paper, glass, and plastic combined!',
    ),
}

MATERIALS_BY_ID: Dict[str, MaterialProfile] = {
    **{p.id: p for p in RESIN_CODE_PROFILES.values()},
    **MATERIAL_TYPES,
}


def get_material(material_id: Optional[str]) -> Optional[MaterialProfile]:
    if not material_id:
        return None
    return MATERIALS_BY_ID.get(material_id)


# --- CLASSIFIER TABLES ---

# Keyword -> material rules, matched as substrings of lowercase labels.
# Ordered specific-first; the order is also the tie-break order.
LABEL_RULES: List[ClassificationRule] = [
    ClassificationRule(keyword=k, target_material_id=m, weight=w) for k, m, w in [
        # High-confidence specific labels
        ('plastic bottle', 'bottle', 3),
        ('water bottle', 'bottle', 3),
        ('pet bottle', 'bottle', 3),
        ('beverage can', 'aluminum', 3),
        ('aluminum can', 'aluminum', 3),
        ('aluminium can', 'aluminum', 3),
        ('tin can', 'can', 3),
        ('glass bottle', 'glass', 3),
        ('glass jar', 'glass', 3),
        ('cardboard box', 'cardboard', 3),
        # Material labels
        ('bottle', 'bottle', 2),
        ('aluminum', 'aluminum', 2),
        ('aluminium', 'aluminum', 2),
        ('glass', 'glass', 2),
        ('cardboard', 'cardboard', 2),
        ('newspaper', 'paper', 2),
        ('magazine', 'paper', 2),
        ('paper', 'paper', 2),
        ('can', 'can', 2),
        ('jar', 'glass', 2),
        ('carton', 'cardboard', 2),
        # Generic labels
        ('plastic', 'bottle', 1),
        ('polystyrene', 'bottle', 1),
        ('styrofoam', 'bottle', 1),
        ('box', 'cardboard', 1),
    ]
]

# Resin identification abbreviations printed on products, keyed by OCR word.
RESIN_CODE_KEYWORDS: Dict[str, str] = {
    'pete': '1',
    'pet': '1',
    'hdpe': '2',
    'pvc': '3',
    'v': '3',
    'ldpe': '4',
    'pp': '5',
    'ps': '6',
}

CLASSIFICATION_MIN_SCORE = 2
# OCR fragments longer than this are not trusted for a bare resin digit
RESIN_DIGIT_MAX_FRAGMENT_LENGTH = 6


# --- BIN VERIFICATION TABLES ---

BIN_EVIDENCE_RULES: List[BinEvidenceRule] = [
    BinEvidenceRule(keyword=k, weight=w) for k, w in [
        ('recycling bin', 5.0),
        ('recycle bin', 5.0),
        ('recycling', 3.0),
        ('recycle', 3.0),
        ('recyclable', 2.0),
        ('blue bin', 3.0),
        ('bottle bank', 4.0),
        ('bin', 1.0),
    ]
]

# Labels that mean "this is specifically for recycling"
RECYCLING_LABEL_KEYWORDS: Tuple[str, ...] = ('recycl', 'blue bin', 'bottle bank')

# Labels that mean "generic waste receptacle"
TRASH_LABEL_KEYWORDS: Tuple[str, ...] = ('trash', 'garbage', 'rubbish', 'waste', 'litter', 'landfill')

OCR_RECYCLING_KEYWORDS: Tuple[str, ...] = ('recycl', '♻', '♲', 'bottles', 'cans')
LOGO_RECYCLING_KEYWORDS: Tuple[str, ...] = ('recycl', 'green dot', 'mobius', 'möbius')

OCR_KEYWORD_BONUS = 6.0
LOGO_KEYWORD_BONUS = 8.0
TRASH_ONLY_PENALTY = 10.0
BIN_VERIFICATION_THRESHOLD = 5.0
