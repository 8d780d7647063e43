import re
import logging
from typing import Dict, Optional

from perception import PerceptionResult
from recycling_data import (
    MaterialProfile, LABEL_RULES, RESIN_CODE_KEYWORDS, RESIN_CODE_PROFILES, MATERIALS_BY_ID,
    CLASSIFICATION_MIN_SCORE, RESIN_DIGIT_MAX_FRAGMENT_LENGTH,
)

logger = logging.getLogger(__name__)

_NON_WORD_CHARS = re.compile(r'[^a-z0-9\s]')
# A single digit 1-7 that is not part of a longer number
_STANDALONE_RESIN_DIGIT = re.compile(r'(?<!\d)[1-7](?!\d)')


def _match_resin_abbreviation(perception: PerceptionResult) -> Optional[MaterialProfile]:
    for fragment in perception.text_tokens:
        for word in _NON_WORD_CHARS.sub('', fragment.lower()).split():
            code = RESIN_CODE_KEYWORDS.get(word)
            if code:
                logger.info(f"Resin abbreviation '{word}' found in OCR text -> code {code}")
                return RESIN_CODE_PROFILES[code]
    return None


def _match_resin_digit(perception: PerceptionResult) -> Optional[MaterialProfile]:
    for fragment in perception.text_tokens:
        match = _STANDALONE_RESIN_DIGIT.search(fragment)
        # Recycling symbols produce short snippets like "1" or "2 HDPE"; prices and dates don't.
        if match and len(fragment.strip()) <= RESIN_DIGIT_MAX_FRAGMENT_LENGTH:
            logger.info(f"Standalone resin digit '{match.group(0)}' found in OCR fragment '{fragment.strip()}'")
            return RESIN_CODE_PROFILES[match.group(0)]
    return None


def score_labels(perception: PerceptionResult) -> Dict[str, int]:
    """
    Accumulates rule weights per material id over labels and object names.
    Detector confidence is not used here. Insertion order of the returned
    dict is the order in which materials were first hit.
    """
    scores: Dict[str, int] = {}
    for term in perception.scored_terms():
        label = term.text.lower()
        for rule in LABEL_RULES:
            # keyword-in-label only, never label-in-keyword
            if rule.keyword in label:
                scores[rule.target_material_id] = scores.get(rule.target_material_id, 0) + rule.weight
    return scores


def _match_label_scores(perception: PerceptionResult) -> Optional[MaterialProfile]:
    scores = score_labels(perception)
    best_material_id, best_score = None, 0
    for material_id, score in scores.items():
        # strictly greater: ties keep the first material hit
        if score > best_score:
            best_material_id, best_score = material_id, score

    if best_material_id and best_score >= CLASSIFICATION_MIN_SCORE:
        logger.info(f"Label scoring picked '{best_material_id}' with score {best_score} (all scores: {scores})")
        return MATERIALS_BY_ID.get(best_material_id)

    if scores:
        logger.info(f"Label scoring below threshold: {scores}")
    return None


def classify(perception: PerceptionResult) -> Optional[MaterialProfile]:
    """
    Identify the disposal material of an item photo.

    Strategy, first hit wins:
    1. Resin abbreviations (PETE, HDPE, ...) in OCR text.
    2. A standalone resin digit 1-7 in a short OCR fragment.
    3. Weighted keyword scoring over labels and object names.

    Returns None when the item is not recognized.
    """
    return (
        _match_resin_abbreviation(perception)
        or _match_resin_digit(perception)
        or _match_label_scores(perception)
    )
