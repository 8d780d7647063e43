import logging
from pydantic import BaseModel, ConfigDict

from perception import PerceptionResult
from recycling_data import (
    BIN_EVIDENCE_RULES, RECYCLING_LABEL_KEYWORDS, TRASH_LABEL_KEYWORDS,
    OCR_RECYCLING_KEYWORDS, LOGO_RECYCLING_KEYWORDS,
    OCR_KEYWORD_BONUS, LOGO_KEYWORD_BONUS, TRASH_ONLY_PENALTY, BIN_VERIFICATION_THRESHOLD,
)

logger = logging.getLogger(__name__)


class VerificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float
    verified: bool
    trash_only: bool = False


def verify(perception: PerceptionResult) -> VerificationResult:
    """
    Scores how likely the proof photo shows a recycling bin rather than
    ordinary trash.

    Label evidence is weighted by detector confidence. OCR and logo matches
    add flat bonuses. A generic waste receptacle with nothing marking it as
    recycling is penalized.
    """
    score = 0.0
    saw_trash = False
    saw_recycling = False

    for term in perception.scored_terms():
        label = term.text.lower()
        for rule in BIN_EVIDENCE_RULES:
            if rule.keyword in label:
                score += rule.weight * term.confidence
        if any(k in label for k in TRASH_LABEL_KEYWORDS):
            saw_trash = True
        if any(k in label for k in RECYCLING_LABEL_KEYWORDS):
            saw_recycling = True

    for fragment in perception.text_tokens:
        text = fragment.lower()
        for keyword in OCR_RECYCLING_KEYWORDS:
            if keyword in text:
                score += OCR_KEYWORD_BONUS

    for logo in perception.logo_names:
        name = logo.lower()
        if any(k in name for k in LOGO_RECYCLING_KEYWORDS):
            score += LOGO_KEYWORD_BONUS

    trash_only = saw_trash and not saw_recycling
    if trash_only:
        score -= TRASH_ONLY_PENALTY

    verified = score >= BIN_VERIFICATION_THRESHOLD
    logger.info(f"Bin verification score={score:.2f} threshold={BIN_VERIFICATION_THRESHOLD} "
                f"trash_only={trash_only} verified={verified}")
    return VerificationResult(score=score, verified=verified, trash_only=trash_only)
