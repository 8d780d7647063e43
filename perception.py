"""
Perception signals for a single photo, normalized from the image-labeling
service response. Consumers treat every text field case-insensitively.
"""

import logging
from typing import Any, Dict, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class PerceptionUnavailableError(Exception):
    """The labeling collaborator could not produce a result for a photo."""

    def __init__(self, message: str, provider_error: bool = False):
        super().__init__(message)
        # True when the service answered with an error payload, False for transport failures
        self.provider_error = provider_error


class ScoredLabel(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class PerceptionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    labels: Tuple[ScoredLabel, ...] = ()
    object_names: Tuple[str, ...] = ()
    text_tokens: Tuple[str, ...] = ()
    logo_names: Tuple[str, ...] = ()

    def scored_terms(self) -> Tuple[ScoredLabel, ...]:
        """Labels followed by object names. Object names carry full confidence."""
        return self.labels + tuple(ScoredLabel(text=name) for name in self.object_names)

    def is_empty(self) -> bool:
        return not (self.labels or self.object_names or self.text_tokens or self.logo_names)


def _clamp(value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    return min(max(score, 0.0), 1.0)


def perception_from_annotate_response(response: Dict[str, Any]) -> PerceptionResult:
    """
    Builds a PerceptionResult from one annotate response in the
    labelAnnotations / localizedObjectAnnotations / textAnnotations /
    logoAnnotations shape.

    Raises PerceptionUnavailableError if the response carries an error
    payload or an annotation list does not have the expected shape.
    """
    error: Optional[Dict[str, Any]] = response.get('error')
    if error:
        message = error.get('message') if isinstance(error, dict) else str(error)
        raise PerceptionUnavailableError(f"Labeling service error: {message}", provider_error=True)

    try:
        return _parse_annotations(response)
    except (AttributeError, TypeError, KeyError, ValidationError) as e:
        logger.error(f"Malformed annotation payload: {e}")
        raise PerceptionUnavailableError("Malformed annotations from labeling service.", provider_error=True) from e


def _parse_annotations(response: Dict[str, Any]) -> PerceptionResult:
    labels = tuple(
        ScoredLabel(text=item['description'], confidence=_clamp(item.get('score', 0.0)))
        for item in response.get('labelAnnotations') or []
        if item.get('description')
    )
    object_names = tuple(
        item['name'] for item in response.get('localizedObjectAnnotations') or [] if item.get('name')
    )
    text_tokens = tuple(
        item['description'] for item in response.get('textAnnotations') or [] if item.get('description')
    )
    logo_names = tuple(
        item['description'] for item in response.get('logoAnnotations') or [] if item.get('description')
    )

    logger.debug(f"Perception: {len(labels)} labels, {len(object_names)} objects, "
                 f"{len(text_tokens)} text fragments, {len(logo_names)} logos")
    return PerceptionResult(
        labels=labels,
        object_names=object_names,
        text_tokens=text_tokens,
        logo_names=logo_names,
    )
