import json
import logging
from io import BytesIO
from typing import List, Optional, Tuple
import redis
from google import genai
from google.genai import errors, types
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

import dependencies
from api.encryption_utils import get_gemini_api_keys
from perception import PerceptionResult, PerceptionUnavailableError, perception_from_annotate_response

logger = logging.getLogger(__name__)

KEY_INDEX_CACHE_KEY = "current_vision_gemini_key_index"
MAX_IMAGE_DIMENSION = 1600


# Response schema in the annotate shape consumed by perception_from_annotate_response
class LabelAnnotation(BaseModel):
    description: str
    score: float


class ObjectAnnotation(BaseModel):
    name: str
    score: float


class TextAnnotation(BaseModel):
    description: str


class LogoAnnotation(BaseModel):
    description: str


class AnnotationError(BaseModel):
    message: str


class AnnotateResponse(BaseModel):
    labelAnnotations: List[LabelAnnotation] = []
    localizedObjectAnnotations: List[ObjectAnnotation] = []
    textAnnotations: List[TextAnnotation] = []
    logoAnnotations: List[LogoAnnotation] = []
    error: Optional[AnnotationError] = None


ANNOTATE_PROMPT = """You are an image annotation service. Describe the photo with the following, and nothing else:

- labelAnnotations: up to 15 short lowercase labels for what is visible (objects, materials, containers), each with a confidence score between 0.0 and 1.0.
- localizedObjectAnnotations: names of distinct physical objects you can localize, each with a confidence score.
- textAnnotations: every piece of printed or written text you can read, one entry per separate text region, transcribed exactly (keep digits and symbols such as ♻).
- logoAnnotations: names of any logos or marks, including recycling marks.

Do not guess text you cannot read. If the image cannot be analyzed at all, return only an error object with a message.
Respond with ONLY a valid JSON object."""


def prepare_image(image_bytes: bytes, content_type: str) -> Tuple[bytes, str]:
    """Downscales large photos to JPEG before upload. Unreadable images are sent unchanged."""
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            if max(img.size) <= MAX_IMAGE_DIMENSION and content_type == 'image/jpeg':
                return image_bytes, content_type
            img.thumbnail((MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION))
            output_buffer = BytesIO()
            img.convert('RGB').save(output_buffer, "JPEG", quality=85)
            return output_buffer.getvalue(), 'image/jpeg'
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not preprocess image ({content_type}): {e}")
        return image_bytes, content_type


def _request_annotation(api_key: str, image_bytes: bytes, content_type: str) -> str:
    client_instance = genai.Client(api_key=api_key)
    response = client_instance.models.generate_content(
        model=dependencies.VISION_MODEL,
        contents=[
            types.Part.from_bytes(data=image_bytes, mime_type=content_type),
            "Annotate this photo.",
        ],
        config=types.GenerateContentConfig(
            system_instruction=ANNOTATE_PROMPT,
            response_mime_type="application/json",
            response_schema=AnnotateResponse,
            temperature=0.0,
        ))
    return response.text


def _load_key_index(redis_client) -> int:
    if not redis_client:
        return 0
    try:
        return int(redis_client.get(KEY_INDEX_CACHE_KEY) or 0)
    except (redis.exceptions.RedisError, ValueError) as e:
        logger.warning(f"Could not read Gemini key index, starting at key #1: {e}")
        return 0


def _store_key_index(redis_client, index: int):
    if not redis_client:
        return
    try:
        redis_client.set(KEY_INDEX_CACHE_KEY, index)
    except redis.exceptions.RedisError as e:
        logger.warning(f"Could not store Gemini key index: {e}")


def annotate_image(image_bytes: bytes, content_type: str = 'image/jpeg') -> PerceptionResult:
    """
    Calls the labeling service on one photo.

    Keys are tried in rotation starting at the last key that worked; the
    index is kept in Redis when it is available.

    Raises:
        PerceptionUnavailableError: on provider-level errors (API error on
            the last key, error payload, empty or malformed response) and
            when every key fails in transport.
    """
    api_keys = get_gemini_api_keys()
    if not api_keys:
        raise PerceptionUnavailableError("No Gemini API keys configured.")

    image_bytes, content_type = prepare_image(image_bytes, content_type)
    redis_client = dependencies.get_redis_client()
    start_index = _load_key_index(redis_client)

    raw_text = None
    for i in range(len(api_keys)):
        current_index = (start_index + i) % len(api_keys)
        try:
            logger.info(f"--> Trying Gemini API Key #{current_index + 1} for annotation")
            raw_text = _request_annotation(api_keys[current_index], image_bytes, content_type)
        except errors.APIError as e:
            logger.warning(f"Gemini API Key #{current_index + 1} was refused ({e.code}): {e}")
            if i == len(api_keys) - 1:
                raise PerceptionUnavailableError(f"All Gemini API keys failed. Last error: {e}", provider_error=True) from e
            continue
        except Exception as e:
            logger.warning(f"Gemini API Key #{current_index + 1} failed: {e}", exc_info=True)
            if i == len(api_keys) - 1:
                raise PerceptionUnavailableError(f"All Gemini API keys failed. Last error: {e}") from e
            continue
        _store_key_index(redis_client, current_index)
        break

    if not raw_text:
        logger.error("Empty response from labeling service")
        raise PerceptionUnavailableError("Empty response from labeling service.", provider_error=True)

    cleaned = raw_text.strip().removeprefix("```json").removeprefix("```").removesuffix("```").strip()
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse annotation response as JSON: {e}. Raw response: {raw_text[:500]}")
        raise PerceptionUnavailableError("Malformed response from labeling service.", provider_error=True) from e

    if not isinstance(payload, dict):
        raise PerceptionUnavailableError("Unexpected response from labeling service.", provider_error=True)
    return perception_from_annotate_response(payload)
