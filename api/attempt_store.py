import logging
from typing import Optional
from pydantic import ValidationError

from disposal_workflow import DisposalAttempt, TRANSIENT_STAGES


def get_attempt_cache_key(attempt_id):
    """Generates the standard Redis key for an in-flight disposal attempt."""
    return f"disposal_attempt:{attempt_id}"


class AttemptStore:
    """
    Keeps in-flight disposal attempts in Redis between requests. Attempts
    expire after `ttl_seconds`; only committed stages are ever written.
    """

    def __init__(self, redis_client_factory, ttl_seconds: int):
        self._redis_client_factory = redis_client_factory
        self._ttl_seconds = ttl_seconds

    def _client(self):
        redis_client = self._redis_client_factory()
        if redis_client is None:
            raise ConnectionError("Cannot connect to Redis for disposal attempts.")
        return redis_client

    def save(self, attempt: DisposalAttempt):
        if attempt.stage in TRANSIENT_STAGES:
            raise ValueError(f"Refusing to save attempt {attempt.attempt_id} in transient stage {attempt.stage.value}")
        self._client().set(get_attempt_cache_key(attempt.attempt_id), attempt.model_dump_json(), ex=self._ttl_seconds)

    def load(self, attempt_id: str, user_id: str) -> Optional[DisposalAttempt]:
        """Returns None for unknown, expired or foreign attempts."""
        cached_json = self._client().get(get_attempt_cache_key(attempt_id))
        if not cached_json:
            return None
        try:
            attempt = DisposalAttempt.model_validate_json(cached_json)
        except ValidationError as e:
            logging.error(f"Discarding unreadable attempt {attempt_id}: {e}")
            self.delete(attempt_id)
            return None
        if attempt.user_id != user_id:
            logging.warning(f"User {user_id} tried to access attempt {attempt_id} owned by another user")
            return None
        return attempt

    def delete(self, attempt_id: str):
        self._client().delete(get_attempt_cache_key(attempt_id))
