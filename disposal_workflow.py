"""
Proof-of-disposal workflow for the recycle scan.

One DisposalWorkflow drives one DisposalAttempt for one user:

    IDLE -> ITEM_CAPTURED -> CLASSIFYING -> CLASSIFIED
         -> PROOF_CAPTURED -> VERIFYING -> VERIFIED | VERIFICATION_FAILED
         -> COMPLETED

UNAVAILABLE is entered when the labeling collaborator fails while
classifying; retry() resumes from the captured photo. CLASSIFYING and
VERIFYING only exist while a perception call is in flight and are never
saved, so an interrupted attempt resumes from the last captured photo
through retry().

Nothing is persisted before COMPLETED. On completion the photo uploads and
the action log are best-effort; the point award is the one required write.
"""

import base64
import datetime
import logging
import uuid
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel

from perception import PerceptionResult, PerceptionUnavailableError
from material_classifier import classify
from bin_verifier import verify, VerificationResult
from recycling_data import MaterialProfile, get_material

logger = logging.getLogger(__name__)


class DisposalStage(str, Enum):
    IDLE = 'IDLE'
    ITEM_CAPTURED = 'ITEM_CAPTURED'
    CLASSIFYING = 'CLASSIFYING'
    CLASSIFIED = 'CLASSIFIED'
    PROOF_CAPTURED = 'PROOF_CAPTURED'
    VERIFYING = 'VERIFYING'
    VERIFIED = 'VERIFIED'
    VERIFICATION_FAILED = 'VERIFICATION_FAILED'
    COMPLETED = 'COMPLETED'
    UNAVAILABLE = 'UNAVAILABLE'


TRANSIENT_STAGES = (DisposalStage.CLASSIFYING, DisposalStage.VERIFYING)


class VerificationOutcome(str, Enum):
    VERIFIED = 'VERIFIED'
    REJECTED = 'REJECTED'
    UNAVAILABLE = 'UNAVAILABLE'  # fail-open: collaborator error while verifying
    SKIPPED = 'SKIPPED'


class InvalidTransitionError(Exception):
    def __init__(self, action: str, stage: DisposalStage):
        super().__init__(f"Cannot {action} while attempt is {stage.value}")
        self.action = action
        self.stage = stage


class PersistenceError(Exception):
    """A required write to the persistence collaborator failed."""


class CapturedPhoto(BaseModel):
    data_b64: str
    content_type: str = 'image/jpeg'

    @classmethod
    def from_bytes(cls, data: bytes, content_type: str = 'image/jpeg') -> 'CapturedPhoto':
        return cls(data_b64=base64.b64encode(data).decode('ascii'), content_type=content_type)

    @property
    def content(self) -> bytes:
        return base64.b64decode(self.data_b64)

    @property
    def extension(self) -> str:
        return {'image/png': 'png', 'image/webp': 'webp'}.get(self.content_type, 'jpg')


class DisposalAttempt(BaseModel):
    attempt_id: str
    user_id: str
    stage: DisposalStage = DisposalStage.IDLE
    item_photo: Optional[CapturedPhoto] = None
    proof_photo: Optional[CapturedPhoto] = None
    material_id: Optional[str] = None
    verification_score: float = 0.0
    verified: bool = False
    verification_outcome: Optional[VerificationOutcome] = None
    caveat: bool = False
    resume_stage: Optional[DisposalStage] = None
    created_at: str

    @classmethod
    def new(cls, user_id: str) -> 'DisposalAttempt':
        return cls(
            attempt_id=uuid.uuid4().hex,
            user_id=user_id,
            created_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
        )

    @property
    def classified_material(self) -> Optional[MaterialProfile]:
        return get_material(self.material_id)


class CompletionReceipt(BaseModel):
    attempt_id: str
    material_id: str
    points_awarded: int
    newly_awarded: bool
    co2_saved_kg: float
    verified: bool
    verification_outcome: VerificationOutcome
    caveat: bool
    item_image_ref: Optional[str] = None
    proof_image_ref: Optional[str] = None
    action_log_id: Optional[str] = None


Perceive = Callable[[bytes, str], PerceptionResult]


class DisposalWorkflow:
    """
    `perceive(image_bytes, content_type)` returns a PerceptionResult or raises
    PerceptionUnavailableError. `persistence` must provide upload_blob,
    insert_action_log and award_points (see persistence.FirestorePersistence).
    """

    def __init__(self, attempt: DisposalAttempt, perceive: Perceive, persistence=None,
                 classifier=classify, verifier=verify):
        self.attempt = attempt
        self._perceive = perceive
        self._persistence = persistence
        self._classifier = classifier
        self._verifier = verifier

    @classmethod
    def start(cls, user_id: str, perceive: Perceive, persistence=None, **kwargs) -> 'DisposalWorkflow':
        return cls(DisposalAttempt.new(user_id), perceive, persistence, **kwargs)

    @property
    def stage(self) -> DisposalStage:
        return self.attempt.stage

    def _require(self, action: str, *stages: DisposalStage):
        if self.attempt.stage not in stages:
            raise InvalidTransitionError(action, self.attempt.stage)

    def _set_stage(self, stage: DisposalStage):
        logger.info(f"[{self.attempt.attempt_id}] {self.attempt.stage.value} -> {stage.value}")
        self.attempt.stage = stage

    def _awaiting_proof(self) -> bool:
        material = self.attempt.classified_material
        return (self.attempt.stage == DisposalStage.CLASSIFIED
                and material is not None and material.is_recyclable)

    # --- Item photo ---

    def capture_item(self, image_bytes: bytes, content_type: str = 'image/jpeg'):
        self._require('capture an item photo', DisposalStage.IDLE)
        if not image_bytes:
            raise ValueError("Item photo is empty.")
        self.attempt.item_photo = CapturedPhoto.from_bytes(image_bytes, content_type)
        self._set_stage(DisposalStage.ITEM_CAPTURED)

    def classify_item(self) -> Optional[MaterialProfile]:
        """
        Runs the classifier on the item photo. Returns None for an
        unrecognized item. Re-raises PerceptionUnavailableError after moving
        to UNAVAILABLE.
        """
        self._require('classify', DisposalStage.ITEM_CAPTURED)
        self._set_stage(DisposalStage.CLASSIFYING)
        photo = self.attempt.item_photo
        try:
            perception = self._perceive(photo.content, photo.content_type)
        except PerceptionUnavailableError:
            logger.warning(f"[{self.attempt.attempt_id}] Labeling service unavailable while classifying.")
            self.attempt.resume_stage = DisposalStage.ITEM_CAPTURED
            self._set_stage(DisposalStage.UNAVAILABLE)
            raise

        material = self._classifier(perception)
        self.attempt.material_id = material.id if material else None
        self.attempt.resume_stage = None
        self._set_stage(DisposalStage.CLASSIFIED)
        if material is None:
            logger.info(f"[{self.attempt.attempt_id}] Item not recognized.")
        return material

    def retry(self):
        """
        Re-runs the perception step for the last captured photo: after
        UNAVAILABLE, or for an attempt saved at ITEM_CAPTURED / PROOF_CAPTURED
        whose classify or verify call never finished. Returns what
        classify_item() or verify_proof() returns.
        """
        self._require('retry', DisposalStage.UNAVAILABLE, DisposalStage.ITEM_CAPTURED, DisposalStage.PROOF_CAPTURED)
        if self.attempt.stage == DisposalStage.PROOF_CAPTURED:
            return self.verify_proof()
        if self.attempt.stage == DisposalStage.UNAVAILABLE:
            self._set_stage(self.attempt.resume_stage or DisposalStage.ITEM_CAPTURED)
        return self.classify_item()

    # --- Proof photo ---

    def capture_proof(self, image_bytes: bytes, content_type: str = 'image/jpeg'):
        """Classified recyclable item (first proof) or a failed verification (retake)."""
        if not (self._awaiting_proof() or self.attempt.stage == DisposalStage.VERIFICATION_FAILED):
            raise InvalidTransitionError('capture a proof photo', self.attempt.stage)
        if not image_bytes:
            raise ValueError("Proof photo is empty.")
        self.attempt.proof_photo = CapturedPhoto.from_bytes(image_bytes, content_type)
        self.attempt.verification_score = 0.0
        self.attempt.verified = False
        self.attempt.verification_outcome = None
        self.attempt.caveat = False
        self._set_stage(DisposalStage.PROOF_CAPTURED)

    def verify_proof(self) -> Optional[VerificationResult]:
        """
        Returns the verifier result, or None when the labeling service was
        unavailable. That case fails open: the attempt moves to VERIFIED with
        outcome UNAVAILABLE and the caveat flag set.
        """
        self._require('verify', DisposalStage.PROOF_CAPTURED)
        self._set_stage(DisposalStage.VERIFYING)
        photo = self.attempt.proof_photo
        try:
            perception = self._perceive(photo.content, photo.content_type)
        except PerceptionUnavailableError as e:
            logger.warning(f"[{self.attempt.attempt_id}] Verification unavailable, allowing with caveat: {e}")
            self.attempt.verification_outcome = VerificationOutcome.UNAVAILABLE
            self.attempt.caveat = True
            self._set_stage(DisposalStage.VERIFIED)
            return None

        result = self._verifier(perception)
        self.attempt.verification_score = result.score
        self.attempt.verified = result.verified
        if result.verified:
            self.attempt.verification_outcome = VerificationOutcome.VERIFIED
            self._set_stage(DisposalStage.VERIFIED)
        else:
            self.attempt.verification_outcome = VerificationOutcome.REJECTED
            self._set_stage(DisposalStage.VERIFICATION_FAILED)
        return result

    # TODO: decide with product whether skipping proof should award reduced points;
    # today it awards the full value and only records verified=False.
    def skip_proof(self) -> CompletionReceipt:
        """Completes from PROOF_CAPTURED without running the verifier."""
        self._require('skip proof', DisposalStage.PROOF_CAPTURED)
        self.attempt.verified = False
        self.attempt.verification_outcome = VerificationOutcome.SKIPPED
        self.attempt.caveat = False
        return self._complete()

    def complete(self) -> CompletionReceipt:
        self._require('complete', DisposalStage.VERIFIED)
        return self._complete()

    def abandon(self):
        """
        Discards all progress and returns to IDLE under a fresh attempt id,
        so a later award can never collide with this attempt's ledger entry.
        Nothing is persisted.
        """
        if self.attempt.stage == DisposalStage.COMPLETED:
            raise InvalidTransitionError('abandon', self.attempt.stage)
        logger.info(f"[{self.attempt.attempt_id}] Attempt abandoned at {self.attempt.stage.value}.")
        self.attempt = DisposalAttempt.new(self.attempt.user_id)

    # --- Completion ---

    def _upload_photo(self, photo: Optional[CapturedPhoto], kind: str) -> Optional[str]:
        if photo is None:
            return None
        path = f"disposals/{self.attempt.user_id}/{self.attempt.attempt_id}/{kind}.{photo.extension}"
        try:
            return self._persistence.upload_blob(path, photo.content, photo.content_type)
        except Exception as e:
            logger.error(f"[{self.attempt.attempt_id}] Failed to upload {kind} photo to {path}: {e}", exc_info=True)
            return None

    def _complete(self) -> CompletionReceipt:
        if self._persistence is None:
            raise PersistenceError("No persistence collaborator configured.")
        attempt = self.attempt
        material = attempt.classified_material
        if material is None:
            raise InvalidTransitionError('complete without a material', attempt.stage)

        item_ref = self._upload_photo(attempt.item_photo, 'item')
        proof_ref = self._upload_photo(attempt.proof_photo, 'proof')

        details = {
            'materialId': material.id,
            'materialName': material.display_name,
            'materialType': material.category,
            'co2Saved': material.co2_saved_kg,
            'verified': attempt.verified,
            'verificationOutcome': attempt.verification_outcome.value,
            'verificationScore': attempt.verification_score,
            'caveat': attempt.caveat,
            'itemImageRef': item_ref,
            'proofImageRef': proof_ref,
        }
        action_log_id = None
        try:
            action_log_id = self._persistence.insert_action_log(
                attempt.user_id, 'recycle', details, material.point_value,
                image_ref=item_ref, log_id=attempt.attempt_id,
            )
        except Exception as e:
            logger.error(f"[{attempt.attempt_id}] Failed to write action log: {e}", exc_info=True)

        try:
            newly_awarded = self._persistence.award_points(attempt.user_id, attempt.attempt_id, material.point_value)
        except Exception as e:
            logger.error(f"[{attempt.attempt_id}] Failed to award points: {e}", exc_info=True)
            raise PersistenceError(f"Failed to award points for attempt {attempt.attempt_id}") from e

        if not newly_awarded:
            logger.info(f"[{attempt.attempt_id}] Points were already awarded for this attempt.")
        self._set_stage(DisposalStage.COMPLETED)

        return CompletionReceipt(
            attempt_id=attempt.attempt_id,
            material_id=material.id,
            points_awarded=material.point_value,
            newly_awarded=newly_awarded,
            co2_saved_kg=material.co2_saved_kg,
            verified=attempt.verified,
            verification_outcome=attempt.verification_outcome,
            caveat=attempt.caveat,
            item_image_ref=item_ref,
            proof_image_ref=proof_ref,
            action_log_id=action_log_id,
        )
