import logging
from flask import Blueprint, request, jsonify

from disposal_workflow import DisposalStage, DisposalWorkflow, InvalidTransitionError, PersistenceError
from perception import PerceptionUnavailableError
from extensions import limiter
from .auth import token_required
from .config import get_attempt_store, get_completion_hook, get_perceive, get_persistence
from .error_utils import (
    create_error_response, handle_exception, attempt_not_found_error, invalid_transition_error,
)
from .pydantic_models import AttemptResponse

recycle_bp = Blueprint('recycle_bp', __name__)

ALLOWED_PHOTO_TYPES = ('image/jpeg', 'image/png', 'image/webp')


def _workflow_for(attempt):
    return DisposalWorkflow(attempt, get_perceive(), get_persistence())


def _load_workflow(user_id, attempt_id):
    attempt = get_attempt_store().load(attempt_id, user_id)
    return _workflow_for(attempt) if attempt else None


def _read_photo():
    """Returns (bytes, content_type) of the multipart `photo` field, or None."""
    photo = request.files.get('photo')
    if photo is None:
        return None
    data = photo.read()
    if not data:
        return None
    content_type = photo.mimetype if photo.mimetype in ALLOWED_PHOTO_TYPES else 'image/jpeg'
    return data, content_type


def _attempt_json(workflow, receipt=None, status_code=200):
    return jsonify(AttemptResponse.from_attempt(workflow.attempt, receipt).model_dump()), status_code


def _vision_unavailable(workflow):
    return create_error_response(
        "VISION_UNAVAILABLE",
        details=AttemptResponse.from_attempt(workflow.attempt).model_dump(),
        status_code=503,
    )


def _finish(user_id, workflow, receipt):
    """Drops the finished attempt and fires the completion hook. Neither may undo the award."""
    try:
        get_attempt_store().delete(workflow.attempt.attempt_id)
    except ConnectionError as e:
        logging.error(f"Could not delete completed attempt {workflow.attempt.attempt_id}: {e}")
    try:
        get_completion_hook()(user_id, receipt)
    except Exception as e:
        logging.error(f"Completion hook failed for attempt {receipt.attempt_id}: {e}", exc_info=True)
    return _attempt_json(workflow, receipt)


def _verify_and_finish(user_id, workflow):
    """Runs the verifier on the captured proof and completes when it passes."""
    workflow.verify_proof()
    if workflow.stage != DisposalStage.VERIFIED:
        get_attempt_store().save(workflow.attempt)
        return _attempt_json(workflow)

    # Saved before the award so a failed completion resumes through /complete
    get_attempt_store().save(workflow.attempt)
    receipt = workflow.complete()
    return _finish(user_id, workflow, receipt)


def _handle_workflow_error(e, context, workflow=None):
    if isinstance(e, InvalidTransitionError):
        return invalid_transition_error(str(e), e.stage.value)
    if isinstance(e, ConnectionError):
        logging.error(f"Attempt store unavailable in {context}: {e}")
        return create_error_response("STORE_UNAVAILABLE", status_code=503)
    if isinstance(e, PersistenceError):
        if workflow is not None:
            # The attempt stays resumable at its last committed stage
            get_attempt_store().save(workflow.attempt)
        return create_error_response("DATABASE_ERROR", str(e), status_code=503)
    return handle_exception(e, context)


@recycle_bp.route('/attempts', methods=['POST'])
@token_required
def start_attempt(user_id):
    try:
        workflow = DisposalWorkflow.start(user_id, get_perceive(), get_persistence())
        get_attempt_store().save(workflow.attempt)
        logging.info(f"User {user_id} started disposal attempt {workflow.attempt.attempt_id}")
        return _attempt_json(workflow, status_code=201)
    except Exception as e:
        return _handle_workflow_error(e, "start_attempt endpoint")


@recycle_bp.route('/attempts/<attempt_id>', methods=['GET'])
@token_required
def get_attempt(user_id, attempt_id):
    try:
        workflow = _load_workflow(user_id, attempt_id)
        if workflow is None:
            return attempt_not_found_error()
        return _attempt_json(workflow)
    except Exception as e:
        return _handle_workflow_error(e, "get_attempt endpoint")


@recycle_bp.route('/attempts/<attempt_id>/item-photo', methods=['POST'])
@limiter.limit("30 per hour")
@token_required
def upload_item_photo(user_id, attempt_id):
    workflow = None
    try:
        workflow = _load_workflow(user_id, attempt_id)
        if workflow is None:
            return attempt_not_found_error()
        photo = _read_photo()
        if photo is None:
            return create_error_response("PHOTO_MISSING", status_code=400)

        workflow.capture_item(*photo)
        # Stored before the labeling call so a dead request can be resumed with /retry
        get_attempt_store().save(workflow.attempt)
        try:
            workflow.classify_item()
        except PerceptionUnavailableError:
            get_attempt_store().save(workflow.attempt)
            return _vision_unavailable(workflow)

        get_attempt_store().save(workflow.attempt)
        return _attempt_json(workflow)
    except Exception as e:
        return _handle_workflow_error(e, "upload_item_photo endpoint", workflow)


@recycle_bp.route('/attempts/<attempt_id>/retry', methods=['POST'])
@limiter.limit("30 per hour")
@token_required
def retry_attempt(user_id, attempt_id):
    """
    Re-runs the last perception step: classification after UNAVAILABLE or
    from a stored ITEM_CAPTURED attempt, verification from a stored
    PROOF_CAPTURED attempt.
    """
    workflow = None
    try:
        workflow = _load_workflow(user_id, attempt_id)
        if workflow is None:
            return attempt_not_found_error()
        if workflow.stage == DisposalStage.PROOF_CAPTURED:
            return _verify_and_finish(user_id, workflow)
        try:
            workflow.retry()
        except PerceptionUnavailableError:
            get_attempt_store().save(workflow.attempt)
            return _vision_unavailable(workflow)

        get_attempt_store().save(workflow.attempt)
        return _attempt_json(workflow)
    except Exception as e:
        return _handle_workflow_error(e, "retry_attempt endpoint", workflow)


@recycle_bp.route('/attempts/<attempt_id>/proof-photo', methods=['POST'])
@limiter.limit("30 per hour")
@token_required
def upload_proof_photo(user_id, attempt_id):
    workflow = None
    try:
        workflow = _load_workflow(user_id, attempt_id)
        if workflow is None:
            return attempt_not_found_error()
        photo = _read_photo()
        if photo is None:
            return create_error_response("PHOTO_MISSING", status_code=400)

        workflow.capture_proof(*photo)
        get_attempt_store().save(workflow.attempt)
        return _verify_and_finish(user_id, workflow)
    except Exception as e:
        return _handle_workflow_error(e, "upload_proof_photo endpoint", workflow)


@recycle_bp.route('/attempts/<attempt_id>/complete', methods=['POST'])
@token_required
def complete_attempt(user_id, attempt_id):
    """Resumes a verified attempt whose completion was interrupted."""
    workflow = None
    try:
        workflow = _load_workflow(user_id, attempt_id)
        if workflow is None:
            return attempt_not_found_error()
        receipt = workflow.complete()
        return _finish(user_id, workflow, receipt)
    except Exception as e:
        return _handle_workflow_error(e, "complete_attempt endpoint", workflow)


@recycle_bp.route('/attempts/<attempt_id>/skip-proof', methods=['POST'])
@limiter.limit("30 per hour")
@token_required
def skip_proof(user_id, attempt_id):
    """
    Completes without verification. Needs a captured proof photo: either
    already stored at PROOF_CAPTURED or sent with this request as `photo`.
    """
    workflow = None
    try:
        workflow = _load_workflow(user_id, attempt_id)
        if workflow is None:
            return attempt_not_found_error()
        photo = _read_photo()
        # A rejected proof cannot be replaced here, only retaken through /proof-photo
        if photo is not None and workflow.stage == DisposalStage.CLASSIFIED:
            workflow.capture_proof(*photo)
            get_attempt_store().save(workflow.attempt)
        receipt = workflow.skip_proof()
        logging.info(f"User {user_id} skipped proof for attempt {attempt_id}; awarded without verification")
        return _finish(user_id, workflow, receipt)
    except Exception as e:
        return _handle_workflow_error(e, "skip_proof endpoint", workflow)


@recycle_bp.route('/attempts/<attempt_id>/restart', methods=['POST'])
@token_required
def restart_attempt(user_id, attempt_id):
    """Replaces the attempt with a fresh IDLE one, e.g. after an unrecognized item."""
    try:
        workflow = _load_workflow(user_id, attempt_id)
        if workflow is None:
            return attempt_not_found_error()
        workflow.abandon()
        get_attempt_store().save(workflow.attempt)
        get_attempt_store().delete(attempt_id)
        logging.info(f"User {user_id} restarted attempt {attempt_id} as {workflow.attempt.attempt_id}")
        return _attempt_json(workflow, status_code=201)
    except Exception as e:
        return _handle_workflow_error(e, "restart_attempt endpoint")


@recycle_bp.route('/attempts/<attempt_id>/abandon', methods=['POST'])
@token_required
def abandon_attempt(user_id, attempt_id):
    try:
        workflow = _load_workflow(user_id, attempt_id)
        if workflow is None:
            return attempt_not_found_error()
        workflow.abandon()
        get_attempt_store().delete(attempt_id)
        return jsonify({"message": "Attempt abandoned"}), 200
    except Exception as e:
        return _handle_workflow_error(e, "abandon_attempt endpoint")
