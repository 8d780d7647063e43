# FILE: hexbear-backend/main.py

import os
import logging
from flask import Flask, jsonify
from dotenv import load_dotenv
from pydantic import ValidationError
from logging_config import setup_logging
from extensions import limiter

import dependencies
import vision_service
from persistence import FirestorePersistence
from api.attempt_store import AttemptStore
from api.encryption_utils import get_jwt_secret_keys

# --- SETUP & CONFIG ---
# Load environment variables for the Flask app process.
load_dotenv()
setup_logging()


def _queue_completion_tasks(user_id, receipt):
    # Imported here so the web process only needs the broker once a disposal completes.
    from tasks import queue_completion_tasks
    queue_completion_tasks(user_id, receipt)


def create_app(config=None, persistence=None, attempt_store=None, perceive=None, on_completed=None):
    """
    Builds the Flask app. Collaborators default to the production clients
    (Firestore/GCS, Redis, Gemini, Celery); tests pass their own.
    """
    app = Flask(__name__)
    app.config.update(
        JWT_SECRET_KEYS=get_jwt_secret_keys(),
        RATELIMIT_STORAGE_URI=os.environ.get('RATELIMIT_STORAGE_URI', dependencies.REDIS_URL),
    )
    if config:
        app.config.update(config)

    app.config['PERSISTENCE'] = persistence or FirestorePersistence()
    app.config['ATTEMPT_STORE'] = attempt_store or AttemptStore(
        dependencies.get_redis_client, dependencies.ATTEMPT_TTL_SECONDS
    )
    app.config['PERCEIVE'] = perceive or vision_service.annotate_image
    app.config['ON_DISPOSAL_COMPLETED'] = on_completed or _queue_completion_tasks

    # --- Initialize Extensions ---
    limiter.init_app(app)

    # --- Import and Register Blueprints ---
    from api.recycle import recycle_bp
    from api.actions import actions_bp
    from api.users import users_bp

    app.register_blueprint(recycle_bp, url_prefix='/recycle')
    app.register_blueprint(actions_bp, url_prefix='/actions')
    app.register_blueprint(users_bp, url_prefix='/users')

    @app.route('/health', methods=['GET'])
    @limiter.exempt
    def health():
        return jsonify({"status": "ok"}), 200

    # --- Global Error Handlers ---
    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({"error_code": "BAD_REQUEST", "details": e.errors(include_url=False, include_context=False)}), 400

    @app.errorhandler(404)
    def resource_not_found(e):
        """Handles 404 Not Found errors for a clean API response."""
        return jsonify(error_code="NOT_FOUND", message="The requested resource was not found."), 404

    @app.errorhandler(500)
    def internal_server_error(e):
        """Handles unexpected 500 Internal Server Errors for a clean API response."""
        logging.critical(f"An unhandled exception occurred: {e}", exc_info=True)
        return jsonify(error_code="INTERNAL_SERVER_ERROR", message="An unexpected error occurred on the server."), 500

    return app


app = create_app()
