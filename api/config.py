"""
Per-app collaborators. main.create_app() puts them in app.config so the
blueprints never build clients at import time and tests can swap them.
"""

from flask import current_app


def get_persistence():
    return current_app.config['PERSISTENCE']


def get_attempt_store():
    return current_app.config['ATTEMPT_STORE']


def get_perceive():
    """The labeling collaborator: perceive(image_bytes, content_type) -> PerceptionResult."""
    return current_app.config['PERCEIVE']


def get_completion_hook():
    """Called with (user_id, CompletionReceipt) after a disposal completes."""
    return current_app.config['ON_DISPOSAL_COMPLETED']
