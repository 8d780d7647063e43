"""
Centralized Firebase initialization, used by the Celery worker for push notifications.
"""

import logging
import firebase_admin
from firebase_admin import credentials

_firebase_initialized = False


def initialize_firebase():
    """
    Initialize the Firebase Admin SDK once per process.
    Uses GOOGLE_APPLICATION_CREDENTIALS for credentials.

    Returns:
        bool: True if initialization was successful, False otherwise
    """
    global _firebase_initialized

    if _firebase_initialized:
        return True

    try:
        if not firebase_admin._apps:
            cred = credentials.ApplicationDefault()
            firebase_admin.initialize_app(cred)
            logging.info("Firebase Admin SDK initialized successfully.")
        _firebase_initialized = True
        return True
    except Exception as e:
        logging.error(f"Failed to initialize Firebase Admin SDK: {e}")
        return False


__all__ = ['initialize_firebase']
