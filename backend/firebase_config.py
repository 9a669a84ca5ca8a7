import os
import json
import logging

import firebase_admin
from firebase_admin import credentials, firestore

from backend import config
from backend.errors import FirebaseConfigError

logger = logging.getLogger(__name__)

_db = None


def _load_credentials():
    """Build a Firebase credential from the env JSON string or a local key file."""
    if config.FIREBASE_CREDENTIALS:
        # FIREBASE_CREDENTIALS is expected to be a JSON string
        return credentials.Certificate(json.loads(config.FIREBASE_CREDENTIALS))

    service_key_paths = [
        config.FIREBASE_CREDENTIALS_FILE,
        os.path.join("..", config.FIREBASE_CREDENTIALS_FILE),
    ]
    for path in service_key_paths:
        if os.path.exists(path):
            logger.info("Using Firebase service account file %s", path)
            return credentials.Certificate(path)
    return None


def init_firebase():
    # Initialize Firebase only if it's not already initialized
    if firebase_admin._apps:
        return
    try:
        cred = _load_credentials()
    except (ValueError, OSError) as e:
        logger.error("Firebase initialization failed: %s", e)
        raise FirebaseConfigError(f"Invalid Firebase credentials: {e}") from e
    if cred is None:
        raise FirebaseConfigError("Firebase credentials not found (env or file)")
    firebase_admin.initialize_app(cred)
    logger.info("Firebase initialized")


def get_db():
    """Return the shared Firestore client, initializing Firebase on first use."""
    global _db
    if _db is None:
        init_firebase()
        _db = firestore.client()
    return _db
