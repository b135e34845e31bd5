"""
Firestore connection management.

Key concepts:
- firebase_admin is initialised exactly once per process. A second
  initialize_app() call raises, so we check get_app() first.
- Configuration problems (missing service-account file, bad JSON, no
  default credentials) are detected ONCE at startup and recorded in
  `firestore_status`. Requests never see the exception; they get a None
  client and degrade to an "error" report.
- get_firestore() is a FastAPI dependency, so tests swap the real client
  for an in-memory double with app.dependency_overrides.
"""

import logging
import os

import firebase_admin
from firebase_admin import credentials, firestore

from dorlog.config import settings

logger = logging.getLogger(__name__)

_client = None
firestore_status = "not initialised"


def init_firestore():
    """Initialise firebase_admin and create the Firestore client.

    Called once from the app lifespan. Returns the client, or None when
    Firebase isn't configured.
    """
    global _client, firestore_status

    options = {}
    if settings.FIREBASE_PROJECT_ID:
        options["projectId"] = settings.FIREBASE_PROJECT_ID
    if settings.FIREBASE_STORAGE_BUCKET:
        options["storageBucket"] = settings.FIREBASE_STORAGE_BUCKET

    try:
        try:
            firebase_admin.get_app()
        except ValueError:
            cred_path = settings.FIREBASE_CREDENTIALS_PATH
            if cred_path:
                if not os.path.exists(cred_path):
                    raise FileNotFoundError(
                        f"Firebase credentials not found at {cred_path}"
                    )
                cred = credentials.Certificate(cred_path)
            else:
                cred = credentials.ApplicationDefault()
            firebase_admin.initialize_app(cred, options or None)

        _client = firestore.client()
        firestore_status = "connected"
        logger.info("Firestore client initialised")
    except Exception as e:
        _client = None
        firestore_status = f"not configured: {e}"
        logger.error("Firestore unavailable, reports will be empty: %s", e)

    return _client


def get_firestore():
    """FastAPI dependency that provides the Firestore client (or None).

    Usage in a route:
        @router.get("/items")
        async def get_items(db=Depends(get_firestore)):
            ...
    """
    return _client
