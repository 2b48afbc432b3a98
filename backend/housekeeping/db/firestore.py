"""
Firestore client wrapper.

Firestore carries the realtime change-event feed that devices subscribe
to. It is optional: every caller degrades to in-process delivery when it
is disabled or unreachable.
"""

import logging
import os
import threading
from pathlib import Path

from housekeeping.config import config

logger = logging.getLogger("db.firestore")

# Firestore client (initialized lazily)
_firestore_client = None
_firestore_available = None  # None = not tested, True/False = tested


def firestore_enabled() -> bool:
    """Check if Firestore is enabled in config."""
    return config.ENABLE_FIRESTORE


def firestore_available() -> bool:
    """
    Check if Firestore is both enabled AND reachable.

    Returns False if disabled or connection failed.
    """
    if not firestore_enabled():
        return False

    if _firestore_available is not None:
        return _firestore_available

    get_firestore_client()
    return bool(_firestore_available)


def check_firestore_connection(client, timeout: float = 3.0) -> bool:
    """Test Firestore connection with a quick read operation."""
    global _firestore_available

    result = {"success": False}

    def _test():
        try:
            list(client.collections())
            result["success"] = True
        except Exception as e:
            logger.warning(f"Firestore probe failed: {e}")

    thread = threading.Thread(target=_test, daemon=True)
    thread.start()
    thread.join(timeout=timeout)

    if thread.is_alive():
        logger.warning(f"Firestore connection test timed out ({timeout}s)")
        _firestore_available = False
        return False

    _firestore_available = result["success"]
    return result["success"]


def get_firestore_client():
    """
    Get or create Firestore client.

    Returns None if Firestore is disabled or unavailable.
    """
    global _firestore_client, _firestore_available

    if not firestore_enabled():
        return None

    if _firestore_available is False:
        return None

    if _firestore_client is not None:
        return _firestore_client

    creds_path = config.GCP_CREDENTIALS_PATH
    if not os.path.isabs(creds_path):
        backend_dir = Path(__file__).parent.parent.parent
        creds_path = backend_dir / creds_path

    if not os.path.exists(creds_path):
        logger.warning(f"Firestore credentials not found: {creds_path}")
        _firestore_available = False
        return None

    os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = str(creds_path)

    try:
        from google.cloud import firestore

        _firestore_client = firestore.Client(
            project=config.GCP_PROJECT_ID,
            database=config.FIRESTORE_DATABASE,
        )
        logger.info(
            f"Firestore connected: project={config.GCP_PROJECT_ID}, "
            f"database={config.FIRESTORE_DATABASE}"
        )
        check_firestore_connection(_firestore_client, timeout=3.0)
        return _firestore_client

    except Exception as e:
        logger.error(f"Firestore connection error: {e}")
        _firestore_available = False
        return None


def reset_firestore_state():
    """Reset Firestore state for testing or retry."""
    global _firestore_client, _firestore_available
    _firestore_client = None
    _firestore_available = None
