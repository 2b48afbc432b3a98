"""
Database connections.

- PostgreSQL: system of record (via SQLAlchemy)
- Firestore: realtime change-event feed (optional, via google-cloud-firestore)
"""

from .postgres import db, init_db, get_db_session, session_scope, bind_engine
from .firestore import get_firestore_client, firestore_enabled, firestore_available

__all__ = [
    "db",
    "init_db",
    "get_db_session",
    "session_scope",
    "bind_engine",
    "get_firestore_client",
    "firestore_enabled",
    "firestore_available",
]
