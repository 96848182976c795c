"""
Sessions Package - WBS 2 Session Layer

This package provides CouchDB-backed session storage for web session
middleware.

WBS Items:
- 2.1: Session key mapping (sid_to_document_key)
- 2.2: Session cookie model
- 2.3: SessionStoreProtocol contract
- 2.4: DatabaseProvisioner (one-time database setup)
- 2.5: ConflictRetryController (document update conflicts)
- 2.6: CouchDBSessionStore
"""

from couch_sessions.sessions.base import SessionData, SessionStoreProtocol
from couch_sessions.sessions.keys import DOCUMENT_KEY_PREFIX, sid_to_document_key
from couch_sessions.sessions.models import SessionCookie, refresh_cookie
from couch_sessions.sessions.provisioner import DatabaseProvisioner
from couch_sessions.sessions.retry import (
    ConflictRetryController,
    RetryState,
    WriteResult,
)
from couch_sessions.sessions.store import CouchDBSessionStore

__all__ = [
    "CouchDBSessionStore",
    "ConflictRetryController",
    "DatabaseProvisioner",
    "DOCUMENT_KEY_PREFIX",
    "RetryState",
    "SessionCookie",
    "SessionData",
    "SessionStoreProtocol",
    "WriteResult",
    "refresh_cookie",
    "sid_to_document_key",
]
