"""couch-sessions - CouchDB session store for web session middleware.

Typical use:

    from couch_sessions import CouchDBSessionStore

    store = CouchDBSessionStore(hostname="couchdb", database="sessions")
    await store.set(sid, session)
"""

from couch_sessions.core.config import Settings, get_settings
from couch_sessions.core.exceptions import (
    BulkPartialError,
    ConflictError,
    CouchDBError,
    DocumentNotFoundError,
    ProvisioningError,
    SessionStoreException,
    StoreConnectionError,
)
from couch_sessions.sessions.base import SessionStoreProtocol
from couch_sessions.sessions.keys import sid_to_document_key
from couch_sessions.sessions.store import CouchDBSessionStore

__version__ = "1.0.0"

__all__ = [
    "CouchDBSessionStore",
    "SessionStoreProtocol",
    "Settings",
    "get_settings",
    "sid_to_document_key",
    "SessionStoreException",
    "StoreConnectionError",
    "ProvisioningError",
    "CouchDBError",
    "ConflictError",
    "DocumentNotFoundError",
    "BulkPartialError",
]
