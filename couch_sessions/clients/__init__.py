"""
Clients Package - WBS 1.3 HTTP Client Setup

This package provides the HTTP client factory and the CouchDB client the
session store is built on.

WBS Items:
- 1.3.1: CouchDB transport (auth, pooling, timeouts)
- 1.3.2: CouchDB Client
"""

from couch_sessions.clients.couchdb import (
    AllDocsResult,
    AllDocsRow,
    BulkDocResult,
    CouchDatabase,
    CouchDBClient,
    raise_for_couchdb_status,
)
from couch_sessions.clients.http import (
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_MAX_KEEPALIVE,
    couchdb_auth,
    create_http_client,
)

__all__ = [
    # HTTP Client Factory
    "couchdb_auth",
    "create_http_client",
    "DEFAULT_CONNECT_RETRIES",
    "DEFAULT_MAX_CONNECTIONS",
    "DEFAULT_MAX_KEEPALIVE",
    # CouchDB Client
    "AllDocsResult",
    "AllDocsRow",
    "BulkDocResult",
    "CouchDatabase",
    "CouchDBClient",
    "raise_for_couchdb_status",
]
