"""
Core module for couch-sessions.

This module contains configuration and the exception hierarchy.

WBS 1.1: Configuration
WBS 1.2: Custom Exceptions
"""

from couch_sessions.core.config import Settings, get_settings
from couch_sessions.core.exceptions import (
    BulkPartialError,
    ConflictError,
    CouchDBError,
    DocumentNotFoundError,
    ErrorCode,
    ProvisioningError,
    SessionStoreException,
    StoreConnectionError,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Exceptions
    "ErrorCode",
    "SessionStoreException",
    "StoreConnectionError",
    "ProvisioningError",
    "CouchDBError",
    "ConflictError",
    "DocumentNotFoundError",
    "BulkPartialError",
]
