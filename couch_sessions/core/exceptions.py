"""
Custom exceptions for couch-sessions.

WBS 1.2.1: Custom Exceptions

This module provides the exception hierarchy raised by the session store.
All exceptions inherit from SessionStoreException and include error codes for
consistent handling and log correlation.

Reference:
- CouchDB HTTP API: 404 not_found, 409 conflict, 412 file_exists
- GUIDELINES: Specific exceptions, always capture with 'as e'
"""

from enum import Enum
from typing import Any, Optional


# =============================================================================
# WBS 1.2.1.1: Error Codes Enum
# =============================================================================


class ErrorCode(str, Enum):
    """
    Error codes for session store exceptions.

    These codes identify error types in logs and metrics labels.
    """

    STORE_ERROR = "STORE_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    PROVISIONING_ERROR = "PROVISIONING_ERROR"
    COUCHDB_ERROR = "COUCHDB_ERROR"
    CONFLICT_ERROR = "CONFLICT_ERROR"
    NOT_FOUND_ERROR = "NOT_FOUND_ERROR"
    BULK_PARTIAL_ERROR = "BULK_PARTIAL_ERROR"


# =============================================================================
# WBS 1.2.1.2: Base Exception
# =============================================================================


class SessionStoreException(Exception):
    """
    Base exception for all session store errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.STORE_ERROR,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# WBS 1.2.1.3: StoreConnectionError
# =============================================================================


class StoreConnectionError(SessionStoreException):
    """
    Exception for an unreachable server or rejected credentials.

    Note: Named StoreConnectionError to avoid shadowing the builtin
    ConnectionError.

    Attributes:
        url: Redacted server URL the store tried to reach.
        status_code: HTTP status when the server answered (401/403).
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        error_code: str = ErrorCode.CONNECTION_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.url = url
        self.status_code = status_code


# =============================================================================
# WBS 1.2.1.4: ProvisioningError
# =============================================================================


class ProvisioningError(SessionStoreException):
    """
    Exception raised when the session database could not be created.

    Attributes:
        database: Name of the database that was being created.
    """

    def __init__(
        self,
        message: str,
        database: str,
        error_code: str = ErrorCode.PROVISIONING_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.database = database


# =============================================================================
# WBS 1.2.1.5: CouchDB Response Errors
# =============================================================================


class CouchDBError(SessionStoreException):
    """
    Exception for an error response returned by CouchDB.

    Attributes:
        status_code: HTTP status code of the response.
        reason: The "error" field of CouchDB's JSON body (e.g. "conflict").
        doc_id: Document the request addressed, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        doc_id: Optional[str] = None,
        error_code: str = ErrorCode.COUCHDB_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.status_code = status_code
        self.reason = reason
        self.doc_id = doc_id


class ConflictError(CouchDBError):
    """
    Write rejected because the supplied revision is not the current one.

    Recoverable: the conflict-retry controller re-reads the document and
    retries with its latest revision.

    Attributes:
        retries: Conflict retries spent before this error was raised.
        retry_state: Set to "exhausted" once the retry ceiling was hit.
    """

    retries: int = 0
    retry_state: Optional[str] = None

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("status_code", 409)
        kwargs.setdefault("reason", "conflict")
        kwargs.setdefault("error_code", ErrorCode.CONFLICT_ERROR)
        super().__init__(message, **kwargs)


class DocumentNotFoundError(CouchDBError):
    """Requested document (or database) does not exist."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("status_code", 404)
        kwargs.setdefault("reason", "not_found")
        kwargs.setdefault("error_code", ErrorCode.NOT_FOUND_ERROR)
        super().__init__(message, **kwargs)


# =============================================================================
# WBS 1.2.1.6: BulkPartialError
# =============================================================================


class BulkPartialError(SessionStoreException):
    """
    One or more documents of a _bulk_docs batch were rejected.

    Only the aggregate is reported; individual failures are not retried.

    Attributes:
        failed_ids: Ids of the documents CouchDB rejected.
        total: Number of documents submitted in the batch.
    """

    def __init__(
        self,
        message: str,
        failed_ids: Optional[list[str]] = None,
        total: int = 0,
        error_code: str = ErrorCode.BULK_PARTIAL_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.failed_ids = failed_ids or []
        self.total = total
