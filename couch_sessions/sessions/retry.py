"""
Conflict Retry Controller - WBS 2.5

Re-issues session writes that CouchDB rejected with a document update
conflict.

Two writers racing on one document make CouchDB reject the one whose _rev is
stale. The controller re-reads the document, takes its latest _rev, and
writes again, up to a ceiling. The retry count lives in each write call
(threaded through the recursion), so concurrent writes never consume each
other's retries.

States:
- ATTEMPTING: a write is in flight, retries remain
- EXHAUSTED: the ceiling was reached; the last ConflictError is raised
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from couch_sessions.clients.couchdb import CouchDatabase
from couch_sessions.core.exceptions import (
    ConflictError,
    DocumentNotFoundError,
    SessionStoreException,
)
from couch_sessions.observability.logging import get_logger
from couch_sessions.observability.metrics import record_conflict_retry, record_write
from couch_sessions.sessions.models import REVISION_FIELD

logger = get_logger(__name__)

DEFAULT_MAX_CONFLICT_RETRIES: int = 3


class RetryState(str, Enum):
    """Conflict-retry state of a single write."""

    ATTEMPTING = "attempting"
    EXHAUSTED = "exhausted"


class WriteResult(BaseModel):
    """Outcome of a successful write.

    Attributes:
        id: Document id written
        rev: Revision CouchDB assigned
        retries: Conflict retries it took
    """

    id: str = Field(..., description="Document id")
    rev: str = Field(..., description="New revision")
    retries: int = Field(default=0, ge=0, description="Conflict retries used")


def with_revision(doc: dict[str, Any], rev: Optional[str]) -> dict[str, Any]:
    """Copy doc carrying rev as its _rev (dropped when rev is None)."""
    merged = {key: value for key, value in doc.items() if key != REVISION_FIELD}
    if rev is not None:
        merged[REVISION_FIELD] = rev
    return merged


class ConflictRetryController:
    """
    Writes documents, retrying on update conflicts.

    Example:
        >>> controller = ConflictRetryController(max_retries=3)
        >>> result = await controller.write(db, "cabc", {"user": 1})
        >>> result.rev
        '1-...'
    """

    def __init__(self, max_retries: int = DEFAULT_MAX_CONFLICT_RETRIES) -> None:
        self.max_retries = max_retries

    async def write(
        self,
        db: CouchDatabase,
        doc_id: str,
        doc: dict[str, Any],
        operation: str = "set",
        retries: int = 0,
    ) -> WriteResult:
        """
        Write doc at doc_id, retrying conflicts with the latest revision.

        Args:
            db: Database handle
            doc_id: Document id to write
            doc: Document body (may carry a _rev)
            operation: Store operation name for logs and metrics
            retries: Conflict retries already spent by this write

        Returns:
            WriteResult with the new revision

        Raises:
            ConflictError: Still conflicting after max_retries retries
                (retry_state is RetryState.EXHAUSTED)
            SessionStoreException: Any other failure, raised without retry
        """
        log = logger.bind(operation=operation, doc_id=doc_id, retries=retries)

        try:
            response = await db.insert(doc, doc_id)
        except ConflictError as e:
            if retries >= self.max_retries:
                e.retry_state = RetryState.EXHAUSTED
                e.retries = retries
                log.warning("write_conflict_exhausted", state=RetryState.EXHAUSTED.value)
                record_write(operation, "exhausted")
                raise

            record_conflict_retry(operation)
            try:
                latest_rev = await self._latest_revision(db, doc_id)
            except SessionStoreException as refetch_error:
                log.error(
                    "write_failed",
                    error=str(refetch_error),
                    error_code=refetch_error.error_code,
                    stage="refetch",
                )
                record_write(operation, "error")
                raise
            log.info(
                "write_conflict_retrying",
                state=RetryState.ATTEMPTING.value,
                latest_rev=latest_rev,
            )
            return await self.write(
                db,
                doc_id,
                with_revision(doc, latest_rev),
                operation=operation,
                retries=retries + 1,
            )
        except SessionStoreException as e:
            log.error("write_failed", error=str(e), error_code=e.error_code)
            record_write(operation, "error")
            raise

        record_write(operation, "ok")
        return WriteResult(id=response.get("id", doc_id), rev=response["rev"], retries=retries)

    async def _latest_revision(self, db: CouchDatabase, doc_id: str) -> Optional[str]:
        """Current _rev of doc_id, or None if it was deleted meanwhile."""
        try:
            current = await db.get(doc_id)
        except DocumentNotFoundError:
            return None
        return current.get(REVISION_FIELD)
