"""
Session Store - WBS 2.6 CouchDB Store Implementation

This module provides CouchDB-based session storage for web session
middleware.

Every operation first awaits the provisioner (the database is created on
first use if missing), maps the session id to a document id with
sid_to_document_key(), and sends writes through the conflict retry
controller.

WBS Items:
- 2.6.1: Implement CouchDBSessionStore class
- 2.6.2: Inject settings / HTTP client dependencies
- 2.6.3: Implement async get(sid) -> dict | None
- 2.6.4: Implement async set(sid, session)
- 2.6.5: Implement async destroy(sid)
- 2.6.6: Implement async clear()
- 2.6.7: Implement async length() -> int
- 2.6.8: Implement async all() -> list[dict]
- 2.6.9: Implement async touch(sid, session)

Pattern: Repository pattern (Percival & Gregory pp. 86)
Pattern: Dependency injection for the HTTP client (Sinha pp. 89-90)
"""

from typing import Any, Optional

import httpx

from couch_sessions.clients.couchdb import CouchDatabase, CouchDBClient
from couch_sessions.core.config import Settings, get_settings
from couch_sessions.core.exceptions import (
    BulkPartialError,
    DocumentNotFoundError,
    SessionStoreException,
)
from couch_sessions.observability.logging import configure_logging, get_logger
from couch_sessions.observability.metrics import record_lookup
from couch_sessions.sessions.base import SessionData
from couch_sessions.sessions.keys import sid_to_document_key
from couch_sessions.sessions.models import (
    DOCUMENT_ID_FIELD,
    REVISION_FIELD,
    refresh_cookie,
)
from couch_sessions.sessions.provisioner import DatabaseProvisioner
from couch_sessions.sessions.retry import ConflictRetryController, with_revision

logger = get_logger(__name__)


# =============================================================================
# WBS 2.6.1: CouchDBSessionStore Class
# =============================================================================


class CouchDBSessionStore:
    """
    CouchDB-based session storage.

    Implements SessionStoreProtocol. Sessions are stored as one document
    per session id; CouchDB's _rev tokens guard against lost updates.

    Attributes:
        settings: Effective settings of this store.

    Example:
        >>> store = CouchDBSessionStore(hostname="couchdb", database="sessions")
        >>> await store.set("abc", {"user": 1, "cookie": {"maxAge": 60000}})
        >>> await store.get("abc")
        {'_id': 'cabc', '_rev': '1-...', 'user': 1, 'cookie': {...}}
        >>> await store.close()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        **options: Any,
    ) -> None:
        """
        Initialize the store. No I/O happens until the first operation.

        WBS 2.6.2: Inject settings / HTTP client dependencies.

        Args:
            settings: Base settings (defaults to get_settings()).
            http_client: Optional pre-configured HTTP client (for testing);
                must already point at the CouchDB server.
            **options: Per-store overrides of Settings fields, e.g.
                hostname="couchdb", port=5984, database="sessions".
        """
        base = settings or get_settings()
        if options:
            base = Settings(**{**base.model_dump(), **options})
        self.settings: Settings = base

        # No-op when the application already configured structlog
        configure_logging(level=self.settings.log_level)

        self._client = CouchDBClient(self.settings, http_client=http_client)
        self._provisioner = DatabaseProvisioner(self._client, self.settings.database)
        self._writer = ConflictRetryController(
            max_retries=self.settings.max_conflict_retries
        )

    async def ready(self) -> CouchDatabase:
        """
        Return the database handle, provisioning it on first call.

        Raises:
            StoreConnectionError: Server unreachable or credentials rejected.
            ProvisioningError: Database missing and could not be created.
        """
        database = self._provisioner.database
        if database is not None:
            return database
        return await self._provisioner.ready()

    async def close(self) -> None:
        """Close the underlying HTTP client if the store created it."""
        await self._client.close()

    async def __aenter__(self) -> "CouchDBSessionStore":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # =========================================================================
    # WBS 2.6.3: get
    # =========================================================================

    async def get(self, sid: str) -> Optional[SessionData]:
        """
        Retrieve a session.

        A missing session and a failed fetch both return None so that the
        middleware never fails a request on a lookup. The two cases are
        logged and counted separately (couch_sessions_lookups_total).

        Args:
            sid: Session id.

        Returns:
            The stored document (payload plus _id/_rev), or None.
        """
        db = await self.ready()
        key = sid_to_document_key(sid)
        log = logger.bind(sid=sid, doc_id=key)

        try:
            doc = await db.get(key)
        except DocumentNotFoundError:
            log.debug("session_not_found")
            record_lookup("miss")
            return None
        except SessionStoreException as e:
            log.error("session_lookup_failed", error=str(e), error_code=e.error_code)
            record_lookup("error")
            return None

        record_lookup("hit")
        return doc

    # =========================================================================
    # WBS 2.6.4: set
    # =========================================================================

    async def set(self, sid: str, session: SessionData) -> None:
        """
        Create or overwrite a session.

        A _rev carried by the payload is sent along; conflicts are retried
        with the latest revision up to settings.max_conflict_retries times.

        Raises:
            ConflictError: Conflicts persisted past the retry ceiling.
            SessionStoreException: Any other write failure.
        """
        db = await self.ready()
        key = sid_to_document_key(sid)

        doc = {k: v for k, v in session.items() if k != DOCUMENT_ID_FIELD}
        result = await self._writer.write(db, key, doc, operation="set")
        logger.debug("session_saved", sid=sid, rev=result.rev, retries=result.retries)

    # =========================================================================
    # WBS 2.6.5: destroy
    # =========================================================================

    async def destroy(self, sid: str) -> None:
        """
        Delete a session at its current revision.

        When the session cannot be read the delete is still sent without a
        revision; CouchDB's rejection is raised unchanged.

        Raises:
            DocumentNotFoundError: No such session.
            SessionStoreException: Any other failure.
        """
        db = await self.ready()
        key = sid_to_document_key(sid)
        log = logger.bind(sid=sid, doc_id=key)

        rev: Optional[str] = None
        try:
            current = await db.get(key)
            rev = current.get(REVISION_FIELD)
        except DocumentNotFoundError:
            log.info("session_destroy_lookup_missing")

        try:
            await db.destroy(key, rev)
        except SessionStoreException as e:
            log.error("session_destroy_failed", error=str(e), error_code=e.error_code)
            raise
        log.debug("session_destroyed", rev=rev)

    # =========================================================================
    # WBS 2.6.6: clear
    # =========================================================================

    async def clear(self) -> None:
        """
        Delete every document in one _bulk_docs batch.

        Raises:
            BulkPartialError: CouchDB rejected some of the deletions.
            SessionStoreException: Listing or the batch request failed.
        """
        db = await self.ready()

        try:
            listing = await db.all_docs(include_docs=True)
        except SessionStoreException as e:
            logger.error("session_clear_list_failed", error=str(e))
            raise

        tombstones = [
            {
                DOCUMENT_ID_FIELD: row.id,
                REVISION_FIELD: (row.doc or {}).get(REVISION_FIELD, row.value.get("rev")),
                "_deleted": True,
            }
            for row in listing.rows
        ]
        if not tombstones:
            return

        try:
            outcomes = await db.bulk(tombstones)
        except SessionStoreException as e:
            logger.error("session_clear_bulk_failed", error=str(e))
            raise

        failed_ids = [outcome.id for outcome in outcomes if outcome.error]
        if failed_ids:
            logger.error(
                "session_clear_partial",
                failed=len(failed_ids),
                total=len(tombstones),
            )
            raise BulkPartialError(
                f"{len(failed_ids)} of {len(tombstones)} sessions could not be deleted",
                failed_ids=failed_ids,
                total=len(tombstones),
            )
        logger.info("sessions_cleared", count=len(tombstones))

    # =========================================================================
    # WBS 2.6.7: length
    # =========================================================================

    async def length(self) -> int:
        """Number of documents in the session database."""
        db = await self.ready()
        try:
            return await db.count()
        except SessionStoreException as e:
            logger.error("session_length_failed", error=str(e))
            raise

    # =========================================================================
    # WBS 2.6.8: all
    # =========================================================================

    async def all(self) -> list[SessionData]:
        """Every stored document, in CouchDB's _all_docs order."""
        db = await self.ready()
        try:
            listing = await db.all_docs(include_docs=True)
        except SessionStoreException as e:
            logger.error("session_all_failed", error=str(e))
            raise
        return [row.doc for row in listing.rows if row.doc is not None]

    # =========================================================================
    # WBS 2.6.9: touch
    # =========================================================================

    async def touch(self, sid: str, session: SessionData) -> None:
        """
        Refresh a session's expiry.

        cookie.expires becomes now + cookie.maxAge when both are present;
        otherwise it is written as given. The write targets the document of
        sid at its current revision.

        Raises:
            DocumentNotFoundError: The session does not exist.
            ConflictError: Conflicts persisted past the retry ceiling.
        """
        db = await self.ready()
        key = sid_to_document_key(sid)
        log = logger.bind(sid=sid, doc_id=key)

        try:
            current = await db.get(key)
        except SessionStoreException as e:
            log.warning("session_touch_lookup_failed", error=str(e))
            raise

        doc = {k: v for k, v in session.items() if k != DOCUMENT_ID_FIELD}
        if "cookie" in doc:
            doc["cookie"] = refresh_cookie(doc["cookie"])
        doc = with_revision(doc, current.get(REVISION_FIELD))

        result = await self._writer.write(db, key, doc, operation="touch")
        log.debug("session_touched", rev=result.rev, retries=result.retries)
