"""
CouchDB Client - WBS 1.3.2

This module provides a thin async client for the parts of the CouchDB HTTP
API the session store consumes.

Reference Documents:
- CouchDB HTTP API: /_all_dbs, /{db}, /{db}/{docid}, /{db}/_all_docs,
  /{db}/_bulk_docs
- GUIDELINES pp. 2309: Connection pooling per downstream service

Pattern: Client adapter for a downstream service
Pattern: Server handle / database handle split (CouchDBClient.use())

Error translation:
- transport errors, timeouts, 401, 403 -> StoreConnectionError
- 404 -> DocumentNotFoundError
- 409 -> ConflictError
- any other status >= 400 -> CouchDBError
"""

import time
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field

from couch_sessions.clients.http import create_http_client
from couch_sessions.core.config import Settings, get_settings
from couch_sessions.core.exceptions import (
    ConflictError,
    CouchDBError,
    DocumentNotFoundError,
    StoreConnectionError,
)
from couch_sessions.observability.metrics import record_couchdb_latency
from couch_sessions.observability.tracing import create_span


# =============================================================================
# Response Models - WBS 1.3.2.1
# =============================================================================


class AllDocsRow(BaseModel):
    """A row of an _all_docs response.

    Attributes:
        id: Document id
        key: Row key (equal to id for _all_docs)
        value: Row value, holds the current revision as {"rev": ...}
        doc: Full document body when include_docs=true
    """

    id: str = Field(..., description="Document id")
    key: str = Field(..., description="Row key")
    value: dict[str, Any] = Field(default_factory=dict, description="Row value")
    doc: Optional[dict[str, Any]] = Field(default=None, description="Document body")


class AllDocsResult(BaseModel):
    """An _all_docs response."""

    total_rows: int = Field(default=0, description="Documents in the database")
    offset: int = Field(default=0, description="Offset of the first row")
    rows: list[AllDocsRow] = Field(default_factory=list, description="Result rows")


class BulkDocResult(BaseModel):
    """Per-document outcome of a _bulk_docs request.

    Successful entries carry ok/rev, rejected ones error/reason.
    """

    id: str = Field(default="", description="Document id")
    ok: bool = Field(default=False, description="Whether the write succeeded")
    rev: Optional[str] = Field(default=None, description="New revision")
    error: Optional[str] = Field(default=None, description="CouchDB error name")
    reason: Optional[str] = Field(default=None, description="CouchDB error reason")


# =============================================================================
# WBS 1.3.2.2: Error Translation
# =============================================================================


def _error_body(response: httpx.Response) -> tuple[Optional[str], str]:
    """Extract CouchDB's {"error": ..., "reason": ...} body, if any."""
    try:
        data = response.json()
    except ValueError:
        return None, response.text or response.reason_phrase
    if not isinstance(data, dict):
        return None, response.text
    return data.get("error"), data.get("reason") or response.reason_phrase


def raise_for_couchdb_status(
    response: httpx.Response,
    display_url: str,
    doc_id: Optional[str] = None,
) -> None:
    """
    Raise the store exception matching a CouchDB error response.

    Args:
        response: The HTTP response
        display_url: Redacted server URL for messages
        doc_id: Document the request addressed, if any

    Raises:
        StoreConnectionError: 401 or 403
        DocumentNotFoundError: 404
        ConflictError: 409
        CouchDBError: any other error status
    """
    status = response.status_code
    if status < 400:
        return

    error, reason = _error_body(response)
    message = f"CouchDB {response.request.method} {response.request.url.path} failed: {status} {reason}"

    if status in (401, 403):
        raise StoreConnectionError(message, url=display_url, status_code=status)
    if status == 404:
        raise DocumentNotFoundError(message, reason=error or "not_found", doc_id=doc_id)
    if status == 409:
        raise ConflictError(message, reason=error or "conflict", doc_id=doc_id)
    raise CouchDBError(message, status_code=status, reason=error, doc_id=doc_id)


# =============================================================================
# WBS 1.3.2.3: CouchDBClient (server scope)
# =============================================================================


class CouchDBClient:
    """
    Async client for a CouchDB server.

    Example:
        >>> client = CouchDBClient(Settings(hostname="couchdb"))
        >>> names = await client.list_databases()
        >>> db = client.use("sessions")
        >>> doc = await db.get("cabc")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize CouchDBClient.

        Args:
            settings: Server location and credentials (default: get_settings())
            http_client: Optional pre-configured HTTP client (for testing);
                must already point at the server and carry its auth
        """
        settings = settings or get_settings()
        if http_client is not None:
            self._client = http_client
            self._owns_client = False
        else:
            self._client = create_http_client(settings)
            self._owns_client = True
        self.display_url = settings.server_url(redact=True)

    async def close(self) -> None:
        """Close the HTTP client if owned by this instance."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "CouchDBClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        db_name: Optional[str] = None,
        doc_id: Optional[str] = None,
        allow_status: tuple[int, ...] = (),
        **kwargs: Any,
    ) -> Any:
        """
        Send one request to CouchDB and decode its JSON body.

        Args:
            operation: Short operation name for spans and metrics
            method: HTTP method
            path: Absolute path below the server URL
            db_name: Database addressed, recorded on the span
            doc_id: Document addressed, used in error details
            allow_status: Error statuses returned to the caller instead of raised
            **kwargs: Passed to httpx (json, params, ...)

        Returns:
            Decoded JSON body, or the httpx.Response when its status is in allow_status

        Raises:
            StoreConnectionError: Server unreachable, timed out or credentials rejected
            CouchDBError: CouchDB answered with an error status
        """
        attributes = {"db.system": "couchdb", "db.operation": operation}
        if db_name:
            attributes["db.name"] = db_name

        start_time = time.perf_counter()
        with create_span(f"couchdb.{operation}", attributes) as span:
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.TimeoutException as e:
                raise StoreConnectionError(
                    f"CouchDB request timed out ({self.display_url}): {e}",
                    url=self.display_url,
                ) from e
            except httpx.TransportError as e:
                raise StoreConnectionError(
                    f"CouchDB server unavailable ({self.display_url}): {e}",
                    url=self.display_url,
                ) from e
            finally:
                record_couchdb_latency(operation, time.perf_counter() - start_time)

            span.set_attribute("http.status_code", response.status_code)
            if response.status_code in allow_status:
                return response
            raise_for_couchdb_status(response, self.display_url, doc_id=doc_id)
            try:
                return response.json()
            except ValueError as e:
                raise CouchDBError(
                    f"CouchDB {method} {path} returned a non-JSON body "
                    f"({response.headers.get('content-type', 'no content-type')})",
                    status_code=response.status_code,
                    reason="bad_response",
                    doc_id=doc_id,
                ) from e

    # =========================================================================
    # WBS 1.3.2.4: Server Operations
    # =========================================================================

    async def list_databases(self) -> list[str]:
        """Return the names of all databases on the server."""
        return await self.request("list_databases", "GET", "/_all_dbs")

    async def create_database(self, name: str) -> bool:
        """
        Create a database.

        Args:
            name: Database name

        Returns:
            True if created, False if it already existed (412)
        """
        result = await self.request(
            "create_database",
            "PUT",
            f"/{quote(name, safe='')}",
            db_name=name,
            allow_status=(412,),
        )
        return not isinstance(result, httpx.Response)

    def use(self, name: str) -> "CouchDatabase":
        """Return a handle bound to one database."""
        return CouchDatabase(self, name)


# =============================================================================
# WBS 1.3.2.5: CouchDatabase (database scope)
# =============================================================================


class CouchDatabase:
    """Handle for a single CouchDB database."""

    def __init__(self, client: CouchDBClient, name: str) -> None:
        self._client = client
        self._name = name
        self._path = f"/{quote(name, safe='')}"

    @property
    def name(self) -> str:
        return self._name

    def _doc_path(self, doc_id: str) -> str:
        return f"{self._path}/{quote(doc_id, safe='')}"

    async def get(self, doc_id: str) -> dict[str, Any]:
        """
        Fetch a document.

        Raises:
            DocumentNotFoundError: No such document
        """
        return await self._client.request(
            "get", "GET", self._doc_path(doc_id), db_name=self._name, doc_id=doc_id
        )

    async def insert(self, doc: dict[str, Any], doc_id: Optional[str] = None) -> dict[str, Any]:
        """
        Create or update a document.

        An update must carry the current _rev in doc.

        Args:
            doc: Document body
            doc_id: Document id; CouchDB generates one when omitted

        Returns:
            {"ok": true, "id": ..., "rev": ...}

        Raises:
            ConflictError: doc's _rev is missing or stale
        """
        if doc_id is None:
            return await self._client.request(
                "insert", "POST", self._path, db_name=self._name, json=doc
            )
        return await self._client.request(
            "insert",
            "PUT",
            self._doc_path(doc_id),
            db_name=self._name,
            doc_id=doc_id,
            json=doc,
        )

    async def destroy(self, doc_id: str, rev: Optional[str]) -> dict[str, Any]:
        """
        Delete a document at a given revision.

        A missing rev is sent as-is; CouchDB rejects the delete.
        """
        params = {"rev": rev} if rev is not None else {}
        return await self._client.request(
            "destroy",
            "DELETE",
            self._doc_path(doc_id),
            db_name=self._name,
            doc_id=doc_id,
            params=params,
        )

    async def all_docs(self, include_docs: bool = False) -> AllDocsResult:
        """List all documents, optionally with their bodies."""
        params = {"include_docs": "true"} if include_docs else {}
        data = await self._client.request(
            "all_docs", "GET", f"{self._path}/_all_docs", db_name=self._name, params=params
        )
        return AllDocsResult.model_validate(data)

    async def count(self) -> int:
        """Number of documents in the database."""
        data = await self._client.request(
            "count",
            "GET",
            f"{self._path}/_all_docs",
            db_name=self._name,
            params={"limit": "0"},
        )
        return AllDocsResult.model_validate(data).total_rows

    async def bulk(self, docs: list[dict[str, Any]]) -> list[BulkDocResult]:
        """Submit a batch of document writes (including _deleted markers)."""
        data = await self._client.request(
            "bulk",
            "POST",
            f"{self._path}/_bulk_docs",
            db_name=self._name,
            json={"docs": docs},
        )
        return [BulkDocResult.model_validate(item) for item in data]
