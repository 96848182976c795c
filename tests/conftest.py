"""
Pytest configuration for the test suite.

Reference Documents:
- GUIDELINES pp. 155-157: "high and low gear" testing philosophy
- GUIDELINES pp. 157: FakeRepository pattern using duck typing

This configuration sets up:
- Test discovery paths
- Test markers for categorization
- FakeCouchDB: an in-memory CouchDB served through httpx.MockTransport
- Shared store fixtures
"""

import itertools
import json
import sys
import uuid
from pathlib import Path
from typing import Any, AsyncIterator, Optional
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio

# Add project root to Python path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

COUCHDB_TEST_URL = "http://localhost:5984"


# =============================================================================
# Test Markers
# =============================================================================


def pytest_configure(config):
    """
    Register custom markers for test categorization.

    - unit: Low gear tests for individual components
    - integration: High gear tests against a live CouchDB
    """
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Tests against a live CouchDB server")


# =============================================================================
# FakeCouchDB
# =============================================================================


def _json(status: int, body: Any) -> httpx.Response:
    return httpx.Response(status, json=body)


def _not_found(reason: str = "missing") -> httpx.Response:
    return _json(404, {"error": "not_found", "reason": reason})


def _conflict() -> httpx.Response:
    return _json(409, {"error": "conflict", "reason": "Document update conflict."})


class FakeCouchDB:
    """
    In-memory stand-in for the CouchDB HTTP API.

    Implements the endpoints the store uses with CouchDB's revision rules:
    updating or deleting an existing document requires its current _rev,
    anything else is a 409 conflict.

    Knobs for failure injection:
        unreachable: raise httpx.ConnectError for every request
        reject_credentials: answer every request with 401
        fail_create: answer PUT /{db} with this status
        forced_conflicts: {doc_id: n} -> next n PUTs of doc_id answer 409
        fail_get: {doc_id: status} -> GET of doc_id answers this status
        html_get: ids whose GET answers 200 with an HTML page
        bulk_rejects: ids whose bulk write answers a conflict entry
    """

    def __init__(self) -> None:
        self.databases: dict[str, dict[str, dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        self.unreachable = False
        self.reject_credentials = False
        self.fail_create: Optional[int] = None
        self.forced_conflicts: dict[str, int] = {}
        self.fail_get: dict[str, int] = {}
        self.html_get: set[str] = set()
        self.bulk_rejects: set[str] = set()
        self.conflicts_served = 0
        self._seq = itertools.count(1)

    # ------------------------------------------------------------------
    # Helpers used by tests
    # ------------------------------------------------------------------

    def count(self, method: str, path: str) -> int:
        """Number of requests received for method + decoded path."""
        return sum(
            1 for r in self.requests if r.method == method and r.url.path == path
        )

    def put_document(self, db: str, doc: dict[str, Any]) -> dict[str, Any]:
        """Seed a document directly, bypassing revision checks."""
        stored = {**doc, "_rev": self._next_rev(doc.get("_rev"))}
        self.databases.setdefault(db, {})[doc["_id"]] = stored
        return stored

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def _next_rev(self, current: Optional[str]) -> str:
        generation = int(current.split("-", 1)[0]) + 1 if current else 1
        return f"{generation}-{uuid.uuid4().hex[:8]}{next(self._seq)}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if self.reject_credentials:
            return _json(401, {"error": "unauthorized", "reason": "Name or password is incorrect."})

        raw_path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        segments = [unquote(s) for s in raw_path.strip("/").split("/") if s]

        if segments == ["_all_dbs"]:
            return _json(200, sorted(self.databases))
        if len(segments) == 1:
            return self._database(request, segments[0])
        if len(segments) == 2 and segments[1] == "_all_docs":
            return self._all_docs(request, segments[0])
        if len(segments) == 2 and segments[1] == "_bulk_docs":
            return self._bulk_docs(request, segments[0])
        if len(segments) == 2:
            return self._document(request, segments[0], segments[1])
        return _json(400, {"error": "bad_request", "reason": "unsupported path"})

    def _database(self, request: httpx.Request, db: str) -> httpx.Response:
        if request.method != "PUT":
            return _json(405, {"error": "method_not_allowed", "reason": request.method})
        if self.fail_create is not None:
            return _json(self.fail_create, {"error": "forbidden", "reason": "create refused"})
        if db in self.databases:
            return _json(412, {"error": "file_exists", "reason": "The database could not be created, the file already exists."})
        self.databases[db] = {}
        return _json(201, {"ok": True})

    def _all_docs(self, request: httpx.Request, db: str) -> httpx.Response:
        if db not in self.databases:
            return _not_found("Database does not exist.")
        docs = self.databases[db]
        include_docs = request.url.params.get("include_docs") == "true"
        limit = request.url.params.get("limit")
        ids = sorted(docs)
        if limit is not None:
            ids = ids[: int(limit)]
        rows = []
        for doc_id in ids:
            row: dict[str, Any] = {
                "id": doc_id,
                "key": doc_id,
                "value": {"rev": docs[doc_id]["_rev"]},
            }
            if include_docs:
                row["doc"] = dict(docs[doc_id])
            rows.append(row)
        return _json(200, {"total_rows": len(docs), "offset": 0, "rows": rows})

    def _bulk_docs(self, request: httpx.Request, db: str) -> httpx.Response:
        if db not in self.databases:
            return _not_found("Database does not exist.")
        docs = self.databases[db]
        results = []
        for doc in json.loads(request.content)["docs"]:
            doc_id = doc["_id"]
            current = docs.get(doc_id)
            if doc_id in self.bulk_rejects or current is None or current["_rev"] != doc.get("_rev"):
                results.append({"id": doc_id, "error": "conflict", "reason": "Document update conflict."})
                continue
            rev = self._next_rev(current["_rev"])
            if doc.get("_deleted"):
                del docs[doc_id]
            else:
                docs[doc_id] = {**doc, "_rev": rev}
            results.append({"ok": True, "id": doc_id, "rev": rev})
        return _json(201, results)

    def _document(self, request: httpx.Request, db: str, doc_id: str) -> httpx.Response:
        if db not in self.databases:
            return _not_found("Database does not exist.")
        docs = self.databases[db]
        current = docs.get(doc_id)

        if request.method == "GET":
            if doc_id in self.html_get:
                return httpx.Response(200, text="<html>proxy error</html>", headers={"content-type": "text/html"})
            if doc_id in self.fail_get:
                return _json(self.fail_get[doc_id], {"error": "internal_server_error", "reason": "boom"})
            if current is None:
                return _not_found("deleted" if doc_id in docs else "missing")
            return _json(200, dict(current))

        if request.method == "PUT":
            body = json.loads(request.content)
            if self.forced_conflicts.get(doc_id, 0) > 0:
                self.forced_conflicts[doc_id] -= 1
                self.conflicts_served += 1
                return _conflict()
            supplied_rev = body.get("_rev")
            if (current is None and supplied_rev is not None) or (
                current is not None and current["_rev"] != supplied_rev
            ):
                self.conflicts_served += 1
                return _conflict()
            rev = self._next_rev(current["_rev"] if current else None)
            docs[doc_id] = {**body, "_id": doc_id, "_rev": rev}
            return _json(201, {"ok": True, "id": doc_id, "rev": rev})

        if request.method == "DELETE":
            if current is None:
                return _not_found()
            if request.url.params.get("rev") != current["_rev"]:
                self.conflicts_served += 1
                return _conflict()
            del docs[doc_id]
            return _json(200, {"ok": True, "id": doc_id, "rev": self._next_rev(current["_rev"])})

        return _json(405, {"error": "method_not_allowed", "reason": request.method})


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def fake_couchdb() -> FakeCouchDB:
    """
    Provide an empty in-memory CouchDB.

    Reference: GUIDELINES pp. 157 - FakeRepository pattern
    """
    return FakeCouchDB()


@pytest_asyncio.fixture
async def couch_http_client(fake_couchdb) -> AsyncIterator[httpx.AsyncClient]:
    """An httpx client whose transport is the fake CouchDB."""
    client = httpx.AsyncClient(
        base_url=COUCHDB_TEST_URL,
        transport=fake_couchdb.transport(),
    )
    yield client
    await client.aclose()


@pytest.fixture
def test_settings():
    """Settings with defaults suitable for tests."""
    from couch_sessions.core.config import Settings

    return Settings(
        protocol="http",
        hostname="localhost",
        port=5984,
        username="",
        password="",
        database="sessions",
        timeout_seconds=5.0,
        max_conflict_retries=3,
        log_level="DEBUG",
    )


@pytest_asyncio.fixture
async def session_store(test_settings, couch_http_client):
    """A CouchDBSessionStore backed by the fake CouchDB."""
    from couch_sessions.sessions.store import CouchDBSessionStore

    store = CouchDBSessionStore(settings=test_settings, http_client=couch_http_client)
    yield store
    await store.close()
