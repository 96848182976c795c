"""
HTTP Client Module - WBS 1.3.1 CouchDB Transport

Builds the httpx client the CouchDB client sends its requests through.

The client is bound to the server's base URL without credentials; a
configured username is sent as HTTP basic auth on every request, so the
password never appears in a URL, a log line or an exception message.

Reference Documents:
- CouchDB HTTP API: basic authentication, JSON request/response bodies
- GUIDELINES pp. 2309: Connection pooling per downstream service (Newman)

Pattern: Factory pattern for creating configured HTTP clients
"""

from typing import Optional

import httpx

from couch_sessions.core.config import Settings, get_settings


# =============================================================================
# Pool / Transport Defaults - WBS 1.3.1.1
# =============================================================================

DEFAULT_MAX_CONNECTIONS: int = 100
DEFAULT_MAX_KEEPALIVE: int = 20

# Connect failures only; httpx never re-sends a request that reached CouchDB
DEFAULT_CONNECT_RETRIES: int = 3

USER_AGENT: str = "couch-sessions/1.0"


# =============================================================================
# WBS 1.3.1.2: Authentication
# =============================================================================


def couchdb_auth(settings: Settings) -> Optional[httpx.BasicAuth]:
    """
    Basic auth for the configured CouchDB user.

    Returns:
        httpx.BasicAuth, or None when no username is configured (the
        server is then addressed anonymously).
    """
    if not settings.username:
        return None
    return httpx.BasicAuth(settings.username, settings.password.get_secret_value())


# =============================================================================
# WBS 1.3.1.3: Client Factory
# =============================================================================


def create_http_client(
    settings: Optional[Settings] = None,
    max_connections: int = DEFAULT_MAX_CONNECTIONS,
    max_keepalive: int = DEFAULT_MAX_KEEPALIVE,
    connect_retries: int = DEFAULT_CONNECT_RETRIES,
) -> httpx.AsyncClient:
    """
    Create the async client for one CouchDB server.

    Args:
        settings: Server location, credentials and timeout
            (default: get_settings())
        max_connections: Maximum connections in the pool
        max_keepalive: Maximum keepalive connections
        connect_retries: Connection attempts retried by the transport

    Returns:
        httpx.AsyncClient bound to settings.base_url

    Example:
        >>> client = create_http_client(Settings(hostname="couchdb"))
        >>> async with client:
        ...     response = await client.get("/_all_dbs")
    """
    settings = settings or get_settings()

    transport = httpx.AsyncHTTPTransport(
        retries=connect_retries,
        limits=httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_keepalive,
        ),
    )

    return httpx.AsyncClient(
        base_url=settings.base_url,
        auth=couchdb_auth(settings),
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        transport=transport,
    )
