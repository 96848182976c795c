"""
Session Models - WBS 2.2

Pydantic models for the parts of a session payload the store interprets.

The payload itself is an arbitrary JSON mapping owned by the session
middleware; only the cookie sub-mapping is parsed, for touch().

Conventions (connect/express session cookies):
- maxAge is in milliseconds
- expires is written back as an ISO 8601 timestamp
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

# Fields CouchDB manages on every document
DOCUMENT_ID_FIELD = "_id"
REVISION_FIELD = "_rev"


class SessionCookie(BaseModel):
    """
    The cookie sub-mapping of a session payload.

    Only expires and maxAge are interpreted; other cookie attributes
    (path, httpOnly, ...) are accepted and ignored. expires is only tested
    for presence: middlewares store it as ISO 8601, RFC 1123 or a Date
    serialization, and it is overwritten on refresh anyway.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    expires: Optional[Any] = Field(default=None, description="Current expiry, any format")
    max_age: Optional[float] = Field(
        default=None,
        alias="maxAge",
        description="Lifetime in milliseconds",
    )

    def next_expiry(self, now: Optional[datetime] = None) -> Optional[datetime]:
        """
        Compute now + maxAge.

        Returns None unless both expires and maxAge are set.
        """
        if self.expires is None or not self.max_age:
            return None
        now = now or datetime.now(timezone.utc)
        return now + timedelta(milliseconds=self.max_age)


def format_expiry(value: datetime) -> str:
    """Render a datetime the way JavaScript's Date#toJSON does."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def refresh_cookie(
    cookie: Optional[Mapping[str, Any]],
    now: Optional[datetime] = None,
) -> Optional[dict[str, Any]]:
    """
    Return the cookie with expires recomputed as now + maxAge.

    When expires or maxAge is missing, or maxAge is not a number, the
    cookie is returned as given.

    Args:
        cookie: The cookie sub-mapping of a session payload (may be None).
        now: Reference instant, defaults to the current UTC time.

    Returns:
        A new cookie mapping, or None when the session had no cookie.
    """
    if cookie is None:
        return None
    try:
        expiry = SessionCookie.model_validate(cookie).next_expiry(now)
    except ValidationError:
        expiry = None
    if expiry is None:
        return dict(cookie)
    return {**cookie, "expires": format_expiry(expiry)}

