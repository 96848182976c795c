"""
Session Key Mapping - WBS 2.1

Maps opaque session ids to CouchDB document ids.

CouchDB reserves document ids starting with an underscore, so every key
gets a fixed "c" prefix. Distinct sids always give distinct keys.
"""

DOCUMENT_KEY_PREFIX: str = "c"


def sid_to_document_key(sid: str) -> str:
    """
    Convert a session id to its CouchDB document id.

    Args:
        sid: Session id supplied by the session middleware.

    Returns:
        Document id, e.g. "abc" -> "cabc".
    """
    return f"{DOCUMENT_KEY_PREFIX}{sid}"
