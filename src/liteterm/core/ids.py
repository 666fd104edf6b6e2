"""Identifier utilities

Layout nodes and transport sessions are identified by opaque strings:
- node ids:    UUID4, e.g. "3eb79f67-40c3-4583-a9e4-ad8224807f34"
- session ids: "session-<12 hex>", e.g. "session-5f0c2a9e81d4"

Ids carry no meaning beyond uniqueness; consumers keep only the id and
re-resolve it against the latest tree.
"""

import uuid


def new_node_id() -> str:
    """Generate a globally unique layout node id."""
    return str(uuid.uuid4())


def new_session_id() -> str:
    """Generate a transport session id."""
    return f"session-{uuid.uuid4().hex[:12]}"


def short_id(node_id: str, length: int = 8) -> str:
    """Get a short display version of an id for logging.

    Strips a "session-" prefix (if present) and truncates to length.

    Args:
        node_id: The id to shorten
        length: Maximum length (default 8)

    Returns:
        Shortened id for display in logs
    """
    pure_id = node_id.removeprefix("session-")
    return pure_id[:length]
