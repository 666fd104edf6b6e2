"""Core module - identifier utilities"""

from .ids import new_node_id, new_session_id, short_id

__all__ = [
    "new_node_id",
    "new_session_id",
    "short_id",
]
