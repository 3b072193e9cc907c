"""
ARKHAM Store Module

The graph store and its post-command passes (cleanup, visibility,
virtual edges).
"""

from arkham.store.graph_store import GraphStore, RESOLVE_ROOT_GROUPS_TASK
from arkham.store.cleanup import CleanupReport, run_cleanup
from arkham.store.virtual_edges import build_virtual_edges, virtual_edge_id
from arkham.store.visibility import refresh_visibility

__all__ = [
    "GraphStore",
    "RESOLVE_ROOT_GROUPS_TASK",
    "CleanupReport",
    "run_cleanup",
    "build_virtual_edges",
    "virtual_edge_id",
    "refresh_visibility",
]
