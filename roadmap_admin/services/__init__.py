"""Service layer modules."""

from roadmap_admin.services import (
    api_client,
    codec,
    mutations,
    ordering,
    roadmap_store,
    search,
    selection,
    tree_ops,
    tree_view,
)

__all__ = [
    "api_client",
    "codec",
    "mutations",
    "ordering",
    "roadmap_store",
    "search",
    "selection",
    "tree_ops",
    "tree_view",
]
