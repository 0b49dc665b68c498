"""Pydantic schemas."""

from roadmap_admin.schemas.roadmap import (
    CHALLENGE_TYPES,
    MODEL_BY_TYPE,
    ROADMAP_STATUSES,
    VISIBILITIES,
    Challenge,
    Level,
    Milestone,
    OrderedNode,
    ReorderEntry,
    ReorderPayload,
    Roadmap,
    RoadmapStats,
    TreeNode,
)

__all__ = [
    "Roadmap",
    "Level",
    "Milestone",
    "Challenge",
    "TreeNode",
    "OrderedNode",
    "ReorderEntry",
    "ReorderPayload",
    "RoadmapStats",
    "MODEL_BY_TYPE",
    "VISIBILITIES",
    "ROADMAP_STATUSES",
    "CHALLENGE_TYPES",
]
