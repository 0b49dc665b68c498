"""Pure functions over the roadmap tree.

A node is addressed by its path: the tuple of ids from the roadmap down to the
node, so ``("r1",)`` is a roadmap, ``("r1", "l2")`` a level, and so on. The
path length determines the entity type. Nothing here mutates its input; every
update returns a new list of roadmaps that shares untouched subtrees.
"""

from collections.abc import Iterator, Sequence
from typing import Any

from roadmap_admin.core.errors import EntityNotFound, ValidationError
from roadmap_admin.schemas.roadmap import (
    Level,
    Milestone,
    Roadmap,
    RoadmapStats,
    TreeNode,
)
from roadmap_admin.services.ordering import renumber

NodePath = tuple[str, ...]

ENTITY_TYPES: tuple[str, ...] = ("roadmap", "level", "milestone", "challenge")
CHILD_FIELDS: tuple[str, ...] = ("levels", "milestones", "challenges")


# ============================================================================
# Entity types
# ============================================================================


def depth_of(entity_type: str) -> int:
    """Zero-based depth of an entity type (roadmap = 0)."""
    try:
        return ENTITY_TYPES.index(entity_type)
    except ValueError:
        raise ValidationError(f"Unknown entity type: {entity_type}", field="entity_type") from None


def entity_type_of(path: NodePath) -> str:
    return ENTITY_TYPES[len(path) - 1]


def child_type(parent_type: str | None) -> str:
    """Entity type created under ``parent_type`` (``None`` means top level)."""
    if parent_type is None:
        return ENTITY_TYPES[0]
    depth = depth_of(parent_type)
    if depth >= len(CHILD_FIELDS):
        raise ValidationError(f"A {parent_type} cannot have children", field="parent_type")
    return ENTITY_TYPES[depth + 1]


def child_field(node: TreeNode) -> str | None:
    """Name of the attribute holding a node's children."""
    if isinstance(node, Roadmap):
        return "levels"
    if isinstance(node, Level):
        return "milestones"
    if isinstance(node, Milestone):
        return "challenges"
    return None


# ============================================================================
# Lookup
# ============================================================================


def _index_of(items: Sequence[TreeNode], node_id: str) -> int:
    for index, item in enumerate(items):
        if item.id == node_id:
            return index
    return -1


def find_path(roadmaps: Sequence[Roadmap], entity_type: str, entity_id: str) -> NodePath | None:
    """Locate the first node of ``entity_type`` with ``entity_id``."""
    target = depth_of(entity_type)

    def walk(items: Sequence[TreeNode], prefix: NodePath, depth: int) -> NodePath | None:
        for item in items:
            path = prefix + (item.id,)
            if depth == target:
                if item.id == entity_id:
                    return path
                continue
            found = walk(getattr(item, CHILD_FIELDS[depth]), path, depth + 1)
            if found is not None:
                return found
        return None

    return walk(roadmaps, (), 0)


def require_path(roadmaps: Sequence[Roadmap], entity_type: str, entity_id: str) -> NodePath:
    path = find_path(roadmaps, entity_type, entity_id)
    if path is None:
        raise EntityNotFound(entity_type, entity_id)
    return path


def children_of(roadmaps: Sequence[Roadmap], parent_path: NodePath) -> list[Any]:
    """Sibling group under ``parent_path`` (the roadmap list for ``()``)."""
    items: Sequence[TreeNode] = roadmaps
    for depth, node_id in enumerate(parent_path):
        index = _index_of(items, node_id)
        if index < 0:
            raise EntityNotFound(ENTITY_TYPES[depth], node_id)
        items = getattr(items[index], CHILD_FIELDS[depth])
    return list(items)


def get_node(roadmaps: Sequence[Roadmap], path: NodePath) -> Any:
    siblings = children_of(roadmaps, path[:-1])
    index = _index_of(siblings, path[-1])
    if index < 0:
        raise EntityNotFound(entity_type_of(path), path[-1])
    return siblings[index]


# ============================================================================
# Updates
# ============================================================================


def _replace_children(
    items: Sequence[TreeNode], parent_path: NodePath, children: Sequence[TreeNode], depth: int
) -> list[Any]:
    if not parent_path:
        return list(children)
    head, rest = parent_path[0], parent_path[1:]
    index = _index_of(items, head)
    if index < 0:
        raise EntityNotFound(ENTITY_TYPES[depth], head)
    node = items[index]
    field = CHILD_FIELDS[depth]
    updated = node.model_copy(
        update={field: _replace_children(getattr(node, field), rest, children, depth + 1)}
    )
    result = list(items)
    result[index] = updated
    return result


def with_children(
    roadmaps: Sequence[Roadmap], parent_path: NodePath, children: Sequence[TreeNode]
) -> list[Roadmap]:
    """Return a new tree with the sibling group under ``parent_path`` replaced."""
    return _replace_children(roadmaps, parent_path, children, 0)


def replace_node(roadmaps: Sequence[Roadmap], path: NodePath, node: TreeNode) -> list[Roadmap]:
    """Return a new tree with the node at ``path`` swapped for ``node``."""
    siblings = children_of(roadmaps, path[:-1])
    index = _index_of(siblings, path[-1])
    if index < 0:
        raise EntityNotFound(entity_type_of(path), path[-1])
    siblings[index] = node
    return with_children(roadmaps, path[:-1], siblings)


def remove_node(roadmaps: Sequence[Roadmap], path: NodePath) -> tuple[list[Roadmap], list[str]]:
    """Remove a node and its whole subtree.

    Remaining ordered siblings are renumbered densely.

    Returns:
        Tuple of (new roadmaps, ids removed: the node first, then descendants)
    """
    node = get_node(roadmaps, path)
    removed = [n.id for n in iter_nodes(node)]
    siblings = [item for item in children_of(roadmaps, path[:-1]) if item is not node]
    if len(path) > 1:
        siblings = renumber(siblings)
    return with_children(roadmaps, path[:-1], siblings), removed


def renumber_subtree(node: TreeNode) -> Any:
    """Renumber every sibling group below ``node`` from array position."""

    def walk(current: TreeNode) -> TreeNode:
        field = child_field(current)
        if field is None:
            return current
        children = [walk(child) for child in getattr(current, field)]
        return current.model_copy(update={field: renumber(children)})

    return walk(node)


# ============================================================================
# Traversal
# ============================================================================


def iter_nodes(node: TreeNode) -> Iterator[TreeNode]:
    """Yield ``node`` and all of its descendants, depth first."""
    yield node
    field = child_field(node)
    if field is None:
        return
    for child in getattr(node, field):
        yield from iter_nodes(child)


def descendant_ids(node: TreeNode) -> list[str]:
    return [n.id for n in iter_nodes(node)][1:]


def iter_titles(roadmap: Roadmap) -> Iterator[str]:
    """Titles of the roadmap and every level, milestone and challenge in it."""
    for node in iter_nodes(roadmap):
        yield node.title


def compute_stats(roadmaps: Sequence[Roadmap]) -> RoadmapStats:
    """Aggregate counts over local state."""
    levels = [level for roadmap in roadmaps for level in roadmap.levels]
    milestones = [milestone for level in levels for milestone in level.milestones]
    challenges = sum(len(milestone.challenges) for milestone in milestones)
    return RoadmapStats(
        total_roadmaps=len(roadmaps),
        total_levels=len(levels),
        total_milestones=len(milestones),
        total_challenges=challenges,
    )


def save_payload(roadmap: Roadmap) -> dict[str, Any]:
    """Wire body for saving a whole roadmap.

    The roadmap keeps its id; nested ids are dropped so the server reissues
    them, and every ``order`` is recomputed from array position.
    """
    body = renumber_subtree(roadmap).to_wire()

    def strip(node: dict[str, Any], depth: int) -> None:
        if depth >= len(CHILD_FIELDS):
            return
        for child in node.get(CHILD_FIELDS[depth], []):
            child.pop("id", None)
            child.pop("_id", None)
            strip(child, depth + 1)

    strip(body, 0)
    return body
