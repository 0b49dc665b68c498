"""Mutation records for optimistic updates.

A mutation captures one sibling group before and after a local change. The
store applies the forward side immediately, then either keeps it once the API
confirms or applies the inverse when the call fails.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from roadmap_admin.schemas.roadmap import Roadmap, TreeNode
from roadmap_admin.services.ordering import renumber
from roadmap_admin.services.tree_ops import NodePath, children_of, with_children


@dataclass(frozen=True)
class Mutation:
    """One local change with its forward and inverse snapshots."""

    label: str
    parent_path: NodePath
    before: tuple[TreeNode, ...]
    after: tuple[TreeNode, ...]

    @classmethod
    def of(
        cls,
        label: str,
        parent_path: NodePath,
        before: Sequence[TreeNode],
        after: Sequence[TreeNode],
    ) -> "Mutation":
        return cls(label=label, parent_path=parent_path, before=tuple(before), after=tuple(after))

    @property
    def changed(self) -> bool:
        return self.before != self.after

    @property
    def moved(self) -> bool:
        return [n.id for n in self.before] != [n.id for n in self.after]

    def forward(self, roadmaps: Sequence[Roadmap]) -> list[Roadmap]:
        return with_children(roadmaps, self.parent_path, self.after)

    def inverse(self, roadmaps: Sequence[Roadmap]) -> list[Roadmap]:
        """Undo this mutation in the sibling group as it is now.

        Only nodes this mutation touched are restored; changes that other
        calls made to the same group in the meantime are kept.
        """
        previous = {node.id: node for node in self.before}
        applied = {node.id: node for node in self.after}

        restored = []
        for node in children_of(roadmaps, self.parent_path):
            if node.id not in previous:
                if node.id not in applied:
                    restored.append(node)
                continue
            if node == applied.get(node.id) and node != previous[node.id]:
                restored.append(previous[node.id])
            else:
                restored.append(node)

        if self.moved:
            position = {node.id: index for index, node in enumerate(self.before)}
            restored.sort(key=lambda node: position.get(node.id, len(position)))
        if self.parent_path:
            restored = renumber(restored)
        return with_children(roadmaps, self.parent_path, restored)
