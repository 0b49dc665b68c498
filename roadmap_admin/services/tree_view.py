"""View state for the roadmap editor: expansion, keyboard focus, side panel."""

from collections.abc import Sequence

from roadmap_admin.schemas.roadmap import Roadmap
from roadmap_admin.services.tree_ops import descendant_ids

NEXT_KEYS = frozenset({"ArrowDown", "ArrowRight"})
PREVIOUS_KEYS = frozenset({"ArrowUp", "ArrowLeft"})


class TreeViewController:
    """Tracks which nodes are expanded, which card has focus, and the open panel."""

    def __init__(self) -> None:
        self.expanded: set[str] = set()
        self.focused_id: str | None = None
        self.panel_roadmap_id: str | None = None

    # Expansion

    def is_expanded(self, node_id: str) -> bool:
        return node_id in self.expanded

    def expand(self, node_id: str) -> None:
        self.expanded.add(node_id)

    def collapse(self, node_id: str) -> None:
        self.expanded.discard(node_id)

    def toggle(self, node_id: str) -> bool:
        """Flip a node's expansion; returns the new state."""
        if node_id in self.expanded:
            self.expanded.discard(node_id)
            return False
        self.expanded.add(node_id)
        return True

    def expand_all(self, roadmap: Roadmap) -> None:
        self.expanded.add(roadmap.id)
        self.expanded.update(descendant_ids(roadmap))

    def collapse_all(self) -> None:
        self.expanded.clear()

    def forget(self, node_ids: Sequence[str]) -> None:
        """Drop view state for removed nodes."""
        self.expanded.difference_update(node_ids)
        if self.focused_id in node_ids:
            self.focused_id = None
        if self.panel_roadmap_id in node_ids:
            self.panel_roadmap_id = None

    # Side panel

    def open_panel(self, roadmap_id: str) -> None:
        self.panel_roadmap_id = roadmap_id
        self.focused_id = roadmap_id

    def close_panel(self) -> None:
        self.panel_roadmap_id = None

    # Keyboard navigation

    def handle_key(self, key: str, visible_ids: Sequence[str]) -> str | None:
        """Apply one key press to the card list; returns the focused id.

        Arrow keys move between neighbouring cards and stop at the ends,
        Home/End jump, Enter opens the focused card's panel, Escape closes it.
        """
        if key == "Escape":
            self.close_panel()
            return self.focused_id
        if not visible_ids:
            self.focused_id = None
            return None

        if self.focused_id in visible_ids:
            position = list(visible_ids).index(self.focused_id)
        else:
            position = -1

        if key in NEXT_KEYS:
            position = min(position + 1, len(visible_ids) - 1)
        elif key in PREVIOUS_KEYS:
            position = max(position - 1, 0)
        elif key == "Home":
            position = 0
        elif key == "End":
            position = len(visible_ids) - 1
        elif key == "Enter":
            if position >= 0:
                self.open_panel(visible_ids[position])
            return self.focused_id
        else:
            return self.focused_id

        self.focused_id = visible_ids[position]
        return self.focused_id

    def reconcile(self, visible_ids: Sequence[str]) -> None:
        """Drop focus and panel when their roadmap is filtered out."""
        if self.focused_id is not None and self.focused_id not in visible_ids:
            self.focused_id = None
        if self.panel_roadmap_id is not None and self.panel_roadmap_id not in visible_ids:
            self.panel_roadmap_id = None
