"""Selection of top-level roadmaps and the bulk actions run on it."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from roadmap_admin.core.errors import RoadmapAdminError, ValidationError
from roadmap_admin.core.logging import get_logger

if TYPE_CHECKING:
    from roadmap_admin.services.roadmap_store import RoadmapStore

logger = get_logger(__name__)

BulkActionName = Literal["delete", "publish", "archive"]

STATUS_BY_ACTION: dict[str, str] = {
    "publish": "published",
    "archive": "archived",
}


@dataclass
class BulkResult:
    """Per-item outcome of a bulk action."""

    action: str
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)


class SelectionController:
    """Set of selected roadmap ids, kept consistent with the visible list.

    "Select all" is never stored: it is recomputed from the visible ids each
    time it is asked for.
    """

    def __init__(self) -> None:
        self.selected: set[str] = set()

    def toggle(self, roadmap_id: str, checked: bool) -> None:
        if checked:
            self.selected.add(roadmap_id)
        else:
            self.selected.discard(roadmap_id)

    def select_all(self, checked: bool, visible_ids: Sequence[str]) -> None:
        self.selected = set(visible_ids) if checked else set()

    def clear(self) -> None:
        self.selected.clear()

    def reconcile(self, visible_ids: Sequence[str]) -> None:
        """Drop selected ids that are no longer visible."""
        self.selected &= set(visible_ids)

    def all_selected(self, visible_ids: Sequence[str]) -> bool:
        return bool(visible_ids) and self.selected.issuperset(visible_ids)

    def partially_selected(self, visible_ids: Sequence[str]) -> bool:
        chosen = self.selected.intersection(visible_ids)
        return bool(chosen) and len(chosen) < len(set(visible_ids))

    def ordered(self, visible_ids: Sequence[str]) -> list[str]:
        """Selected ids in display order."""
        return [roadmap_id for roadmap_id in visible_ids if roadmap_id in self.selected]

    async def bulk_action(
        self,
        store: "RoadmapStore",
        action: BulkActionName,
        confirm: Callable[[list[str]], bool | Awaitable[bool]] | None = None,
    ) -> BulkResult:
        """Run ``action`` on every selected roadmap.

        Delete needs ``confirm(ids)`` to return True before anything changes.
        Publish and archive only touch ``status``. Each roadmap is handled by
        its own call; a failure does not stop the others.

        Raises:
            ValidationError: On an unknown action
        """
        if action != "delete" and action not in STATUS_BY_ACTION:
            raise ValidationError(f"Unknown bulk action: {action}", field="action")

        ids = sorted(self.selected)
        result = BulkResult(action=action)
        if not ids:
            return result

        if action == "delete":
            approved = confirm(ids) if confirm is not None else False
            if inspect.isawaitable(approved):
                approved = await approved
            if not approved:
                result.cancelled = True
                logger.info("Bulk delete cancelled", count=len(ids))
                return result
            calls = [store.delete("roadmap", roadmap_id) for roadmap_id in ids]
        else:
            status = STATUS_BY_ACTION[action]
            calls = [store.set_status(roadmap_id, status) for roadmap_id in ids]

        outcomes = await asyncio.gather(*calls, return_exceptions=True)
        for roadmap_id, outcome in zip(ids, outcomes):
            if isinstance(outcome, RoadmapAdminError):
                result.failed.append(roadmap_id)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.succeeded.append(roadmap_id)

        if action == "delete":
            self.selected.difference_update(result.succeeded)

        log = logger.warning if result.failed else logger.info
        log(
            "Bulk action finished",
            action=action,
            succeeded=result.success_count,
            failed=result.failure_count,
        )
        return result
