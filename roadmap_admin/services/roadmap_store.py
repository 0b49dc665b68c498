"""Roadmap store: local tree state kept in step with the roadmap API.

Mutations are optimistic. The store computes the next tree with the pure
functions in ``tree_ops`` and ``ordering``, applies it, then persists. A failed
call restores the nodes it changed and re-raises ``FetchFailed``.
"""

import uuid
from collections.abc import Collection, Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any

import pydantic

from roadmap_admin.core.errors import EntityNotFound, FetchFailed, ValidationError
from roadmap_admin.core.logging import get_logger
from roadmap_admin.schemas.roadmap import (
    CHALLENGE_TYPES,
    MODEL_BY_TYPE,
    ROADMAP_STATUSES,
    VISIBILITIES,
    Level,
    Roadmap,
    RoadmapStats,
    TreeNode,
)
from roadmap_admin.services import codec
from roadmap_admin.services.api_client import RoadmapApiClient
from roadmap_admin.services.mutations import Mutation
from roadmap_admin.services.ordering import insert_at, order_payload, renumber, reorder
from roadmap_admin.services.tree_ops import (
    ENTITY_TYPES,
    NodePath,
    child_field,
    child_type,
    children_of,
    compute_stats,
    depth_of,
    find_path,
    get_node,
    iter_nodes,
    remove_node,
    renumber_subtree,
    replace_node,
    require_path,
    save_payload,
    with_children,
)

logger = get_logger(__name__)

TEMP_ID_PREFIX = "tmp_"


class EntityState(str, Enum):
    """Lifecycle of a node as seen by the store."""

    UNSAVED = "unsaved"  # Created locally, create call not confirmed yet
    SAVED = "saved"  # Matches the last server answer
    MODIFIED = "modified"  # Local edit in flight
    DELETED = "deleted"  # Removed; terminal


# ============================================================================
# Ids and field validation
# ============================================================================


def new_temporary_id() -> str:
    """Placeholder id for a node the server has not issued an id for yet."""
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex[:12]}"


def is_temporary_id(entity_id: str) -> bool:
    return entity_id.startswith(TEMP_ID_PREFIX)


REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "roadmap": ("title",),
    "level": ("title",),
    "milestone": ("title", "description"),
    "challenge": ("title", "description"),
}

EDITABLE_FIELDS: dict[str, frozenset[str]] = {
    "roadmap": frozenset({"title", "description", "icon", "visibility", "status"}),
    "level": frozenset({"title", "unlock_requirements"}),
    "milestone": frozenset({"title", "description", "due_date", "reward"}),
    "challenge": frozenset({"title", "description", "type", "resources"}),
}

CHOICE_FIELDS: dict[str, tuple[str, ...]] = {
    "visibility": VISIBILITIES,
    "status": ROADMAP_STATUSES,
    "type": CHALLENGE_TYPES,
}


def normalize_fields(entity_type: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Map wire aliases (``unlockRequirements``) to attribute names."""
    model = MODEL_BY_TYPE[entity_type]
    aliases = {info.alias: name for name, info in model.model_fields.items() if info.alias}
    return {aliases.get(key, key): value for key, value in fields.items()}


def validate_fields(entity_type: str, fields: dict[str, Any], creating: bool) -> None:
    """Check user-supplied fields before anything is sent.

    Raises:
        ValidationError: On unknown or immutable fields, a blank required
            field, or a value outside its allowed choices
    """
    if "id" in fields:
        raise ValidationError("id cannot be set or changed", field="id")

    allowed = EDITABLE_FIELDS[entity_type]
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise ValidationError(f"Unknown {entity_type} fields: {', '.join(unknown)}", field=unknown[0])

    for name in REQUIRED_FIELDS[entity_type]:
        if name not in fields and not creating:
            continue
        value = fields.get(name)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{entity_type} {name} is required", field=name)

    for name, choices in CHOICE_FIELDS.items():
        if name in fields and fields[name] not in choices:
            raise ValidationError(f"{name} must be one of {', '.join(choices)}", field=name)

    resources = fields.get("resources")
    if resources is not None and (
        not isinstance(resources, list) or not all(isinstance(r, str) for r in resources)
    ):
        raise ValidationError("resources must be a list of strings", field="resources")


def _without_children(node: TreeNode) -> dict[str, Any]:
    body = node.to_wire()
    field = child_field(node)
    if field is not None:
        body.pop(field, None)
    return body


# ============================================================================
# Store
# ============================================================================


class RoadmapStore:
    """In-memory roadmap collection backed by the roadmap API."""

    def __init__(self, api: RoadmapApiClient):
        self.api = api
        self.roadmaps: list[Roadmap] = []
        self._states: dict[str, EntityState] = {}
        self._pending: set[str] = set()

    # ------------------------------------------------------------------
    # State bookkeeping
    # ------------------------------------------------------------------

    def state_of(self, entity_id: str) -> EntityState | None:
        return self._states.get(entity_id)

    def is_pending(self, key: str) -> bool:
        """Whether a call for ``key`` (usually an entity id) is in flight."""
        return key in self._pending

    @contextmanager
    def _submitting(self, key: str) -> Iterator[None]:
        if key in self._pending:
            raise ValidationError(f"A save for {key} is already in progress")
        self._pending.add(key)
        try:
            yield
        finally:
            self._pending.discard(key)

    def _mark_saved(self, node: TreeNode) -> None:
        for n in iter_nodes(node):
            self._states[n.id] = EntityState.SAVED

    def _apply(self, mutation: Mutation) -> None:
        self.roadmaps = mutation.forward(self.roadmaps)

    def _rollback(self, mutation: Mutation, error: Exception) -> None:
        try:
            self.roadmaps = mutation.inverse(self.roadmaps)
        except EntityNotFound:
            logger.warning("Rollback target no longer exists", mutation=mutation.label)
            return
        logger.warning("Mutation rolled back", mutation=mutation.label, error=str(error))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, entity_type: str, entity_id: str) -> Any:
        """Current node of ``entity_type`` with ``entity_id``."""
        return get_node(self.roadmaps, require_path(self.roadmaps, entity_type, entity_id))

    def local_stats(self) -> RoadmapStats:
        return compute_stats(self.roadmaps)

    async def stats(self) -> RoadmapStats:
        """Aggregate counts from ``GET /roadmaps/stats``."""
        data = await self.api.get_stats()
        try:
            return RoadmapStats.model_validate(data or {})
        except pydantic.ValidationError as e:
            raise FetchFailed("Stats response could not be read") from e

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load(self, roadmap_id: str | None = None) -> list[Roadmap] | Roadmap:
        """Fetch the roadmap list, or one roadmap's full tree.

        Prior state is only replaced once the whole response has been read.
        Local roadmaps the server has never confirmed (imports not saved yet,
        creates in flight) are kept after the fetched ones.

        Raises:
            FetchFailed: On network error, non-2xx, or an unreadable body
            EntityNotFound: If ``roadmap_id`` is unknown to the server too
        """
        if roadmap_id is None:
            data = await self.api.list_roadmaps()
            try:
                roadmaps = [renumber_subtree(Roadmap.model_validate(item)) for item in data]
            except pydantic.ValidationError as e:
                raise FetchFailed("Roadmap list could not be read") from e
            fetched_ids = {roadmap.id for roadmap in roadmaps}
            unsaved = [
                roadmap
                for roadmap in self.roadmaps
                if roadmap.id not in fetched_ids
                and self.state_of(roadmap.id) in (None, EntityState.UNSAVED)
            ]
            self.roadmaps = [*roadmaps, *unsaved]
            for roadmap in roadmaps:
                self._mark_saved(roadmap)
            logger.info("Roadmaps loaded", count=len(roadmaps), kept_unsaved=len(unsaved))
            return list(self.roadmaps)

        if find_path(self.roadmaps, "roadmap", roadmap_id) is None:
            await self.load()
            return self.get("roadmap", roadmap_id)

        data = await self.api.list_children((roadmap_id,))
        try:
            levels = renumber([renumber_subtree(Level.model_validate(item)) for item in data])
        except pydantic.ValidationError as e:
            raise FetchFailed(f"Levels of roadmap {roadmap_id} could not be read") from e
        self.roadmaps = with_children(self.roadmaps, (roadmap_id,), levels)
        roadmap = self.get("roadmap", roadmap_id)
        self._mark_saved(roadmap)
        logger.info("Roadmap loaded", roadmap_id=roadmap_id, levels=len(levels))
        return roadmap

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_child(
        self, parent_type: str | None, parent_id: str | None, fields: dict[str, Any]
    ) -> Any:
        """Create a roadmap (``parent_type=None``) or a child of an existing node.

        The node is inserted with a temporary id and the next dense order, then
        swapped for the server's entity once the create call succeeds.

        Raises:
            ValidationError: Before any network call, on invalid fields
            FetchFailed: If the create call fails (the temporary node is removed)
        """
        entity_type = child_type(parent_type)
        fields = normalize_fields(entity_type, fields)
        validate_fields(entity_type, fields, creating=True)

        if parent_type is None:
            parent_path: NodePath = ()
        else:
            if parent_id is None:
                raise ValidationError(f"A {entity_type} needs a parent {parent_type}", field="parent_id")
            parent_path = require_path(self.roadmaps, parent_type, parent_id)
            if any(is_temporary_id(node_id) for node_id in parent_path):
                raise ValidationError(f"Save the {parent_type} before adding to it", field="parent_id")

        model = MODEL_BY_TYPE[entity_type]
        temp = model.model_validate({**fields, "id": new_temporary_id()})
        siblings = children_of(self.roadmaps, parent_path)
        after = [*siblings, temp] if entity_type == "roadmap" else insert_at(siblings, temp)
        temp = after[-1]
        mutation = Mutation.of(f"create {entity_type}", parent_path, siblings, after)

        body = {key: value for key, value in temp.to_wire().items() if key != "id"}
        with self._submitting(f"create:{entity_type}:{parent_id or ''}"):
            self._apply(mutation)
            self._states[temp.id] = EntityState.UNSAVED
            try:
                if parent_path:
                    response = await self.api.save_child(parent_path, body)
                else:
                    response = await self.api.save_roadmap(body)
                saved = self._created_entity(model, response, {s.id for s in siblings})
            except FetchFailed as e:
                self._rollback(mutation, e)
                self._states.pop(temp.id, None)
                raise

        self._states.pop(temp.id, None)
        placeholder_path = parent_path + (temp.id,)
        try:
            # Siblings may have moved or gone while the call was in flight
            placeholder = get_node(self.roadmaps, placeholder_path)
            if entity_type != "roadmap":
                saved = saved.model_copy(update={"order": placeholder.order})
            self.roadmaps = replace_node(self.roadmaps, placeholder_path, saved)
        except EntityNotFound:
            logger.info("Created entity arrived after its placeholder was removed", entity_id=saved.id)
        self._mark_saved(saved)
        logger.info(
            "Entity created",
            entity_type=entity_type,
            entity_id=saved.id,
            parent_id=parent_id,
        )
        return saved

    @staticmethod
    def _created_entity(model: type[TreeNode], response: Any, known_ids: Collection[str]) -> Any:
        """Pick the created entity out of a create response.

        The server answers with either the entity or the full sibling list; in
        the latter case the created entity is the last one with an unknown id.
        """
        try:
            if isinstance(response, dict):
                candidates = [model.model_validate(response)]
            elif isinstance(response, list):
                candidates = [
                    model.model_validate(item)
                    for item in response
                    if isinstance(item, dict) and item.get("id") not in known_ids
                ]
            else:
                candidates = []
        except pydantic.ValidationError as e:
            raise FetchFailed("Create response could not be read") from e

        created = [c for c in candidates if c.id]
        if not created:
            raise FetchFailed("Create response did not contain the new entity")
        return renumber_subtree(created[-1])

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def update(self, entity_type: str, entity_id: str, fields: dict[str, Any]) -> Any:
        """Apply ``fields`` to a node optimistically and persist them.

        Raises:
            ValidationError: Before any network call, on invalid fields
            FetchFailed: If the update call fails (local change rolled back)
        """
        depth_of(entity_type)
        fields = normalize_fields(entity_type, fields)
        validate_fields(entity_type, fields, creating=False)
        if is_temporary_id(entity_id):
            raise ValidationError(f"{entity_type} {entity_id} has not been saved yet", field="id")

        path = require_path(self.roadmaps, entity_type, entity_id)
        current = get_node(self.roadmaps, path)
        validated = type(current).model_validate({**current.model_dump(), **fields})
        updated = current.model_copy(update={name: getattr(validated, name) for name in fields})
        siblings = children_of(self.roadmaps, path[:-1])
        after = [updated if s is current else s for s in siblings]
        mutation = Mutation.of(f"update {entity_type}", path[:-1], siblings, after)

        with self._submitting(entity_id):
            self._apply(mutation)
            self._states[entity_id] = EntityState.MODIFIED
            try:
                if entity_type == "roadmap":
                    wire = updated.to_wire()
                    patch = {
                        (info.alias or name): wire[info.alias or name]
                        for name, info in type(updated).model_fields.items()
                        if name in fields
                    }
                    response = await self.api.patch_roadmap(entity_id, patch)
                else:
                    body = _without_children(updated)
                    body.pop("order", None)
                    response = await self.api.save_child(path[:-1], body)
            except FetchFailed as e:
                self._rollback(mutation, e)
                self._states[entity_id] = EntityState.SAVED
                raise

        path = find_path(self.roadmaps, entity_type, entity_id)
        if path is None:
            logger.info("Update confirmed for an entity no longer in the tree", entity_id=entity_id)
            return updated

        reconciled = self._reconcile(get_node(self.roadmaps, path), response)
        self.roadmaps = replace_node(self.roadmaps, path, reconciled)
        self._states[entity_id] = EntityState.SAVED
        logger.info("Entity updated", entity_type=entity_type, entity_id=entity_id, fields=sorted(fields))
        return reconciled

    @staticmethod
    def _reconcile(local: TreeNode, response: Any) -> Any:
        """Take the server's scalar fields for ``local``.

        ``local`` is the node as it is in the tree now; its children and
        order win over whatever the response carries.
        """
        if isinstance(response, list):
            response = next(
                (item for item in response if isinstance(item, dict) and item.get("id") == local.id),
                None,
            )
        if not isinstance(response, dict) or response.get("id") != local.id:
            return local
        try:
            confirmed = type(local).model_validate(response)
        except pydantic.ValidationError:
            logger.warning("Ignoring unreadable update response", entity_id=local.id)
            return local
        field = child_field(local)
        if field is not None:
            confirmed = confirmed.model_copy(update={field: getattr(local, field)})
        if hasattr(local, "order"):
            confirmed = confirmed.model_copy(update={"order": local.order})
        return confirmed

    async def set_status(self, roadmap_id: str, status: str) -> Roadmap:
        """Change only a roadmap's publication status."""
        return await self.update("roadmap", roadmap_id, {"status": status})

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete(self, entity_type: str, entity_id: str) -> list[str]:
        """Delete a node on the server, then remove it and its subtree locally.

        Unsaved nodes are removed locally without a call. The cascade is
        computed from the local tree, not from the server's answer.

        Returns:
            Ids removed from local state (the node first, then descendants)

        Raises:
            FetchFailed: If the delete call fails (local state untouched)
        """
        path = require_path(self.roadmaps, entity_type, entity_id)
        with self._submitting(entity_id):
            if not is_temporary_id(entity_id):
                await self.api.delete_entity(path)

        path = find_path(self.roadmaps, entity_type, entity_id)
        if path is None:
            return []
        self.roadmaps, removed = remove_node(self.roadmaps, path)
        for node_id in removed:
            self._states[node_id] = EntityState.DELETED
        logger.info(
            "Entity deleted",
            entity_type=entity_type,
            entity_id=entity_id,
            cascaded=len(removed) - 1,
        )
        return removed

    # ------------------------------------------------------------------
    # Move
    # ------------------------------------------------------------------

    async def move(self, entity_type: str, parent_id: str, from_index: int, to_index: int) -> list[Any]:
        """Move a node within its sibling group and persist the new order.

        Returns:
            The renumbered sibling group

        Raises:
            ValidationError: For roadmaps, a bad index, or unsaved siblings
            FetchFailed: If the reorder call fails (prior order restored)
        """
        depth = depth_of(entity_type)
        if depth == 0:
            raise ValidationError("Roadmaps have no manual order", field="entity_type")
        parent_path = require_path(self.roadmaps, ENTITY_TYPES[depth - 1], parent_id)
        siblings = children_of(self.roadmaps, parent_path)
        try:
            after = reorder(siblings, from_index, to_index)
        except IndexError as e:
            raise ValidationError(str(e), field="from_index") from e

        mutation = Mutation.of(f"move {entity_type}", parent_path, siblings, after)
        if not mutation.changed:
            return after
        if any(is_temporary_id(s.id) for s in siblings):
            raise ValidationError(f"Wait for new {entity_type}s to be saved before reordering")

        with self._submitting(f"reorder:{parent_id}"):
            self._apply(mutation)
            try:
                await self.api.reorder_children(parent_path, order_payload(after))
            except FetchFailed as e:
                self._rollback(mutation, e)
                raise

        logger.info(
            "Siblings reordered",
            entity_type=entity_type,
            parent_id=parent_id,
            from_index=from_index,
            to_index=to_index,
        )
        return after

    # ------------------------------------------------------------------
    # Whole-roadmap save, import and export
    # ------------------------------------------------------------------

    async def save_roadmap(self, roadmap_id: str) -> Roadmap:
        """Persist a whole roadmap tree in one call.

        Nested ids are dropped so the server issues fresh ones; the answer
        replaces the local roadmap.

        Raises:
            FetchFailed: If the save call fails (local state untouched)
        """
        path = require_path(self.roadmaps, "roadmap", roadmap_id)
        roadmap = get_node(self.roadmaps, path)
        body = save_payload(roadmap)
        if is_temporary_id(roadmap_id):
            body.pop("id", None)

        with self._submitting(roadmap_id):
            response = await self.api.save_roadmap(body)
        try:
            saved = renumber_subtree(Roadmap.model_validate(response))
        except pydantic.ValidationError as e:
            raise FetchFailed("Save response could not be read") from e
        if not saved.id:
            raise FetchFailed("Save response did not contain the roadmap")

        try:
            self.roadmaps = replace_node(self.roadmaps, path, saved)
        except EntityNotFound:
            logger.info("Saved roadmap is no longer in the tree", roadmap_id=roadmap_id)
        for node_id in (n.id for n in iter_nodes(roadmap)):
            self._states.pop(node_id, None)
        self._mark_saved(saved)
        logger.info("Roadmap saved", roadmap_id=saved.id)
        return saved

    def import_json(self, raw: str) -> list[Roadmap]:
        """Append the roadmaps of an uploaded export to local state.

        No deduplication by id takes place.

        Raises:
            ImportFormatError: If the document's top-level shape is wrong
        """
        imported = [renumber_subtree(r) for r in codec.import_roadmaps(raw)]
        self.roadmaps = [*self.roadmaps, *imported]
        logger.info("Roadmaps imported", count=len(imported), total=len(self.roadmaps))
        return imported

    def export_json(self, selected_ids: Collection[str] = ()) -> codec.ExportDocument:
        return codec.export_roadmaps(self.roadmaps, selected_ids)
