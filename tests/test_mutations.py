"""Tests for mutation rollback."""

from roadmap_admin.schemas.roadmap import Level, Roadmap
from roadmap_admin.services.mutations import Mutation
from roadmap_admin.services.ordering import insert_at, reorder
from roadmap_admin.services.tree_ops import children_of


def _tree() -> list[Roadmap]:
    return [
        Roadmap(
            id="r1",
            title="R1",
            levels=[Level(id=f"l{i}", title=f"L{i}", order=i) for i in (1, 2, 3)],
        ),
        Roadmap(id="r2", title="R2"),
    ]


def _level_ids(roadmaps) -> list[str]:
    return [level.id for level in children_of(roadmaps, ("r1",))]


def test_forward_then_inverse_restores_group():
    roadmaps = _tree()
    before = children_of(roadmaps, ("r1",))
    mutation = Mutation.of("move level", ("r1",), before, reorder(before, 2, 0))

    moved = mutation.forward(roadmaps)
    assert _level_ids(moved) == ["l3", "l1", "l2"]
    assert mutation.inverse(moved) == roadmaps


def test_inverse_removes_only_created_node():
    roadmaps = _tree()
    before = children_of(roadmaps, ("r1",))
    mutation = Mutation.of("create level", ("r1",), before, insert_at(before, Level(id="tmp_1", title="New")))

    restored = mutation.inverse(mutation.forward(roadmaps))

    assert _level_ids(restored) == ["l1", "l2", "l3"]
    assert [level.order for level in children_of(restored, ())[0].levels] == [1, 2, 3]


def test_inverse_keeps_concurrent_sibling_edits():
    roadmaps = _tree()
    first = Mutation.of(
        "update roadmap",
        (),
        roadmaps,
        [roadmaps[0].model_copy(update={"title": "First"}), roadmaps[1]],
    )
    roadmaps = first.forward(roadmaps)
    second = Mutation.of(
        "update roadmap",
        (),
        roadmaps,
        [roadmaps[0], roadmaps[1].model_copy(update={"title": "Second"})],
    )
    roadmaps = second.forward(roadmaps)

    roadmaps = first.inverse(roadmaps)

    assert [r.title for r in roadmaps] == ["R1", "Second"]


def test_unchanged_mutation():
    roadmaps = _tree()
    mutation = Mutation.of("noop", (), roadmaps, list(roadmaps))
    assert not mutation.changed
    assert not mutation.moved
