"""Tests for expansion state, keyboard navigation and the side panel."""

from roadmap_admin.services.tree_view import TreeViewController

VISIBLE = ["rm-python", "rm-data", "rm-web"]


def test_toggle_returns_new_state():
    view = TreeViewController()

    assert view.toggle("lv-syntax") is True
    assert view.is_expanded("lv-syntax")
    assert view.toggle("lv-syntax") is False
    assert not view.is_expanded("lv-syntax")


def test_expand_all_and_collapse_all(seed_roadmaps):
    view = TreeViewController()
    view.expand_all(seed_roadmaps[0])

    assert {"rm-python", "lv-syntax", "ms-variables", "ms-closures", "ch-fizzbuzz"} <= view.expanded
    view.collapse_all()
    assert view.expanded == set()


def test_forget_removed_nodes():
    view = TreeViewController()
    view.expand("lv-syntax")
    view.expand("lv-functions")
    view.open_panel("rm-python")

    view.forget(["rm-python", "lv-syntax"])

    assert view.expanded == {"lv-functions"}
    assert view.panel_roadmap_id is None
    assert view.focused_id is None


def test_arrow_keys_move_and_stop_at_ends():
    view = TreeViewController()

    assert view.handle_key("ArrowDown", VISIBLE) == "rm-python"
    assert view.handle_key("ArrowRight", VISIBLE) == "rm-data"
    assert view.handle_key("ArrowDown", VISIBLE) == "rm-web"
    assert view.handle_key("ArrowDown", VISIBLE) == "rm-web"
    assert view.handle_key("ArrowUp", VISIBLE) == "rm-data"
    assert view.handle_key("ArrowLeft", VISIBLE) == "rm-python"
    assert view.handle_key("ArrowLeft", VISIBLE) == "rm-python"


def test_home_and_end():
    view = TreeViewController()

    assert view.handle_key("End", VISIBLE) == "rm-web"
    assert view.handle_key("Home", VISIBLE) == "rm-python"


def test_enter_opens_and_escape_closes_panel():
    view = TreeViewController()
    view.handle_key("Enter", VISIBLE)
    assert view.panel_roadmap_id is None

    view.handle_key("ArrowDown", VISIBLE)
    view.handle_key("ArrowDown", VISIBLE)
    view.handle_key("Enter", VISIBLE)
    assert view.panel_roadmap_id == "rm-data"

    view.handle_key("Escape", VISIBLE)
    assert view.panel_roadmap_id is None
    assert view.focused_id == "rm-data"


def test_unknown_key_and_empty_list():
    view = TreeViewController()
    view.handle_key("Home", VISIBLE)

    assert view.handle_key("Tab", VISIBLE) == "rm-python"
    assert view.handle_key("ArrowDown", []) is None


def test_reconcile_drops_filtered_out_focus():
    view = TreeViewController()
    view.open_panel("rm-web")

    view.reconcile(["rm-python"])

    assert view.focused_id is None
    assert view.panel_roadmap_id is None
