from __future__ import annotations

from pacbrowse.modal_state import Confirmation, action_failure_overlay
from pacbrowse.models import ActionKind
from pacbrowse.selection import Selection, panel_max_index


def test_mark_then_unmark_restores():
    before = Selection(frozenset({"a"}))
    assert before.mark("b").unmark("b") == before
    assert before.toggle("a") == Selection()
    assert before.toggle("b").toggle("b") == before


def test_sorted_and_bulk_targets():
    sel = Selection().mark("zsh").mark("bash").mark("fish")
    assert sel.sorted() == ["bash", "fish", "zsh"]
    assert sel.bulk_targets(exclude={"fish"}) == ["bash", "zsh"]
    assert "zsh" in sel and len(sel) == 3
    assert not sel.clear()


def test_panel_max_index():
    sel = Selection(frozenset(str(i) for i in range(15)))
    assert panel_max_index(sel, 10) == 9
    assert panel_max_index(Selection(frozenset({"a", "b"})), 10) == 1
    assert panel_max_index(Selection(), 10) == 0


def test_confirmation_scroll_is_clamped():
    c = Confirmation(ActionKind.UNINSTALL, targets=tuple(f"p{i}" for i in range(15)))
    assert c.max_scroll(10) == 5
    assert c.scrolled(-1, 10).scroll == 0
    assert c.scrolled(100, 10).scroll == 5
    assert Confirmation(ActionKind.INSTALL, ("a",)).scrolled(1, 10).scroll == 0


def test_confirmation_rows_prefer_lines():
    c = Confirmation(ActionKind.UPDATE, targets=("a",), lines=("a 1 -> 2",))
    assert c.rows == ("a 1 -> 2",)


def test_failure_overlay_text():
    o = action_failure_overlay(ActionKind.INSTALL, "", 1)
    assert o.title == "Installation Failed"
    assert o.message
    assert o.detail.startswith("Exit code: 1")
    o = action_failure_overlay(ActionKind.UPDATE, "paru: not found", None)
    assert "paru: not found" in o.detail
