from __future__ import annotations

from pacbrowse.config import Settings
from pacbrowse.dispatcher import HANDLERS, initial_requests, update
from pacbrowse.events import (
    COMPLETIONS,
    ActionDone,
    DashboardLoaded,
    DetailLoaded,
    DetailTick,
    IndexLoaded,
    InstalledLoaded,
    KeyPress,
    RemoteSearchDone,
    UpdatesChecked,
)
from pacbrowse.modal_state import Confirmation, ErrorOverlay
from pacbrowse.models import ActionKind, DashboardStats, PackageRecord, ViewMode
from pacbrowse.requests import (
    CheckUpdates,
    FetchDetail,
    LoadDashboard,
    LoadIndex,
    LoadInstalled,
    Quit,
    RunAction,
    ScheduleDetail,
    SearchRemote,
)
from pacbrowse.scheduler import DETAIL_PLACEHOLDER
from pacbrowse.state import initial_model

INDEX = (
    PackageRecord("core", "bash", "5.2", installed=True),
    PackageRecord("extra", "firefox", "130.0-1"),
    PackageRecord("extra", "firefox-i18n-af", "130.0-1"),
    PackageRecord("extra", "vim", "9.1"),
)


def _press(m, *keys):
    reqs = []
    for k in keys:
        m, r = update(m, KeyPress(k))
        reqs += r
    return m, reqs


def _type(m, text):
    return _press(m, *list(text))


def _install_model(settings=None):
    m, _ = update(initial_model(settings), IndexLoaded(INDEX))
    return m


def _remove_model(names):
    records = tuple(PackageRecord("extra", n, "1.0", installed=True, explicit=True) for n in names)
    m, reqs = update(initial_model(), KeyPress("r"))
    assert reqs == [LoadInstalled()]
    m, _ = update(m, InstalledLoaded(records))
    return m


def _of(reqs, kind):
    return [r for r in reqs if isinstance(r, kind)]


def test_every_completion_has_a_handler():
    for kind in COMPLETIONS:
        assert kind in HANDLERS
    assert KeyPress in HANDLERS


def test_unknown_event_is_a_no_op():
    m = initial_model()
    assert update(m, object()) == (m, [])


def test_startup_loads_index():
    assert initial_requests(initial_model()) == [LoadIndex()]


def test_typing_ranks_and_searches_remote():
    m = _install_model()
    m, _ = _press(m, "/")
    assert m.input_focused
    m, reqs = _type(m, "fire")
    assert [r.query for r in _of(reqs, SearchRemote)] == ["fi", "fir", "fire"]
    assert [r.name for r in m.ranked] == ["firefox", "firefox-i18n-af"]
    assert m.cursor == 0
    assert _of(reqs, ScheduleDetail)[-1].name == "firefox"


def test_short_query_does_not_search():
    m = _install_model()
    m, reqs = _press(m, "/", "f")
    assert not _of(reqs, SearchRemote)
    assert m.ranked == ()


def test_repo_only_filter_skips_remote_search():
    m = _install_model()
    m, reqs = _press(m, "/")
    m, reqs = _type(m, "e:fire")
    assert not _of(reqs, SearchRemote)
    assert [str(r.record) for r in m.ranked] == ["extra/firefox", "extra/firefox-i18n-af"]


def test_prefix_results_show_until_exact_answer():
    m = _install_model()
    m, _ = _press(m, "/")
    m, reqs = _type(m, "fire")
    fire = _of(reqs, SearchRemote)[-1]
    m, reqs = _type(m, "fox")
    last = _of(reqs, SearchRemote)[-1]
    assert last.query == "firefox"

    m, _ = update(m, RemoteSearchDone(fire.query, fire.generation, (PackageRecord("aur", "firefox-nightly"),)))
    assert "firefox-nightly" in [r.name for r in m.ranked]

    m, _ = update(m, RemoteSearchDone(last.query, last.generation, (PackageRecord("aur", "firefox-esr"),)))
    names = [r.name for r in m.ranked]
    assert "firefox-esr" in names and "firefox-nightly" not in names


def test_search_failure_keeps_local_results():
    m = _install_model()
    m, _ = _press(m, "/")
    m, reqs = _type(m, "vim")
    req = _of(reqs, SearchRemote)[-1]
    m, _ = update(m, RemoteSearchDone(req.query, req.generation, error="paru: exit status 1"))
    assert [r.name for r in m.ranked] == ["vim"]
    assert m.modal is None


def test_query_respects_char_limit():
    m = _install_model(Settings(query_char_limit=3))
    m, _ = _press(m, "/")
    m, _ = _type(m, "vimx")
    assert m.query.raw == "vim"


def test_stale_detail_is_discarded():
    m = _remove_model(["a", "b"])
    tick = m.detail.ticket
    m, reqs = update(m, DetailTick("a", tick))
    assert reqs == [FetchDetail("a")]
    m, _ = _press(m, "down")
    assert m.current.name == "b"
    m, _ = update(m, DetailLoaded("a", "Name : a"))
    assert m.detail.shown is None and m.detail.text == ""
    # the superseded timer fires late
    _, reqs = update(m, DetailTick("a", tick))
    assert reqs == []


def test_detail_failure_placeholder_leaves_list_alone():
    m = _remove_model(["a", "b"])
    m, _ = update(m, DetailTick("a", m.detail.ticket))
    ranked = m.ranked
    m, _ = update(m, DetailLoaded("a", error="exit status 1"))
    assert m.detail.text == DETAIL_PLACEHOLDER
    assert m.ranked == ranked


def test_confirm_removal_of_three_marked():
    m = _remove_model(["a", "b", "c"])
    m, _ = _press(m, "tab", "down", "tab", "down", "tab")
    assert m.selection.sorted() == ["a", "b", "c"]

    m, reqs = _press(m, "enter")
    assert reqs == []
    assert isinstance(m.modal, Confirmation)
    assert m.modal.kind == ActionKind.UNINSTALL
    assert m.modal.targets == ("a", "b", "c")

    m, reqs = _press(m, "y")
    assert reqs == [RunAction(ActionKind.UNINSTALL, ("a", "b", "c"))]
    assert len(m.selection) == 0
    assert m.modal is None
    assert m.action == ActionKind.UNINSTALL


def test_cancel_keeps_marks():
    m = _remove_model(["a", "b"])
    m, _ = _press(m, "tab", "enter")
    assert isinstance(m.modal, Confirmation)
    m, reqs = _press(m, "n")
    assert reqs == [] and m.modal is None
    assert m.selection.sorted() == ["a"]
    assert m.status == "Operation cancelled"


def test_modal_swallows_browse_keys():
    m = _remove_model(["a", "b"])
    m, _ = _press(m, "enter")
    before = m
    m, reqs = _press(m, "i", "q", "/")
    assert reqs == [] and m == before


def test_action_failure_shows_overlay_and_refreshes():
    m = _remove_model(["a"])
    m, _ = _press(m, "enter", "y")
    m, reqs = update(m, ActionDone(ActionKind.UNINSTALL, ("a",), error="exit status 1", exit_code=1))
    assert isinstance(m.modal, ErrorOverlay)
    assert m.modal.title and m.modal.message
    assert reqs == [LoadInstalled()]
    assert m.action is None
    for key in ("x", "y", "tab", "ctrl+r"):
        kept, reqs = update(m, KeyPress(key))
        assert kept.modal is m.modal and reqs == []
    for key in ("escape", "enter", "q"):
        dismissed, reqs = update(m, KeyPress(key))
        assert dismissed.modal is None and reqs == []


def test_action_success_refreshes_and_reports():
    m = _remove_model(["a"])
    m, _ = _press(m, "enter", "y")
    m, reqs = update(m, ActionDone(ActionKind.UNINSTALL, ("a",)))
    assert m.modal is None
    assert reqs == [LoadInstalled()]
    assert m.last_completed == "Removed: a"


def test_install_refresh_targets_index():
    m = _install_model()
    m, _ = _press(m, "/")
    m, _ = _type(m, "vim")
    m, _ = _press(m, "enter")
    assert isinstance(m.modal, Confirmation) and m.modal.targets == ("vim",)
    m, reqs = _press(m, "enter")
    assert reqs == [RunAction(ActionKind.INSTALL, ("vim",))]
    _, reqs = update(m, ActionDone(ActionKind.INSTALL, ("vim",)))
    assert reqs == [LoadIndex()]


def test_installed_package_is_not_offered_for_install():
    m = _install_model()
    m, _ = _press(m, "/")
    m, _ = _type(m, "bash")
    m, _ = _press(m, "enter")
    assert m.modal is None
    assert "already installed" in m.status


def test_marks_survive_mode_switch():
    m = _install_model()
    m, _ = _press(m, "/")
    m, _ = _type(m, "vim")
    m, _ = _press(m, "tab", "escape", "r")
    assert m.mode == ViewMode.REMOVE
    assert m.selection.sorted() == ["vim"]


def test_escape_in_browse_clears_marks():
    m = _remove_model(["a", "b"])
    m, _ = _press(m, "tab", "escape")
    assert len(m.selection) == 0


def test_selection_panel():
    m = _remove_model(["a", "b", "c"])
    m, _ = _press(m, "tab", "down", "tab")
    m, _ = _press(m, "*")
    assert m.panel.focused
    m, _ = _press(m, "down", "tab")
    assert m.selection.sorted() == ["a"]
    m, _ = _press(m, "enter")
    assert isinstance(m.modal, Confirmation) and m.modal.targets == ("a",)
    assert not m.panel.focused


def test_listing_failure_suppresses_dependent_queries():
    m, _ = update(initial_model(), IndexLoaded(error="pacman -Sl exited with status 1"))
    assert m.listing_failed and "Failed" in m.status
    m, reqs = _press(m, "/")
    m, reqs = _type(m, "fire")
    assert not _of(reqs, SearchRemote) and not _of(reqs, ScheduleDetail)
    m, reqs = _press(m, "ctrl+r")
    assert reqs == [LoadIndex()] and not m.listing_failed


def test_update_mode():
    m = _install_model()
    m, reqs = _press(m, "u")
    assert m.mode == ViewMode.UPDATE and reqs == [CheckUpdates()]
    m, _ = update(m, UpdatesChecked(()))
    assert m.status == "System is up to date!" and m.modal is None

    m, reqs = _press(m, "u")
    m, _ = update(m, UpdatesChecked((PackageRecord("repo", "vim", "9.0 -> 9.1", installed=True),)))
    assert isinstance(m.modal, Confirmation)
    assert m.modal.kind == ActionKind.UPDATE and m.modal.rows == ("vim 9.0 -> 9.1",)
    m, _ = _press(m, "escape")
    m, _ = _press(m, "enter")
    assert isinstance(m.modal, Confirmation)


def test_dashboard_keys():
    m, reqs = _press(_install_model(), "n")
    assert m.mode == ViewMode.INFO and reqs == [LoadDashboard()]
    # ignored while loading
    assert _press(m, "c")[0].modal is None

    m, _ = update(m, DashboardLoaded(DashboardStats(total=3, orphans=1, orphan_names=("libfoo",))))
    m, _ = _press(m, "R")
    assert isinstance(m.modal, Confirmation)
    assert m.modal.kind == ActionKind.REMOVE_ORPHANS and m.modal.targets == ("libfoo",)
    m, _ = _press(m, "n", "c")
    assert m.modal.kind == ActionKind.CLEAN_CACHE
    m, _ = _press(m, "escape", "o")
    assert m.mode == ViewMode.REMOVE and m.query.raw == "o:"


def test_quit_keys():
    m = _install_model()
    assert _press(m, "q")[1] == [Quit()]
    assert _press(m, "ctrl+c")[1] == [Quit()]
    m, _ = _press(m, "/")
    # typing "q" into the query does not quit
    assert _press(m, "q")[1] != [Quit()]


def test_deselecting_last_mark_leaves_panel():
    m = _remove_model(["a", "b"])
    m, _ = _press(m, "tab", "*")
    assert m.panel.focused
    m, _ = _press(m, "tab")
    assert len(m.selection) == 0
    assert not m.panel.focused
    assert m.status == "All selections cleared"


def test_no_confirmation_while_action_runs():
    m = _remove_model(["a", "b"])
    m, _ = _press(m, "enter", "y")
    assert m.action == ActionKind.UNINSTALL
    m, reqs = _press(m, "down", "enter")
    assert m.modal is None
    assert not _of(reqs, RunAction)
    assert m.status.endswith("still running")


def test_update_check_during_action_keeps_reason():
    m = _remove_model(["a"])
    m, _ = _press(m, "enter", "y", "u")
    assert m.mode == ViewMode.UPDATE
    m, _ = update(m, UpdatesChecked((PackageRecord("repo", "vim", "9.0 -> 9.1", installed=True),)))
    assert m.modal is None
    assert m.status.endswith("still running")
    assert [r.name for r in m.updates] == ["vim"]


def test_bulk_install_skips_installed_remote_results():
    m = _install_model()
    m, _ = _press(m, "/")
    m, reqs = _type(m, "yay")
    req = _of(reqs, SearchRemote)[-1]
    remote = (PackageRecord("aur", "yay", "12.3", installed=True), PackageRecord("aur", "yay-git", "12.3.r1"))
    m, _ = update(m, RemoteSearchDone(req.query, req.generation, remote))
    assert [r.name for r in m.ranked] == ["yay", "yay-git"]

    only_installed, _ = _press(m, "tab", "enter")
    assert only_installed.modal is None
    assert only_installed.status == "All marked packages are already installed"

    m, _ = _press(m, "tab", "down", "tab", "enter")
    assert isinstance(m.modal, Confirmation)
    assert m.modal.targets == ("yay-git",)
