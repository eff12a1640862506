from __future__ import annotations

from pathlib import Path

import pytest

textual = pytest.importorskip("textual")

from pacbrowse.config import Settings  # noqa: E402
from pacbrowse.modal_state import Confirmation, ErrorOverlay  # noqa: E402
from pacbrowse.models import ActionKind  # noqa: E402
from pacbrowse.themes import BASIC, DEFAULT_THEME  # noqa: E402


def test_app_constructs() -> None:
    from pacbrowse.ui_app import PacBrowseApp

    app = PacBrowseApp(Settings(aur_helper="paru"), DEFAULT_THEME)
    # Do not run the app; just ensure construction doesn't crash
    assert app.model.loading
    assert app.ui_theme is DEFAULT_THEME
    assert app.helper


def test_guarded_turns_exceptions_into_errors() -> None:
    from pacbrowse.ui_app import guarded

    def boom():
        raise ValueError("bad output")

    value, err = guarded(boom)
    assert value is None and "bad output" in err
    assert guarded(lambda: ([1], None)) == ([1], None)


def test_confirmation_text_scrolls() -> None:
    from pacbrowse.modals import confirmation_text

    c = Confirmation(ActionKind.UNINSTALL, targets=tuple(f"pkg{i:02d}" for i in range(15)), scroll=5)
    body = confirmation_text(c, 10, BASIC)
    assert "pkg05" in body and "pkg14" in body
    assert "pkg04" not in body
    assert "Total: 15 package(s)" in body
    assert "5 above, 0 below" in body


def test_error_text() -> None:
    from pacbrowse.modals import error_text

    body = error_text(ErrorOverlay("Removal Failed", "The operation exited with a non-zero exit code.", "Exit code: 1"), BASIC)
    assert "Removal Failed" in body and "Exit code: 1" in body


def test_cli_list_themes(capsys) -> None:
    from pacbrowse_app import main

    assert main(["--list-themes"]) == 0
    out = capsys.readouterr().out
    assert out.splitlines() == ["Available themes:", "  - Basic", "  - Catppuccin Mocha"]


def test_cli_unknown_theme(tmp_path: Path, capsys) -> None:
    from pacbrowse_app import main

    assert main(["--theme", "solarized", "--config", str(tmp_path / "none.json")]) == 1
    assert "Available themes:" in capsys.readouterr().out


class FakeTable:
    id = "remove_tbl"

    def __init__(self):
        self.clears = 0
        self.rows = []

    def clear(self):
        self.clears += 1
        self.rows = []

    def add_row(self, *cells, key=None):
        self.rows.append(key)

    def move_cursor(self, row, column):
        self.cursor = row


class FakeBox:
    def update(self, body):
        self.body = body


class FakeApp:
    ui_theme = BASIC

    def __init__(self):
        self.rendered_tables = {}
        self.table = FakeTable()
        self.box = FakeBox()

    def query_one(self, selector, kind=None):
        return self.table if selector.endswith("_tbl") else self.box


def test_render_cache_is_per_app() -> None:
    from pacbrowse.dispatcher import update
    from pacbrowse.events import InstalledLoaded, KeyPress
    from pacbrowse.models import PackageRecord, ViewMode
    from pacbrowse.state import initial_model
    from pacbrowse.tabs import packages_tab

    m, _ = update(initial_model(), KeyPress("r"))
    m, _ = update(m, InstalledLoaded((PackageRecord("extra", "a", "1", installed=True),)))

    first, second = FakeApp(), FakeApp()
    packages_tab.refresh(first, m, ViewMode.REMOVE)
    packages_tab.refresh(first, m, ViewMode.REMOVE)
    assert first.table.clears == 1
    packages_tab.refresh(second, m, ViewMode.REMOVE)
    assert second.table.clears == 1
    assert second.table.rows == ["0"]


def test_apps_do_not_share_render_cache() -> None:
    from pacbrowse.ui_app import PacBrowseApp

    a = PacBrowseApp(Settings(aur_helper="paru"), DEFAULT_THEME)
    b = PacBrowseApp(Settings(aur_helper="paru"), DEFAULT_THEME)
    assert a.rendered_tables == {} and a.rendered_tables is not b.rendered_tables
