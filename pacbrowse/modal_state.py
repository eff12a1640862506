from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from .models import ACTION_TITLES, ActionKind

CONFIRM_KEYS = frozenset({"y", "Y", "enter"})
CANCEL_KEYS = frozenset({"n", "N", "escape"})
SCROLL_DOWN_KEYS = frozenset({"down", "j"})
SCROLL_UP_KEYS = frozenset({"up", "k"})
DISMISS_KEYS = frozenset({"escape", "enter", "q"})

@dataclass(frozen=True)
class Confirmation:
    kind: ActionKind
    targets: Tuple[str, ...] = ()
    scroll: int = 0
    lines: Tuple[str, ...] = ()  # display rows when they differ from targets (updates)

    @property
    def rows(self) -> Tuple[str, ...]:
        return self.lines or self.targets

    def max_scroll(self, window: int) -> int:
        return max(0, len(self.rows) - window)

    def scrolled(self, delta: int, window: int) -> "Confirmation":
        offset = min(max(0, self.scroll + delta), self.max_scroll(window))
        return replace(self, scroll=offset)

@dataclass(frozen=True)
class ErrorOverlay:
    title: str
    message: str
    detail: str = ""

Modal = Optional[Union[Confirmation, ErrorOverlay]]

def action_failure_overlay(kind: ActionKind, error: str, exit_code: Optional[int]) -> ErrorOverlay:
    title = f"{ACTION_TITLES[kind]} Failed"
    hint = "\n\nThe error output was displayed in the terminal.\nPlease check the terminal output for details."
    if exit_code is not None:
        detail = f"Exit code: {exit_code}"
    else:
        detail = f"Error: {error or 'unknown error'}"
    return ErrorOverlay(title=title, message="The operation exited with a non-zero exit code.", detail=detail + hint)
