#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from pacbrowse.config import CONFIG_FILE, load_settings
from pacbrowse.themes import list_themes, theme_by_name

def print_themes() -> None:
    print("Available themes:")
    for name in list_themes():
        print(f"  - {name}")

def setup_logging(log_file: Optional[str], debug: bool) -> None:
    root = logging.getLogger("pacbrowse")
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    if not log_file:
        root.addHandler(logging.NullHandler())
        return
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="pacbrowse", description="Browse, install and remove Arch packages from the terminal.")
    ap.add_argument("--theme", help="colour theme (see --list-themes)")
    ap.add_argument("--list-themes", action="store_true", help="print available themes and exit")
    ap.add_argument("--config", default=CONFIG_FILE, help="settings file (JSON)")
    ap.add_argument("--log-file", help="write a log to this file")
    ap.add_argument("--debug", action="store_true", help="log at DEBUG level")
    ap.add_argument("--batch", action="store_true", help="run actions with --noconfirm instead of in the terminal")
    args = ap.parse_args(argv)

    if args.list_themes:
        print_themes()
        return 0

    setup_logging(args.log_file, args.debug)
    settings = load_settings(args.config)
    if args.batch:
        settings = replace(settings, interactive_actions=False)

    wanted = args.theme or settings.theme
    theme = theme_by_name(wanted)
    if theme is None:
        print(f"Unknown theme: {wanted}", file=sys.stderr)
        print_themes()
        return 1

    from pacbrowse.ui_app import PacBrowseApp

    PacBrowseApp(settings, theme).run()
    return 0

if __name__ == "__main__":
    sys.exit(main())
