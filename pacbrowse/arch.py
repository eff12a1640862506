from __future__ import annotations
import logging
import os
import re
import shutil
import subprocess
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .models import ActionKind, DashboardStats, PackageRecord, PackageSize

logger = logging.getLogger(__name__)

PACMAN_CACHE_DIR = "/var/cache/pacman/pkg"
MISSING_RC = 127

def which(cmd: str) -> bool:
    return shutil.which(cmd) is not None

def run_capture(cmd: List[str], merge_stderr: bool = True) -> Tuple[int, str]:
    try:
        p = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.DEVNULL,
            text=True,
        )
        return p.returncode, p.stdout
    except FileNotFoundError:
        return MISSING_RC, f"Command not found: {cmd[0]}"
    except OSError as e:
        return MISSING_RC, f"{cmd[0]}: {e}"

def _failure(cmd: List[str], rc: int, out: str) -> str:
    tail = out.strip().splitlines()[-1] if out.strip() else ""
    msg = f"{' '.join(cmd[:2])} exited with status {rc}"
    if tail:
        msg += f": {tail}"
    logger.warning(msg)
    return msg

def resolve_helper(preferred: str) -> str:
    if which(preferred):
        return preferred
    for alt in ("paru", "yay"):
        if which(alt):
            logger.info("AUR helper %s not found, using %s", preferred, alt)
            return alt
    return preferred

def names_from(out: str) -> Set[str]:
    return {ln.split()[0] for ln in out.splitlines() if ln.split()}

# ---------- local catalog ----------

def parse_sync_list(out: str, installed: Set[str]) -> List[PackageRecord]:
    """``pacman -Sl`` lines: ``repo name version [installed]``."""
    records: List[PackageRecord] = []
    for ln in out.splitlines():
        parts = ln.split()
        if len(parts) < 3:
            continue
        records.append(
            PackageRecord(
                source=parts[0],
                name=parts[1],
                version=parts[2],
                installed=parts[1] in installed or (len(parts) > 3 and parts[3].startswith("[installed")),
            )
        )
    return records

def list_index() -> Tuple[List[PackageRecord], Optional[str]]:
    cmd = ["pacman", "-Sl"]
    rc, out = run_capture(cmd, merge_stderr=False)
    if rc != 0:
        return [], _failure(cmd, rc, out)
    _, inst = run_capture(["pacman", "-Qq"], merge_stderr=False)
    return parse_sync_list(out, names_from(inst)), None

def parse_installed_info(out: str) -> List[PackageRecord]:
    """Blank-line separated ``pacman -Qi`` blocks."""
    records: List[PackageRecord] = []
    for block in out.split("\n\n"):
        info: Dict[str, str] = {}
        for ln in block.splitlines():
            if ":" not in ln or ln.startswith(" "):
                continue
            key, val = ln.split(":", 1)
            info.setdefault(key.strip(), val.strip())
        name = info.get("Name", "")
        if name:
            records.append(
                PackageRecord(
                    source="local",
                    name=name,
                    version=info.get("Version", ""),
                    description=info.get("Description", ""),
                    installed=True,
                )
            )
    return records

def tag_installed(
    records: Iterable[PackageRecord],
    repo_map: Dict[str, str],
    foreign: Set[str],
    explicit: Set[str],
    orphans: Set[str],
) -> List[PackageRecord]:
    out: List[PackageRecord] = []
    for r in records:
        source = "aur" if r.name in foreign else repo_map.get(r.name, r.source)
        out.append(
            PackageRecord(
                source=source,
                name=r.name,
                version=r.version,
                description=r.description,
                installed=True,
                explicit=r.name in explicit,
                orphan=r.name in orphans,
            )
        )
    return out

def list_installed() -> Tuple[List[PackageRecord], Optional[str]]:
    cmd = ["pacman", "-Qi"]
    rc, out = run_capture(cmd)
    if rc != 0:
        return [], _failure(cmd, rc, out)
    records = parse_installed_info(out)

    repo_map: Dict[str, str] = {}
    rc, sl = run_capture(["pacman", "-Sl"], merge_stderr=False)
    if rc == 0:
        for ln in sl.splitlines():
            parts = ln.split()
            if len(parts) >= 2:
                repo_map[parts[1]] = parts[0]

    def _names(flag: str) -> Set[str]:
        rc, o = run_capture(["pacman", flag], merge_stderr=False)
        return names_from(o) if rc == 0 else set()

    return tag_installed(records, repo_map, _names("-Qm"), _names("-Qe"), _names("-Qdt")), None

# ---------- remote search / detail ----------

def parse_helper_search(out: str) -> List[PackageRecord]:
    """``aur/name version [+votes ~pop] [Installed]`` followed by an indented description."""
    records: List[PackageRecord] = []
    lines = out.splitlines()
    for i, ln in enumerate(lines):
        if not ln or ln[0] in " \t":
            continue
        parts = ln.split()
        if len(parts) < 2 or "/" not in parts[0]:
            continue
        source, name = parts[0].split("/", 1)
        desc = ""
        if i + 1 < len(lines) and lines[i + 1][:1] in (" ", "\t"):
            desc = lines[i + 1].strip()
        records.append(
            PackageRecord(
                source=source,
                name=name,
                version=parts[1],
                description=desc,
                installed="[Installed" in ln,
            )
        )
    return records

def search_remote(text: str, helper: str) -> Tuple[List[PackageRecord], Optional[str]]:
    if not text:
        return [], None
    cmd = [helper, "-Ss", "-a", text.replace(" ", "-")]
    rc, out = run_capture(cmd, merge_stderr=False)
    if rc == MISSING_RC:
        return [], _failure(cmd, rc, out)
    # no matches also exits non-zero
    return parse_helper_search(out), None

def fetch_detail(name: str, helper: str) -> Tuple[str, Optional[str]]:
    cmd = [helper, "-Si", name]
    rc, out = run_capture(cmd)
    if rc != 0:
        return "", _failure(cmd, rc, out)
    return out, None

# ---------- dashboard ----------

def count_lines(out: str) -> int:
    return len([ln for ln in out.strip().splitlines() if ln.strip()])

_UNITS = (("kib", 1 << 10), ("kb", 1 << 10), ("mib", 1 << 20), ("mb", 1 << 20),
          ("gib", 1 << 30), ("gb", 1 << 30), ("tib", 1 << 40), ("tb", 1 << 40))

def parse_size_to_bytes(size: str) -> int:
    m = re.match(r"^\s*([0-9]+(?:\.[0-9]+)?)\s*(\S*)", size)
    if not m:
        return 0
    value, unit = float(m.group(1)), m.group(2).lower()
    for prefix, mult in _UNITS:
        if unit.startswith(prefix):
            return int(value * mult)
    return int(value)

def format_bytes(n: int) -> str:
    if n < 1024:
        return f"{n} B"
    div, exp = 1024, 0
    while n // div >= 1024 and exp < 5:
        div *= 1024
        exp += 1
    return f"{n / div:.1f} {'KMGTPE'[exp]}iB"

def dir_size(path: str) -> int:
    total = 0
    for root, _dirs, files in os.walk(path, onerror=lambda e: None):
        for f in files:
            try:
                total += os.lstat(os.path.join(root, f)).st_size
            except OSError:
                continue
    return total

def parse_helper_stats(out: str) -> Tuple[str, int, int, List[PackageSize]]:
    """Total size, missing-from-AUR count and the biggest packages from ``<helper> -Ps``."""
    total, total_bytes, missing = "", 0, 0
    top: List[PackageSize] = []
    in_top = False
    for ln in out.splitlines():
        ln = ln.strip()
        if "biggest packages" in ln:
            in_top = True
            continue
        if in_top and (ln.startswith("===") or not ln):
            in_top = False
            continue
        if in_top:
            if ":" in ln:
                name, size = ln.split(":", 1)
                top.append(PackageSize(name=name.strip(), size=size.strip()))
            continue
        if ("Total Size occupied" in ln or "Total Installed Size" in ln) and ":" in ln:
            total = ln.split(":", 1)[1].strip()
            total_bytes = parse_size_to_bytes(total)
        if "Missing" in ln and "AUR" in ln and ":" in ln:
            m = re.match(r"\s*(\d+)", ln.split(":", 1)[1])
            if m:
                missing = int(m.group(1))
    return total, total_bytes, missing, top

def dashboard_stats(helper: str) -> Tuple[Optional[DashboardStats], Optional[str]]:
    cmd = ["pacman", "-Q"]
    rc, out = run_capture(cmd, merge_stderr=False)
    if rc != 0:
        return None, _failure(cmd, rc, out)
    total = count_lines(out)

    def _lines(*args: str) -> str:
        rc, o = run_capture(list(args), merge_stderr=False)
        return o if rc == 0 else ""

    explicit = count_lines(_lines("pacman", "-Qe"))
    foreign = count_lines(_lines("pacman", "-Qm"))
    orphan_names = tuple(sorted(names_from(_lines("pacman", "-Qdtq"))))
    size, size_bytes, missing, top = parse_helper_stats(_lines(helper, "-Ps"))

    helper_cache = os.path.join(os.path.expanduser("~/.cache"), helper)
    return DashboardStats(
        total=total,
        explicit=explicit,
        foreign=foreign,
        orphans=len(orphan_names),
        missing_from_aur=missing,
        total_size=size,
        total_size_bytes=size_bytes,
        pacman_cache_path=PACMAN_CACHE_DIR,
        pacman_cache_bytes=dir_size(PACMAN_CACHE_DIR),
        helper_cache_path=helper_cache,
        helper_cache_bytes=dir_size(helper_cache),
        top_packages=tuple(top[:10]),
        orphan_names=orphan_names,
    ), None

# ---------- updates ----------

def parse_updates(out: str, foreign: Set[str]) -> List[PackageRecord]:
    """``name oldver -> newver`` lines from ``<helper> -Qu``."""
    records: List[PackageRecord] = []
    for ln in out.splitlines():
        parts = ln.split()
        if len(parts) < 2:
            continue
        records.append(
            PackageRecord(
                source="aur" if parts[0] in foreign else "repo",
                name=parts[0],
                version=" ".join(parts[1:]),
                installed=True,
            )
        )
    return records

def check_updates(helper: str) -> Tuple[List[PackageRecord], Optional[str]]:
    cmd = [helper, "-Qu"]
    rc, out = run_capture(cmd, merge_stderr=False)
    if rc == MISSING_RC:
        return [], _failure(cmd, rc, out)
    # exit status 1 just means "nothing to update"
    _, fo = run_capture(["pacman", "-Qmq"], merge_stderr=False)
    return parse_updates(out, names_from(fo)), None

# ---------- actions ----------

def action_argv(kind: ActionKind, targets: Sequence[str], helper: str, noconfirm: bool = False) -> List[str]:
    base = {
        ActionKind.INSTALL: ["-S"],
        ActionKind.UNINSTALL: ["-Rns"],
        ActionKind.UPDATE: ["-Syu"],
        ActionKind.CLEAN_CACHE: ["-Sc"],
        ActionKind.REMOVE_ORPHANS: ["-Rns"],
    }[kind]
    argv = [helper] + base
    if noconfirm:
        argv.append("--noconfirm")
    if kind in (ActionKind.INSTALL, ActionKind.UNINSTALL, ActionKind.REMOVE_ORPHANS):
        argv += list(targets)
    return argv

def run_action(kind: ActionKind, targets: Sequence[str], helper: str) -> Tuple[Optional[int], Optional[str]]:
    """Non-interactive run. Returns (exit code, error); (None, None) means success."""
    cmd = action_argv(kind, targets, helper, noconfirm=True)
    rc, out = run_capture(cmd)
    if rc == MISSING_RC:
        return None, _failure(cmd, rc, out)
    if rc != 0:
        return rc, _failure(cmd, rc, out)
    return None, None

def run_interactive(cmd: List[str]) -> Tuple[Optional[int], Optional[str]]:
    """Runs ``cmd`` attached to the terminal (the caller suspends the TUI)."""
    try:
        rc = subprocess.call(cmd)
    except OSError as e:
        logger.warning("%s failed to start: %s", cmd[0], e)
        return None, f"{cmd[0]}: {e}"
    if rc != 0:
        logger.warning("%s exited with status %d", " ".join(cmd[:2]), rc)
        return rc, f"exit status {rc}"
    return None, None
