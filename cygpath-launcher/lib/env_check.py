"""
Cygwin prerequisites validation.

Reports whether this host can translate executable paths, and why not.
Every check degrades to a report entry instead of raising.
"""
import io
import json
import locale
import subprocess
import sys
from pathlib import Path

from config import get_timeout
from cygpath_decorator import CygpathLauncher
from cygwin_locator import REGISTRY_PREFIXES, parse_root, query_registry
from launcher import LocalLauncher


def check_registry() -> dict:
    """Check each registry view for the Cygwin setup key."""
    views = {}
    for prefix in REGISTRY_PREFIXES:
        try:
            root = parse_root(query_registry(prefix))
        except (OSError, subprocess.SubprocessError) as e:
            views[prefix] = {"available": False, "error": str(e)}
            continue
        if root:
            views[prefix] = {"available": True, "root": root}
        else:
            views[prefix] = {"available": False, "error": "setup key not found"}
    return views


def check_cygpath(launcher=None) -> dict:
    """
    Resolve cygpath the way the decorator does and ask it for its version.

    Args:
        launcher: Launcher to run cygpath with (default: a LocalLauncher)
    """
    base = launcher or LocalLauncher()
    try:
        path = CygpathLauncher(base).get_cygpath_exe()
    except Exception as e:
        return {"available": False, "error": str(e)}

    try:
        out = io.BytesIO()
        code = base.run([path, "--version"], stdout=out).join(timeout=get_timeout())
        if code != 0:
            return {"available": False, "path": path, "error": f"exit code {code}"}
        lines = out.getvalue().decode(locale.getpreferredencoding(False), errors="replace").strip().splitlines()
        return {"available": True, "path": path, "version": lines[0] if lines else "unknown"}
    except Exception as e:
        return {"available": False, "path": path, "error": str(e)}


def full_check(launcher=None) -> dict:
    """
    Run all checks and return a capability matrix.

    Returns:
        {
            "platform": "win32",
            "registry": {...},
            "cygpath": {...},
            "capabilities": {"translation": bool}
        }
    """
    registry = check_registry()
    cygpath = check_cygpath(launcher)
    return {
        "platform": sys.platform,
        "registry": registry,
        "cygpath": cygpath,
        "capabilities": {
            "translation": cygpath.get("available", False),
        },
    }


def save_env_report(output_path: Path, launcher=None, report: dict | None = None) -> str:
    """Save `report` (default: a fresh full check) to a JSON file."""
    if report is None:
        report = full_check(launcher)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8")
    return str(output_path)
