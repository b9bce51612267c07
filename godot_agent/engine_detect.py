"""Godot executable path detection.

Resolution order (first existing path wins):
1. GODOT_PATH environment override
2. Platform-specific install locations, then paths from config.json
3. ``which godot`` lookup on non-Windows platforms

The locator never caches; callers hold on to the result.
"""

import logging
import os
import platform
import shutil
from pathlib import Path
from typing import Iterable, Mapping, Optional

from godot_agent.core.config import GODOT_PATH_ENV, get_configured_candidates

logger = logging.getLogger("godot-agent-tools")


def locate_godot(
    env: Mapping[str, str] | None = None,
    system: str | None = None,
    extra_candidates: Iterable[str] | None = None,
) -> Optional[str]:
    """Find the Godot executable.

    Args:
        env: Environment mapping to read the override from. Defaults to os.environ.
        system: ``platform.system()`` value. Detected when omitted.
        extra_candidates: Additional install locations checked after the
            platform defaults. Defaults to the paths saved in config.json.

    Returns:
        Path to the Godot executable, or None if no strategy found one.
    """
    env = os.environ if env is None else env
    system = system or platform.system()

    override = env.get(GODOT_PATH_ENV)
    if override:
        if os.path.exists(override):
            return override
        logger.debug("%s=%s does not exist, ignoring", GODOT_PATH_ENV, override)

    if extra_candidates is None:
        extra_candidates = get_configured_candidates()

    candidates = [str(p) for p in _get_candidate_paths(system)]
    candidates.extend(str(p) for p in extra_candidates)
    for candidate in candidates:
        if os.path.exists(candidate):
            return candidate

    if system != "Windows":
        found = _which_godot()
        if found:
            return found

    return None


def _get_candidate_paths(system: str) -> list[Path]:
    """Conventional install locations for the given platform."""
    if system == "Windows":
        return [
            Path(r"C:\Program Files\Godot\Godot.exe"),
            Path(r"C:\Program Files (x86)\Godot\Godot.exe"),
        ]

    if system == "Darwin":
        return [
            Path("/Applications/Godot.app/Contents/MacOS/Godot"),
            Path("/Applications/Godot_4.app/Contents/MacOS/Godot"),
            Path("/Applications/Godot_4.2.app/Contents/MacOS/Godot"),
        ]

    if system == "Linux":
        return [
            Path("/usr/bin/godot"),
            Path("/usr/local/bin/godot"),
        ]

    return []


def _which_godot() -> Optional[str]:
    """PATH lookup equivalent to ``which godot``."""
    found = shutil.which("godot")
    if found and os.path.exists(found):
        return found
    return None
