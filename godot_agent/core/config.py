import json
import logging
import os
from typing import Optional

logger = logging.getLogger("godot-agent-tools")

# Set to True (or GODOT_AGENT_DEBUG=1) to see the exact commands being run
DEBUG = os.environ.get("GODOT_AGENT_DEBUG", "").lower() in ("1", "true", "yes")

# Environment override for the Godot executable
GODOT_PATH_ENV = "GODOT_PATH"

_CORE_DIR = os.path.dirname(__file__)
_TOOL_DIR = os.path.dirname(_CORE_DIR)
CONFIG_FILE = os.environ.get("GODOT_AGENT_CONFIG") or os.path.join(
    _TOOL_DIR, "config.json"
)

DEFAULT_CONFIG = {
    "godot_path": "",
    "search_paths": [],
    "default_template": "3d",
}


def load_config(config_file: str = None) -> dict:
    """Load config.json merged over the defaults.

    A missing or unreadable file yields the defaults.
    """
    config_file = config_file or CONFIG_FILE
    config = {k: (list(v) if isinstance(v, list) else v) for k, v in DEFAULT_CONFIG.items()}

    if not os.path.exists(config_file):
        return config

    try:
        with open(config_file, "r") as f:
            loaded = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_file, e)
        return config

    if isinstance(loaded, dict):
        config.update(loaded)
    return config


def save_config(config: dict, config_file: str = None):
    config_file = config_file or CONFIG_FILE
    with open(config_file, "w") as f:
        json.dump(config, f, indent=2)


def set_godot_path(godot_path: str, config_file: str = None) -> str:
    """Persist an explicit Godot executable path."""
    godot_path = os.path.abspath(os.path.expanduser(godot_path))
    if not os.path.exists(godot_path):
        raise FileNotFoundError(f"Godot executable not found: {godot_path}")

    config = load_config(config_file)
    config["godot_path"] = godot_path
    save_config(config, config_file)
    return godot_path


def add_search_path(path: str, config_file: str = None) -> list[str]:
    path = os.path.abspath(os.path.expanduser(path))
    config = load_config(config_file)
    search_paths = config.get("search_paths") or []
    if path not in search_paths:
        search_paths.append(path)
    config["search_paths"] = search_paths
    save_config(config, config_file)
    return search_paths


def get_configured_candidates(config_file: str = None) -> list[str]:
    """Extra executable candidates from config.json, explicit path first."""
    config = load_config(config_file)
    candidates = []
    if config.get("godot_path"):
        candidates.append(config["godot_path"])
    candidates.extend(p for p in config.get("search_paths") or [] if p)
    return candidates


def get_default_template(config_file: str = None) -> Optional[str]:
    return load_config(config_file).get("default_template") or None
