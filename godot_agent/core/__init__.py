from .config import (
    DEBUG,
    GODOT_PATH_ENV,
    CONFIG_FILE,
    load_config,
    save_config,
    set_godot_path,
    add_search_path,
    get_configured_candidates,
    get_default_template,
)

__all__ = [
    "DEBUG",
    "GODOT_PATH_ENV",
    "CONFIG_FILE",
    "load_config",
    "save_config",
    "set_godot_path",
    "add_search_path",
    "get_configured_candidates",
    "get_default_template",
]
