"""New project scaffolding from static templates."""

import enum
import os

from godot_agent.errors import ProjectExists


class ProjectTemplate(str, enum.Enum):
    THREE_D = "3d"
    TWO_D = "2d"
    EMPTY = "empty"


PROJECT_DIRS = ("scenes", "scripts", "assets")

_ROOT_NODE_TYPES = {
    ProjectTemplate.THREE_D: "Node3D",
    ProjectTemplate.TWO_D: "Node2D",
}

PROJECT_GODOT_TEMPLATE = """; Engine configuration file.
; It's best edited using the editor UI and not directly,
; since the parameters that go here are not all obvious.
;
; Format:
;   [section] ; section goes between []
;   param=value ; assign values to parameters

config_version=5

[application]

config/name="{name}"
config/features=PackedStringArray("4.4")
config/icon="res://icon.svg"
{main_scene}
[rendering]

renderer/rendering_method="gl_compatibility"
renderer/rendering_method.mobile="gl_compatibility"
"""

ICON_SVG = """<svg height="128" width="128" xmlns="http://www.w3.org/2000/svg">
  <rect x="2" y="2" width="124" height="124" rx="14" fill="#363d52" stroke="#212532" stroke-width="4"/>
  <circle cx="64" cy="64" r="42" fill="#478cbf"/>
</svg>
"""

MAIN_SCENE_TEMPLATE = """[gd_scene format=3]

[node name="Main" type="{node_type}"]
"""


def render_project_config(name: str, template: ProjectTemplate) -> str:
    main_scene = ""
    if template in _ROOT_NODE_TYPES:
        main_scene = 'run/main_scene="res://scenes/Main.tscn"\n'
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return PROJECT_GODOT_TEMPLATE.format(name=escaped, main_scene=main_scene)


def create_project(parent_directory: str, project_name: str, template="3d") -> str:
    """Create a new project directory and return its path.

    Raises:
        ValueError: Unknown template or empty project name.
        ProjectExists: The target directory already exists.
    """
    template = ProjectTemplate(template)
    if not project_name or os.sep in project_name or "/" in project_name:
        raise ValueError(f"Invalid project name: {project_name!r}")

    project_path = os.path.join(parent_directory, project_name)
    if os.path.exists(project_path):
        raise ProjectExists(project_path)

    os.makedirs(project_path)
    for subdir in PROJECT_DIRS:
        os.makedirs(os.path.join(project_path, subdir), exist_ok=True)

    with open(os.path.join(project_path, "project.godot"), "w", encoding="utf-8") as f:
        f.write(render_project_config(project_name, template))

    with open(os.path.join(project_path, "icon.svg"), "w", encoding="utf-8") as f:
        f.write(ICON_SVG)

    node_type = _ROOT_NODE_TYPES.get(template)
    if node_type:
        scene_path = os.path.join(project_path, "scenes", "Main.tscn")
        with open(scene_path, "w", encoding="utf-8") as f:
            f.write(MAIN_SCENE_TEMPLATE.format(node_type=node_type))

    return project_path
