"""Structured Godot operations run through a generated GDScript.

Each call writes its request to a temporary JSON file, runs Godot with the
operations script and that file, then reads the single JSON result line back
out of Godot's console output.
"""

import json
import logging
import os
import tempfile
from typing import Callable, Optional

from godot_agent.bridge_script import (
    BRIDGE_SCRIPT,
    DEFAULT_SCENE,
    SCRIPT_FILENAME,
)
from godot_agent.engine_detect import locate_godot
from godot_agent.errors import ExecutableNotFound, UnsupportedNodeType
from godot_agent.extract import extract_result
from godot_agent.runner import run_godot_command

logger = logging.getLogger("godot-agent-tools")

# Closed set of node classes the operations accept. Anything else is rejected
# before a request file is written.
SUPPORTED_NODE_TYPES = frozenset(
    {
        "Node",
        "Node2D",
        "Node3D",
        "Control",
        "CanvasLayer",
        "Sprite2D",
        "Sprite3D",
        "AnimatedSprite2D",
        "Camera2D",
        "Camera3D",
        "CharacterBody2D",
        "CharacterBody3D",
        "RigidBody2D",
        "RigidBody3D",
        "StaticBody2D",
        "StaticBody3D",
        "Area2D",
        "Area3D",
        "CollisionShape2D",
        "CollisionShape3D",
        "MeshInstance3D",
        "DirectionalLight3D",
        "OmniLight3D",
        "SpotLight3D",
        "WorldEnvironment",
        "TileMap",
        "Label",
        "Button",
        "Panel",
        "TextureRect",
        "AudioStreamPlayer",
        "AudioStreamPlayer2D",
        "AudioStreamPlayer3D",
        "AnimationPlayer",
        "Timer",
    }
)

# Request keys owned by the bridge; params cannot replace them
RESERVED_KEYS = ("operation", "projectPath")


def validate_node_type(node_type: str) -> str:
    if node_type not in SUPPORTED_NODE_TYPES:
        raise UnsupportedNodeType(node_type)
    return node_type


class OperationBridge:
    """Runs operations through the generated operations script.

    The script is written once per bridge, at a fixed path inside
    ``script_dir``; later calls reuse the file without rewriting it.
    """

    def __init__(
        self,
        script_dir: str | None = None,
        locator: Callable[[], Optional[str]] = locate_godot,
        runner=run_godot_command,
    ):
        self.script_dir = script_dir or tempfile.gettempdir()
        self._locator = locator
        self._runner = runner
        self._script_path: Optional[str] = None

    @property
    def script_path(self) -> str:
        return os.path.join(self.script_dir, SCRIPT_FILENAME)

    def ensure_script(self) -> str:
        """Materialize the operations script on first use."""
        if self._script_path is None:
            path = self.script_path
            try:
                with open(path, "w", encoding="utf-8") as f:
                    f.write(BRIDGE_SCRIPT)
            except OSError as e:
                raise OSError(f"Failed to create GDScript operations file: {e}") from e
            logger.debug("Wrote operations script to %s", path)
            self._script_path = path
        return self._script_path

    def build_request(self, project_path: str, operation: str, params: dict) -> dict:
        clashing = [k for k in RESERVED_KEYS if k in params]
        if clashing:
            logger.warning(
                "Ignoring reserved keys in %s params: %s", operation, ", ".join(clashing)
            )
        return {**params, "operation": operation, "projectPath": project_path}

    def _write_request(self, request: dict) -> str:
        fd, path = tempfile.mkstemp(
            prefix="godot_op_", suffix=".json", dir=self.script_dir
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(request, f)
        return path

    async def execute(
        self, project_path: str, operation: str, params: dict | None = None
    ) -> dict:
        """Run ``operation`` against the project and return the parsed result.

        Raises:
            ExecutableNotFound: Godot could not be located.
            SpawnFailure: Godot could not be started.
            NoJsonFound, MalformedJson: The output held no usable result.
        """
        godot_path = self._locator()
        if not godot_path:
            raise ExecutableNotFound("Godot executable not found")

        script_path = self.ensure_script()
        request = self.build_request(project_path, operation, params or {})
        request_path = self._write_request(request)

        try:
            args = ["--headless", "--path", project_path, "--script", script_path]
            # Arguments after "--" reach the script through get_cmdline_user_args()
            args += ["--", request_path]
            result = await self._runner(godot_path, args, project_path)
        finally:
            try:
                os.unlink(request_path)
            except OSError as e:
                logger.warning("Failed to clean up temp file %s: %s", request_path, e)

        if result.stderr:
            logger.warning("GDScript operation %s stderr: %s", operation, result.stderr.strip())

        return extract_result(result.stdout)

    async def get_scene_tree(self, project_path: str, scene_path: str = DEFAULT_SCENE) -> dict:
        return await self.execute(project_path, "get_scene_tree", {"scenePath": scene_path})

    async def create_scene(
        self, project_path: str, scene_name: str, node_type: str = "Node3D"
    ) -> dict:
        validate_node_type(node_type)
        return await self.execute(
            project_path,
            "create_scene",
            {"sceneName": scene_name, "nodeType": node_type},
        )

    async def add_node(
        self,
        project_path: str,
        parent_path: str,
        node_name: str,
        node_type: str,
        scene_path: str = DEFAULT_SCENE,
    ) -> dict:
        validate_node_type(node_type)
        return await self.execute(
            project_path,
            "add_node",
            {
                "scenePath": scene_path,
                "parentPath": parent_path,
                "nodeName": node_name,
                "nodeType": node_type,
            },
        )
