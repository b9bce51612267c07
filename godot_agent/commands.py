"""Godot commands backing the MCP tools.

``GodotContext`` owns everything that lives for the length of the server
process: the resolved executable path, the operations bridge and the
session holding the running project.
"""

import logging
import os
from typing import Callable, Optional

from godot_agent import scaffold
from godot_agent.bridge_script import DEFAULT_SCENE
from godot_agent.engine_detect import locate_godot
from godot_agent.errors import ExecutableNotFound, GodotAgentError, InvalidProject
from godot_agent.operations import OperationBridge
from godot_agent.runner import run_godot_command
from godot_agent.session import LaunchMode, ProjectSession, launch

logger = logging.getLogger("godot-agent-tools")

PROJECT_MARKER = "project.godot"


def is_godot_project(project_path: str) -> bool:
    return os.path.isfile(os.path.join(project_path, PROJECT_MARKER))


def require_project(project_path: str) -> str:
    if not project_path or not is_godot_project(project_path):
        raise InvalidProject(project_path)
    return project_path


class GodotContext:
    def __init__(
        self,
        locator: Callable[[], Optional[str]] = locate_godot,
        bridge: OperationBridge | None = None,
        session: ProjectSession | None = None,
        runner=run_godot_command,
    ):
        self._locator = locator
        self._runner = runner
        self._godot_path: Optional[str] = None
        self.bridge = bridge or OperationBridge(locator=locator, runner=runner)
        self.session = session or ProjectSession()

    def require_godot(self) -> str:
        """Resolve the Godot executable once and keep it for the process lifetime."""
        if not self._godot_path:
            path = self._locator()
            if not path:
                raise ExecutableNotFound()
            logger.info("Using Godot at %s", path)
            self._godot_path = path
        return self._godot_path

    async def get_version(self) -> str:
        result = await self._runner(self.require_godot(), ["--version"])
        return result.stdout.strip()

    async def launch_editor(self, project_path: str) -> str:
        godot_path = self.require_godot()
        require_project(project_path)
        await launch(
            self.session,
            godot_path,
            ["--editor", "--path", project_path],
            LaunchMode.DETACHED,
        )
        return f"Launched Godot editor for project: {project_path}"

    def list_projects(self, directory_path: str) -> list[str]:
        try:
            entries = sorted(os.scandir(directory_path), key=lambda e: e.name)
        except OSError as e:
            raise GodotAgentError(f"Failed to list Godot projects: {e}") from e

        return [
            entry.path
            for entry in entries
            if entry.is_dir() and is_godot_project(entry.path)
        ]

    def create_project(
        self, parent_directory: str, project_name: str, template: str = "3d"
    ) -> str:
        project_path = scaffold.create_project(parent_directory, project_name, template)
        return f"Created new Godot project at: {project_path}"

    async def run_project(self, project_path: str) -> str:
        godot_path = self.require_godot()
        require_project(project_path)
        await launch(
            self.session, godot_path, ["--path", project_path], LaunchMode.TRACKED
        )
        return f"Running Godot project: {project_path}"

    async def stop_project(self) -> str:
        return await self.session.stop()

    def get_debug_output(self) -> str:
        return self.session.peek()

    async def get_scene_tree(self, project_path: str, scene_path: str = DEFAULT_SCENE) -> dict:
        require_project(project_path)
        return await self.bridge.get_scene_tree(project_path, scene_path)

    async def create_scene(
        self, project_path: str, scene_name: str, node_type: str = "Node3D"
    ) -> dict:
        require_project(project_path)
        return await self.bridge.create_scene(project_path, scene_name, node_type)

    async def add_node(
        self,
        project_path: str,
        parent_path: str,
        node_name: str,
        node_type: str,
        scene_path: str = DEFAULT_SCENE,
    ) -> dict:
        require_project(project_path)
        return await self.bridge.add_node(
            project_path, parent_path, node_name, node_type, scene_path
        )
