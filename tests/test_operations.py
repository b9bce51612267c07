"""Tests for operations.py — the generated-script operation bridge."""

import asyncio
import json
import logging
import os
import re
import stat
import sys
from unittest.mock import AsyncMock, patch

import pytest

from godot_agent.bridge_script import BRIDGE_SCRIPT, OPERATIONS, SCRIPT_FILENAME
from godot_agent.errors import (
    ExecutableNotFound,
    MalformedJson,
    NoJsonFound,
    SpawnFailure,
    UnsupportedNodeType,
)
from godot_agent.extract import extract_result
from godot_agent.operations import OperationBridge, validate_node_type
from godot_agent.runner import CommandResult, run_godot_command

GODOT = "/opt/godot/godot"
OK_OUTPUT = 'Godot Engine v4.2.1.stable.official\n{"success": true, "message": "ok"}\n'


def _fake_runner(stdout=OK_OUTPUT, stderr="", seen=None):
    """Runner that records each call, including the request file it was given."""

    async def runner(godot_path, args, cwd=None):
        request_path = args[-1]
        if seen is not None:
            with open(request_path, "r") as f:
                request = json.load(f)
            seen.append(
                {"godot": godot_path, "args": list(args), "cwd": cwd, "request": request}
            )
        return CommandResult(stdout=stdout, stderr=stderr)

    return runner


def _bridge(tmp_path, runner=None, locator=lambda: GODOT):
    return OperationBridge(
        script_dir=str(tmp_path), locator=locator, runner=runner or _fake_runner()
    )


def _request_files(tmp_path):
    return list(tmp_path.glob("godot_op_*.json"))


class TestEnsureScript:
    def test_writes_script_at_fixed_path(self, tmp_path):
        bridge = _bridge(tmp_path)
        path = bridge.ensure_script()

        assert path == str(tmp_path / SCRIPT_FILENAME)
        assert (tmp_path / SCRIPT_FILENAME).read_text(encoding="utf-8") == BRIDGE_SCRIPT

    def test_second_call_does_not_rewrite(self, tmp_path):
        bridge = _bridge(tmp_path)
        first = bridge.ensure_script()
        (tmp_path / SCRIPT_FILENAME).write_text("sentinel")

        second = bridge.ensure_script()
        assert second == first
        assert (tmp_path / SCRIPT_FILENAME).read_text() == "sentinel"

    def test_reused_across_operations(self, tmp_path):
        seen = []
        bridge = _bridge(tmp_path, runner=_fake_runner(seen=seen))

        asyncio.run(bridge.execute(str(tmp_path), "get_scene_tree"))
        mtime = os.stat(tmp_path / SCRIPT_FILENAME).st_mtime_ns
        asyncio.run(bridge.execute(str(tmp_path), "add_node", {"nodeName": "A"}))

        assert os.stat(tmp_path / SCRIPT_FILENAME).st_mtime_ns == mtime
        for call in seen:
            assert call["args"][call["args"].index("--script") + 1] == bridge.script_path


class TestExecute:
    def test_passes_script_request_and_cwd(self, tmp_path):
        seen = []
        bridge = _bridge(tmp_path, runner=_fake_runner(seen=seen))
        project = str(tmp_path / "game")

        result = asyncio.run(
            bridge.execute(project, "create_scene", {"sceneName": "Level1"})
        )

        assert result == {"success": True, "message": "ok"}
        call = seen[0]
        assert call["godot"] == GODOT
        assert call["cwd"] == project
        assert "--script" in call["args"]
        assert call["args"][call["args"].index("--script") + 1] == bridge.script_path
        assert call["request"] == {
            "operation": "create_scene",
            "projectPath": project,
            "sceneName": "Level1",
        }

    def test_params_cannot_override_reserved_keys(self, tmp_path, caplog):
        seen = []
        bridge = _bridge(tmp_path, runner=_fake_runner(seen=seen))

        with caplog.at_level(logging.WARNING, logger="godot-agent-tools"):
            asyncio.run(
                bridge.execute(
                    "/game", "get_scene_tree", {"operation": "rm", "projectPath": "/"}
                )
            )

        assert seen[0]["request"]["operation"] == "get_scene_tree"
        assert seen[0]["request"]["projectPath"] == "/game"
        assert "reserved keys" in caplog.text

    def test_executable_not_found(self, tmp_path):
        runner = AsyncMock()
        bridge = _bridge(tmp_path, runner=runner, locator=lambda: None)

        with pytest.raises(ExecutableNotFound):
            asyncio.run(bridge.execute(str(tmp_path), "get_scene_tree"))
        runner.assert_not_called()
        assert _request_files(tmp_path) == []

    def test_locates_on_every_call(self, tmp_path):
        calls = []

        def locator():
            calls.append(1)
            return GODOT

        bridge = _bridge(tmp_path, locator=locator)
        asyncio.run(bridge.execute(str(tmp_path), "get_scene_tree"))
        asyncio.run(bridge.execute(str(tmp_path), "get_scene_tree"))
        assert len(calls) == 2

    def test_unknown_operation_result(self, tmp_path):
        output = (
            '{"success": false, "error": "Unknown operation: explode"}\n'
        )
        bridge = _bridge(tmp_path, runner=_fake_runner(stdout=output))

        result = asyncio.run(bridge.execute(str(tmp_path), "explode"))
        assert result["success"] is False
        assert "Unknown operation" in result["error"]

    def test_stderr_logged_not_raised(self, tmp_path, caplog):
        bridge = _bridge(
            tmp_path, runner=_fake_runner(stderr="ERROR: Condition 'p_node' is true.")
        )

        with caplog.at_level(logging.WARNING, logger="godot-agent-tools"):
            result = asyncio.run(bridge.execute(str(tmp_path), "get_scene_tree"))

        assert result["success"] is True
        assert "Condition 'p_node'" in caplog.text

    def test_no_json_propagates(self, tmp_path):
        bridge = _bridge(tmp_path, runner=_fake_runner(stdout="Godot Engine v4.2\n"))
        with pytest.raises(NoJsonFound) as exc:
            asyncio.run(bridge.execute(str(tmp_path), "get_scene_tree"))
        assert "Godot Engine v4.2" in exc.value.output

    def test_malformed_json_propagates(self, tmp_path):
        bridge = _bridge(tmp_path, runner=_fake_runner(stdout="{not json}"))
        with pytest.raises(MalformedJson):
            asyncio.run(bridge.execute(str(tmp_path), "get_scene_tree"))


class TestRequestCleanup:
    """The request file never outlives the call."""

    def test_removed_after_success(self, tmp_path):
        existed = []

        async def runner(godot_path, args, cwd=None):
            existed.append(os.path.exists(args[-1]))
            return CommandResult(stdout=OK_OUTPUT, stderr="")

        bridge = _bridge(tmp_path, runner=runner)
        asyncio.run(bridge.execute(str(tmp_path), "get_scene_tree"))

        assert existed == [True]
        assert _request_files(tmp_path) == []

    def test_removed_after_spawn_failure(self, tmp_path):
        runner = AsyncMock(side_effect=SpawnFailure(GODOT, PermissionError("denied")))
        bridge = _bridge(tmp_path, runner=runner)

        with pytest.raises(SpawnFailure):
            asyncio.run(bridge.execute(str(tmp_path), "get_scene_tree"))
        assert _request_files(tmp_path) == []

    def test_removed_after_extraction_failure(self, tmp_path):
        bridge = _bridge(tmp_path, runner=_fake_runner(stdout="garbage"))
        with pytest.raises(NoJsonFound):
            asyncio.run(bridge.execute(str(tmp_path), "get_scene_tree"))
        assert _request_files(tmp_path) == []

    def test_cleanup_failure_logged(self, tmp_path, caplog):
        bridge = _bridge(tmp_path)

        with patch(
            "godot_agent.operations.os.unlink", side_effect=PermissionError("locked")
        ):
            with caplog.at_level(logging.WARNING, logger="godot-agent-tools"):
                result = asyncio.run(bridge.execute(str(tmp_path), "get_scene_tree"))

        assert result["success"] is True
        assert "Failed to clean up temp file" in caplog.text

    def test_request_names_unique(self, tmp_path):
        seen = []
        bridge = _bridge(tmp_path, runner=_fake_runner(seen=seen))

        async def burst():
            for _ in range(5):
                await bridge.execute(str(tmp_path), "get_scene_tree")

        asyncio.run(burst())
        assert len({call["args"][-1] for call in seen}) == 5


class TestOperations:
    def test_create_scene_params(self, tmp_path):
        seen = []
        bridge = _bridge(tmp_path, runner=_fake_runner(seen=seen))

        asyncio.run(bridge.create_scene("/game", "Level1", "Node2D"))
        request = seen[0]["request"]
        assert request["operation"] == "create_scene"
        assert request["sceneName"] == "Level1"
        assert request["nodeType"] == "Node2D"

    def test_create_scene_rejects_unknown_type(self, tmp_path):
        runner = AsyncMock()
        bridge = _bridge(tmp_path, runner=runner)

        with pytest.raises(UnsupportedNodeType):
            asyncio.run(
                bridge.create_scene("/game", "Evil", 'Node3D.new()\nOS.execute("rm")')
            )
        runner.assert_not_called()
        assert _request_files(tmp_path) == []

    def test_add_node_params(self, tmp_path):
        seen = []
        bridge = _bridge(tmp_path, runner=_fake_runner(seen=seen))

        asyncio.run(bridge.add_node("/game", "Player", "Camera", "Camera3D"))
        request = seen[0]["request"]
        assert request == {
            "operation": "add_node",
            "projectPath": "/game",
            "scenePath": "scenes/Main.tscn",
            "parentPath": "Player",
            "nodeName": "Camera",
            "nodeType": "Camera3D",
        }

    def test_get_scene_tree_scene_path(self, tmp_path):
        seen = []
        bridge = _bridge(tmp_path, runner=_fake_runner(seen=seen))

        asyncio.run(bridge.get_scene_tree("/game", "scenes/Level1.tscn"))
        assert seen[0]["request"]["scenePath"] == "scenes/Level1.tscn"

    def test_validate_node_type(self):
        assert validate_node_type("CharacterBody2D") == "CharacterBody2D"
        with pytest.raises(ValueError):
            validate_node_type("node3d")


class TestBridgeScript:
    """Static checks on the generated GDScript."""

    def test_dispatches_every_operation(self):
        for operation in OPERATIONS:
            assert f'"{operation}":' in BRIDGE_SCRIPT
            assert f"func {operation}(data: Dictionary):" in BRIDGE_SCRIPT

    def test_unknown_operation_branch(self):
        assert '_emit_error("Unknown operation: " + operation)' in BRIDGE_SCRIPT

    def test_no_generated_source(self):
        assert "GDScript.new()" not in BRIDGE_SCRIPT
        assert "source_code" not in BRIDGE_SCRIPT
        assert "ClassDB.instantiate(node_type)" in BRIDGE_SCRIPT

    def test_template_fully_rendered(self):
        assert "%(" not in BRIDGE_SCRIPT
        assert 'const DEFAULT_SCENE := "scenes/Main.tscn"' in BRIDGE_SCRIPT

    def test_stdout_only_carries_result_line(self):
        prints = re.findall(r"^\s*(print\(.*)$", BRIDGE_SCRIPT, re.MULTILINE)
        assert prints == ["print(JSON.stringify(result))"]

    def test_progress_notes_on_stderr(self):
        assert 'printerr("Executing operation: " + operation)' in BRIDGE_SCRIPT
        assert 'printerr("Creating scene: " + scene_name' in BRIDGE_SCRIPT

    def test_braces_in_scene_name_survive_extraction(self):
        stdout = (
            "Godot Engine v4.2.1.stable.official - https://godotengine.org\n"
            '{"success":true,"message":"Scene created at res://scenes/Level{2}.tscn",'
            '"path":"res://scenes/Level{2}.tscn"}\n'
        )
        result = extract_result(stdout)
        assert result["path"] == "res://scenes/Level{2}.tscn"


# Fake Godot: answers with the request it was handed as the last argument
FAKE_GODOT = """\
import json, os, sys
with open(sys.argv[-1]) as f:
    request = json.load(f)
print("Godot Engine v4.2.1.stable.official")
print(json.dumps({"success": True, "echo": request, "cwd": os.getcwd(), "argv": sys.argv[1:]}))
"""


@pytest.mark.skipif(sys.platform == "win32", reason="needs an executable script with a shebang")
class TestRealProcess:
    """The bridge driving an actual subprocess through run_godot_command."""

    def _fake_godot(self, tmp_path):
        path = tmp_path / "godot"
        path.write_text(f"#!{sys.executable}\n{FAKE_GODOT}", encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR)
        return str(path)

    def test_request_reaches_process_and_result_comes_back(self, tmp_path):
        godot = self._fake_godot(tmp_path)
        project = tmp_path / "game"
        project.mkdir()
        scripts = tmp_path / "scripts"
        scripts.mkdir()
        bridge = OperationBridge(
            script_dir=str(scripts), locator=lambda: godot, runner=run_godot_command
        )

        result = asyncio.run(
            bridge.execute(str(project), "create_scene", {"sceneName": "Level1"})
        )

        assert result["success"] is True
        assert result["echo"] == {
            "operation": "create_scene",
            "projectPath": str(project),
            "sceneName": "Level1",
        }
        assert os.path.realpath(result["cwd"]) == os.path.realpath(str(project))
        argv = result["argv"]
        assert argv[:5] == ["--headless", "--path", str(project), "--script", bridge.script_path]
        assert argv[-2] == "--"
        assert _request_files(scripts) == []
