"""Error taxonomy for Godot command execution and result handling."""


class GodotAgentError(Exception):
    """Base class for all errors raised by the toolkit."""


class ExecutableNotFound(GodotAgentError):
    def __init__(self, message: str = None):
        super().__init__(
            message
            or "Godot executable not found. Set GODOT_PATH environment variable "
            "to your Godot executable."
        )


class SpawnFailure(GodotAgentError):
    """The Godot process could not be created at all."""

    def __init__(self, executable: str, cause: Exception):
        self.executable = executable
        self.cause = cause
        super().__init__(f"Failed to start {executable}: {cause}")


class InvalidProject(GodotAgentError):
    def __init__(self, project_path: str):
        self.project_path = project_path
        super().__init__(f"Invalid Godot project path: {project_path}")


class ProjectExists(GodotAgentError):
    def __init__(self, project_path: str):
        self.project_path = project_path
        super().__init__(f"Directory already exists: {project_path}")


class UnsupportedNodeType(GodotAgentError, ValueError):
    def __init__(self, node_type: str):
        self.node_type = node_type
        super().__init__(f"Unsupported node type: {node_type}")


class ResultExtractionError(GodotAgentError):
    """Operation output could not be turned into a result object.

    The raw captured output is kept on ``output`` for diagnosis.
    """

    def __init__(self, message: str, output: str):
        self.output = output
        super().__init__(f"{message}: {output}")


class NoJsonFound(ResultExtractionError):
    def __init__(self, output: str):
        super().__init__("No JSON found in output", output)


class MalformedJson(ResultExtractionError):
    def __init__(self, output: str, cause: Exception = None):
        self.cause = cause
        super().__init__("Failed to parse operation result", output)
