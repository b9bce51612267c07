"""GDScript run by Godot (``--script``) to perform structured operations.

The script reads the request file named by its last command-line argument,
dispatches on the request's ``operation`` field and prints exactly one JSON
line to stdout: ``{"success": true, ...}`` or ``{"success": false, "error": ...}``.
Progress notes go to stderr.
Node types reach Godot as data and are instantiated through ``ClassDB``;
no script source is ever built from request values.
"""

SCRIPT_FILENAME = "godot_operations.gd"

# Operations handled by the match statement below
OPERATIONS = ("get_scene_tree", "create_scene", "add_node")

DEFAULT_SCENE = "scenes/Main.tscn"

BRIDGE_SCRIPT = """@tool
extends SceneTree

# Operations script for the Godot agent toolkit
const DEFAULT_SCENE := "%(default_scene)s"


func _init():
    var args = OS.get_cmdline_user_args()
    if args.is_empty():
        args = OS.get_cmdline_args()
    if args.is_empty():
        _emit_error("Missing operation parameters")
        quit(1)
        return

    # The request file is always the last argument
    var json_file_path = str(args[args.size() - 1])
    if not FileAccess.file_exists(json_file_path):
        _emit_error("JSON file not found: " + json_file_path)
        quit(1)
        return

    var file = FileAccess.open(json_file_path, FileAccess.READ)
    var json_text = file.get_as_text()
    file.close()

    var json = JSON.new()
    var parse_result = json.parse(json_text)
    if parse_result != OK:
        _emit_error("Failed to parse JSON: " + json.get_error_message() + " at line " + str(json.get_error_line()))
        quit(1)
        return

    var operation_data = json.get_data()
    if typeof(operation_data) != TYPE_DICTIONARY:
        _emit_error("Invalid JSON data")
        quit(1)
        return

    handle_operation(operation_data)
    quit()


func handle_operation(data: Dictionary):
    if not data.has("operation"):
        _emit_error("Missing operation type")
        return

    var operation = str(data["operation"])
    printerr("Executing operation: " + operation)

    match operation:
        "get_scene_tree":
            get_scene_tree(data)
        "create_scene":
            create_scene(data)
        "add_node":
            add_node(data)
        _:
            _emit_error("Unknown operation: " + operation)


func get_scene_tree(data: Dictionary):
    var scene_path = _res_path(str(data.get("scenePath", DEFAULT_SCENE)))
    var root = _load_scene(scene_path)
    if root == null:
        _emit_error("Scene not found: " + scene_path)
        return

    var tree = _describe_node(root)
    root.free()
    _emit({"success": true, "data": tree})


func create_scene(data: Dictionary):
    if not data.has("sceneName"):
        _emit_error("Missing required parameters for create_scene")
        return

    var scene_name = str(data["sceneName"])
    var node_type = str(data.get("nodeType", "Node3D"))
    printerr("Creating scene: " + scene_name + " with root node type: " + node_type)

    var root_node = _instantiate_node(node_type)
    if root_node == null:
        _emit_error("Failed to create node of type: " + node_type)
        return
    root_node.name = scene_name.get_file().get_basename()

    DirAccess.make_dir_recursive_absolute(ProjectSettings.globalize_path("res://scenes"))
    var scene_path = "res://scenes/" + scene_name + ".tscn"
    var packed_scene = PackedScene.new()
    packed_scene.pack(root_node)
    root_node.free()

    var save_result = ResourceSaver.save(packed_scene, scene_path)
    if save_result != OK:
        _emit_error("Failed to save scene to: " + scene_path + ", error: " + str(save_result))
        return

    _emit({"success": true, "message": "Scene created at " + scene_path, "path": scene_path})


func add_node(data: Dictionary):
    if not data.has("nodeName") or not data.has("nodeType"):
        _emit_error("Missing required parameters for add_node")
        return

    var scene_path = _res_path(str(data.get("scenePath", DEFAULT_SCENE)))
    var root = _load_scene(scene_path)
    if root == null:
        _emit_error("Scene not found: " + scene_path)
        return

    var parent_path = str(data.get("parentPath", "."))
    var parent = root
    if not (parent_path in ["", ".", str(root.name)]):
        parent = root.get_node_or_null(NodePath(parent_path))
    if parent == null:
        root.free()
        _emit_error("Parent node not found: " + parent_path)
        return

    var node_type = str(data["nodeType"])
    var node = _instantiate_node(node_type)
    if node == null:
        root.free()
        _emit_error("Failed to create node of type: " + node_type)
        return

    node.name = str(data["nodeName"])
    parent.add_child(node)
    node.owner = root
    var node_name = str(node.name)

    var packed_scene = PackedScene.new()
    var pack_result = packed_scene.pack(root)
    root.free()
    if pack_result != OK:
        _emit_error("Failed to pack scene: " + str(pack_result))
        return

    var save_result = ResourceSaver.save(packed_scene, scene_path)
    if save_result != OK:
        _emit_error("Failed to save scene to: " + scene_path + ", error: " + str(save_result))
        return

    _emit({"success": true, "message": "Added " + node_type + " '" + node_name + "' under " + parent_path + " in " + scene_path})


func _res_path(relative: String) -> String:
    if relative.begins_with("res://"):
        return relative
    return "res://" + relative.trim_prefix("/")


func _load_scene(scene_path: String) -> Node:
    if not ResourceLoader.exists(scene_path):
        return null
    var packed = ResourceLoader.load(scene_path)
    if not (packed is PackedScene):
        return null
    return packed.instantiate()


func _instantiate_node(node_type: String) -> Node:
    if not ClassDB.class_exists(node_type) or not ClassDB.can_instantiate(node_type):
        return null
    if not ClassDB.is_parent_class(node_type, "Node"):
        return null
    return ClassDB.instantiate(node_type)


func _describe_node(node: Node) -> Dictionary:
    var children = []
    for child in node.get_children():
        children.append(_describe_node(child))
    return {"name": str(node.name), "type": node.get_class(), "children": children}


func _emit_error(message: String):
    _emit({"success": false, "error": message})


func _emit(result: Dictionary):
    print(JSON.stringify(result))
""" % {
    "default_scene": DEFAULT_SCENE
}
