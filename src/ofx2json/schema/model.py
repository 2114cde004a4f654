"""Schema model describing how OFX elements nest and serialize.

A schema is an acyclic forest of immutable ``SchemaNode`` values. Each node
names the child tags that open nested containers and the leaf tags whose text
decodes into a typed value. Nodes are shared by reference (the same STATUS or
CURRENCY node appears under many parents) and are never mutated once built.

Schema data is declarative JSON::

    {
      "root": "ofx",
      "nodes": {
        "ofx":    {"serialize": "suppressed", "children": {"SONRS": "sonrs"}},
        "sonrs":  {"serialize": "object", "leaves": {"DTSERVER": "datetime"}}
      }
    }
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Set, Union

from ofx2json.shared.errors import SchemaError

DEFAULT_SCHEMA_RESOURCE = "ofx_schema.json"


class SerializeMode(Enum):
    """How a closed container's value attaches to its parent's value."""

    SUPPRESSED = "suppressed"                    # children splice into the parent
    MERGED_OBJECT = "object"                     # named member of the parent
    ARRAY_ELEMENT = "array_element"              # appended to the parent array
    NAMED_ARRAY_ELEMENT = "named_array_element"  # {name: value} appended
    ARRAY = "array"                              # array value, named member


class ValueKind(Enum):
    """Declared type of a leaf element's text."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATETIME = "datetime"


@dataclass(frozen=True, eq=False)
class SchemaNode:
    """Immutable descriptor of one container element."""

    serialize: SerializeMode = SerializeMode.MERGED_OBJECT
    children: Mapping[str, "SchemaNode"] = field(default_factory=dict)
    leaves: Mapping[str, ValueKind] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate the node and freeze its mappings."""
        if not isinstance(self.serialize, SerializeMode):
            raise SchemaError(f"Invalid serialize mode: {self.serialize!r}")
        for tag, child in self.children.items():
            if not isinstance(child, SchemaNode):
                raise SchemaError(f"Child <{tag}> must be a SchemaNode")
        for tag, kind in self.leaves.items():
            if not isinstance(kind, ValueKind):
                raise SchemaError(f"Leaf <{tag}> has invalid value kind {kind!r}")
        overlap = set(self.children) & set(self.leaves)
        if overlap:
            raise SchemaError(
                f"Tags declared as both child and leaf: {', '.join(sorted(overlap))}"
            )
        object.__setattr__(self, "children", MappingProxyType(dict(self.children)))
        object.__setattr__(self, "leaves", MappingProxyType(dict(self.leaves)))

    def child(self, tag: str) -> "SchemaNode":
        """Return the nested node for ``tag``; raises KeyError if undeclared."""
        return self.children[tag]

    def leaf_kind(self, tag: str) -> ValueKind:
        """Return the value kind of leaf ``tag``; raises KeyError if undeclared."""
        return self.leaves[tag]


def _parse_enum(enum_cls: Any, value: Any, where: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as e:
        choices = ", ".join(member.value for member in enum_cls)
        raise SchemaError(f"{where}: {value!r} is not one of {choices}") from e


def load_schema(data: Mapping[str, Any]) -> SchemaNode:
    """Build the schema forest described by ``data`` and return its root node.

    Raises:
        SchemaError: on unknown node references, invalid modes or kinds, or
            reference cycles
    """
    if not isinstance(data, Mapping):
        raise SchemaError("Schema data must be an object")
    nodes = data.get("nodes")
    root_id = data.get("root")
    if not isinstance(nodes, Mapping) or not nodes:
        raise SchemaError("Schema data must define a non-empty 'nodes' object")
    if root_id not in nodes:
        raise SchemaError(f"Schema root {root_id!r} is not a defined node")

    built: Dict[str, SchemaNode] = {}
    visiting: Set[str] = set()

    def build(node_id: str) -> SchemaNode:
        if node_id in built:
            return built[node_id]
        if node_id in visiting:
            raise SchemaError(f"Schema node {node_id!r} is part of a reference cycle")
        entry = nodes.get(node_id)
        if not isinstance(entry, Mapping):
            raise SchemaError(f"Unknown schema node {node_id!r}")

        visiting.add(node_id)
        serialize = _parse_enum(
            SerializeMode, entry.get("serialize", "object"), f"node {node_id!r}"
        )
        children = {
            tag: build(child_id) for tag, child_id in entry.get("children", {}).items()
        }
        leaves = {
            tag: _parse_enum(ValueKind, kind, f"leaf <{tag}> of {node_id!r}")
            for tag, kind in entry.get("leaves", {}).items()
        }
        visiting.discard(node_id)

        node = SchemaNode(serialize, children, leaves)
        built[node_id] = node
        return node

    return build(root_id)


def load_schema_file(path: Union[str, Path]) -> SchemaNode:
    """Load a schema from a JSON file."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise SchemaError(f"Could not read schema file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SchemaError(f"Schema file {path} is not valid JSON: {e}") from e
    return load_schema(data)


@lru_cache(maxsize=1)
def default_schema() -> SchemaNode:
    """Return the bundled OFX schema, built once per process."""
    text = resources.files("ofx2json.schema").joinpath(
        DEFAULT_SCHEMA_RESOURCE
    ).read_text(encoding="utf-8")
    return load_schema(json.loads(text))
