from __future__ import annotations
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from log_helper import LogHelper

from .errors import SchemaValidationError

logger = LogHelper.get_logger("graphquery.schema")


# ---- declarations ----
@dataclass(frozen=True)
class PropertyDef:
    name: str
    type: str = "Any"
    required: bool = True
    default: Any = None

@dataclass(frozen=True)
class NodeSchema:
    label: str
    properties: List[PropertyDef] = field(default_factory=list)

@dataclass(frozen=True)
class RelSchema:
    type: str
    properties: List[PropertyDef] = field(default_factory=list)

Schema = Union[NodeSchema, RelSchema]


def validate_properties(schema: Schema, props: Mapping[str, Any]) -> None:
    """Missing required properties raise; unknown ones only warn."""
    if isinstance(schema, NodeSchema):
        where = f"node :{schema.label}"
    else:
        where = f"relationship :{schema.type}"
    known = set()
    for p in schema.properties:
        known.add(p.name)
        if p.required and p.name not in props:
            raise SchemaValidationError(f"Missing required property '{p.name}' for {where}")
    for key in props:
        if key not in known:
            logger.warning("Unknown property '%s' for %s (not declared in schema)", key, where)


class SchemaRegistry:
    """Label / relationship type -> schema.

    Writers swap in a fresh dict under a lock; readers use whatever dict
    is current and never block.
    """

    def __init__(self) -> None:
        self._nodes: Dict[str, NodeSchema] = {}
        self._rels: Dict[str, RelSchema] = {}
        self._lock = threading.Lock()

    def register_node(self, schema: NodeSchema) -> NodeSchema:
        if not isinstance(schema, NodeSchema):
            raise TypeError(f"Expected NodeSchema, got {type(schema).__name__}")
        with self._lock:
            nodes = dict(self._nodes)
            nodes[schema.label] = schema
            self._nodes = nodes
        logger.debug("registered node schema :%s (%d properties)", schema.label, len(schema.properties))
        return schema

    def register_rel(self, schema: RelSchema) -> RelSchema:
        if not isinstance(schema, RelSchema):
            raise TypeError(f"Expected RelSchema, got {type(schema).__name__}")
        with self._lock:
            rels = dict(self._rels)
            rels[schema.type] = schema
            self._rels = rels
        logger.debug("registered relationship schema :%s (%d properties)", schema.type, len(schema.properties))
        return schema

    def get_node_schema(self, label: str) -> Optional[NodeSchema]:
        return self._nodes.get(label)

    def get_rel_schema(self, rel_type: str) -> Optional[RelSchema]:
        return self._rels.get(rel_type)

    def lookup(self, name: str) -> Optional[Schema]:
        return self._nodes.get(name) or self._rels.get(name)

    def __len__(self) -> int:
        return len(self._nodes) + len(self._rels)


__all__ = ["PropertyDef", "NodeSchema", "RelSchema", "SchemaRegistry", "validate_properties"]
