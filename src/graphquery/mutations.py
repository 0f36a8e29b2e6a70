from __future__ import annotations
from itertools import count
from typing import Any, Dict, Iterable, List, Mapping, Optional

from . import (
    CompiledStatement, NodeRef, RelRef, Chain, Param, Property, Var, Call,
    BinaryOp, Assign, all_of, Match, Where, Create, Merge, OnCreateSet,
    OnMatchSet, Return,
)
from .params import is_valid_name
from .query_compiler import QueryCompiler
from .schema import SchemaRegistry, validate_properties

_compiler = QueryCompiler()


class _ParamNames:
    """Hands out one parameter name per property for a single statement.

    Tries `key`, then `<section>_key`, then `<section>_p0`, `<section>_p1`, ...
    so keys that are not identifiers, or repeat across sections, still bind.
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self.used = set(reserved)

    def take(self, key: str, section: str) -> str:
        candidates: List[str] = []
        if is_valid_name(key):
            candidates += [key, f"{section}_{key}"]
        for name in candidates:
            if name not in self.used:
                self.used.add(name)
                return name
        for i in count():
            name = f"{section}_p{i}"
            if name not in self.used:
                self.used.add(name)
                return name

    def bind(self, props: Mapping[str, Any], section: str) -> Optional[Dict[str, Param]]:
        if not props:
            return None
        return {k: Param(self.take(k, section), v) for k, v in props.items()}


def create_node(label: str, props: Optional[Mapping[str, Any]] = None,
                registry: Optional[SchemaRegistry] = None) -> CompiledStatement:
    """`CREATE (n:Label {k: $k, ...}) RETURN n`"""
    props = dict(props or {})
    schema = registry.get_node_schema(label) if registry else None
    if schema is not None:
        validate_properties(schema, props)
    names = _ParamNames()
    clauses = [Create(NodeRef("n", label, names.bind(props, "props"))), Return(["n"])]
    return _compiler.compile(clauses)


def merge_node(label: str, match: Mapping[str, Any],
               on_create: Optional[Mapping[str, Any]] = None,
               on_match: Optional[Mapping[str, Any]] = None,
               registry: Optional[SchemaRegistry] = None) -> CompiledStatement:
    """MERGE on `match`, then ON CREATE SET / ON MATCH SET for the rest.

    The same key may carry different values in each section; later
    sections get prefixed parameter names (`$on_match_status`).
    """
    match, on_create, on_match = dict(match or {}), dict(on_create or {}), dict(on_match or {})
    schema = registry.get_node_schema(label) if registry else None
    if schema is not None:
        validate_properties(schema, {**match, **on_create, **on_match})
    names = _ParamNames()
    clauses: list = [Merge(NodeRef("n", label, names.bind(match, "match")))]
    if on_create:
        clauses.append(OnCreateSet([Assign(Property("n", k), p)
                                    for k, p in names.bind(on_create, "on_create").items()]))
    if on_match:
        clauses.append(OnMatchSet([Assign(Property("n", k), p)
                                   for k, p in names.bind(on_match, "on_match").items()]))
    clauses.append(Return(["n"]))
    return _compiler.compile(clauses)


def relate(start_id: str, rel_type: str, end_id: str,
           props: Optional[Mapping[str, Any]] = None,
           registry: Optional[SchemaRegistry] = None) -> CompiledStatement:
    """Connect two existing nodes by element id.

    MATCH (a), (b) WHERE elementId(a) = $__start_id AND elementId(b) = $__end_id
    CREATE (a)-[r:TYPE {..}]->(b) RETURN r
    """
    props = dict(props or {})
    schema = registry.get_rel_schema(rel_type) if registry else None
    if schema is not None:
        validate_properties(schema, props)
    names = _ParamNames(reserved=("__start_id", "__end_id"))
    clauses = [
        Match([NodeRef("a"), NodeRef("b")]),
        Where(all_of(
            BinaryOp("=", Call("elementId", [Var("a")]), Param("__start_id", start_id)),
            BinaryOp("=", Call("elementId", [Var("b")]), Param("__end_id", end_id)),
        )),
        Create(Chain.of(NodeRef("a"), RelRef("r", rel_type, None, names.bind(props, "props")), NodeRef("b"))),
        Return(["r"]),
    ]
    return _compiler.compile(clauses)


__all__ = ["create_node", "merge_node", "relate"]
