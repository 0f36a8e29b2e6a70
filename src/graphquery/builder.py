from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Union

from . import (
    UNSET, AccessMode, CompiledStatement, NodeRef, RelRef, Property, Param,
    Alias, Assign,
    Match, OptionalMatch, Where, Return, With, Unwind, Create, Merge, Set,
    Remove, Delete, DetachDelete, OrderBy, Skip, Limit, OnCreateSet,
    OnMatchSet, Union as UnionClause, UnionAll, CallSubquery, LoadCsv,
    LoadCsvHeaders, Foreach, CreateIndex, DropIndex, CreateConstraint,
    DropConstraint,
)


# ---- small constructors ----
def node(name: Optional[str] = None, label: Optional[str] = None, /, **props: Any) -> NodeRef:
    """`node("p", "Person", name="Ann")`: every keyword is a property."""
    return NodeRef(name, label, props or None)

def rel(name: Optional[str] = None, type: Optional[str] = None, hops: Any = None, /,
        **props: Any) -> RelRef:
    return RelRef(name, type, hops, props or None)

def prop(path: str, key: Optional[str] = None) -> Property:
    """`prop("p.name")` or `prop("p", "name")`."""
    if key is None:
        owner, _, key = path.partition(".")
        return Property(owner, key)
    return Property(path, key)

def param(name: str, value: Any = UNSET) -> Param:
    return Param(name, value)


class Cypher:
    """Fluent clause-list builder.

        q = (Cypher()
             .match(node("p", "Person"))
             .where(BinaryOp(">", prop("p.age"), param("min_age")))
             .ret(name=prop("p.name")))

    Keyword projections become `expr AS keyword`.
    """

    def __init__(self, clauses: Optional[List[Any]] = None) -> None:
        self.clauses: List[Any] = list(clauses or [])

    def __iter__(self):
        return iter(self.clauses)

    def __len__(self) -> int:
        return len(self.clauses)

    def __repr__(self) -> str:
        return f"Cypher({self.clauses!r})"

    def add(self, clause: Any) -> "Cypher":
        self.clauses.append(clause)
        return self

    # ---- reading ----
    def match(self, *patterns: Any) -> "Cypher":
        return self.add(Match(list(patterns)))

    def optional_match(self, *patterns: Any) -> "Cypher":
        return self.add(OptionalMatch(list(patterns)))

    def where(self, *conditions: Any) -> "Cypher":
        return self.add(Where(list(conditions)))

    def ret(self, *items: Any, distinct: bool = False, **aliases: Any) -> "Cypher":
        return self.add(Return(_projection(items, aliases), distinct))

    def with_(self, *items: Any, distinct: bool = False, **aliases: Any) -> "Cypher":
        return self.add(With(_projection(items, aliases), distinct))

    def unwind(self, source: Any, alias: str) -> "Cypher":
        return self.add(Unwind(source, alias))

    def order_by(self, *items: Any) -> "Cypher":
        return self.add(OrderBy(list(items)))

    def skip(self, value: Any) -> "Cypher":
        return self.add(Skip(value))

    def limit(self, value: Any) -> "Cypher":
        return self.add(Limit(value))

    def load_csv(self, source: Any, alias: str, field_terminator: Optional[str] = None) -> "Cypher":
        return self.add(LoadCsv(source, alias, field_terminator))

    def load_csv_headers(self, source: Any, alias: str, field_terminator: Optional[str] = None) -> "Cypher":
        return self.add(LoadCsvHeaders(source, alias, field_terminator))

    # ---- writing ----
    def create(self, *patterns: Any) -> "Cypher":
        return self.add(Create(list(patterns)))

    def merge(self, pattern: Any) -> "Cypher":
        return self.add(Merge(pattern))

    def set(self, *assignments: Any) -> "Cypher":
        return self.add(Set(list(assignments)))

    def assign(self, target: Property, value: Any) -> "Cypher":
        return self.add(Assign(target, value))

    def on_create_set(self, *assignments: Any) -> "Cypher":
        return self.add(OnCreateSet(list(assignments)))

    def on_match_set(self, *assignments: Any) -> "Cypher":
        return self.add(OnMatchSet(list(assignments)))

    def remove(self, *items: Any) -> "Cypher":
        return self.add(Remove(list(items)))

    def delete(self, *items: Any) -> "Cypher":
        return self.add(Delete(list(items)))

    def detach_delete(self, *items: Any) -> "Cypher":
        return self.add(DetachDelete(list(items)))

    # ---- composition ----
    def union(self) -> "Cypher":
        return self.add(UnionClause())

    def union_all(self) -> "Cypher":
        return self.add(UnionAll())

    def call(self, body: Any) -> "Cypher":
        return self.add(CallSubquery(_clauses(body)))

    def foreach(self, source: Any, binding: str, body: Any) -> "Cypher":
        return self.add(Foreach(source, binding, _clauses(body)))

    # ---- schema ----
    def create_index(self, label: str, *properties: str, name: Optional[str] = None,
                     if_not_exists: bool = False) -> "Cypher":
        return self.add(CreateIndex(label, list(properties), name, if_not_exists))

    def drop_index(self, name: str) -> "Cypher":
        return self.add(DropIndex(name))

    def create_constraint(self, label: str, *properties: str, kind: str = "unique",
                          name: Optional[str] = None, if_not_exists: bool = False) -> "Cypher":
        return self.add(CreateConstraint(label, list(properties), kind, name, if_not_exists))

    def drop_constraint(self, name: str) -> "Cypher":
        return self.add(DropConstraint(name))

    # ---- output ----
    def compile(self, parameters: Optional[Mapping[str, Any]] = None,
                access_mode: Optional[Union[AccessMode, str]] = None) -> CompiledStatement:
        from .query_compiler import QueryCompiler
        return QueryCompiler().compile(self, parameters, access_mode)


def _projection(items: Any, aliases: Dict[str, Any]) -> List[Any]:
    out = list(items)
    out.extend(Alias(expr, alias) for alias, expr in aliases.items())
    return out


def _clauses(body: Any) -> Any:
    if isinstance(body, Cypher):
        return list(body.clauses)
    if isinstance(body, (list, tuple)):
        return list(body)
    return body  # rejected by the compiler's validation
