# IR definitions (backend neutral; nothing here renders Cypher)
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import typing
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple

Label = str
Name = str
Hops = typing.Union[int, Tuple[Optional[int], Optional[int]]]


class _Unset:
    def __repr__(self) -> str: return "UNSET"
    def __bool__(self) -> bool: return False

UNSET: Any = _Unset()


class Direction(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    UNDIRECTED = "undirected"


class AccessMode(str, Enum):
    READ = "read"
    WRITE = "write"


# ---- Patterns ----
class _Steppable:
    """`>>` steps forward, `<<` steps backward. Both fold left into a Chain."""
    def __rshift__(self, other: Any) -> "Chain": return Chain.step(self, other, Direction.FORWARD)
    def __lshift__(self, other: Any) -> "Chain": return Chain.step(self, other, Direction.BACKWARD)
    def __rrshift__(self, other: Any) -> "Chain": return Chain.step(other, self, Direction.FORWARD)
    def __rlshift__(self, other: Any) -> "Chain": return Chain.step(other, self, Direction.BACKWARD)


@dataclass(eq=True)
class NodeRef(_Steppable):
    name: Optional[Name] = None
    label: Optional[Label] = None
    props: Optional[Mapping[str, Any]] = None


@dataclass(eq=True)
class RelRef(_Steppable):
    name: Optional[Name] = None
    type: Optional[str] = None
    hops: Optional[Hops] = None
    props: Optional[Mapping[str, Any]] = None


PatternElement = typing.Union[NodeRef, RelRef, str]


@dataclass(eq=True)
class Chain(_Steppable):
    """Alternating node/relationship elements with one direction per step.

    Steps are stored as folded; consistency around each relationship is
    checked when the chain is compiled, not here.
    """
    elements: List[PatternElement] = field(default_factory=list)
    steps: List[Direction] = field(default_factory=list)

    @classmethod
    def step(cls, left: Any, right: Any, direction: Direction) -> "Chain":
        elements: List[PatternElement] = []
        steps: List[Direction] = []
        if isinstance(left, Chain):
            elements.extend(left.elements); steps.extend(left.steps)
        else:
            elements.append(left)
        steps.append(direction)
        if isinstance(right, Chain):
            elements.extend(right.elements); steps.extend(right.steps)
        else:
            elements.append(right)
        return cls(elements, steps)

    @classmethod
    def of(cls, *elements: PatternElement, direction: Direction = Direction.FORWARD) -> "Chain":
        return cls(list(elements), [direction] * max(len(elements) - 1, 0))


Pattern = typing.Union[NodeRef, Chain]


# ---- Expressions ----
class Expr: ...

@dataclass
class Property(Expr): owner: Name; key: str
@dataclass
class Param(Expr): name: str; value: Any = UNSET
@dataclass
class Literal(Expr): value: Any
@dataclass
class Var(Expr): name: str
@dataclass
class BinaryOp(Expr): op: str; left: Any; right: Any
@dataclass
class UnaryOp(Expr): op: str; operand: Any
@dataclass
class Call(Expr):
    name: str
    args: Sequence[Any] = field(default_factory=tuple)
    distinct: bool = False
@dataclass
class Case(Expr):
    whens: Sequence[Tuple[Any, Any]]
    default: Optional[Any] = None
@dataclass
class Exists(Expr): pattern: Any


def all_of(*exprs: Any) -> Any:
    """AND-fold; a single expression comes back unchanged."""
    if not exprs:
        raise ValueError("all_of() needs at least one expression")
    out = exprs[0]
    for e in exprs[1:]:
        out = BinaryOp("and", out, e)
    return out

def any_of(*exprs: Any) -> Any:
    if not exprs:
        raise ValueError("any_of() needs at least one expression")
    out = exprs[0]
    for e in exprs[1:]:
        out = BinaryOp("or", out, e)
    return out


# ---- Projection / ordering / assignment ----
@dataclass
class Alias: expr: Any; alias: str
@dataclass
class OrderItem: expr: Any; direction: str = "ASC"
@dataclass
class Assign: target: Property; value: Any


# ---- Clauses ----
class Clause:
    kind: ClassVar[str] = "Clause"

@dataclass
class Match(Clause):
    kind: ClassVar[str] = "Match"
    patterns: Any
@dataclass
class OptionalMatch(Clause):
    kind: ClassVar[str] = "OptionalMatch"
    patterns: Any
@dataclass
class Where(Clause):
    kind: ClassVar[str] = "Where"
    conditions: Any
@dataclass
class Return(Clause):
    kind: ClassVar[str] = "Return"
    items: Any = field(default_factory=list)
    distinct: bool = False
@dataclass
class With(Clause):
    kind: ClassVar[str] = "With"
    items: Any = field(default_factory=list)
    distinct: bool = False
@dataclass
class Unwind(Clause):
    kind: ClassVar[str] = "Unwind"
    source: Any
    alias: str
@dataclass
class Create(Clause):
    kind: ClassVar[str] = "Create"
    patterns: Any
@dataclass
class Merge(Clause):
    kind: ClassVar[str] = "Merge"
    pattern: Any
@dataclass
class Set(Clause):
    kind: ClassVar[str] = "Set"
    assignments: Any
@dataclass
class Remove(Clause):
    kind: ClassVar[str] = "Remove"
    items: Any
@dataclass
class Delete(Clause):
    kind: ClassVar[str] = "Delete"
    items: Any
@dataclass
class DetachDelete(Clause):
    kind: ClassVar[str] = "DetachDelete"
    items: Any
@dataclass
class OrderBy(Clause):
    kind: ClassVar[str] = "OrderBy"
    items: Any
@dataclass
class Skip(Clause):
    kind: ClassVar[str] = "Skip"
    value: Any
@dataclass
class Limit(Clause):
    kind: ClassVar[str] = "Limit"
    value: Any
@dataclass
class OnCreateSet(Clause):
    kind: ClassVar[str] = "OnCreateSet"
    assignments: Any
@dataclass
class OnMatchSet(Clause):
    kind: ClassVar[str] = "OnMatchSet"
    assignments: Any
@dataclass
class Union(Clause):
    kind: ClassVar[str] = "Union"
@dataclass
class UnionAll(Clause):
    kind: ClassVar[str] = "UnionAll"
@dataclass
class CallSubquery(Clause):
    kind: ClassVar[str] = "CallSubquery"
    body: Sequence[Any]
@dataclass
class LoadCsv(Clause):
    kind: ClassVar[str] = "LoadCsv"
    source: Any
    alias: str
    field_terminator: Optional[str] = None
@dataclass
class LoadCsvHeaders(Clause):
    kind: ClassVar[str] = "LoadCsvHeaders"
    source: Any
    alias: str
    field_terminator: Optional[str] = None
@dataclass
class Foreach(Clause):
    kind: ClassVar[str] = "Foreach"
    source: Any
    binding: str
    body: Sequence[Any]
@dataclass
class CreateIndex(Clause):
    kind: ClassVar[str] = "CreateIndex"
    label: Label
    properties: Any
    name: Optional[str] = None
    if_not_exists: bool = False
@dataclass
class DropIndex(Clause):
    kind: ClassVar[str] = "DropIndex"
    name: str
@dataclass
class CreateConstraint(Clause):
    kind: ClassVar[str] = "CreateConstraint"
    label: Label
    properties: Any
    constraint: str = "unique"
    name: Optional[str] = None
    if_not_exists: bool = False
@dataclass
class DropConstraint(Clause):
    kind: ClassVar[str] = "DropConstraint"
    name: str


# ---- Shorthand / output ----
@dataclass
class Comprehension:
    """`[projection for binding in label if filter]`"""
    projection: Any
    binding: Name
    label: Label
    filter: Optional[Any] = None


@dataclass(frozen=True)
class CompiledStatement:
    text: str
    parameters: Dict[str, Any]
    access_mode: AccessMode


__all__ = [
    "UNSET", "Direction", "AccessMode",
    "NodeRef", "RelRef", "Chain", "Pattern",
    "Expr", "Property", "Param", "Literal", "Var", "BinaryOp", "UnaryOp",
    "Call", "Case", "Exists", "all_of", "any_of",
    "Alias", "OrderItem", "Assign",
    "Clause", "Match", "OptionalMatch", "Where", "Return", "With", "Unwind",
    "Create", "Merge", "Set", "Remove", "Delete", "DetachDelete", "OrderBy",
    "Skip", "Limit", "OnCreateSet", "OnMatchSet", "Union", "UnionAll",
    "CallSubquery", "LoadCsv", "LoadCsvHeaders", "Foreach", "CreateIndex",
    "DropIndex", "CreateConstraint", "DropConstraint",
    "Comprehension", "CompiledStatement",
]
