from __future__ import annotations
from typing import Any, List, Optional, Sequence

from . import NodeRef, RelRef, Chain, Direction
from .errors import PatternError, DirectionError
from .expressions import ExpressionCompiler, quote_identifier


class PatternCompiler:
    """NodeRef / Chain -> canonical pattern text.

    - `NodeRef("p", "Person")`                       -> `(p:Person)`
    - `NodeRef(label="Person")`                      -> `(:Person)`
    - `p >> RelRef("r", "KNOWS") >> q`               -> `(p)-[r:KNOWS]->(q)`
    - `a >> "R" >> b << "S" << c`                    -> `(a)-[:R]->(b)<-[:S]-(c)`
    - `RelRef(type="KNOWS", hops=(1, 3))`            -> `[:KNOWS*1..3]`

    Bare strings are bindings at node positions and types at relationship
    positions.
    """

    def __init__(self, expressions: ExpressionCompiler) -> None:
        self.expressions = expressions

    def compile(self, pattern: Any) -> str:
        if isinstance(pattern, (list, tuple)):
            return self.compile_many(pattern)
        if isinstance(pattern, Chain):
            return self.chain(pattern)
        if isinstance(pattern, (NodeRef, str)):
            return self.node(pattern)
        if isinstance(pattern, RelRef):
            raise PatternError(f"A relationship needs a node on each side: {pattern!r}", pattern)
        raise PatternError(
            f"Cannot parse pattern: {pattern!r}. Expected NodeRef, Chain or a binding name", pattern)

    def compile_many(self, patterns: Sequence[Any]) -> str:
        if not patterns:
            raise PatternError("Empty pattern list", patterns)
        return ", ".join(self.compile(p) for p in patterns)

    # ---- nodes ----
    def node(self, n: Any) -> str:
        if isinstance(n, str):
            n = NodeRef(name=n)
        if not isinstance(n, NodeRef):
            raise PatternError(f"Expected a node, got: {n!r}", n)
        inner = ""
        if n.name is not None:
            inner += self._ident(n.name, "node name", n)
        if n.label is not None:
            inner += ":" + self._ident(n.label, "label", n)
        return f"({inner}{self._props(n.props)})"

    # ---- relationships ----
    def rel_inner(self, r: Any) -> str:
        if isinstance(r, str):
            r = RelRef(type=r)
        if not isinstance(r, RelRef):
            raise PatternError(f"Expected a relationship, got: {r!r}", r)
        inner = ""
        if r.name is not None:
            inner += self._ident(r.name, "relationship name", r)
        if r.type is not None:
            inner += ":" + self._ident(r.type, "relationship type", r)
        inner += self._hops(r)
        return inner + self._props(r.props)

    def _hops(self, r: RelRef) -> str:
        h = r.hops
        if h is None:
            return ""
        if _is_bound(h):
            if h < 0:
                raise PatternError(f"Negative hop count in {r!r}", r)
            return f"*{h}"
        if isinstance(h, (tuple, list)) and len(h) == 2:
            lo, hi = h
            for b in (lo, hi):
                if b is not None and (not _is_bound(b) or b < 0):
                    raise PatternError(f"Hop bounds must be non-negative integers or None: {r!r}", r)
            if lo is not None and hi is not None and lo > hi:
                raise PatternError(f"Hop range min > max in {r!r}", r)
            lo_s = "" if lo is None else str(lo)
            hi_s = "" if hi is None else str(hi)
            if lo is None and hi is None:
                return "*"
            if hi is None:
                return f"*{lo_s}.."
            if lo is None:
                return f"*..{hi_s}"
            return f"*{lo_s}..{hi_s}"
        raise PatternError(f"Hops must be an int or a (min, max) pair: {r!r}", r)

    # ---- chains ----
    def chain(self, c: Chain) -> str:
        elements = list(c.elements)
        steps = list(c.steps)
        if not elements:
            raise PatternError("Empty chain pattern", c)
        if len(steps) != len(elements) - 1:
            raise PatternError(
                f"Chain has {len(elements)} elements but {len(steps)} steps", c)
        if len(elements) % 2 == 0:
            raise PatternError(
                "Chain pattern must have odd number of elements "
                f"(node, rel, node, ...), got {len(elements)}", c)

        parts: List[str] = []
        for i, el in enumerate(elements):
            if i % 2 == 0:
                if not isinstance(el, (NodeRef, str)):
                    raise PatternError(f"Expected a node at chain position {i}, got: {el!r}", c)
                parts.append(self.node(el))
                continue
            if not isinstance(el, (RelRef, str)):
                raise PatternError(f"Expected a relationship at chain position {i}, got: {el!r}", c)
            before, after = steps[i - 1], steps[i]
            if before != after:
                raise DirectionError(
                    f"Inconsistent direction around relationship at chain position {i}: "
                    f"{_dir_name(before)} vs {_dir_name(after)}. "
                    "Use `>> rel >>` for forward or `<< rel <<` for backward.", el)
            inner = self.rel_inner(el)
            if before == Direction.FORWARD:
                parts.append(f"-[{inner}]->")
            elif before == Direction.BACKWARD:
                parts.append(f"<-[{inner}]-")
            elif before == Direction.UNDIRECTED:
                parts.append(f"-[{inner}]-")
            else:
                raise PatternError(f"Unknown direction {before!r} at chain position {i}", c)
        return "".join(parts)

    # ---- helpers ----
    def _props(self, props: Optional[Any]) -> str:
        if not props:
            return ""
        return " " + self.expressions.compile_map(props)

    @staticmethod
    def _ident(value: Any, what: str, owner: Any) -> str:
        if not isinstance(value, str) or not value:
            raise PatternError(f"Invalid {what} {value!r} in {owner!r}", owner)
        return quote_identifier(value)


def _is_bound(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _dir_name(d: Any) -> str:
    return d.value if isinstance(d, Direction) else str(d)
