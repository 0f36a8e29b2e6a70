from __future__ import annotations
from typing import Any, List

from . import Comprehension, Match, NodeRef, Return, Where
from .errors import ClauseError


def desugar(comp: Comprehension) -> List[Any]:
    """`[p.name for p in Person if p.age > 25]` -> MATCH / WHERE / RETURN.

    Pure syntax: the resulting clause list compiles exactly like a
    hand-written one.
    """
    if not isinstance(comp, Comprehension):
        raise ClauseError(f"Expected a Comprehension, got: {comp!r}", comp)
    if not isinstance(comp.binding, str) or not comp.binding:
        raise ClauseError(f"Comprehension needs a binding name: {comp!r}", comp)
    if not isinstance(comp.label, str) or not comp.label:
        raise ClauseError(f"Comprehension needs a label to iterate: {comp!r}", comp)
    if comp.projection is None:
        raise ClauseError(f"Comprehension needs a projection: {comp!r}", comp)
    clauses: List[Any] = [Match(NodeRef(comp.binding, comp.label))]
    if comp.filter is not None:
        clauses.append(Where(comp.filter))
    clauses.append(Return([comp.projection]))
    return clauses
