import pytest

from graphquery import (
    AccessMode, NodeRef, Property, Assign, Match, Return, Where, Create, Merge,
    Set, Remove, Delete, DetachDelete, OnCreateSet, OnMatchSet, CallSubquery,
    Foreach, Var, CreateIndex, DropIndex, CreateConstraint, DropConstraint,
)
from graphquery.access_mode import has_mutations, infer_access_mode


def _read_clauses() -> list:
    return [Match(NodeRef("n")), Where(Var("n")), Return(["n"])]

_WRITES = [
    Create(NodeRef("x")), Merge(NodeRef("x")), Set([Assign(Property("n", "a"), 1)]),
    Assign(Property("n", "a"), 1), Remove([Property("n", "a")]), Delete(["n"]),
    DetachDelete(["n"]), OnCreateSet([]), OnMatchSet([]),
    Foreach(Var("xs"), "x", []), CreateIndex("L", ["p"]), DropIndex("i"),
    CreateConstraint("L", ["p"]), DropConstraint("c"),
]


def test_read_only():
    assert infer_access_mode(_read_clauses()) == AccessMode.READ
    assert not has_mutations(_read_clauses())

@pytest.mark.parametrize("write", _WRITES, ids=lambda c: type(c).__name__)
def test_any_mutation_makes_write(write):
    assert infer_access_mode(_read_clauses() + [write]) == AccessMode.WRITE

def test_subquery_inspected_recursively():
    nested = CallSubquery([CallSubquery([Create(NodeRef("x"))])])
    assert infer_access_mode(_read_clauses() + [nested]) == AccessMode.WRITE
    assert infer_access_mode(_read_clauses() + [CallSubquery(_read_clauses())]) == AccessMode.READ

def test_override():
    assert infer_access_mode([Create(NodeRef("x"))], "READ") == AccessMode.READ
    assert infer_access_mode(_read_clauses(), AccessMode.WRITE) == AccessMode.WRITE
