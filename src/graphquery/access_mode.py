from __future__ import annotations
from typing import Any, FrozenSet, Iterable, Optional, Union

from . import (
    AccessMode, Assign, CallSubquery, Create, Merge, Set, Remove, Delete,
    DetachDelete, OnCreateSet, OnMatchSet, CreateIndex, DropIndex,
    CreateConstraint, DropConstraint, Foreach,
)

# FOREACH bodies only hold mutations, so FOREACH itself counts as one.
MUTATION_CLAUSES: FrozenSet[type] = frozenset({
    Create, Merge, Set, Assign, Remove, Delete, DetachDelete,
    OnCreateSet, OnMatchSet,
    CreateIndex, DropIndex, CreateConstraint, DropConstraint,
    Foreach,
})


def has_mutations(clauses: Iterable[Any]) -> bool:
    for c in clauses:
        if type(c) in MUTATION_CLAUSES:
            return True
        if isinstance(c, CallSubquery) and has_mutations(c.body or ()):
            return True
    return False


def infer_access_mode(clauses: Iterable[Any],
                      override: Optional[Union[AccessMode, str]] = None) -> AccessMode:
    """WRITE if any mutation clause is present, else READ. `override` always wins."""
    if override is not None:
        return AccessMode(override.lower() if isinstance(override, str) else override)
    return AccessMode.WRITE if has_mutations(clauses) else AccessMode.READ
