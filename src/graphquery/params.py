from __future__ import annotations
import re
from typing import Any, Dict, List, Mapping, Optional

from . import UNSET
from .errors import CompileError, ExpressionError, UnboundParameterError

_PARAM_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ParameterRegistry:
    """Insertion-ordered, deduplicating `name -> value` table for one compile pass.

    A registry belongs to exactly one pass: the compiler creates it, threads
    it through nested subqueries and foreach bodies, and finalizes it once.
    """

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}
        self._finalized = False

    def register(self, name: str, value: Any = UNSET) -> str:
        if self._finalized:
            raise CompileError(f"Parameter ${name} registered after the pass finished", name)
        if not is_valid_name(name):
            raise ExpressionError(f"Invalid parameter name: {name!r}", name)
        if name not in self._values:
            self._values[name] = value
        elif value is not UNSET:
            current = self._values[name]
            if current is UNSET:
                self._values[name] = value
            elif current is not value and not _same_value(current, value):
                raise ExpressionError(
                    f"Parameter ${name} bound to two different values: {current!r} and {value!r}", name)
        return f"${name}"

    def names(self) -> List[str]:
        return list(self._values)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)

    def finalize(self, bound: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Resolve every registered name and close the registry.

        Values captured on the `Param` node win; otherwise the caller mapping
        is consulted. Names with no value anywhere raise UnboundParameterError.
        """
        bound = bound or {}
        out: Dict[str, Any] = {}
        missing: List[str] = []
        for name, value in self._values.items():
            if value is not UNSET:
                out[name] = value
            elif name in bound:
                out[name] = bound[name]
            else:
                missing.append(name)
        if missing:
            raise UnboundParameterError(missing)
        self._finalized = True
        return out


def is_valid_name(name: Any) -> bool:
    return isinstance(name, str) and bool(_PARAM_NAME.match(name))


def _same_value(a: Any, b: Any) -> bool:
    # array-like values compare elementwise; an ambiguous answer counts as different
    try:
        return bool(a == b)
    except (TypeError, ValueError):
        return False
