from __future__ import annotations
from typing import Any, Optional


class GraphQueryError(Exception):
    """Base exception for graphquery."""


class CompileError(GraphQueryError, ValueError):
    """Malformed input tree. Raised synchronously, never retried.

    ``fragment`` carries the offending piece (clause kind, chain segment or
    expression) so callers can point at it.
    """
    def __init__(self, message: str, fragment: Optional[Any] = None) -> None:
        super().__init__(message)
        self.fragment = fragment


class PatternError(CompileError):
    """Bad node/relationship/chain shape."""


class DirectionError(PatternError):
    """The two steps around a relationship point different ways."""


class ExpressionError(CompileError):
    """Unknown expression node, operator or literal type."""


class UnboundParameterError(ExpressionError):
    def __init__(self, names) -> None:
        self.names = list(names)
        super().__init__(
            "No value bound for parameter(s): " + ", ".join(f"${n}" for n in self.names),
            fragment=self.names,
        )


class ClauseError(CompileError):
    """Clause kind unknown or its arguments do not fit the kind."""


class SchemaValidationError(GraphQueryError):
    pass


class ConfigurationError(GraphQueryError):
    pass


__all__ = [
    "GraphQueryError", "CompileError", "PatternError", "DirectionError",
    "ExpressionError", "UnboundParameterError", "ClauseError",
    "SchemaValidationError", "ConfigurationError",
]
