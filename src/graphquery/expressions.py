from __future__ import annotations
import math
import re
from typing import Any, Dict, List, Mapping, Tuple

from . import (
    Expr, Property, Param, Literal, Var, BinaryOp, UnaryOp, Call, Case, Exists,
    Assign,
)
from .errors import ExpressionError
from .params import ParameterRegistry

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_FUNC_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")

# ---- precedence (low -> high) ----
P_OR, P_XOR, P_AND, P_NOT, P_CMP, P_ADD, P_MUL, P_POW, P_NEG, P_ATOM = range(1, 11)

# op -> (cypher token, precedence)
BINARY_OPS: Dict[str, Tuple[str, int]] = {
    "or": ("OR", P_OR),
    "xor": ("XOR", P_XOR),
    "and": ("AND", P_AND),
    "=": ("=", P_CMP), "==": ("=", P_CMP),
    "<>": ("<>", P_CMP), "!=": ("<>", P_CMP),
    "<": ("<", P_CMP), ">": (">", P_CMP),
    "<=": ("<=", P_CMP), ">=": (">=", P_CMP),
    "=~": ("=~", P_CMP), "matches": ("=~", P_CMP),
    "starts_with": ("STARTS WITH", P_CMP), "startswith": ("STARTS WITH", P_CMP),
    "ends_with": ("ENDS WITH", P_CMP), "endswith": ("ENDS WITH", P_CMP),
    "contains": ("CONTAINS", P_CMP),
    "in": ("IN", P_CMP),
    "+": ("+", P_ADD), "-": ("-", P_ADD),
    "*": ("*", P_MUL), "/": ("/", P_MUL), "%": ("%", P_MUL),
    "^": ("^", P_POW),
}
_ASSOCIATIVE = {"AND", "OR", "XOR", "+", "*"}

UNARY_OPS: Dict[str, str] = {
    "not": "NOT", "!": "NOT",
    "-": "-", "neg": "-",
    "is_null": "IS NULL", "isnull": "IS NULL", "isnothing": "IS NULL",
    "is_not_null": "IS NOT NULL", "isnotnull": "IS NOT NULL",
}


def quote_identifier(name: str) -> str:
    """Plain identifiers pass through; anything else is backtick-quoted."""
    if _IDENT.match(name):
        return name
    return "`" + name.replace("`", "``") + "`"


def escape_string(s: str) -> str:
    return s.replace("\\", "\\\\").replace("'", "\\'")


def string_literal(s: str) -> str:
    return f"'{escape_string(s)}'"


class ExpressionCompiler:
    """Renders expression trees and registers every `Param` it meets."""

    def __init__(self, registry: ParameterRegistry) -> None:
        self.registry = registry
        self._patterns = None

    def compile(self, e: Any) -> str:
        return self._render(e)[0]

    def compile_assignment(self, a: Assign) -> str:
        if not isinstance(a, Assign):
            raise ExpressionError(f"Expected a property assignment, got: {a!r}", a)
        # `n = {map}` replaces all properties of n
        if not isinstance(a.target, (Property, Var)):
            raise ExpressionError(f"Assignment target must be a property access: {a.target!r}", a)
        return f"{self.compile(a.target)} = {self.compile(a.value)}"

    # ---- internals ----
    def _render(self, e: Any) -> Tuple[str, int]:
        if isinstance(e, Property):
            if not isinstance(e.owner, str) or not e.owner:
                raise ExpressionError(f"Property access without owner: {e!r}", e)
            if not isinstance(e.key, str) or not e.key:
                raise ExpressionError(f"Expected property name in dot access: {e!r}", e)
            return f"{quote_identifier(e.owner)}.{quote_identifier(e.key)}", P_ATOM
        if isinstance(e, Param):
            return self.registry.register(e.name, e.value), P_ATOM
        if isinstance(e, Var):
            if e.name == "*":
                return "*", P_ATOM
            if not isinstance(e.name, str) or not e.name:
                raise ExpressionError(f"Variable without a name: {e!r}", e)
            return quote_identifier(e.name), P_ATOM
        if isinstance(e, Literal):
            return self._literal(e.value)
        if isinstance(e, BinaryOp):
            return self._binary(e)
        if isinstance(e, UnaryOp):
            return self._unary(e)
        if isinstance(e, Call):
            return self._call(e), P_ATOM
        if isinstance(e, Case):
            return self._case(e), P_ATOM
        if isinstance(e, Exists):
            return f"EXISTS {{ MATCH {self._pattern_compiler().compile(e.pattern)} }}", P_ATOM
        if isinstance(e, Expr):
            raise ExpressionError(f"Cannot compile expression to Cypher: {e!r} ({type(e).__name__})", e)
        # bare python values are literals
        return self._literal(e)

    def _literal(self, v: Any) -> Tuple[str, int]:
        if isinstance(v, Expr):
            return self._render(v)
        if v is None:
            return "null", P_ATOM
        if isinstance(v, bool):
            return ("true" if v else "false"), P_ATOM
        if isinstance(v, int):
            return str(v), (P_NEG if v < 0 else P_ATOM)
        if isinstance(v, float):
            if not math.isfinite(v):
                raise ExpressionError(f"Non-finite float has no Cypher literal, pass it as a parameter: {v!r}", v)
            return repr(v), (P_NEG if v < 0 else P_ATOM)
        if isinstance(v, str):
            return string_literal(v), P_ATOM
        if isinstance(v, (list, tuple)):
            return "[" + ", ".join(self.compile(x) for x in v) + "]", P_ATOM
        if isinstance(v, Mapping):
            return self.compile_map(v), P_ATOM
        raise ExpressionError(
            f"Unsupported literal of type {type(v).__name__}: {v!r}. Pass it as a parameter instead.", v)

    def compile_map(self, m: Mapping[str, Any]) -> str:
        items: List[str] = []
        for k, v in m.items():
            if not isinstance(k, str) or not k:
                raise ExpressionError(f"Map keys must be non-empty strings, got: {k!r}", m)
            items.append(f"{quote_identifier(k)}: {self.compile(v)}")
        return "{" + ", ".join(items) + "}"

    def _binary(self, e: BinaryOp) -> Tuple[str, int]:
        key = e.op.lower() if isinstance(e.op, str) else e.op
        if key not in BINARY_OPS:
            raise ExpressionError(f"Unknown binary operator {e.op!r} in {e!r}", e)
        token, prec = BINARY_OPS[key]
        if token == "OR":
            # OR is always parenthesized against surrounding AND
            parts = [self._render_or_operand(x) for x in self._flatten(e, "or")]
            return "(" + " OR ".join(parts) + ")", P_ATOM
        lt, lp = self._render(e.left)
        rt, rp = self._render(e.right)
        if lp < prec or (lp == prec and prec == P_CMP):
            lt = f"({lt})"
        right_same_op = isinstance(e.right, BinaryOp) and isinstance(e.right.op, str) \
            and BINARY_OPS.get(e.right.op.lower(), ("",))[0] == token
        if rp < prec or (rp == prec and not (token in _ASSOCIATIVE and right_same_op)):
            rt = f"({rt})"
        return f"{lt} {token} {rt}", prec

    def _render_or_operand(self, x: Any) -> str:
        text, prec = self._render(x)
        return f"({text})" if prec < P_OR else text

    def _flatten(self, e: Any, op: str) -> List[Any]:
        if isinstance(e, BinaryOp) and isinstance(e.op, str) and e.op.lower() == op:
            return self._flatten(e.left, op) + self._flatten(e.right, op)
        return [e]

    def _unary(self, e: UnaryOp) -> Tuple[str, int]:
        key = e.op.lower() if isinstance(e.op, str) else e.op
        if key not in UNARY_OPS:
            raise ExpressionError(f"Unknown unary operator {e.op!r} in {e!r}", e)
        token = UNARY_OPS[key]
        text, prec = self._render(e.operand)
        if token == "NOT":
            return f"NOT ({text})", P_NOT
        if token == "-":
            if prec < P_NEG or text.startswith("-"):
                text = f"({text})"
            return f"-{text}", P_NEG
        if prec <= P_CMP:
            text = f"({text})"
        return f"{text} {token}", P_CMP

    def _call(self, e: Call) -> str:
        if not isinstance(e.name, str) or not _FUNC_NAME.match(e.name):
            raise ExpressionError(f"Invalid function name: {e.name!r}", e)
        args = [self.compile(a) for a in e.args]
        prefix = "DISTINCT " if e.distinct else ""
        return f"{e.name}({prefix}{', '.join(args)})"

    def _case(self, e: Case) -> str:
        if not e.whens:
            raise ExpressionError(f"CASE needs at least one WHEN branch: {e!r}", e)
        parts = ["CASE"]
        for branch in e.whens:
            try:
                cond, value = branch
            except (TypeError, ValueError):
                raise ExpressionError(f"CASE branch must be a (condition, value) pair: {branch!r}", e) from None
            parts.append(f"WHEN {self.compile(cond)} THEN {self.compile(value)}")
        if e.default is not None:
            parts.append(f"ELSE {self.compile(e.default)}")
        parts.append("END")
        return " ".join(parts)

    def _pattern_compiler(self):
        if self._patterns is None:
            from .patterns import PatternCompiler
            self._patterns = PatternCompiler(self)
        return self._patterns
