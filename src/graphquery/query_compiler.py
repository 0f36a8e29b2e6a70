from __future__ import annotations
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from log_helper import LogHelper

from . import (
    AccessMode, CompiledStatement, Comprehension, Clause,
    NodeRef, Property, Param, Var, Alias, OrderItem, Assign, all_of,
    Match, OptionalMatch, Where, Return, With, Unwind, Create, Merge, Set,
    Remove, Delete, DetachDelete, OrderBy, Skip, Limit, OnCreateSet,
    OnMatchSet, Union as UnionClause, UnionAll, CallSubquery, LoadCsv,
    LoadCsvHeaders, Foreach, CreateIndex, DropIndex, CreateConstraint,
    DropConstraint,
)
from .access_mode import infer_access_mode
from .comprehension import desugar
from .errors import ClauseError
from .expressions import ExpressionCompiler, quote_identifier, string_literal
from .params import ParameterRegistry
from .patterns import PatternCompiler

logger = LogHelper.get_logger("graphquery.compiler")

_DIRECTIONS = {"asc": "ASC", "ascending": "ASC", "desc": "DESC", "descending": "DESC"}
_CONSTRAINT_KINDS = {"unique": "unique", "not_null": "not_null", "notnull": "not_null"}

_DDL = (CreateIndex, DropIndex, CreateConstraint, DropConstraint)
_UNIONS = (UnionClause, UnionAll)
_FOREACH_BODY = (Create, Merge, Set, Assign, Delete, DetachDelete, Remove, Foreach)


class _Pass:
    """Per-compile state shared by the whole clause tree, nested bodies included."""
    def __init__(self) -> None:
        self.registry = ParameterRegistry()
        self.expressions = ExpressionCompiler(self.registry)
        self.patterns = PatternCompiler(self.expressions)


class QueryCompiler:
    """Clause list -> `CompiledStatement(text, parameters, access_mode)`.

    Stateless between calls; every `compile()` owns a fresh registry.
    """

    def __init__(self) -> None:
        self._handlers: Dict[type, Callable[[Any, _Pass], str]] = {
            Match: self._match,
            OptionalMatch: self._optional_match,
            Where: self._where,
            Return: self._return,
            With: self._with,
            Unwind: self._unwind,
            Create: self._create,
            Merge: self._merge,
            Remove: self._remove,
            Delete: self._delete,
            DetachDelete: self._detach_delete,
            OrderBy: self._order_by,
            Skip: self._skip,
            Limit: self._limit,
            OnCreateSet: self._on_create_set,
            OnMatchSet: self._on_match_set,
            UnionClause: lambda c, p: "UNION",
            UnionAll: lambda c, p: "UNION ALL",
            CallSubquery: self._call_subquery,
            LoadCsv: self._load_csv,
            LoadCsvHeaders: self._load_csv,
            Foreach: self._foreach,
            CreateIndex: self._create_index,
            DropIndex: self._drop_index,
            CreateConstraint: self._create_constraint,
            DropConstraint: self._drop_constraint,
        }

    # ---- public ----
    def compile(self, query: Any, parameters: Optional[Mapping[str, Any]] = None,
                access_mode: Optional[Union[AccessMode, str]] = None) -> CompiledStatement:
        clauses = self.clauses_of(query)
        self.validate(clauses)
        p = _Pass()
        text = self._assemble(clauses, p)
        params = p.registry.finalize(parameters)
        mode = infer_access_mode(clauses, access_mode)
        logger.verbose("compiled (%s): %s", mode.value, text)
        logger.debug("%d parameter(s): %s", len(params), ", ".join(params))
        return CompiledStatement(text, params, mode)

    def to_cypher(self, query: Any, parameters: Optional[Mapping[str, Any]] = None) -> Tuple[str, Dict[str, Any]]:
        st = self.compile(query, parameters)
        return st.text, st.parameters

    @staticmethod
    def clauses_of(query: Any) -> List[Any]:
        if isinstance(query, Comprehension):
            return desugar(query)
        if hasattr(query, "clauses") and not isinstance(query, (Clause, list, tuple)):
            return list(query.clauses)
        if isinstance(query, (list, tuple)):
            return list(query)
        if isinstance(query, (Clause, Assign)):
            return [query]
        raise ClauseError(f"Cannot compile {type(query).__name__}: expected a clause list, "
                          "a Cypher builder or a Comprehension", query)

    # ---- validation (runs before any text is produced) ----
    def validate(self, clauses: Sequence[Any], scope: str = "statement") -> None:
        if isinstance(clauses, (str, bytes)) or not isinstance(clauses, (list, tuple)):
            raise ClauseError(f"Expected a list of clauses in {scope}, got: {clauses!r}", clauses)
        if not clauses:
            raise ClauseError(f"Empty clause list in {scope}", clauses)

        for i, c in enumerate(clauses):
            kind = _kind(c)
            if not isinstance(c, Assign) and type(c) not in self._handlers and type(c) is not Set:
                raise ClauseError(f"Unknown clause kind at position {i}: {kind}", c)
            if scope == "foreach" and not isinstance(c, _FOREACH_BODY):
                raise ClauseError(
                    f"Only mutation clauses allowed in FOREACH body "
                    f"(Create, Merge, Set, Delete, DetachDelete, Remove, Foreach), got {kind} at position {i}", c)
            if isinstance(c, _DDL):
                if scope != "statement":
                    raise ClauseError(f"{kind} is not allowed inside a {scope}", c)
                if len(clauses) > 1:
                    raise ClauseError(f"{kind} must be compiled as a statement of its own", c)
            if isinstance(c, (OnCreateSet, OnMatchSet)):
                prev = clauses[i - 1] if i > 0 else None
                if not isinstance(prev, (Merge, OnCreateSet, OnMatchSet)):
                    raise ClauseError(f"{kind} at position {i} must directly follow a Merge", c)
            if isinstance(c, _UNIONS):
                if i == 0 or i == len(clauses) - 1:
                    raise ClauseError(f"{kind} at position {i} needs a query on both sides", c)
                if isinstance(clauses[i - 1], _UNIONS):
                    raise ClauseError(f"Two set operations in a row at position {i}", c)
            if isinstance(c, CallSubquery):
                self.validate(_body(c), "subquery")
            if isinstance(c, Foreach):
                self.validate(_body(c), "foreach")

        unions = {type(c) for c in clauses if isinstance(c, _UNIONS)}
        if len(unions) > 1:
            raise ClauseError(f"Cannot mix UNION and UNION ALL in one {scope}", clauses)

    # ---- assembly ----
    def _assemble(self, clauses: Sequence[Any], p: _Pass) -> str:
        parts: List[str] = []
        pending_set: List[str] = []

        def flush_set() -> None:
            if pending_set:
                parts.append("SET " + ", ".join(pending_set))
                pending_set.clear()

        for i, c in enumerate(clauses):
            if isinstance(c, (Set, Assign)):
                pending_set.extend(self._assignments(c, p))
                continue
            flush_set()
            handler = self._handlers.get(type(c))
            if handler is None:
                raise ClauseError(f"Unknown clause kind at position {i}: {_kind(c)}", c)
            parts.append(handler(c, p))
        flush_set()
        return " ".join(parts)

    def _assignments(self, c: Any, p: _Pass) -> List[str]:
        if isinstance(c, Assign):
            return [p.expressions.compile_assignment(c)]
        items = _as_list(c.assignments)
        if not items:
            raise ClauseError(f"{_kind(c)} needs at least one property assignment", c)
        out: List[str] = []
        for a in items:
            if isinstance(a, tuple) and len(a) == 2:
                a = Assign(a[0], a[1])
            if not isinstance(a, Assign):
                raise ClauseError(
                    f"Expected property assignment (Assign or (property, value) pair) in {_kind(c)}, got: {a!r}", c)
            out.append(p.expressions.compile_assignment(a))
        return out

    # ---- reading ----
    def _match(self, c: Match, p: _Pass) -> str:
        return "MATCH " + self._patterns(c, c.patterns, p)

    def _optional_match(self, c: OptionalMatch, p: _Pass) -> str:
        return "OPTIONAL MATCH " + self._patterns(c, c.patterns, p)

    def _where(self, c: Where, p: _Pass) -> str:
        conds = _as_list(c.conditions)
        if not conds:
            raise ClauseError("Where needs at least one condition", c)
        # several conditions are AND-ed
        return "WHERE " + p.expressions.compile(all_of(*conds))

    def _return(self, c: Return, p: _Pass) -> str:
        items = _as_list(c.items)
        body = self._projection(c, items, p) if items else "*"
        return ("RETURN DISTINCT " if c.distinct else "RETURN ") + body

    def _with(self, c: With, p: _Pass) -> str:
        items = _as_list(c.items)
        if not items:
            raise ClauseError("With needs at least one projection item", c)
        return ("WITH DISTINCT " if c.distinct else "WITH ") + self._projection(c, items, p)

    def _unwind(self, c: Unwind, p: _Pass) -> str:
        return f"UNWIND {p.expressions.compile(c.source)} AS {_alias(c, c.alias)}"

    def _order_by(self, c: OrderBy, p: _Pass) -> str:
        items = _as_list(c.items)
        if not items:
            raise ClauseError("OrderBy needs at least one expression", c)
        parts: List[str] = []
        i = 0
        while i < len(items):
            item = items[i]
            if _is_direction(item):
                raise ClauseError(
                    f"Direction marker {item!r} at position {i} does not follow an expression", c)
            if isinstance(item, OrderItem):
                d = item.direction
                if not _is_direction(d):
                    raise ClauseError(f"Unknown sort direction {d!r} in {item!r}", c)
                parts.append(f"{p.expressions.compile(_as_expr(item.expr))} {_DIRECTIONS[d.lower()]}")
                i += 1
                continue
            text = p.expressions.compile(_as_expr(item))
            if i + 1 < len(items) and _is_direction(items[i + 1]):
                parts.append(f"{text} {_DIRECTIONS[items[i + 1].lower()]}")
                i += 2
            else:
                parts.append(text)
                i += 1
        return "ORDER BY " + ", ".join(parts)

    def _skip(self, c: Skip, p: _Pass) -> str:
        return "SKIP " + self._count(c, c.value, p)

    def _limit(self, c: Limit, p: _Pass) -> str:
        return "LIMIT " + self._count(c, c.value, p)

    def _load_csv(self, c: Union[LoadCsv, LoadCsvHeaders], p: _Pass) -> str:
        head = "LOAD CSV WITH HEADERS FROM " if isinstance(c, LoadCsvHeaders) else "LOAD CSV FROM "
        if isinstance(c.source, str):
            src = string_literal(c.source)
        elif isinstance(c.source, Param):
            src = p.expressions.compile(c.source)
        else:
            raise ClauseError(f"{_kind(c)} source must be a URL string or a Param, got: {c.source!r}", c)
        out = f"{head}{src} AS {_alias(c, c.alias)}"
        if c.field_terminator is not None:
            if not isinstance(c.field_terminator, str) or len(c.field_terminator) != 1:
                raise ClauseError(f"FIELDTERMINATOR must be one character, got: {c.field_terminator!r}", c)
            out += " FIELDTERMINATOR " + string_literal(c.field_terminator)
        return out

    # ---- writing ----
    def _create(self, c: Create, p: _Pass) -> str:
        return "CREATE " + self._patterns(c, c.patterns, p)

    def _merge(self, c: Merge, p: _Pass) -> str:
        patterns = _as_list(c.pattern)
        if len(patterns) != 1:
            raise ClauseError(f"Merge takes exactly one pattern, got {len(patterns)}", c)
        return "MERGE " + p.patterns.compile(patterns[0])

    def _on_create_set(self, c: OnCreateSet, p: _Pass) -> str:
        return "ON CREATE SET " + ", ".join(self._assignments(c, p))

    def _on_match_set(self, c: OnMatchSet, p: _Pass) -> str:
        return "ON MATCH SET " + ", ".join(self._assignments(c, p))

    def _remove(self, c: Remove, p: _Pass) -> str:
        items = _as_list(c.items)
        if not items:
            raise ClauseError("Remove needs at least one item", c)
        parts: List[str] = []
        for it in items:
            if isinstance(it, Property):
                parts.append(p.expressions.compile(it))
            elif isinstance(it, NodeRef) and it.name and it.label:
                parts.append(f"{quote_identifier(it.name)}:{quote_identifier(it.label)}")
            else:
                raise ClauseError(f"Remove expects properties or NodeRef(name, label), got: {it!r}", c)
        return "REMOVE " + ", ".join(parts)

    def _delete(self, c: Delete, p: _Pass) -> str:
        return "DELETE " + self._targets(c, p)

    def _detach_delete(self, c: DetachDelete, p: _Pass) -> str:
        return "DETACH DELETE " + self._targets(c, p)

    # ---- nested bodies ----
    def _call_subquery(self, c: CallSubquery, p: _Pass) -> str:
        return "CALL { " + self._assemble(_body(c), p) + " }"

    def _foreach(self, c: Foreach, p: _Pass) -> str:
        source = p.expressions.compile(c.source)
        body = self._assemble(_body(c), p)
        return f"FOREACH ({_alias(c, c.binding)} IN {source} | {body})"

    # ---- schema ----
    def _create_index(self, c: CreateIndex, p: _Pass) -> str:
        label = _alias(c, c.label)
        props = ", ".join(f"n.{quote_identifier(x)}" for x in _property_names(c))
        head = "CREATE INDEX"
        if c.name is not None:
            head += " " + _alias(c, c.name)
        if c.if_not_exists:
            head += " IF NOT EXISTS"
        return f"{head} FOR (n:{label}) ON ({props})"

    def _drop_index(self, c: DropIndex, p: _Pass) -> str:
        return f"DROP INDEX {_alias(c, c.name)} IF EXISTS"

    def _create_constraint(self, c: CreateConstraint, p: _Pass) -> str:
        kind = _CONSTRAINT_KINDS.get(str(c.constraint).lower())
        if kind is None:
            raise ClauseError(
                f"Unsupported constraint type: {c.constraint!r}. Expected 'unique' or 'not_null'", c)
        label = _alias(c, c.label)
        props = [f"n.{quote_identifier(x)}" for x in _property_names(c)]
        head = "CREATE CONSTRAINT"
        if c.name is not None:
            head += " " + _alias(c, c.name)
        if c.if_not_exists:
            head += " IF NOT EXISTS"
        if kind == "not_null":
            if len(props) != 1:
                raise ClauseError("A not_null constraint covers exactly one property", c)
            return f"{head} FOR (n:{label}) REQUIRE {props[0]} IS NOT NULL"
        target = props[0] if len(props) == 1 else "(" + ", ".join(props) + ")"
        return f"{head} FOR (n:{label}) REQUIRE {target} IS UNIQUE"

    def _drop_constraint(self, c: DropConstraint, p: _Pass) -> str:
        return f"DROP CONSTRAINT {_alias(c, c.name)} IF EXISTS"

    # ---- shared pieces ----
    def _patterns(self, c: Any, patterns: Any, p: _Pass) -> str:
        items = _as_list(patterns)
        if not items:
            raise ClauseError(f"{_kind(c)} needs at least one pattern", c)
        return p.patterns.compile_many(items)

    def _projection(self, c: Any, items: Sequence[Any], p: _Pass) -> str:
        parts: List[str] = []
        for it in items:
            if isinstance(it, Alias):
                parts.append(f"{p.expressions.compile(_as_expr(it.expr))} AS {_alias(c, it.alias)}")
            else:
                parts.append(p.expressions.compile(_as_expr(it)))
        return ", ".join(parts)

    def _targets(self, c: Any, p: _Pass) -> str:
        items = _as_list(c.items)
        if not items:
            raise ClauseError(f"{_kind(c)} needs at least one item", c)
        return ", ".join(p.expressions.compile(_as_expr(x)) for x in items)

    def _count(self, c: Any, value: Any, p: _Pass) -> str:
        if isinstance(value, int) and not isinstance(value, bool):
            if value < 0:
                raise ClauseError(f"{_kind(c)} must not be negative, got {value}", c)
            return str(value)
        if isinstance(value, Param):
            return p.expressions.compile(value)
        raise ClauseError(f"{_kind(c).upper()} expects an integer or a Param, got: {value!r}", c)


# ---- helpers ----
def _kind(c: Any) -> str:
    if isinstance(c, Assign):
        return "Set"
    return getattr(c, "kind", None) or type(c).__name__


def _as_list(x: Any) -> List[Any]:
    if x is None:
        return []
    if isinstance(x, (list, tuple)):
        return list(x)
    return [x]


def _as_expr(x: Any) -> Any:
    # names in projection / delete / ordering positions are variables
    return Var(x) if isinstance(x, str) else x


def _is_direction(x: Any) -> bool:
    return isinstance(x, str) and x.lower() in _DIRECTIONS


def _alias(c: Any, name: Any) -> str:
    if not isinstance(name, str) or not name:
        raise ClauseError(f"{_kind(c)} expects a non-empty name, got: {name!r}", c)
    return quote_identifier(name)


def _body(c: Any) -> List[Any]:
    body = c.body
    if isinstance(body, (list, tuple)):
        return list(body)
    if hasattr(body, "clauses"):
        return list(body.clauses)
    raise ClauseError(f"{_kind(c)} body must be a list of clauses, got: {body!r}", c)


def _property_names(c: Any) -> List[str]:
    names = _as_list(c.properties)
    if not names:
        raise ClauseError(f"{_kind(c)} needs at least one property", c)
    for n in names:
        if not isinstance(n, str) or not n:
            raise ClauseError(f"{_kind(c)} property names must be strings, got: {n!r}", c)
    return names
