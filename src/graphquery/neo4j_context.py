from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from typing import TYPE_CHECKING

try:
    from neo4j import GraphDatabase
except Exception:  # pragma: no cover
    GraphDatabase = None  # type: ignore

from log_helper import LogHelper

from . import AccessMode, CompiledStatement
from .config import Neo4jSettings
from .query_compiler import QueryCompiler

if TYPE_CHECKING:
    from neo4j import Driver as Neo4jDriver
else:
    Neo4jDriver = Any

logger = LogHelper.get_logger("graphquery.neo4j")


class Neo4jContext:
    """Compiles queries and runs them through a managed neo4j transaction.

    READ statements go through `execute_read`, WRITE through `execute_write`,
    so the driver can route them and retry transient failures.
    """

    def __init__(self, uri: str, auth: Tuple[str, str], database: Optional[str] = None):
        if GraphDatabase is None:
            raise RuntimeError("neo4j driver not installed. pip install neo4j")
        self._driver: Neo4jDriver = GraphDatabase.driver(uri, auth=auth)
        self._database = database
        self._compiler = QueryCompiler()
        logger.debug("connected to %s (database=%s)", uri, database or "<default>")

    @classmethod
    def from_settings(cls, settings: Optional[Neo4jSettings] = None) -> "Neo4jContext":
        settings = settings or Neo4jSettings.from_env()
        return cls(settings.uri, settings.auth, settings.database)

    def close(self) -> None:
        self._driver.close()

    def __enter__(self) -> "Neo4jContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    def run(self, query: Any, params: Optional[Mapping[str, Any]] = None,
            access_mode: Optional[Union[AccessMode, str]] = None) -> List[Dict[str, Any]]:
        """Compile `query` (clause list, builder or comprehension) and execute it.

        `params` supplies values for parameters declared without one.
        """
        statement = self._compiler.compile(query, params, access_mode)
        return self.run_statement(statement)

    def run_statement(self, statement: CompiledStatement) -> List[Dict[str, Any]]:
        return self._execute(statement.text, dict(statement.parameters), statement.access_mode)

    def execute_cypher(self, cypher: str, params: Optional[Mapping[str, Any]] = None,
                       access_mode: Union[AccessMode, str] = AccessMode.READ) -> List[Dict[str, Any]]:
        mode = AccessMode(access_mode.lower() if isinstance(access_mode, str) else access_mode)
        return self._execute(cypher, dict(params or {}), mode)

    def _execute(self, cypher: str, params: Dict[str, Any], mode: AccessMode) -> List[Dict[str, Any]]:
        def work(tx):
            result = tx.run(cypher, params)
            return [r.data() for r in result]
        logger.debug("%s: %s", mode.value, cypher)
        if self._database:
            session = self._driver.session(database=self._database)
        else:
            session = self._driver.session()
        with session as s:
            if mode == AccessMode.WRITE:
                return s.execute_write(work)
            return s.execute_read(work)
