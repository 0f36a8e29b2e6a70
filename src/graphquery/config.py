from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigurationError


@dataclass
class Neo4jSettings:
    uri: str
    username: str
    password: str
    database: str = "neo4j"

    @property
    def auth(self) -> Tuple[str, str]:
        return (self.username, self.password)

    @classmethod
    def from_env(cls, path: Optional[str] = ".env", prefix: str = "NEO4J_") -> "Neo4jSettings":
        """Read `{prefix}URI`, `USERNAME` (or `USER`), `PASSWORD`, `DATABASE`.

        A `.env` file at `path` is loaded first; variables already set in the
        environment are left alone.
        """
        if path:
            load_dotenv(path, override=False)
        uri = os.getenv(prefix + "URI")
        username = os.getenv(prefix + "USERNAME") or os.getenv(prefix + "USER")
        password = os.getenv(prefix + "PASSWORD")
        missing = [name for name, value in (("URI", uri), ("USERNAME", username), ("PASSWORD", password))
                   if not value]
        if missing:
            raise ConfigurationError(
                "Missing Neo4j connection settings: " + ", ".join(prefix + m for m in missing))
        return cls(uri, username, password, os.getenv(prefix + "DATABASE") or "neo4j")

    def __repr__(self) -> str:
        return f"Neo4jSettings(uri={self.uri!r}, username={self.username!r}, password='***', database={self.database!r})"
