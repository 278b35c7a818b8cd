"""Transport interface shared by the REST and native-driver variants.

Both variants have identical external behavior: execute() returns on
success and raises a ClassifiedError otherwise, query() returns a
QueryResult. Classification happens once per transport.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from tdingest.core.exceptions import InputError, NotInitializedError
from tdingest.core.logging import get_logger

if TYPE_CHECKING:
    from tdingest.core.models import QueryResult


def normalize_sql(sql: str) -> str:
    """Collapse whitespace for logging and span names."""
    return " ".join(sql.split())


class Transport(ABC):
    """Executes SQL against one server endpoint."""

    kind: str = ""

    def __init__(self, logger: Any | None = None, debug: bool = True) -> None:
        self._log = logger or get_logger(f"tdingest.transport.{self.kind}")
        self._debug = debug
        self._open = False

    def __enter__(self) -> Transport:
        self.open()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def database(self) -> str | None:
        """Default database used to qualify bare table names, if known."""
        return None

    def open(self) -> None:
        if self._open:
            return
        self._do_open()
        self._open = True
        self._log.debug("transport ready", transport=self.kind)

    def close(self) -> None:
        if not self._open:
            return
        self._open = False
        self._do_close()
        self._log.debug("transport closed", transport=self.kind)

    def execute(self, sql: str) -> None:
        """Run a statement; raise ClassifiedError on failure."""
        self._execute(self._check(sql))

    def query(self, sql: str) -> QueryResult:
        """Run a statement and return its rows."""
        return self._query(self._check(sql))

    def ping(self) -> bool:
        try:
            self.query("SELECT SERVER_VERSION()")
        except Exception as e:
            self._log.debug("connection check failed", error=str(e))
            return False
        return True

    def _check(self, sql: str) -> str:
        if not self._open:
            raise NotInitializedError(f"{self.kind} transport is not initialized")
        if sql is None or not sql.strip():
            raise InputError("SQL must not be empty")
        return sql

    def _log_statement(self, sql: str) -> None:
        if self._debug:
            self._log.debug("executing statement", sql=normalize_sql(sql))

    @abstractmethod
    def _do_open(self) -> None: ...

    @abstractmethod
    def _do_close(self) -> None: ...

    @abstractmethod
    def _execute(self, sql: str) -> None: ...

    @abstractmethod
    def _query(self, sql: str) -> QueryResult: ...
