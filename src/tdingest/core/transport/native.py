"""Native-driver transport over a DB-API 2.0 connection.

The default driver is taospy (``import taos``), loaded on open() so the
package imports without the native client library installed. Any module
exposing ``connect(**kwargs)`` and an ``Error`` base class works.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import sentry_sdk

from tdingest.core.exceptions import (
    ClassifiedError,
    ConnectionInitError,
    ErrorKind,
    InputError,
    NetworkError,
)
from tdingest.core.pool import ConnectionPool
from tdingest.core.result import from_cursor
from tdingest.core.transport.base import Transport, normalize_sql

if TYPE_CHECKING:
    from tdingest.core.models import QueryResult

_DRIVER_PHRASES: tuple[tuple[str, ErrorKind], ...] = (
    ("table does not exist", ErrorKind.TABLE_NOT_EXIST),
    ("column does not exist", ErrorKind.COLUMN_NOT_EXIST),
    ("data type mismatch", ErrorKind.COLUMN_TYPE_MISMATCH),
)


def classify_driver_error(exc: BaseException) -> ErrorKind:
    """Map a driver error to an ErrorKind by its lower-cased message."""
    message = str(exc).lower()
    for phrase, kind in _DRIVER_PHRASES:
        if phrase in message:
            return kind
    return ErrorKind.GENERIC_SQL_ERROR


def load_default_driver() -> Any:
    try:
        import taos
    except ImportError as e:
        msg = (
            "Native driver 'taospy' is not available. "
            "Install it with: pip install 'tdingest[native]'"
        )
        raise ConnectionInitError(msg, cause=e) from e
    return taos


class NativeTransport(Transport):
    """Driver-backed transport with one cached connection per thread."""

    kind = "native"

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        *,
        database: str | None = None,
        driver: Any | None = None,
        binary_as_string: bool = False,
        logger: Any | None = None,
        debug: bool = True,
    ) -> None:
        if not host or not host.strip():
            raise InputError("Native connection host must not be empty")
        super().__init__(logger=logger, debug=debug)
        self.host = host.strip()
        self.port = port
        self.connect_database = database
        self.binary_as_string = binary_as_string
        self._user = user
        self._password = password
        self._driver = driver
        self._pool = ConnectionPool(self._connect, logger=self._log)

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    def _connect(self) -> Any:
        kwargs: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "user": self._user,
            "password": self._password,
        }
        if self.connect_database:
            kwargs["database"] = self.connect_database
        try:
            return self._driver.connect(**kwargs)
        except Exception as e:
            msg = f"Connection failed to {self.host}:{self.port}: {e}"
            raise NetworkError(msg, cause=e) from e

    def _do_open(self) -> None:
        if self._driver is None:
            self._driver = load_default_driver()
        try:
            with self._pool.acquire():
                pass
        except NetworkError as e:
            raise ConnectionInitError(e.message, cause=e.cause) from e
        self._log.debug("native connection test succeeded", host=self.host, port=self.port)

    def _do_close(self) -> None:
        self._pool.close_all()

    def _execute(self, sql: str) -> None:
        self._run(sql, fetch=False)

    def _query(self, sql: str) -> QueryResult:
        result = self._run(sql, fetch=True)
        assert result is not None
        return result

    def _run(self, sql: str, *, fetch: bool) -> QueryResult | None:
        self._log_statement(sql)
        with (
            sentry_sdk.start_span(
                op="db.query", name=normalize_sql(sql)[:100]
            ) as span,
            self._pool.acquire() as conn,
        ):
            span.set_data("transport", self.kind)
            start_time = time.monotonic()
            try:
                cursor = conn.cursor()
            except self._driver.Error as e:
                span.set_status("unavailable")
                self._pool.discard()
                raise NetworkError(f"Native connection unusable: {e}", cause=e) from e

            try:
                cursor.execute(sql)
                description = cursor.description if fetch else None
                rows = cursor.fetchall() if description else []
                rowcount = getattr(cursor, "rowcount", None)
            except self._driver.Error as e:
                span.set_status("internal_error")
                kind = classify_driver_error(e)
                self._log.debug("statement failed", kind=str(kind), error=str(e))
                raise ClassifiedError(f"Native SQL failed: {e}", kind, cause=e) from e
            finally:
                self._close_cursor(cursor)

            duration_ms = (time.monotonic() - start_time) * 1000
            span.set_data("duration_ms", duration_ms)
            self._log.debug("statement complete", duration_ms=f"{duration_ms:.1f}")

        if not fetch:
            return None
        return from_cursor(
            description,
            rows,
            binary_as_string=self.binary_as_string,
            rows_affected=rowcount if isinstance(rowcount, int) else None,
        )

    def _close_cursor(self, cursor: Any) -> None:
        try:
            cursor.close()
        except self._driver.Error as e:
            self._log.warning("failed to close cursor", error=str(e))
