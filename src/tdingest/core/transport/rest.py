"""REST transport: raw SQL over HTTP POST.

Each statement is posted as plain text to ``<base>/sql`` with Basic auth.
The JSON body carries ``status``/``code``/``desc`` for the outcome and
``column_meta``/``data``/``rows`` for results.
"""

from __future__ import annotations

import base64
import time
from typing import TYPE_CHECKING, Any

import requests
import sentry_sdk

from tdingest.core.exceptions import (
    ClassifiedError,
    ErrorKind,
    InputError,
    NetworkError,
    TimeoutError,
)
from tdingest.core.result import from_rest_payload
from tdingest.core.transport.base import Transport, normalize_sql

if TYPE_CHECKING:
    from tdingest.core.models import QueryResult

TABLE_NOT_EXIST_CODE = 9731
COLUMN_NOT_EXIST_CODE = 9730

_COLUMN_NOT_EXIST_PHRASES = ("column does not exist", "invalid column name", "unknown column")
_TYPE_MISMATCH_PHRASES = ("data type mismatch", "type mismatch")

DB_NOT_SPECIFIED_HINT = (
    "Specify the database in the URL path (rest://host:6041/<db>), "
    "as a query parameter (?db=<db>), with a qualified table name "
    "(<db>.<table>), or run 'USE <db>' first."
)


def classify_rest_failure(code: Any, desc: str | None) -> ErrorKind:
    """Map a REST error code and description to an ErrorKind.

    Known codes win; otherwise the description is matched
    case-insensitively.
    """
    d = (desc or "").lower()
    if code == TABLE_NOT_EXIST_CODE or "table does not exist" in d:
        return ErrorKind.TABLE_NOT_EXIST
    if code == COLUMN_NOT_EXIST_CODE or any(p in d for p in _COLUMN_NOT_EXIST_PHRASES):
        return ErrorKind.COLUMN_NOT_EXIST
    if any(p in d for p in _TYPE_MISMATCH_PHRASES):
        return ErrorKind.COLUMN_TYPE_MISMATCH
    if "db is not specified" in d:
        return ErrorKind.DB_NOT_SPECIFIED
    return ErrorKind.GENERIC_SQL_ERROR


def _succeeded(body: dict[str, Any]) -> bool:
    if body.get("status") == "succ":
        return True
    code = body.get("code")
    return isinstance(code, int) and not isinstance(code, bool) and code == 0


def basic_auth_header(user: str, password: str) -> str:
    token = base64.b64encode(f"{user}:{password}".encode()).decode("ascii")
    return f"Basic {token}"


class RestTransport(Transport):
    """Blocking HTTP transport built on a requests Session."""

    kind = "rest"

    def __init__(
        self,
        base_url: str,
        user: str,
        password: str,
        *,
        database: str | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        logger: Any | None = None,
        debug: bool = True,
    ) -> None:
        if not base_url or not base_url.strip():
            raise InputError("REST base URL must not be empty")
        super().__init__(logger=logger, debug=debug)
        self.endpoint = base_url.strip().rstrip("/") + "/sql"
        self.timeout = timeout
        self._database = database
        self._auth = basic_auth_header(user, password)
        self._session = session
        self._owns_session = session is None

    @property
    def database(self) -> str | None:
        return self._database

    def _do_open(self) -> None:
        if self._session is None:
            self._session = requests.Session()

    def _do_close(self) -> None:
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def _execute(self, sql: str) -> None:
        self._post(sql)

    def _query(self, sql: str) -> QueryResult:
        return from_rest_payload(self._post(sql))

    def _post(self, sql: str) -> dict[str, Any]:
        self._log_statement(sql)
        headers = {
            "Authorization": self._auth,
            "Content-Type": "text/plain; charset=UTF-8",
        }
        params = {"db": self._database} if self._database else None

        with sentry_sdk.start_span(
            op="db.query", name=normalize_sql(sql)[:100]
        ) as span:
            span.set_data("transport", self.kind)
            start_time = time.monotonic()
            try:
                response = self._session.post(
                    self.endpoint,
                    data=sql.encode("utf-8"),
                    headers=headers,
                    params=params,
                    timeout=self.timeout,
                )
            except requests.Timeout as e:
                span.set_status("deadline_exceeded")
                msg = f"REST request timed out after {self.timeout}s: {e}"
                raise TimeoutError(msg, cause=e) from e
            except requests.RequestException as e:
                span.set_status("unavailable")
                msg = f"REST connection to {self.endpoint} failed: {e}"
                raise NetworkError(msg, cause=e) from e

            duration_ms = (time.monotonic() - start_time) * 1000
            span.set_data("duration_ms", duration_ms)
            span.set_data("http_status", response.status_code)

            try:
                body = response.json()
            except ValueError as e:
                span.set_status("internal_error")
                snippet = (response.text or "")[:200]
                msg = f"REST response is not JSON (HTTP {response.status_code}): {snippet}"
                raise ClassifiedError(msg, ErrorKind.GENERIC_SQL_ERROR, cause=e) from e

            if not isinstance(body, dict):
                span.set_status("internal_error")
                msg = f"Unexpected REST response (HTTP {response.status_code}): {body!r}"
                raise ClassifiedError(msg, ErrorKind.GENERIC_SQL_ERROR)

            if response.status_code == 200 and _succeeded(body):
                self._log.debug(
                    "statement complete",
                    duration_ms=f"{duration_ms:.1f}",
                    rows=body.get("rows"),
                )
                return body

            span.set_status("internal_error")
            raise self._failure(response.status_code, body)

    def _failure(self, http_status: int, body: dict[str, Any]) -> ClassifiedError:
        code = body.get("code")
        desc = body.get("desc") or body.get("message") or f"HTTP {http_status}"
        kind = classify_rest_failure(code, desc)
        if kind is ErrorKind.DB_NOT_SPECIFIED:
            msg = f"Database not specified: {desc}. {DB_NOT_SPECIFIED_HINT}"
        else:
            msg = f"REST SQL failed (code {code}): {desc}"
        self._log.debug("statement failed", kind=str(kind), code=code, desc=desc)
        return ClassifiedError(msg, kind)
