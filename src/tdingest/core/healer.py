"""Bounded-retry schema healing for single-record inserts.

Each insert is attempted up to ``max_attempts`` times. Between attempts a
classified failure selects a repair:

    TableNotExist       CREATE TABLE IF NOT EXISTS with every field
    ColumnNotExist      ADD COLUMN for the named column, else for every field
    ColumnTypeMismatch  DROP + ADD every field with its declared type

Any other kind propagates unchanged. A failing CREATE TABLE aborts the
operation; column repairs are best-effort and only logged on failure.
Attempts and repairs run strictly in sequence.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tdingest.core.config import MAX_ATTEMPTS
from tdingest.core.exceptions import ClassifiedError, ErrorKind, InsertFailedError
from tdingest.core.logging import get_logger

if TYPE_CHECKING:
    from tdingest.core.models import Table
    from tdingest.core.transport.base import Transport


class SchemaHealer:
    def __init__(
        self,
        transport: Transport,
        max_attempts: int = MAX_ATTEMPTS,
        logger: Any | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be positive, got {max_attempts}")
        self.transport = transport
        self.max_attempts = max_attempts
        self._log = logger or get_logger("tdingest.healer")

    def insert(self, table: Table, sql: str | None = None) -> int:
        """Insert one record, repairing the schema between attempts.

        Returns the number of attempts it took. Raises InsertFailedError
        once the attempts are exhausted.
        """
        db = self.transport.database
        if sql is None:
            sql = table.insert_sql(db)
        name = table.qualified_name(db)

        last_error: ClassifiedError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                self.transport.execute(sql)
            except ClassifiedError as e:
                last_error = e
                self._log.debug(
                    "insert failed",
                    table=name,
                    attempt=f"{attempt}/{self.max_attempts}",
                    kind=str(e.kind),
                    error=e.message,
                )
                if not e.is_schema_error:
                    raise
                if attempt < self.max_attempts:
                    self.heal(table, e)
                continue
            self._log.debug("record inserted", table=name, attempts=attempt)
            return attempt

        assert last_error is not None
        msg = (
            f"Insert into {name} failed after {self.max_attempts} attempts: "
            f"{last_error.message}"
        )
        raise InsertFailedError(
            msg, attempts=self.max_attempts, last_error=last_error, table=name
        ) from last_error

    def heal(self, table: Table, error: ClassifiedError) -> None:
        """Apply the repair matching the error kind."""
        if error.kind is ErrorKind.TABLE_NOT_EXIST:
            self._create_table(table)
        elif error.kind is ErrorKind.COLUMN_NOT_EXIST:
            self._add_missing_columns(table, error)
        elif error.kind is ErrorKind.COLUMN_TYPE_MISMATCH:
            self._replace_columns(table, error)

    def _create_table(self, table: Table) -> None:
        db = self.transport.database
        name = table.qualified_name(db)
        self._log.info("table does not exist, creating", table=name)
        self.transport.execute(table.create_sql(db))
        self._log.info("table created", table=name)

    def _add_missing_columns(self, table: Table, error: ClassifiedError) -> None:
        db = self.transport.database
        name = table.qualified_name(db)
        missing = error.missing_column
        self._log.info("column does not exist", table=name, column=missing, error=error.message)

        if missing:
            field = table.get_field(missing.strip())
            if field is not None:
                try:
                    self.transport.execute(table.add_column_sql(field, db))
                except ClassifiedError as e:
                    self._log.debug(
                        "adding missing column failed, adding all columns",
                        column=field.name,
                        error=e.message,
                    )
                else:
                    self._log.info("column added", table=name, column=field.name)
                    return
            else:
                self._log.warning(
                    "missing column not among record fields, adding all columns",
                    table=name,
                    column=missing,
                )
        else:
            self._log.debug("missing column not named in error, adding all columns", table=name)

        for field in table.fields:
            try:
                self.transport.execute(table.add_column_sql(field, db))
            except ClassifiedError as e:
                self._log.debug("add column skipped (may already exist)", column=field.name, error=e.message)
        self._log.info("columns added", table=name, count=len(table.fields))

    def _replace_columns(self, table: Table, error: ClassifiedError) -> None:
        db = self.transport.database
        name = table.qualified_name(db)
        self._log.info("column type mismatch, replacing columns", table=name, error=error.message)
        for field in table.fields:
            try:
                self.transport.execute(table.drop_column_sql(field, db))
                self.transport.execute(table.add_column_sql(field, db))
            except ClassifiedError as e:
                self._log.debug("replace column failed", column=field.name, error=e.message)
        self._log.info("column types replaced", table=name)
