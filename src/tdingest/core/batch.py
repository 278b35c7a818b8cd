"""Length-bounded multi-row inserts with per-record fallback.

Records are rendered to ``<table> (<cols>) VALUES (<vals>)`` fragments and
packed into ``INSERT INTO <f1>\\n<f2>...;`` statements no longer than
``max_sql_length`` characters. A chunk that fails for any classified reason
is replayed one record at a time through the SchemaHealer.

Batches are not atomic. Earlier chunks stay committed when a later one
fails, and replaying a partially applied chunk may insert some rows twice.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tdingest.core.config import MAX_SQL_LENGTH
from tdingest.core.exceptions import BatchInsertError, ClassifiedError, TdIngestError
from tdingest.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from tdingest.core.coercion import CoercionDetector
    from tdingest.core.healer import SchemaHealer
    from tdingest.core.models import Table
    from tdingest.core.transport.base import Transport

_PREFIX = "INSERT INTO "
_SEPARATOR = "\n"
_TERMINATOR = ";"


class _Chunk:
    """Fragments awaiting one multi-row statement."""

    def __init__(self) -> None:
        self.records: list[tuple[int, Table]] = []
        self.fragments: list[str] = []
        self.length = len(_PREFIX)

    def __bool__(self) -> bool:
        return bool(self.fragments)

    def fits(self, fragment: str, limit: int) -> bool:
        sep = len(_SEPARATOR) if self.fragments else 0
        return self.length + sep + len(fragment) + len(_TERMINATOR) <= limit

    def add(self, index: int, table: Table, fragment: str) -> None:
        if self.fragments:
            self.length += len(_SEPARATOR)
        self.length += len(fragment)
        self.fragments.append(fragment)
        self.records.append((index, table))

    def sql(self) -> str:
        return _PREFIX + _SEPARATOR.join(self.fragments) + _TERMINATOR


class BatchInserter:
    def __init__(
        self,
        transport: Transport,
        healer: SchemaHealer,
        detector: CoercionDetector,
        logger: Any | None = None,
        max_sql_length: int = MAX_SQL_LENGTH,
    ) -> None:
        self.transport = transport
        self.healer = healer
        self.detector = detector
        self.max_sql_length = max_sql_length
        self._log = logger or get_logger("tdingest.batch")

    def insert_many(self, tables: Iterable[Table]) -> int:
        """Insert records in as few statements as the length bound allows.

        Every record is validated and coercion-checked before anything is
        sent. Returns the number of records inserted. Raises
        BatchInsertError when a record still fails after its own retries.
        """
        records = list(tables)
        if not records:
            self._log.warning("insert_many called with no records")
            return 0

        for table in records:
            table.ensure_valid()
            self.detector.inspect(table)

        db = self.transport.database
        inserted = 0
        chunks = 0
        chunk = _Chunk()
        for index, table in enumerate(records):
            fragment = table.insert_fragment(db)
            if not fragment:
                continue
            if chunk and not chunk.fits(fragment, self.max_sql_length):
                inserted += self._flush(chunk, inserted)
                chunks += 1
                chunk = _Chunk()
            chunk.add(index, table, fragment)

        if chunk:
            inserted += self._flush(chunk, inserted)
            chunks += 1

        self._log.info("batch complete", records=len(records), inserted=inserted, chunks=chunks)
        return inserted

    def _flush(self, chunk: _Chunk, inserted_before: int) -> int:
        sql = chunk.sql()
        try:
            self.transport.execute(sql)
        except ClassifiedError as e:
            self._log.warning(
                "chunk insert failed, falling back to single-record inserts",
                records=len(chunk.records),
                kind=str(e.kind),
                error=e.message,
            )
            return self._degrade(chunk, inserted_before)
        self._log.debug("chunk inserted", records=len(chunk.records), length=len(sql))
        return len(chunk.records)

    def _degrade(self, chunk: _Chunk, inserted_before: int) -> int:
        done = 0
        for index, table in chunk.records:
            try:
                self.healer.insert(table)
            except TdIngestError as e:
                total = inserted_before + done
                msg = (
                    f"Batch insert failed at record {index} "
                    f"({total} inserted): {e.message}"
                )
                raise BatchInsertError(
                    msg, inserted=total, index=index, cause=e
                ) from e
            done += 1
        return done
