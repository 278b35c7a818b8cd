"""Record and query result models for tdingest.

Field and Table describe one row to persist and render the statements the
pipeline executes; ColumnMeta and QueryResult are the transport-independent
shape of a query response.
"""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    computed_field,
    field_validator,
    model_validator,
)

from tdingest.core.exceptions import InputError
from tdingest.core.types import format_value, is_renderable, normalize_type


class Field(BaseModel):
    """One named, typed value. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    value: Any = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise InputError("Field name must not be empty")
        return v.strip()

    @field_validator("type", mode="before")
    @classmethod
    def canonicalize_type(cls, v: Any) -> str:
        return normalize_type(v)

    @property
    def column_def(self) -> str:
        return f"{self.name} {self.type}"

    def sql_literal(self) -> str:
        return format_value(self.type, self.value)


class Table(BaseModel):
    """A row destined for one table.

    Built by the caller, read by the pipeline, then discarded. add_field()
    is not safe for concurrent use.
    """

    name: str
    database: str | None = None
    fields: list[Field] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise InputError("Table name must not be empty")
        return v.strip()

    @field_validator("database")
    @classmethod
    def strip_database(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @model_validator(mode="after")
    def check_fields(self) -> Table:
        seen: set[str] = set()
        for f in self.fields:
            key = f.name.lower()
            if key in seen:
                raise InputError(f"Duplicate field name: {f.name}", table=self.name, column=f.name)
            seen.add(key)
            self._check_renderable(f)
        return self

    def _check_renderable(self, field: Field) -> None:
        if not is_renderable(field.type, field.value):
            msg = f"Value {field.value!r} is not valid for {field.name} {field.type}"
            raise InputError(msg, table=self.name, column=field.name)

    def add_field(self, name_or_field: str | Field, type: str | None = None, value: Any = None) -> Table:
        """Append a field; chainable.

        Accepts a Field or ``(name, type, value)``. Rejects duplicate names
        (case-insensitive) and values that can never be rendered for the
        declared type.
        """
        if isinstance(name_or_field, Field):
            field = name_or_field
        else:
            field = Field(name=name_or_field, type=type, value=value)

        if self.get_field(field.name) is not None:
            msg = f"Duplicate field name: {field.name}"
            raise InputError(msg, table=self.name, column=field.name)
        self._check_renderable(field)
        self.fields.append(field)
        return self

    def get_field(self, name: str | None) -> Field | None:
        if name is None:
            return None
        wanted = name.lower()
        for f in self.fields:
            if f.name.lower() == wanted:
                return f
        return None

    def has_field(self, name: str | None) -> bool:
        return self.get_field(name) is not None

    def ensure_valid(self) -> None:
        """Raise InputError unless the table is ready for the pipeline."""
        if not self.fields:
            raise InputError("Table must contain at least one field", table=self.name)

    @property
    def full_name(self) -> str:
        if self.database:
            return f"{self.database}.{self.name}"
        return self.name

    def qualified_name(self, default_db: str | None = None) -> str:
        """full_name, falling back to default_db for bare table names."""
        if self.database or not default_db:
            return self.full_name
        return f"{default_db}.{self.name}"

    # -- SQL rendering --

    def create_sql(self, default_db: str | None = None) -> str:
        if not self.fields:
            raise InputError("At least one field is required to create a table", table=self.name)
        cols = ", ".join(f.column_def for f in self.fields)
        return f"CREATE TABLE IF NOT EXISTS {self.qualified_name(default_db)} ({cols})"

    def insert_fragment(self, default_db: str | None = None) -> str:
        """``<table> (<cols>) VALUES (<vals>)``; empty for a table without fields."""
        if not self.fields:
            return ""
        cols = ", ".join(f.name for f in self.fields)
        vals = ", ".join(f.sql_literal() for f in self.fields)
        return f"{self.qualified_name(default_db)} ({cols}) VALUES ({vals})"

    def insert_sql(self, default_db: str | None = None) -> str:
        fragment = self.insert_fragment(default_db)
        if not fragment:
            return ""
        return f"INSERT INTO {fragment}"

    def add_column_sql(self, field: Field, default_db: str | None = None) -> str:
        return f"ALTER TABLE {self.qualified_name(default_db)} ADD COLUMN {field.name} {field.type}"

    def drop_column_sql(self, field: Field, default_db: str | None = None) -> str:
        return f"ALTER TABLE {self.qualified_name(default_db)} DROP COLUMN {field.name}"


class ColumnMeta(BaseModel):
    """Metadata for a single result column."""

    name: str
    type: str | None = None
    length: int | None = None


class QueryResult(BaseModel):
    """Transport-independent result of a SQL statement."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    columns: list[ColumnMeta] = []
    rows: list[list[Any]] = []
    rows_affected: int | None = None

    @model_validator(mode="after")
    def check_row_widths(self) -> QueryResult:
        if self.columns:
            width = len(self.columns)
            for i, row in enumerate(self.rows):
                if len(row) > width:
                    msg = f"Row {i} has {len(row)} values but only {width} columns"
                    raise ValueError(msg)
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_names(self) -> list[str]:
        keys: list[str] = []
        seen: set[str] = set()
        taken = {col.name for col in self.columns if col.name}
        for i, col in enumerate(self.columns):
            name = col.name
            if not name or name in seen:
                name = f"col{i}"
                suffix = 1
                while name in seen or name in taken:
                    name = f"col{i}_{suffix}"
                    suffix += 1
            seen.add(name)
            keys.append(name)
        return keys

    def to_dicts(self) -> list[dict[str, Any]]:
        """One ordered name -> value mapping per row."""
        names = self.column_names
        result: list[dict[str, Any]] = []
        for row in self.rows:
            result.append(
                {
                    (names[i] if i < len(names) else f"col{i}"): value
                    for i, value in enumerate(row)
                }
            )
        return result
