"""TDengine ingestion client.

A TdClient owns one opened transport together with the coercion detector,
schema healer and batch inserter that run on top of it. Build one through
the factories, which validate their inputs once:

    with TdClient.from_url("rest://localhost:6041/power") as client:
        client.insert(Table(name="meters").add_field("ts", "t", now))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tdingest.core.batch import BatchInserter
from tdingest.core.coercion import CoercionDetector
from tdingest.core.config import ClientConfig
from tdingest.core.exceptions import ClientClosedError, ConfigError, InputError
from tdingest.core.healer import SchemaHealer
from tdingest.core.logging import get_logger
from tdingest.core.transport import build_transport

if TYPE_CHECKING:
    from collections.abc import Iterable

    from tdingest.core.models import QueryResult, Table
    from tdingest.core.transport.base import Transport

# Keyword arguments of the factories that are not ClientConfig fields.
_INJECTED = ("session", "driver", "logger")


def _split_kwargs(kwargs: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    injected = {k: kwargs.pop(k) for k in _INJECTED if k in kwargs}
    unknown = set(kwargs) - set(ClientConfig.model_fields)
    if unknown:
        names = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown client option(s): {names}")
    return kwargs, injected


class TdClient:
    """Insert and query through one transport."""

    def __init__(
        self,
        transport: Transport,
        config: ClientConfig | None = None,
        logger: Any | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.transport = transport
        self._log = logger or get_logger("tdingest.client")
        self.detector = CoercionDetector(
            strict=self.config.strict_type_check, logger=logger
        )
        self.healer = SchemaHealer(
            transport, max_attempts=self.config.max_attempts, logger=logger
        )
        self.batcher = BatchInserter(
            transport,
            self.healer,
            self.detector,
            logger=logger,
            max_sql_length=self.config.max_sql_length,
        )
        self._closed = False

    # -- factories ---------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        session: Any | None = None,
        driver: Any | None = None,
        logger: Any | None = None,
    ) -> TdClient:
        """Build, open and wrap the transport selected by ``config``."""
        transport = build_transport(
            config, logger=logger, session=session, driver=driver
        )
        transport.open()
        log = logger or get_logger("tdingest.client")
        log.debug(
            "client ready",
            transport=config.transport,
            host=config.host,
            port=config.effective_port,
            database=config.database,
        )
        return cls(transport, config, logger=logger)

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> TdClient:
        """Connect using a rest://, http(s)://, taos:// or jdbc:TAOS URL.

        Remaining keyword arguments override ClientConfig fields, except
        ``session``, ``driver`` and ``logger`` which are handed to the
        transport.
        """
        if url is None or not url.strip():
            raise InputError("Connection URL must not be empty")
        overrides, injected = _split_kwargs(kwargs)
        config = ClientConfig.from_url(url, **overrides)
        return cls.from_config(config, **injected)

    @classmethod
    def rest(
        cls,
        url: str,
        user: str | None = None,
        password: str | None = None,
        **kwargs: Any,
    ) -> TdClient:
        return cls.from_url(
            url, transport="rest", user=user, password=password, **kwargs
        )

    @classmethod
    def native(
        cls,
        url: str,
        user: str | None = None,
        password: str | None = None,
        **kwargs: Any,
    ) -> TdClient:
        return cls.from_url(
            url, transport="native", user=user, password=password, **kwargs
        )

    # -- lifecycle ---------------------------------------------------------

    def __enter__(self) -> TdClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def is_connected(self) -> bool:
        return not self._closed and self.transport.is_open

    @property
    def strict_type_check(self) -> bool:
        return self.detector.strict

    @strict_type_check.setter
    def strict_type_check(self, value: bool) -> None:
        self.detector.strict = value

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.transport.close()
        self._log.debug("client closed")

    def _ensure_open(self) -> None:
        if self._closed:
            raise ClientClosedError("Client is closed")

    # -- operations --------------------------------------------------------

    def insert(self, table: Table) -> int:
        """Insert one record, healing the schema as needed.

        Returns the number of attempts the insert took.
        """
        self._ensure_open()
        table.ensure_valid()
        self.detector.inspect(table)
        return self.healer.insert(table)

    def insert_many(self, tables: Iterable[Table]) -> int:
        """Batch insert records; returns the number inserted."""
        self._ensure_open()
        return self.batcher.insert_many(tables)

    def execute(self, sql: str) -> None:
        self._ensure_open()
        if sql is None or not sql.strip():
            raise InputError("SQL must not be empty")
        self.transport.execute(sql)

    def query(self, sql: str) -> QueryResult:
        self._ensure_open()
        if sql is None or not sql.strip():
            raise InputError("SQL must not be empty")
        return self.transport.query(sql)
