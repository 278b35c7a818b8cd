"""Thread-keyed connection cache for the native transport.

At most one live connection per calling thread. Connections are reused
while open and never handed back to an external pool; close_all() closes
everything on client shutdown. acquire() is a scoped context manager so
the release path always runs, including on errors.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from tdingest.core.logging import get_logger


def _is_closed(conn: Any) -> bool:
    return bool(getattr(conn, "closed", False))


class ConnectionPool:
    """Caches one connection per thread identity."""

    def __init__(self, connect: Callable[[], Any], logger: Any | None = None) -> None:
        self._connect = connect
        self._connections: dict[int, Any] = {}
        self._lock = threading.Lock()
        self._log = logger or get_logger("tdingest.pool")

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def _get(self) -> Any:
        key = threading.get_ident()
        with self._lock:
            conn = self._connections.get(key)
        if conn is not None and not _is_closed(conn):
            return conn

        conn = self._connect()
        self._log.debug("opened connection", thread=key)
        with self._lock:
            self._connections[key] = conn
        return conn

    @contextmanager
    def acquire(self) -> Iterator[Any]:
        """Yield this thread's connection, opening one if needed.

        A connection that ends up closed while in use is dropped from the
        cache on release.
        """
        conn = self._get()
        try:
            yield conn
        finally:
            self.release(conn)

    def release(self, conn: Any) -> None:
        if not _is_closed(conn):
            return
        key = threading.get_ident()
        with self._lock:
            if self._connections.get(key) is conn:
                del self._connections[key]

    def discard(self) -> None:
        """Close and forget this thread's connection."""
        key = threading.get_ident()
        with self._lock:
            conn = self._connections.pop(key, None)
        if conn is not None:
            self._close(conn)

    def close_all(self) -> None:
        with self._lock:
            conns = list(self._connections.values())
            self._connections.clear()
        for conn in conns:
            self._close(conn)

    def _close(self, conn: Any) -> None:
        if _is_closed(conn):
            return
        try:
            conn.close()
        except Exception as e:
            self._log.warning("failed to close connection", error=str(e))
