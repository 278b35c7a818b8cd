"""Transports for tdingest."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tdingest.core.transport.base import Transport
from tdingest.core.transport.native import NativeTransport
from tdingest.core.transport.rest import RestTransport

if TYPE_CHECKING:
    from tdingest.core.config import ClientConfig


def build_transport(
    config: ClientConfig,
    *,
    logger: Any | None = None,
    session: Any | None = None,
    driver: Any | None = None,
) -> Transport:
    """Create the transport variant selected by ``config.transport``."""
    if config.transport == "rest":
        return RestTransport(
            config.base_url,
            config.user,
            config.password,
            database=config.database,
            timeout=config.timeout,
            session=session,
            logger=logger,
            debug=config.debug,
        )
    return NativeTransport(
        config.host,
        config.effective_port,
        config.user,
        config.password,
        database=config.database,
        driver=driver,
        binary_as_string=config.binary_as_string,
        logger=logger,
        debug=config.debug,
    )


__all__ = ["NativeTransport", "RestTransport", "Transport", "build_transport"]
