"""Sentry integration for error tracking and performance monitoring.

Sentry is initialized early in the CLI after logging setup, and only when
TDINGEST_SENTRY_DSN is set. Transports open spans regardless; without an
initialized client those are no-ops.
"""

import os

import sentry_sdk

from tdingest.__about__ import __version__

_SENTRY_DSN_ENV = "TDINGEST_SENTRY_DSN"


def setup_sentry(environment: str = "local") -> bool:
    """Initialize Sentry when a DSN is configured. Returns whether it did."""
    dsn = os.environ.get(_SENTRY_DSN_ENV)
    if not dsn:
        return False
    sentry_sdk.init(
        dsn=dsn,
        traces_sample_rate=0.03,
        environment=environment,
        release=__version__,
        attach_stacktrace=True,
        send_default_pii=False,
    )
    return True
