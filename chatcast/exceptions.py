"""
Custom exception classes for the application.

Per-connection delivery never raises through a broadcast sweep; these
exceptions exist for callers that opt into exceptions via
``Connection.send_or_raise`` and for fail-fast startup checks.
"""


class ConnectionClosedError(Exception):
    """
    Send attempted on a connection that is closing or closed.

    Raised only by the strict send helper, the regular send path reports
    the same condition as a ``SendResult``.
    """

    pass


class SendQueueFullError(Exception):
    """
    Outbound buffer of a connection is full.

    The peer is not reading fast enough; the connection is disconnected.
    """

    pass


class StartupValidationError(Exception):
    """
    Application cannot start due to invalid configuration.

    Raised during startup before any connection is accepted.
    """

    pass
