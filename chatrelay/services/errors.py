"""
ERROR TYPES
===========

ProviderError aborts a turn and becomes a 500 for the caller.
StoreError is contained during a turn (logged only) and becomes a 500 only on
the history read/clear endpoints.
"""


class ChatRelayError(Exception):
    """Base class for errors raised by the relay services."""


class ProviderError(ChatRelayError):
    """The completion provider is misconfigured, unreachable, or returned an error."""


class StoreError(ChatRelayError):
    """The history store is unavailable or a read/write failed."""
