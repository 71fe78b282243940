"""
Store-level exceptions.

Routers translate these into HTTP responses; everything below the router
layer raises them instead of HTTPException.
"""


class StoreError(Exception):
    """A record store call failed (network, permissions, throttling...)."""


class DuplicateRecordError(StoreError):
    """A write would violate a uniqueness constraint."""

    def __init__(self, message: str, key: str = ""):
        super().__init__(message)
        self.key = key
