"""Exceptions raised by the annotation pipeline.

Both kinds are fatal for the whole call: callers treat the batch as
unannotated and decide on any retry themselves.
"""

from __future__ import annotations


class AnnotationError(Exception):
    """Base class for annotation failures."""


class MalformedRecordError(AnnotationError, ValueError):
    """A record's ``control_program`` is present but not a hex string."""

    def __init__(
        self,
        message: str,
        *,
        tx_index: int | None = None,
        side: str | None = None,
        position: int | None = None,
    ) -> None:
        super().__init__(message)
        self.tx_index = tx_index
        self.side = side
        self.position = position


class RegistryLookupError(AnnotationError, RuntimeError):
    """The batched account registry lookup failed or ran past its deadline.

    The underlying exception, when there is one, is kept as ``__cause__``.
    """


__all__ = [
    "AnnotationError",
    "MalformedRecordError",
    "RegistryLookupError",
]
