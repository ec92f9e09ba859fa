"""Errors raised across the card-intake boundary.

Only these two ever reach a caller.  Everything else the extraction stages run
into (no embedded object, an unparseable date, an address that will not split)
is absorbed and shows up as absent or raw data in the returned record.
"""

from __future__ import annotations

__all__ = ["InvalidInputError", "VisionServiceError"]


class InvalidInputError(TypeError):
    """The input handed to the pipeline (or the vision client) is not usable.

    ``received`` holds the type name of the offending value so API handlers
    can report it without echoing the payload itself.
    """

    def __init__(self, message: str, received: str | None = None):
        super().__init__(message)
        self.received = received


class VisionServiceError(RuntimeError):
    """The vision-model call failed before any text could be extracted."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider
