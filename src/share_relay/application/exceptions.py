from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class ValidationError(AppError):
    pass


class QueueUnavailableError(AppError):
    """The durable queue could not be reached or written to."""


class MessageAlreadySettledError(AppError):
    """A queue message was acknowledged or rejected more than once."""
