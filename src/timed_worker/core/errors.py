# src/timed_worker/core/errors.py

from __future__ import annotations


class TimedWorkerError(Exception):
    """Base class for errors raised by the timed worker."""


class ChannelError(TimedWorkerError):
    """
    Error that can be reported back over the method channel.

    `code` is the stable wire identifier (the transport maps it to its own error envelope).
    """

    code = "ERROR"

    def __init__(self, message: str, *, details: object | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ArgumentError(ChannelError, ValueError):
    """Missing or malformed arguments (e.g. start without taskId). No state is mutated."""

    code = "ARG"


class MethodNotImplementedError(ChannelError):
    code = "NOT_IMPLEMENTED"


class GrantDenied(TimedWorkerError):
    """The host refused to grant an execution window. Not fatal for the countdown."""
