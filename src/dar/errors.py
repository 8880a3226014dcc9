"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    RUNTIME_ERROR = 4
    CONTAINER_ERROR = 5
    STATE_ERROR = 6
    VALIDATION_ERROR = 7


@dataclass
class DarError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


@dataclass
class RuntimeUnavailable(DarError):
    """The container runtime binary could not be invoked or refused the call."""

    code: ExitCode = ExitCode.RUNTIME_ERROR


@dataclass
class MalformedRuntimeOutput(DarError):
    """The runtime answered but its output could not be parsed."""

    code: ExitCode = ExitCode.RUNTIME_ERROR


@dataclass
class AmbiguousContainer(DarError):
    """More than one container carries the same name."""

    code: ExitCode = ExitCode.STATE_ERROR


@dataclass
class AlreadyRunning(DarError):
    code: ExitCode = ExitCode.STATE_ERROR


@dataclass
class StartFailed(DarError):
    code: ExitCode = ExitCode.CONTAINER_ERROR


@dataclass
class StopFailed(DarError):
    code: ExitCode = ExitCode.CONTAINER_ERROR


@dataclass
class RemoveFailed(DarError):
    code: ExitCode = ExitCode.CONTAINER_ERROR


@dataclass
class ContainerVanished(DarError):
    """A container the runtime just reported is no longer visible."""

    code: ExitCode = ExitCode.STATE_ERROR


@dataclass
class InvalidCombination(DarError):
    code: ExitCode = ExitCode.VALIDATION_ERROR


@dataclass
class NotRunning(DarError):
    code: ExitCode = ExitCode.STATE_ERROR


@dataclass
class UnexpectedCommand(DarError):
    code: ExitCode = ExitCode.STATE_ERROR


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
