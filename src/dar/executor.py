"""Translation of trailing arguments into the in-container command."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Sequence
from typing import NoReturn, Protocol

from dar.docker.models import ContainerRecord
from dar.errors import InvalidCombination

logger = py_logging.getLogger(__name__)

HELPER_COMMAND = "cyd"
DEFAULT_ENTRY_POINT = (HELPER_COMMAND, "shell")
PASSTHROUGH_MARKER = "run"


class InteractiveRuntime(Protocol):
    def exec_interactive(self, container_id: str, command: Sequence[str]) -> NoReturn: ...


def build_container_command(args: Sequence[str]) -> list[str]:
    """Map trailing arguments to the command run inside the container.

    No arguments opens the helper's interactive shell; a leading ``run``
    passes the rest through untouched; anything else is handed to the
    helper as its arguments.
    """
    if not args:
        return list(DEFAULT_ENTRY_POINT)
    if args[0] == PASSTHROUGH_MARKER:
        if len(args) == 1:
            raise InvalidCombination(
                f"'{PASSTHROUGH_MARKER}' needs a command to run",
                hint=f"Use: dar {PASSTHROUGH_MARKER} <command> [args...]",
            )
        return list(args[1:])
    return [HELPER_COMMAND, *args]


class CommandExecutor:
    def __init__(self, runtime: InteractiveRuntime) -> None:
        self.runtime = runtime

    def execute(self, record: ContainerRecord, args: Sequence[str]) -> NoReturn:
        command = build_container_command(args)
        logger.info("Executing in %s: %s", record.name, command)
        self.runtime.exec_interactive(record.container_id, command)
