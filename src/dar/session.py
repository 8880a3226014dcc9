"""Per-workspace container session state machine."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import NoReturn, Protocol

from dar.config import DarConfig
from dar.docker.models import ContainerRecord
from dar.docker.runtime import CONTAINER_WORKDIR, EXPECTED_LAUNCH_COMMAND
from dar.errors import (
    AlreadyRunning,
    ContainerVanished,
    DarError,
    ExitCode,
    InvalidCombination,
    NotRunning,
    UnexpectedCommand,
)
from dar.executor import CommandExecutor, build_container_command
from dar.identity import identity_for

logger = py_logging.getLogger(__name__)

SAFE_DIRECTORY_COMMAND = (
    "git",
    "config",
    "--global",
    "--add",
    "safe.directory",
    CONTAINER_WORKDIR,
)


class Action(str, Enum):
    START = "start"
    PRUNE = "prune"
    EXEC = "exec"


@dataclass(frozen=True)
class SessionRequest:
    action: Action = Action.EXEC
    keep: bool = False
    image: str | None = None
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class PruneResult:
    name: str
    pruned: bool
    removed_explicitly: bool = False


class SessionRuntime(Protocol):
    def find_for_identity(self, identity: str) -> ContainerRecord | None: ...

    def run_detached(
        self, name: str, workspace: str, image: str, *, auto_remove: bool = True
    ) -> str: ...

    def exec_oneshot(self, container_id: str, command: Sequence[str], *, step: str) -> None: ...

    def inspect_auto_remove(self, container_id: str) -> bool: ...

    def stop(self, container_id: str) -> None: ...

    def remove(self, container_id: str) -> None: ...

    def exec_interactive(self, container_id: str, command: Sequence[str]) -> NoReturn: ...


class SessionController:
    """Decides which runtime calls to issue for one invocation.

    The runtime is the only source of truth: every decision is taken on a
    record fetched after the last mutating call, never on an earlier one.
    """

    def __init__(
        self,
        runtime: SessionRuntime,
        workspace: str,
        config: DarConfig | None = None,
        *,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.runtime = runtime
        self.workspace = workspace
        self.config = config or DarConfig()
        self.executor = executor or CommandExecutor(runtime)
        self.identity = identity_for(workspace)

    def handle(self, request: SessionRequest) -> ContainerRecord | PruneResult:
        if request.action is Action.START:
            return self.start(request)
        if request.action is Action.PRUNE:
            return self.prune(request)
        if request.action is Action.EXEC:
            self.exec(request)
            raise DarError(
                "The command executor returned instead of replacing the process",
                code=ExitCode.RUNTIME_ERROR,
            )
        raise ValueError(f"Unsupported action: {request.action!r}")

    def start(self, request: SessionRequest) -> ContainerRecord:
        if request.args:
            raise InvalidCombination(
                "start does not take a command",
                hint="Run 'dar start' on its own, then 'dar <command>'.",
            )
        return self._bring_up(request)

    def _bring_up(self, request: SessionRequest) -> ContainerRecord:
        existing = self.runtime.find_for_identity(self.identity)
        if existing is not None and existing.is_running:
            raise AlreadyRunning(
                f"Container {self.identity} is already running",
                hint="Use 'dar <command>' to run in it, or 'dar prune' to discard it.",
            )

        image = self.config.resolve_image(request.image)
        logger.info(
            "Starting container name=%s image=%s workspace=%s keep=%s",
            self.identity,
            image,
            self.workspace,
            request.keep,
        )
        container_id = self.runtime.run_detached(
            self.identity,
            self.workspace,
            image,
            auto_remove=not request.keep,
        )
        logger.debug("Container created id=%s", container_id)

        record = self.runtime.find_for_identity(self.identity)
        if record is None:
            raise ContainerVanished(
                f"Container {self.identity} ({container_id[:12]}) disappeared right after starting",
                hint="Check the container logs with: docker logs " + container_id[:12],
            )

        self.runtime.exec_oneshot(
            record.container_id,
            SAFE_DIRECTORY_COMMAND,
            step="mark the source tree as a safe directory",
        )
        return record

    def prune(self, request: SessionRequest) -> PruneResult:
        if request.args or request.image:
            raise InvalidCombination(
                "prune cannot be combined with a command or an image",
                hint="Run 'dar prune' on its own.",
            )

        record = self.runtime.find_for_identity(self.identity)
        if record is None:
            logger.info("Nothing to prune for %s", self.identity)
            return PruneResult(name=self.identity, pruned=False)

        auto_remove = self.runtime.inspect_auto_remove(record.container_id)
        logger.info("Stopping container %s auto_remove=%s", record.name, auto_remove)
        self.runtime.stop(record.container_id)
        if not auto_remove:
            self.runtime.remove(record.container_id)
        return PruneResult(name=record.name, pruned=True, removed_explicitly=not auto_remove)

    def exec(self, request: SessionRequest) -> NoReturn:
        build_container_command(request.args)

        record = self.runtime.find_for_identity(self.identity)
        if record is None or not record.is_running:
            logger.info("No running container for %s; starting one", self.identity)
            record = self._bring_up(request)

        self.validate(record)
        self.executor.execute(record, request.args)

    def validate(self, record: ContainerRecord) -> None:
        if not record.is_running:
            raise NotRunning(
                f"Container {record.name} is {record.status}, not running",
                hint="Run 'dar prune' and try again.",
            )
        if record.command != EXPECTED_LAUNCH_COMMAND:
            raise UnexpectedCommand(
                f"Container {record.name} was launched with {record.command}, "
                f"expected {EXPECTED_LAUNCH_COMMAND}",
                hint="Run 'dar prune' and try again.",
            )
