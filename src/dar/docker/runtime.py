"""Docker CLI adapter backing one development container per workspace."""

from __future__ import annotations

import logging as py_logging
import os
import subprocess
import sys
from collections.abc import Callable, Sequence
from typing import NoReturn

from dar.docker.models import ContainerRecord, parse_auto_remove, parse_container_listing
from dar.errors import (
    ContainerVanished,
    MalformedRuntimeOutput,
    RemoveFailed,
    RuntimeUnavailable,
    StartFailed,
    StopFailed,
)

logger = py_logging.getLogger(__name__)

CONTAINER_WORKDIR = "/srv/cyrus-imapd"
IDLE_COMMAND = ("sleep", "infinity")
# `docker container ls --no-trunc` reports the launch command quoted.
EXPECTED_LAUNCH_COMMAND = '"' + " ".join(IDLE_COMMAND) + '"'

Runner = Callable[..., subprocess.CompletedProcess]
Execvp = Callable[[str, list[str]], NoReturn]


def _stderr_hint(result: subprocess.CompletedProcess, fallback: str) -> str:
    stderr = (result.stderr or "").strip()
    return stderr or fallback


class DockerRuntime:
    def __init__(
        self,
        binary: str = "docker",
        *,
        runner: Runner = subprocess.run,
        execvp: Execvp = os.execvp,
        timeout_seconds: float | None = None,
    ) -> None:
        self.binary = binary
        self.runner = runner
        self.execvp = execvp
        self.timeout_seconds = timeout_seconds

    def _call(self, args: Sequence[str]) -> subprocess.CompletedProcess:
        cmd = [self.binary, *args]
        logger.debug("Running runtime command=%s", cmd)
        try:
            result = self.runner(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                check=False,
                timeout=self.timeout_seconds,
            )
        except FileNotFoundError as exc:
            raise RuntimeUnavailable(
                f"Container runtime '{self.binary}' is not installed",
                hint="Install Docker and make sure it is on PATH.",
            ) from exc
        except UnicodeDecodeError as exc:
            raise MalformedRuntimeOutput(
                f"Container runtime output is not valid UTF-8: {exc.reason}",
                hint=f"Command: {' '.join(cmd)}",
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise RuntimeUnavailable(
                f"Container runtime did not answer within {self.timeout_seconds}s",
                hint="Check that the Docker daemon is healthy.",
            ) from exc
        except OSError as exc:
            raise RuntimeUnavailable(
                f"Container runtime '{self.binary}' could not be invoked: {exc}",
            ) from exc
        logger.debug("Runtime command exited returncode=%s", result.returncode)
        return result

    def list_containers(self) -> dict[str, ContainerRecord]:
        result = self._call(
            ["container", "ls", "--all", "--no-trunc", "--format", "{{json .}}"]
        )
        if result.returncode != 0:
            logger.debug("Container listing failed stderr=%s", (result.stderr or "").strip())
            raise RuntimeUnavailable(
                "Could not list containers",
                hint=_stderr_hint(result, "Is the Docker daemon running?"),
            )
        return parse_container_listing(result.stdout or "")

    def find_for_identity(self, identity: str) -> ContainerRecord | None:
        return self.list_containers().get(identity)

    def run_detached(
        self,
        name: str,
        workspace: str,
        image: str,
        *,
        auto_remove: bool = True,
    ) -> str:
        args = [
            "run",
            "--detach",
            "--name",
            name,
            "--mount",
            f"type=bind,src={workspace},dst={CONTAINER_WORKDIR}",
        ]
        if auto_remove:
            args.append("--rm")
        args.extend([image, *IDLE_COMMAND])
        result = self._call(args)
        if result.returncode != 0:
            logger.debug("docker run failed name=%s stderr=%s", name, (result.stderr or "").strip())
            raise StartFailed(
                f"Failed to start container {name}",
                hint=f"{(result.stderr or '').strip()} If a container with this name "
                "already exists, run 'dar prune' first.".strip(),
            )
        container_id = (result.stdout or "").strip()
        if not container_id:
            raise MalformedRuntimeOutput(f"docker run reported no container ID for {name}")
        return container_id

    def exec_oneshot(self, container_id: str, command: Sequence[str], *, step: str) -> None:
        result = self._call(["exec", container_id, *command])
        if result.returncode != 0:
            logger.debug(
                "Post-start step failed step=%s container=%s stderr=%s",
                step,
                container_id,
                (result.stderr or "").strip(),
            )
            raise StartFailed(
                f"Failed to {step} in container {container_id[:12]}",
                hint=_stderr_hint(result, "Run 'dar prune' and start again."),
            )

    def inspect_auto_remove(self, container_id: str) -> bool:
        result = self._call(["container", "inspect", container_id])
        if result.returncode != 0:
            raise ContainerVanished(
                f"Container {container_id[:12]} could not be inspected",
                hint=_stderr_hint(result, "List containers with: docker container ls --all"),
            )
        return parse_auto_remove(result.stdout or "")

    def stop(self, container_id: str) -> None:
        result = self._call(["container", "stop", container_id])
        if result.returncode != 0:
            logger.debug("docker stop failed container=%s", container_id)
            raise StopFailed(
                f"Failed to stop container {container_id[:12]}",
                hint=_stderr_hint(result, "Inspect docker output."),
            )

    def remove(self, container_id: str) -> None:
        result = self._call(["container", "rm", container_id])
        if result.returncode != 0:
            logger.debug("docker rm failed container=%s", container_id)
            raise RemoveFailed(
                f"Failed to remove container {container_id[:12]}",
                hint=_stderr_hint(result, "Inspect docker output."),
            )

    def exec_interactive(self, container_id: str, command: Sequence[str]) -> NoReturn:
        cmd = [
            self.binary,
            "exec",
            "--interactive",
            "--tty",
            "--workdir",
            CONTAINER_WORKDIR,
            container_id,
            *command,
        ]
        logger.debug("Replacing process with command=%s", cmd)
        sys.stdout.flush()
        sys.stderr.flush()
        try:
            self.execvp(self.binary, cmd)
        except OSError as exc:
            raise RuntimeUnavailable(
                f"Container runtime '{self.binary}' could not be executed: {exc}",
                hint="Install Docker and make sure it is on PATH.",
            ) from exc
