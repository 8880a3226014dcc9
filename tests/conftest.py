from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from dar.docker.runtime import DockerRuntime


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))
        if "integration" in path.parts:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)


class ProcessReplaced(BaseException):
    """Raised by the fake execvp in place of replacing the test process."""

    def __init__(self, file: str, argv: list[str]) -> None:
        super().__init__(file, argv)
        self.file = file
        self.argv = argv


@dataclass
class FakeContainer:
    container_id: str
    name: str
    image: str
    command: str
    auto_remove: bool
    state: str = "running"


def _cp(returncode: int, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@dataclass
class FakeDocker:
    """In-memory stand-in for the docker CLI, driven through ``runner``."""

    containers: dict[str, FakeContainer] = field(default_factory=dict)
    calls: list[list[str]] = field(default_factory=list)
    failures: dict[str, subprocess.CompletedProcess] = field(default_factory=dict)
    vanish_on_run: bool = False
    _counter: int = 0

    def add(
        self,
        name: str,
        *,
        state: str = "running",
        command: str = '"sleep infinity"',
        auto_remove: bool = True,
    ) -> FakeContainer:
        self._counter += 1
        container = FakeContainer(
            container_id=format(self._counter, "064x"),
            name=name,
            image="ghcr.io/cyrusimap/cyrus-docker:nightly",
            command=command,
            auto_remove=auto_remove,
            state=state,
        )
        self.containers[name] = container
        return container

    def _by_id(self, container_id: str) -> FakeContainer | None:
        for container in self.containers.values():
            if container.container_id == container_id:
                return container
        return None

    def verbs(self) -> list[str]:
        return [_verb(cmd) for cmd in self.calls]

    def __call__(self, cmd: list[str], **_: object) -> subprocess.CompletedProcess:
        self.calls.append(list(cmd))
        verb = _verb(cmd)
        if verb in self.failures:
            return self.failures[verb]

        if verb == "ls":
            lines = [
                json.dumps(
                    {
                        "Command": item.command,
                        "ID": item.container_id,
                        "Image": item.image,
                        "Names": item.name,
                        "State": item.state,
                    }
                )
                for item in self.containers.values()
            ]
            return _cp(0, stdout="\n".join(lines) + ("\n" if lines else ""))

        if verb == "run":
            name = cmd[cmd.index("--name") + 1]
            if name in self.containers:
                return _cp(125, stderr=f'Conflict. The container name "/{name}" is already in use.')
            auto_remove = "--rm" in cmd
            image_index = cmd.index("--rm") + 1 if auto_remove else cmd.index("--mount") + 2
            container = self.add(
                name,
                command='"' + " ".join(cmd[image_index + 1 :]) + '"',
                auto_remove=auto_remove,
            )
            container.image = cmd[image_index]
            if self.vanish_on_run:
                del self.containers[name]
            return _cp(0, stdout=container.container_id + "\n")

        if verb == "exec":
            return _cp(0)

        if verb == "inspect":
            container = self._by_id(cmd[-1])
            if container is None:
                return _cp(1, stderr=f"Error: No such container: {cmd[-1]}")
            payload = [{"Id": container.container_id, "HostConfig": {"AutoRemove": container.auto_remove}}]
            return _cp(0, stdout=json.dumps(payload))

        if verb == "stop":
            container = self._by_id(cmd[-1])
            if container is None:
                return _cp(1, stderr="No such container")
            if container.auto_remove:
                del self.containers[container.name]
            else:
                container.state = "exited"
            return _cp(0, stdout=cmd[-1] + "\n")

        if verb == "rm":
            container = self._by_id(cmd[-1])
            if container is None:
                return _cp(1, stderr="No such container")
            del self.containers[container.name]
            return _cp(0, stdout=cmd[-1] + "\n")

        raise AssertionError(f"unexpected docker command: {cmd}")


def _verb(cmd: list[str]) -> str:
    if cmd[1] == "container":
        return cmd[2]
    return cmd[1]


def fake_execvp(file: str, argv: list[str]) -> None:
    raise ProcessReplaced(file, argv)


@pytest.fixture
def fake_docker() -> FakeDocker:
    return FakeDocker()


@pytest.fixture
def docker_runtime(fake_docker: FakeDocker) -> DockerRuntime:
    return DockerRuntime(runner=fake_docker, execvp=fake_execvp)
