"""Docker runtime adapter package."""

from .models import ContainerRecord, ContainerState
from .runtime import CONTAINER_WORKDIR, EXPECTED_LAUNCH_COMMAND, IDLE_COMMAND, DockerRuntime

__all__ = [
    "CONTAINER_WORKDIR",
    "ContainerRecord",
    "ContainerState",
    "DockerRuntime",
    "EXPECTED_LAUNCH_COMMAND",
    "IDLE_COMMAND",
]
