"""Container records parsed from runtime output."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum

from typing_extensions import TypedDict

from dar.errors import AmbiguousContainer, MalformedRuntimeOutput


class ContainerState(str, Enum):
    RUNNING = "running"
    EXITED = "exited"
    OTHER = "other"

    @classmethod
    def from_status(cls, status: str) -> ContainerState:
        normalized = status.strip().lower()
        if normalized == cls.RUNNING.value:
            return cls.RUNNING
        if normalized == cls.EXITED.value:
            return cls.EXITED
        return cls.OTHER


class ContainerRow(TypedDict):
    Names: str
    ID: str
    State: str
    Command: str


@dataclass(frozen=True)
class ContainerRecord:
    container_id: str
    name: str
    status: str
    command: str

    @property
    def state(self) -> ContainerState:
        return ContainerState.from_status(self.status)

    @property
    def is_running(self) -> bool:
        return self.state is ContainerState.RUNNING

    @property
    def short_id(self) -> str:
        return self.container_id[:12]


_ROW_FIELDS = ("Names", "ID", "State", "Command")


def parse_container_line(line: str) -> ContainerRecord:
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as exc:
        raise MalformedRuntimeOutput(
            "Container listing contains a line that is not JSON",
            hint=f"Offending line: {line[:120]!r}",
        ) from exc
    if not isinstance(payload, dict):
        raise MalformedRuntimeOutput(
            "Container listing contains a non-object record",
            hint=f"Offending line: {line[:120]!r}",
        )
    for key in _ROW_FIELDS:
        if not isinstance(payload.get(key), str):
            raise MalformedRuntimeOutput(
                f"Container listing record is missing field {key}",
                hint=f"Offending line: {line[:120]!r}",
            )
    row = ContainerRow(
        Names=payload["Names"],
        ID=payload["ID"],
        State=payload["State"],
        Command=payload["Command"],
    )
    return ContainerRecord(
        container_id=row["ID"],
        name=row["Names"],
        status=row["State"],
        command=row["Command"],
    )


def parse_container_listing(raw: str) -> dict[str, ContainerRecord]:
    records: dict[str, ContainerRecord] = {}
    # Records are "\n"-terminated; U+0085 and U+2028 may appear unescaped inside them.
    for line in raw.split("\n"):
        if not line.strip():
            continue
        record = parse_container_line(line)
        if record.name in records:
            raise AmbiguousContainer(
                f"More than one container is named {record.name}",
                hint=f"Remove the extra containers with: docker container rm {record.short_id}",
            )
        records[record.name] = record
    return records


def parse_auto_remove(raw: str) -> bool:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedRuntimeOutput("Container inspect output is not JSON") from exc
    try:
        value = payload[0]["HostConfig"]["AutoRemove"]
    except (IndexError, KeyError, TypeError) as exc:
        raise MalformedRuntimeOutput(
            "Container inspect output has no HostConfig.AutoRemove field"
        ) from exc
    if not isinstance(value, bool):
        raise MalformedRuntimeOutput(
            f"HostConfig.AutoRemove has unexpected value {value!r}"
        )
    return value
