"""Command-line entry point."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from dar.config import load_config
from dar.docker.models import ContainerRecord
from dar.docker.runtime import DockerRuntime
from dar.errors import DarError, ExitCode, user_facing_error
from dar.identity import workspace_path
from dar.logging import DEFAULT_LEVEL, configure_logging, default_log_path
from dar.session import Action, PruneResult, SessionController, SessionRequest, SessionRuntime

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")
_ACTION_WORDS = {"start": Action.START, "prune": Action.PRUNE}

_EPILOG = """\
actions:
  start [--keep] [--image IMAGE]
                     start the workspace container without running anything
  prune              stop and remove the workspace container
  run CMD [ARGS...]  run CMD verbatim inside the container
  ARGS...            run 'cyd ARGS...' inside the container
  (nothing)          open an interactive 'cyd shell'
"""


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dar",
        description="Run commands in the development container of the current directory.",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--keep",
        action="store_true",
        help="Keep the container after it stops instead of removing it",
    )
    parser.add_argument("--image", default=None, help="Image to start the container from")
    parser.add_argument("--config", type=Path, default=None, help="Path to the JSON config file")
    parser.add_argument("--log-level", type=_log_level_type, default=DEFAULT_LEVEL)
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("args", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


def _build_action_parser(word: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=f"dar {word}", add_help=False)
    parser.add_argument("--keep", action="store_true")
    parser.add_argument("--image", default=None)
    return parser


def build_request(namespace: argparse.Namespace) -> SessionRequest:
    """Turn parsed arguments into a request.

    Options given after ``start`` or ``prune`` apply to that action; after
    any other word they belong to the command run in the container.
    """
    args = tuple(namespace.args)
    keep = namespace.keep
    image = namespace.image
    action = Action.EXEC
    if args and args[0] in _ACTION_WORDS:
        action = _ACTION_WORDS[args[0]]
        options, rest = _build_action_parser(args[0]).parse_known_args(list(args[1:]))
        keep = keep or options.keep
        image = options.image or image
        args = tuple(rest)
    return SessionRequest(
        action=action,
        keep=keep,
        image=image,
        args=args,
    )


def describe_outcome(outcome: ContainerRecord | PruneResult) -> str:
    if isinstance(outcome, PruneResult):
        if not outcome.pruned:
            return f"nothing to prune for {outcome.name}"
        return f"pruned {outcome.name}"
    return f"started {outcome.name} ({outcome.short_id})"


def main(
    argv: Sequence[str] | None = None,
    *,
    runtime: SessionRuntime | None = None,
    workspace: str | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
        request = build_request(namespace)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    logger = configure_logging(level=namespace.log_level, log_file=log_path)

    try:
        config = load_config(namespace.config)
        current = workspace_path(workspace)
        controller = SessionController(runtime or DockerRuntime(), current, config)
        logger.debug("Handling action=%s workspace=%s", request.action.value, current)
        outcome = controller.handle(request)
    except DarError as exc:
        logger.debug(
            "Handled DarError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=True,
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        try:
            hint = f"Inspect logs: {log_path}"
            print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        except Exception:
            pass
        return int(ExitCode.RUNTIME_ERROR)

    print(describe_outcome(outcome))
    return int(ExitCode.SUCCESS)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
