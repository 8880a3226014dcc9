from __future__ import annotations

import io
import logging as py_logging
from pathlib import Path

import dar.logging as dar_logging


def test_default_log_path_is_expanded() -> None:
    path = dar_logging.default_log_path()

    assert path.is_absolute()
    assert path.name == "dar.log"


def test_default_level_is_warn() -> None:
    logger = dar_logging.configure_logging()

    assert logger.level == dar_logging.LOG_LEVELS["WARN"]


def test_warning_alias_maps_to_warning_level() -> None:
    logger = dar_logging.configure_logging("warning")

    assert logger.level == py_logging.WARNING


def test_unknown_log_level_falls_back_to_warning() -> None:
    logger = dar_logging.configure_logging("not-a-level")

    assert logger.level == py_logging.WARNING


def test_configure_logging_resets_existing_handlers() -> None:
    dar_logging.configure_logging("INFO")
    logger = dar_logging.configure_logging("INFO")

    assert len(logger.handlers) == 1


def test_stream_handler_respects_level() -> None:
    stream = io.StringIO()
    logger = dar_logging.configure_logging("WARN", stream)

    py_logging.getLogger("dar.session").info("quiet")
    py_logging.getLogger("dar.session").warning("loud")

    assert "quiet" not in stream.getvalue()
    assert "loud" in stream.getvalue()
    assert logger.propagate is False


def test_file_handler_records_debug(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "dar.log"
    stream = io.StringIO()

    logger = dar_logging.configure_logging("ERROR", stream, log_file=log_file)
    py_logging.getLogger("dar.docker.runtime").debug("Running runtime command=%s", ["docker"])
    for handler in logger.handlers:
        handler.flush()

    file_handlers = [h for h in logger.handlers if isinstance(h, py_logging.FileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].level == py_logging.DEBUG
    assert "Running runtime command" in log_file.read_text(encoding="utf-8")
    assert stream.getvalue() == ""


def test_configure_logging_ignores_file_handler_oserror(monkeypatch, tmp_path: Path) -> None:
    def raise_os_error(*args: object, **kwargs: object) -> py_logging.Handler:
        raise OSError("disk full")

    monkeypatch.setattr(dar_logging.py_logging, "FileHandler", raise_os_error)

    logger = dar_logging.configure_logging("INFO", log_file=tmp_path / "nope" / "dar.log")

    assert len(logger.handlers) == 1
    assert type(logger.handlers[0]) is py_logging.StreamHandler
    assert logger.level == py_logging.INFO


def test_default_log_path_falls_back_to_cwd_without_home(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(dar_logging, "DEFAULT_LOG_PATH", Path("~dar-no-such-user-0x1f/dar.log"))
    monkeypatch.chdir(tmp_path)

    path = dar_logging.default_log_path()

    assert path == tmp_path.resolve() / ".dar" / "logs" / "dar.log"


def test_relative_log_file_is_made_absolute(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)

    logger = dar_logging.configure_logging("INFO", log_file="logs/dar.log")
    file_handlers = [h for h in logger.handlers if isinstance(h, py_logging.FileHandler)]

    assert Path(file_handlers[0].baseFilename) == tmp_path.resolve() / "logs" / "dar.log"
