from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from docbatch.core import logging as core_logging


def _read_records(path: Path) -> list[dict]:
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    return [json.loads(line) for line in lines]


def test_configure_logger_writes_json(tmp_path):
    log_dir = tmp_path / "logs"
    logger, log_path = core_logging.configure_logger(
        "docbatch.test",
        log_dir=log_dir,
        level="INFO",
        filename="test.log",
    )

    logger.info(
        "Rendered document",
        extra={"source": Path("docs/index.adoc"), "count": 3},
    )
    logger.debug("filtered out at INFO")

    class _Helper:
        def __repr__(self):  # noqa: D401
            return "helper"

    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception(
            "with error",
            extra={
                "attributes": {"toc": True, "paths": [Path(log_dir), 1]},
                "obj": _Helper(),
            },
        )
    for handler in logger.handlers:
        handler.flush()

    records = _read_records(log_path)
    assert [record["message"] for record in records] == [
        "Rendered document",
        "with error",
    ]
    first = records[0]
    assert first["level"] == "INFO"
    assert first["logger"] == "docbatch.test"
    assert first["extra"] == {"source": "docs/index.adoc", "count": 3}

    last = records[-1]
    assert "ValueError: boom" in last["exception"]
    assert last["extra"]["obj"] == "helper"
    assert last["extra"]["attributes"]["toc"] is True
    assert last["extra"]["attributes"]["paths"][0] == str(log_dir)

    core_logging.release_logger(logger)


def test_configure_logger_defaults_filename_to_last_name_segment(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "docbatch.render_test",
        log_dir=tmp_path / "logs",
    )

    assert log_path == tmp_path / "logs" / "render_test.log"
    assert log_path.exists()

    core_logging.release_logger(logger)


def test_configure_logger_reuses_file_handler(tmp_path):
    name = "docbatch.test_reuse"
    logger, _ = core_logging.configure_logger(
        name, log_dir=tmp_path / "logs", filename="reuse.log"
    )
    core_logging.configure_logger(
        name, log_dir=tmp_path / "logs", filename="reuse.log"
    )

    file_handlers = [
        handler
        for handler in logger.handlers
        if getattr(handler, "_docbatch_file", False)
    ]
    assert len(file_handlers) == 1

    core_logging.release_logger(logger)
    assert not logger.handlers


def test_configure_logger_switches_file_when_directory_changes(tmp_path):
    name = "docbatch.test_switch"
    logger, first = core_logging.configure_logger(
        name, log_dir=tmp_path / "one", filename="switch.log"
    )
    _, second = core_logging.configure_logger(
        name, log_dir=tmp_path / "two", filename="switch.log"
    )

    assert first != second
    file_handlers = [
        handler
        for handler in logger.handlers
        if getattr(handler, "_docbatch_file", False)
    ]
    assert len(file_handlers) == 1
    assert Path(file_handlers[0].baseFilename) == second

    core_logging.release_logger(logger)


def test_configure_logger_fallback_directory(tmp_path, monkeypatch):
    target = tmp_path / "blocked"
    fallback_dir = tmp_path / "fallback"
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback_dir)

    original_mkdir = Path.mkdir

    def fake_mkdir(self, *args, **kwargs):  # noqa: D401, ANN001
        if self == target:
            raise PermissionError("denied")
        return original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", fake_mkdir)

    logger, log_path = core_logging.configure_logger(
        "docbatch.test_blocked",
        log_dir=target,
        filename="blocked.log",
    )

    assert log_path == fallback_dir / "blocked.log"
    assert log_path.exists()

    core_logging.release_logger(logger)


def test_configure_logger_rotating_handler_fallback(tmp_path, monkeypatch):
    calls = {"count": 0}
    fallback_dir = tmp_path / "rotate-fallback"
    original_handler = core_logging.RotatingFileHandler

    def fake_handler(path, *args, **kwargs):  # noqa: D401, ANN001
        calls["count"] += 1
        if calls["count"] == 1:
            raise PermissionError("denied")
        return original_handler(path, *args, **kwargs)

    monkeypatch.setattr(core_logging, "RotatingFileHandler", fake_handler)
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback_dir)

    logger, log_path = core_logging.configure_logger(
        "docbatch.test_rotating_fallback",
        log_dir=tmp_path / "primary",
        filename="rotate.log",
    )

    assert log_path.parent == fallback_dir
    assert calls["count"] == 2

    core_logging.release_logger(logger)


def test_fallback_log_dir_uses_tempdir(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "gettempdir", lambda: str(tmp_path))

    path = core_logging._fallback_log_dir()

    assert path == tmp_path / "docbatch-logs"


def test_console_handler_toggle(tmp_path):
    log_dir = tmp_path / "logs"
    logger_name = "docbatch.test_toggle"

    def console_handlers(logger):
        return [
            handler
            for handler in logger.handlers
            if getattr(handler, "_docbatch_console", False)
        ]

    logger, _ = core_logging.configure_logger(
        logger_name, log_dir=log_dir, verbose=True, filename="toggle.log"
    )
    assert len(console_handlers(logger)) == 1

    core_logging.configure_logger(
        logger_name, log_dir=log_dir, verbose=True, filename="toggle.log"
    )
    assert len(console_handlers(logger)) == 1

    core_logging.configure_logger(
        logger_name, log_dir=log_dir, verbose=False, filename="toggle.log"
    )
    assert not console_handlers(logger)

    core_logging.release_logger(logger)


def test_verbose_lowers_file_level_to_debug(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "docbatch.test_debug",
        log_dir=tmp_path / "logs",
        level="WARNING",
        verbose=True,
        filename="debug.log",
    )

    logger.debug("Pruned reserved directory")
    for handler in logger.handlers:
        handler.flush()

    records = _read_records(log_path)
    assert records[0]["message"] == "Pruned reserved directory"

    core_logging.release_logger(logger)


def test_coerce_level_defaults():
    assert core_logging._coerce_level("bogus") == logging.INFO
    assert core_logging._coerce_level("debug") == logging.DEBUG
