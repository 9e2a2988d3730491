"""pytest configuration for loguru integration and shared fixtures.

loguru messages are forwarded to Python's logging system so that pytest's
``caplog`` and ``log_cli`` see them. Settings-related environment variables are
cleared for every test so that the developer's shell never leaks into a run.
"""

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import fitz
import pytest
from loguru import logger

from harvester.configs import ENV_PREFIX, ConfigurationSnapshot, HarvesterSettings

if TYPE_CHECKING:
    from loguru import Message


def logging_sink(message: "Message") -> None:
    """Sink function that forwards loguru messages to Python's logging system.

    Args:
        message: The loguru Message object containing the log record
    """
    record = message.record

    level_map = {
        "TRACE": logging.DEBUG,
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "SUCCESS": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    level = level_map.get(record["level"].name, logging.INFO)

    module_name = record["name"] or "__main__"
    py_logger = logging.getLogger(module_name)

    file_path = record["file"].path if record["file"] else "unknown"
    log_record = py_logger.makeRecord(
        name=module_name,
        level=level,
        fn=file_path,
        lno=record["line"],
        msg=record["message"],
        args=(),
        exc_info=None,
        func=record["function"],
    )

    py_logger.handle(log_record)


@pytest.fixture(scope="session", autouse=True)
def configure_loguru_for_pytest() -> None:
    """Replace all loguru handlers with a single sink forwarding to logging."""
    logger.remove()
    logger.add(
        logging_sink,
        format="{message}",
        level="DEBUG",
    )


@pytest.fixture(autouse=True)
def clean_harvester_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove HARVESTER_* variables inherited from the calling shell."""
    for key in list(os.environ):
        if key.upper().startswith(ENV_PREFIX):
            monkeypatch.delenv(key)


@pytest.fixture
def make_snapshot(tmp_path: Path) -> Callable[..., ConfigurationSnapshot]:
    """Build a snapshot whose output directories live under ``tmp_path``."""

    def _make(job_name: str | None = "icse-2024", **overrides: Any) -> ConfigurationSnapshot:
        paths = {"base_dir": tmp_path / "data", **overrides.pop("paths", {})}
        settings = HarvesterSettings(job_name=job_name, paths=paths, **overrides)
        return ConfigurationSnapshot.from_settings(settings)

    return _make


@pytest.fixture
def make_pdf_bytes() -> Callable[..., bytes]:
    """Build a small PDF whose pages contain the given lines of text."""

    def _make(*pages: str) -> bytes:
        doc = fitz.open()
        try:
            for text in pages or ("",):
                page = doc.new_page()
                page.insert_text((72, 72), text)
            return doc.tobytes()
        finally:
            doc.close()

    return _make
