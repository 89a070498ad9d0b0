from __future__ import annotations

import json
import logging

from mytube.config import load_settings
from mytube.logging_config import ROOT_LOGGER_NAME, configure_application_logging


def _flush(logger_name: str) -> None:
    for handler in logging.getLogger(logger_name).handlers:
        handler.flush()


def test_cli_logging_writes_json_file_without_console_handler() -> None:
    settings = load_settings()

    log_file = configure_application_logging(settings, component="cli")
    logging.getLogger("mytube.client.test").warning(
        "write failed authorization=Bearer %s token=%s",
        "key_abc.s3cr3t",
        "key_abc.s3cr3t",
    )
    _flush(ROOT_LOGGER_NAME)

    assert log_file == settings.log_dir / "mytube-cli.log"
    handlers = logging.getLogger(ROOT_LOGGER_NAME).handlers
    assert all(isinstance(handler, logging.FileHandler) for handler in handlers)

    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    warning = next(record for record in records if record["logger"] == "mytube.client.test")
    assert warning["component"] == "cli"
    assert warning["level"] == "warning"
    assert "s3cr3t" not in warning["event"]
    assert "Bearer [redacted]" in warning["event"]


def test_server_logging_adds_console_handler() -> None:
    log_file = configure_application_logging(load_settings())

    assert log_file.name == "mytube-server.log"
    handler_types = {type(handler) for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers}
    assert logging.StreamHandler in handler_types
    assert logging.FileHandler in handler_types
