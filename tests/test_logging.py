import logging
import sys

import pytest

from rest_bridge.config.schema import LoggingConfig
from rest_bridge.util.logging import setup_logging


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_console_only(restore_root):
    setup_logging(LoggingConfig(level="debug", file=None))

    assert restore_root.level == logging.DEBUG
    assert len(restore_root.handlers) == 1
    assert restore_root.handlers[0].stream is sys.stderr


def test_rotating_file(restore_root, tmp_path):
    log_file = tmp_path / "logs" / "bridge.log"
    setup_logging(LoggingConfig(level="INFO", file=str(log_file)))

    logging.getLogger("rest_bridge.test").info("hello")

    assert len(restore_root.handlers) == 2
    assert log_file.exists()
    assert "hello" in log_file.read_text()
