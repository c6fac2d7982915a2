import logging
import os

import pytest


@pytest.fixture(autouse=True)
def cli_environment(monkeypatch):
    """Isolate commands from STAKEVEST_* variables and keep JSON logs off the console."""
    for key in list(os.environ):
        if key.startswith("STAKEVEST_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("STAKEVEST_LOGGING_JSON_CONSOLE", "false")

    yield

    package_logger = logging.getLogger("stakevest")
    for handler in list(package_logger.handlers):
        handler.close()
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
