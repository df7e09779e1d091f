"""
Tests for the uvicorn entry point.
"""
from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from server.__main__ import main
from server.config import Settings, set_settings


@pytest.fixture(autouse=True)
def reset_settings():
    yield
    set_settings(None)


def test_main_runs_uvicorn_with_settings():
    set_settings(Settings(port=8080, log_level="WARNING", reload=True))
    with patch("server.__main__.setup_logging") as logging_setup, \
            patch("server.__main__.uvicorn.run") as run:
        main()
    logging_setup.assert_called_once_with("WARNING")
    run.assert_called_once_with(
        "server.api:app",
        host="0.0.0.0",
        port=8080,
        log_level="warning",
        reload=True,
    )


def test_main_reads_port_from_environment():
    set_settings(None)
    with patch.dict("os.environ", {"PORT": "5000", "LOG_LEVEL": "debug"}, clear=True), \
            patch("server.__main__.setup_logging"), \
            patch("server.__main__.uvicorn.run") as run:
        main()
    kwargs = run.call_args.kwargs
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["port"] == 5000
    assert kwargs["log_level"] == "debug"
    assert kwargs["reload"] is False
