# =============================================================================
# tests/test_server.py - Process Bootstrap Tests
# =============================================================================
# This module contains tests for the shutdown policy:
# - missing settings exit with 1 before listening
# - unhandled task errors stop the listener and exit with 1
# - SIGTERM closes the listener gracefully
# - uncaught exceptions exit with 1
# =============================================================================

import asyncio
import logging
import signal
from unittest.mock import AsyncMock, patch

import pytest
import uvicorn

from app import server as server_module
from app.config import get_settings
from app.server import Server, log_uncaught_exception, main


@pytest.fixture(autouse=True)
def keep_excepthook():
    """main() installs its own excepthook; restore the original afterwards."""
    with patch.object(server_module.sys, "excepthook"):
        yield


@pytest.fixture
def server():
    return Server(uvicorn.Config(app="app.main:app"))


class TestServer:

    def test_unhandled_error_requests_exit(self, server, caplog):
        loop = asyncio.new_event_loop()
        try:
            with caplog.at_level(logging.ERROR, logger="app.server"):
                server.handle_unhandled_error(loop, {"exception": RuntimeError("lost connection")})
        finally:
            loop.close()

        assert server.should_exit is True
        assert server.exit_code == 1
        assert "UNHANDLED REJECTION! Shutting down..." in caplog.text
        assert "RuntimeError: lost connection" in caplog.text

    def test_sigterm_is_graceful(self, server, caplog):
        with caplog.at_level(logging.INFO, logger="app.server"):
            server.handle_exit(signal.SIGTERM, None)

        assert server.should_exit is True
        assert server.exit_code == 0
        assert "SIGTERM RECEIVED. Shutting down gracefully." in caplog.text


class TestMain:

    def test_missing_settings_exit_1(self, monkeypatch, tmp_path, caplog):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("DATABASE", raising=False)
        get_settings.cache_clear()
        try:
            with caplog.at_level(logging.ERROR, logger="app.server"):
                assert main() == 1
        finally:
            monkeypatch.undo()
            get_settings.cache_clear()

        assert "Missing required environment variables" in caplog.text

    def test_runs_until_closed(self, caplog):
        with patch.object(Server, "serve", new_callable=AsyncMock) as serve:
            with caplog.at_level(logging.INFO, logger="app.server"):
                exit_code = main()

        assert exit_code == 0
        serve.assert_called_once()
        assert "App running on port 5000..." in caplog.text
        assert "Process terminated" in caplog.text


class TestUncaughtException:

    def test_exits_with_1(self, caplog):
        with caplog.at_level(logging.CRITICAL, logger="app.server"):
            with pytest.raises(SystemExit) as exc_info:
                log_uncaught_exception(ValueError, ValueError("bad state"), None)

        assert exc_info.value.code == 1
        assert "UNCAUGHT EXCEPTION! Shutting down..." in caplog.text
