"""Tests for the dispatch logging helpers."""

import logging

import pytest
import structlog

from dispatch.utils.logging import add_context, bind_actor, clear_context, setup_stdlib_logging


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestRequestContext:
    def test_bind_actor_tags_context(self):
        clear_context()
        add_context(method="PUT", path="/orders/ord-1/approve")
        bind_actor("vendor", "vend-1")

        assert structlog.contextvars.get_contextvars() == {
            "method": "PUT",
            "path": "/orders/ord-1/approve",
            "actor_role": "vendor",
            "actor_id": "vend-1",
        }
        clear_context()

    def test_clear_context_drops_previous_actor(self):
        bind_actor("delivery_partner", "partner-1")
        clear_context()
        add_context(method="GET", path="/orders")

        assert "actor_id" not in structlog.contextvars.get_contextvars()
        clear_context()


class TestNoisyLoggers:
    def test_library_loggers_held_at_warning(self, tmp_path, restore_root_logger):
        setup_stdlib_logging(level="DEBUG", log_dir=str(tmp_path))

        assert logging.getLogger().level == logging.DEBUG
        for name in ("protean", "urllib3", "asyncio"):
            assert logging.getLogger(name).level == logging.WARNING
        assert (tmp_path / "dispatch.log").exists()
