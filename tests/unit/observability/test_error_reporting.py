"""Unit tests for Bugsnag initialization."""

import logging
from unittest.mock import MagicMock, patch

from bugsnag.handlers import BugsnagHandler

from glove.observability.errors import add_session_metadata, initialize_bugsnag
from glove.observability.logging import session_id_ctx


class TestInitializeBugsnag:
    """Tests for initialize_bugsnag."""

    def test_local_is_noop(self):
        """The local release stage configures nothing."""
        with patch("glove.observability.errors.bugsnag") as mock_bugsnag:
            initialize_bugsnag("key", "local")
        mock_bugsnag.configure.assert_not_called()

    def test_attaches_error_handler(self):
        """Other stages configure Bugsnag and attach an ERROR handler to the root logger."""
        root = logging.getLogger()
        handlers = list(root.handlers)
        try:
            with patch("glove.observability.errors.bugsnag") as mock_bugsnag:
                initialize_bugsnag("key", "production")

            mock_bugsnag.configure.assert_called_once_with(
                api_key="key", release_stage="production", auto_notify=True
            )
            added = [h for h in root.handlers if h not in handlers]
            assert len(added) == 1
            assert isinstance(added[0], BugsnagHandler)
            assert added[0].level == logging.ERROR
        finally:
            root.handlers[:] = handlers

    def test_registers_session_hook(self):
        """Reports are passed through the session metadata hook."""
        root = logging.getLogger()
        handlers = list(root.handlers)
        try:
            with patch("glove.observability.errors.bugsnag") as mock_bugsnag:
                initialize_bugsnag("key", "production")
            mock_bugsnag.before_notify.assert_called_once_with(add_session_metadata)
        finally:
            root.handlers[:] = handlers


class TestAddSessionMetadata:
    """Tests for the session metadata hook."""

    def test_attaches_session_id(self):
        """The current session id lands in a session tab and the report context."""
        event = MagicMock(context=None)
        token = session_id_ctx.set("session-42")
        try:
            add_session_metadata(event)
        finally:
            session_id_ctx.reset(token)

        event.add_tab.assert_called_once_with("session", {"session_id": "session-42"})
        assert event.context == "session-42"

    def test_keeps_existing_context(self):
        """An explicit report context is not overwritten."""
        event = MagicMock(context="POST /chat")
        token = session_id_ctx.set("session-42")
        try:
            add_session_metadata(event)
        finally:
            session_id_ctx.reset(token)

        assert event.context == "POST /chat"

    def test_no_session_leaves_event_alone(self):
        """Outside a request nothing is attached."""
        event = MagicMock(context=None)
        add_session_metadata(event)
        event.add_tab.assert_not_called()
        assert event.context is None
