"""Bugsnag error reporting integration.

Failed requests are logged at ERROR level by the runtime; attaching the
Bugsnag handler to the root logger turns those entries into reports, each
tagged with the session that was being served.
"""

import logging

import bugsnag
from bugsnag.event import Event
from bugsnag.handlers import BugsnagHandler

from glove.observability.logging import session_id_ctx


def add_session_metadata(event: Event) -> None:
    """Attach the current session id to a Bugsnag report."""
    session_id = session_id_ctx.get()
    if session_id:
        event.add_tab("session", {"session_id": session_id})
        if not event.context:
            event.context = session_id


def initialize_bugsnag(api_key: str, release_stage: str) -> None:
    """Configure Bugsnag and report ERROR-level log entries.

    Args:
        api_key: Bugsnag project API key
        release_stage: Environment identifier (e.g., "production", "development", "local")

    Note:
        No-op when release_stage is "local".
    """
    if release_stage == "local":
        return
    bugsnag.configure(
        api_key=api_key,
        release_stage=release_stage,
        auto_notify=True,
    )
    bugsnag.before_notify(add_session_metadata)
    handler = BugsnagHandler()
    handler.setLevel(logging.ERROR)
    logging.getLogger().addHandler(handler)
