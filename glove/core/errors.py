"""Exception hierarchy for the agent runtime.

Tool-level failures (validation, permission, body errors) never surface as
exceptions; they become error ``ToolResultData`` values the model can read.
Everything defined here is fatal for the ``ask`` call that raised it.
"""

from typing import Any


class GloveError(Exception):
    """Base exception for all runtime errors."""


class AbortError(GloveError):
    """Raised when a cancellation token fires at a suspension point."""

    def __init__(self, reason: Any = None):
        self.reason = reason
        reason_info = f": {reason}" if reason is not None else ""
        super().__init__(f"Operation aborted{reason_info}")


class ModelPromptError(GloveError):
    """Raised when the model collaborator fails for a reason other than cancellation."""

    def __init__(self, message: str, model_name: str | None = None):
        self.model_name = model_name
        model_info = f" [{model_name}]" if model_name else ""
        super().__init__(f"Model prompt failed{model_info}: {message}")


class CompactionError(GloveError):
    """Raised when the summarization call fails. Stored history is left untouched."""

    def __init__(self, message: str):
        super().__init__(f"Compaction failed: {message}")


class LoopLimitExceededError(GloveError):
    """Raised when a single request exceeds the configured number of model iterations."""

    def __init__(self, max_iterations: int):
        self.max_iterations = max_iterations
        super().__init__(
            f"Maximum agent iterations ({max_iterations}) exceeded; "
            "the model kept requesting tool calls"
        )


class ToolRegistryError(GloveError):
    """Raised on duplicate tool names or registration after the registry is frozen."""


class GloveNotBuiltError(GloveError):
    """Raised when a request is processed before ``build()``."""

    def __init__(self) -> None:
        super().__init__("Call build() before process_request()")


class GloveAlreadyBuiltError(GloveError):
    """Raised when tools are added after ``build()``."""

    def __init__(self) -> None:
        super().__init__("Already built; tools can only be registered before build()")


class SessionBusyError(GloveError):
    """Raised when a second request overlaps a running one on the same session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id!r} is already processing a request")
