"""Agent runtime core.

This module provides the building blocks composed by ``Glove``:
- Message, tool and task types
- Store, model and subscriber protocols
- Prompt machine, executor, observer and agent loop
- Display manager for suspendable UI slots
- Cancellation tokens and the exception hierarchy
"""

from glove.core.agent import Agent
from glove.core.cancellation import CancellationToken
from glove.core.config import CompactionConfig
from glove.core.context import Context
from glove.core.display_manager import (
    DisplayManager,
    Renderer,
    Slot,
    SlotRejectedError,
    SlotRemovedError,
    SlotState,
)
from glove.core.errors import (
    AbortError,
    CompactionError,
    GloveAlreadyBuiltError,
    GloveError,
    GloveNotBuiltError,
    LoopLimitExceededError,
    ModelPromptError,
    SessionBusyError,
    ToolRegistryError,
)
from glove.core.executor import Executor, Tool
from glove.core.messages import (
    ContentPart,
    ContentSource,
    ContentType,
    Message,
    ModelPromptResult,
    PermissionStatus,
    PromptRequest,
    Sender,
    SourceType,
    Task,
    TaskStatus,
    ToolCall,
    ToolResult,
    ToolResultData,
    ToolResultStatus,
)
from glove.core.observer import Observer
from glove.core.prompt_machine import PromptMachine
from glove.core.protocol import (
    HandOverFunction,
    ModelAdapter,
    NotifyFunction,
    PermissionStore,
    StoreAdapter,
    SubscriberAdapter,
    TaskStore,
)
from glove.core.subscribers import EventName, SubscriberSet
from glove.core.task_tool import create_task_tool

__all__ = [
    # Loop components
    "Agent",
    "Context",
    "Executor",
    "Observer",
    "PromptMachine",
    "Tool",
    "create_task_tool",
    # Display
    "DisplayManager",
    "Renderer",
    "Slot",
    "SlotRejectedError",
    "SlotRemovedError",
    "SlotState",
    # Configuration
    "CancellationToken",
    "CompactionConfig",
    # Types
    "ContentPart",
    "ContentSource",
    "ContentType",
    "Message",
    "ModelPromptResult",
    "PermissionStatus",
    "PromptRequest",
    "Sender",
    "SourceType",
    "Task",
    "TaskStatus",
    "ToolCall",
    "ToolResult",
    "ToolResultData",
    "ToolResultStatus",
    # Protocols
    "HandOverFunction",
    "ModelAdapter",
    "NotifyFunction",
    "PermissionStore",
    "StoreAdapter",
    "SubscriberAdapter",
    "TaskStore",
    # Events
    "EventName",
    "SubscriberSet",
    # Exceptions
    "AbortError",
    "CompactionError",
    "GloveAlreadyBuiltError",
    "GloveError",
    "GloveNotBuiltError",
    "LoopLimitExceededError",
    "ModelPromptError",
    "SessionBusyError",
    "ToolRegistryError",
]
