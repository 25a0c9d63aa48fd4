"""glove - An agent runtime with tool execution, suspendable UI slots and history compaction."""

from glove.core import (
    AbortError,
    CancellationToken,
    CompactionConfig,
    ContentPart,
    DisplayManager,
    GloveError,
    Message,
    ModelPromptResult,
    Renderer,
    Sender,
    Tool,
    ToolCall,
    ToolResult,
    ToolResultData,
)
from glove.glove import Glove, GloveConfig
from glove.observability.subscribers import LoggingSubscriber
from glove.settings import Settings
from glove.stores import MemoryStore, SqlStore

__all__ = [
    "AbortError",
    "CancellationToken",
    "CompactionConfig",
    "ContentPart",
    "DisplayManager",
    "Glove",
    "GloveConfig",
    "GloveError",
    "LoggingSubscriber",
    "Message",
    "MemoryStore",
    "ModelPromptResult",
    "Renderer",
    "Sender",
    "Settings",
    "SqlStore",
    "Tool",
    "ToolCall",
    "ToolResult",
    "ToolResultData",
]
