"""Framework-agnostic message, tool and task types.

These types are the common vocabulary shared by the agent loop, the tool
executor, stores and model adapters.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from glove.core.executor import Tool


class Sender(StrEnum):
    """Author of a message."""

    USER = "user"
    AGENT = "agent"


class ContentType(StrEnum):
    """Kind of a multimodal content part."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"


class SourceType(StrEnum):
    """How a media part carries its payload."""

    BASE64 = "base64"
    URL = "url"


class ToolResultStatus(StrEnum):
    """Outcome of a single tool call."""

    SUCCESS = "success"
    ERROR = "error"
    ABORTED = "aborted"


class TaskStatus(StrEnum):
    """Progress of a tracked task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class PermissionStatus(StrEnum):
    """Stored permission decision for a tool."""

    GRANTED = "granted"
    DENIED = "denied"
    UNSET = "unset"


@dataclass(frozen=True)
class ContentSource:
    """Inline or remote payload of a media content part.

    Attributes:
        type: Either inline base64 data or a URL reference
        media_type: MIME type of the payload (e.g., "image/png")
        data: Base64 payload, set when type is base64
        url: Remote location, set when type is url
    """

    type: SourceType
    media_type: str
    data: str | None = None
    url: str | None = None

    def __post_init__(self) -> None:
        if self.type == SourceType.BASE64 and self.data is None:
            raise ValueError("base64 sources require data")
        if self.type == SourceType.URL and self.url is None:
            raise ValueError("url sources require a url")


@dataclass(frozen=True)
class ContentPart:
    """One part of a multimodal message.

    Attributes:
        type: Kind of part
        text: Text body, for text parts
        source: Payload descriptor, for image/video/document parts
    """

    type: ContentType
    text: str | None = None
    source: ContentSource | None = None

    @classmethod
    def from_text(cls, text: str) -> "ContentPart":
        return cls(type=ContentType.TEXT, text=text)


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model.

    Attributes:
        tool_name: Registered name of the tool to run
        input_args: Unvalidated arguments produced by the model
        id: Provider call id correlating this call to its ToolResult
    """

    tool_name: str
    input_args: Any = None
    id: str | None = None


@dataclass(frozen=True)
class ToolResultData:
    """Value returned by a tool body.

    Attributes:
        status: success, error, or aborted
        data: Value surfaced to the model
        message: Human-readable failure description, present iff status is not success
        render_data: Presentation-only value, never sent to the model
    """

    status: ToolResultStatus
    data: Any = None
    message: str | None = None
    render_data: Any = None

    def __post_init__(self) -> None:
        if self.status == ToolResultStatus.SUCCESS and self.message is not None:
            raise ValueError("successful tool results must not carry a message")
        if self.status != ToolResultStatus.SUCCESS and self.message is None:
            raise ValueError(f"{self.status} tool results require a message")

    @classmethod
    def success(cls, data: Any = None, render_data: Any = None) -> "ToolResultData":
        return cls(status=ToolResultStatus.SUCCESS, data=data, render_data=render_data)

    @classmethod
    def error(cls, message: str, data: Any = None) -> "ToolResultData":
        return cls(status=ToolResultStatus.ERROR, data=data, message=message)

    @classmethod
    def aborted(cls, message: str = "Tool execution was aborted by the user.") -> "ToolResultData":
        return cls(status=ToolResultStatus.ABORTED, message=message)


@dataclass(frozen=True)
class ToolResult:
    """Result of one executed ToolCall.

    Attributes:
        tool_name: Name of the tool that was called
        call_id: Id of the originating ToolCall
        result: Data produced by the call
    """

    tool_name: str
    call_id: str | None
    result: ToolResultData


@dataclass(frozen=True)
class Message:
    """One turn of conversation content.

    Attributes:
        sender: user or agent
        text: Plain text body
        id: Optional provider message id
        content: Ordered multimodal parts
        tool_calls: Calls requested by the model (agent messages only)
        tool_results: Tool outputs sent back to the model (user messages only)
        is_compaction: Marks a generated conversation summary
    """

    sender: Sender
    text: str
    id: str | None = None
    content: list[ContentPart] | None = None
    tool_calls: list[ToolCall] | None = None
    tool_results: list[ToolResult] | None = None
    is_compaction: bool = False

    def __post_init__(self) -> None:
        if self.tool_calls and self.sender != Sender.AGENT:
            raise ValueError("only agent messages may carry tool_calls")
        if self.tool_results and self.sender != Sender.USER:
            raise ValueError("only user messages may carry tool_results")

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass(frozen=True)
class ModelPromptResult:
    """Response of one model call.

    Attributes:
        messages: Messages produced by the model (usually one agent message)
        tokens_in: Prompt tokens consumed
        tokens_out: Completion tokens produced
    """

    messages: list[Message]
    tokens_in: int = 0
    tokens_out: int = 0

    @property
    def text(self) -> str:
        """Concatenated text of all agent messages."""
        return "\n".join(m.text for m in self.messages if m.sender == Sender.AGENT and m.text)

    @property
    def tool_calls(self) -> list[ToolCall]:
        return [call for m in self.messages for call in (m.tool_calls or [])]


@dataclass
class Task:
    """A tracked unit of work.

    Attributes:
        id: Stable task identifier
        content: Imperative description ("Run tests")
        active_form: Progressive description ("Running tests")
        status: Current progress
    """

    id: str
    content: str
    active_form: str
    status: TaskStatus = TaskStatus.PENDING


@dataclass(frozen=True)
class PromptRequest:
    """Input of one model call.

    Attributes:
        messages: History to send, already stripped of render data
        tools: Tool catalog the model may call
    """

    messages: list[Message]
    tools: list["Tool"] = field(default_factory=list)
