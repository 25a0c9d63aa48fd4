"""Unit tests for message, tool and task types."""

import dataclasses

import pytest

from glove.core.messages import (
    ContentPart,
    ContentSource,
    ContentType,
    Message,
    ModelPromptResult,
    Sender,
    SourceType,
    Task,
    TaskStatus,
    ToolCall,
    ToolResult,
    ToolResultData,
    ToolResultStatus,
)


class TestToolResultData:
    """Tests for ToolResultData invariants and constructors."""

    def test_success_has_no_message(self):
        """success() carries data and no message."""
        data = ToolResultData.success(data={"files": ["a.py"]})
        assert data.status == ToolResultStatus.SUCCESS
        assert data.data == {"files": ["a.py"]}
        assert data.message is None

    def test_error_requires_message(self):
        """An error status without a message is rejected."""
        with pytest.raises(ValueError, match="require a message"):
            ToolResultData(status=ToolResultStatus.ERROR)

    def test_success_rejects_message(self):
        """A success status with a message is rejected."""
        with pytest.raises(ValueError, match="must not carry a message"):
            ToolResultData(status=ToolResultStatus.SUCCESS, message="oops")

    def test_error_constructor(self):
        """error() sets status and message."""
        data = ToolResultData.error("boom", data={"code": 1})
        assert data.status == ToolResultStatus.ERROR
        assert data.message == "boom"
        assert data.data == {"code": 1}

    def test_aborted_constructor(self):
        """aborted() has a default human-readable message."""
        data = ToolResultData.aborted()
        assert data.status == ToolResultStatus.ABORTED
        assert data.message

    def test_render_data_kept_separately(self):
        """render_data is stored next to data."""
        data = ToolResultData.success(data="summary", render_data={"rows": 3})
        assert data.render_data == {"rows": 3}

    def test_immutable(self):
        """ToolResultData is frozen."""
        data = ToolResultData.success()
        with pytest.raises(dataclasses.FrozenInstanceError):
            data.data = "other"  # type: ignore


class TestMessage:
    """Tests for Message sender invariants."""

    def test_agent_message_with_tool_calls(self):
        """Agent messages may carry tool calls."""
        message = Message(
            sender=Sender.AGENT, text="", tool_calls=[ToolCall(tool_name="list_dir", id="c1")]
        )
        assert message.has_tool_calls

    def test_user_message_rejects_tool_calls(self):
        """User messages cannot carry tool calls."""
        with pytest.raises(ValueError, match="only agent messages"):
            Message(sender=Sender.USER, text="", tool_calls=[ToolCall(tool_name="x")])

    def test_agent_message_rejects_tool_results(self):
        """Agent messages cannot carry tool results."""
        result = ToolResult(tool_name="x", call_id="c1", result=ToolResultData.success())
        with pytest.raises(ValueError, match="only user messages"):
            Message(sender=Sender.AGENT, text="", tool_results=[result])

    def test_defaults(self):
        """Optional fields default to empty."""
        message = Message(sender=Sender.USER, text="hello")
        assert message.id is None
        assert message.content is None
        assert message.tool_calls is None
        assert message.tool_results is None
        assert message.is_compaction is False
        assert not message.has_tool_calls

    def test_empty_tool_calls_allowed_on_user(self):
        """An empty tool_calls list does not violate the sender rule."""
        message = Message(sender=Sender.USER, text="hi", tool_calls=[])
        assert not message.has_tool_calls


class TestContent:
    """Tests for multimodal content parts."""

    def test_from_text(self):
        """from_text builds a text part."""
        part = ContentPart.from_text("hello")
        assert part.type == ContentType.TEXT
        assert part.text == "hello"

    def test_base64_source_requires_data(self):
        """base64 sources must carry data."""
        with pytest.raises(ValueError):
            ContentSource(type=SourceType.BASE64, media_type="image/png")

    def test_url_source_requires_url(self):
        """url sources must carry a url."""
        with pytest.raises(ValueError):
            ContentSource(type=SourceType.URL, media_type="image/png")

    def test_image_part(self):
        """Media parts reference a source."""
        source = ContentSource(type=SourceType.URL, media_type="image/png", url="https://x/y.png")
        part = ContentPart(type=ContentType.IMAGE, source=source)
        assert part.source.url == "https://x/y.png"


class TestModelPromptResult:
    """Tests for ModelPromptResult helpers."""

    def test_text_joins_agent_messages(self):
        """text joins the text of agent messages."""
        result = ModelPromptResult(
            messages=[
                Message(sender=Sender.AGENT, text="first"),
                Message(sender=Sender.AGENT, text="second"),
            ]
        )
        assert result.text == "first\nsecond"

    def test_tool_calls_flattened(self):
        """tool_calls collects calls across messages in order."""
        result = ModelPromptResult(
            messages=[
                Message(sender=Sender.AGENT, text="", tool_calls=[ToolCall(tool_name="a")]),
                Message(sender=Sender.AGENT, text="", tool_calls=[ToolCall(tool_name="b")]),
            ]
        )
        assert [call.tool_name for call in result.tool_calls] == ["a", "b"]

    def test_token_defaults(self):
        """Token counts default to zero."""
        result = ModelPromptResult(messages=[])
        assert result.tokens_in == 0
        assert result.tokens_out == 0


class TestTask:
    """Tests for Task."""

    def test_default_status_pending(self):
        """New tasks are pending."""
        task = Task(id="t1", content="Run tests", active_form="Running tests")
        assert task.status == TaskStatus.PENDING
