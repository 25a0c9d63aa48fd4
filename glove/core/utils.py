"""Helpers shared by the runtime components."""

import asyncio
from collections.abc import Awaitable
from dataclasses import replace
from typing import TypeVar

from glove.core.cancellation import CancellationToken
from glove.core.errors import AbortError
from glove.core.messages import Message, ToolResult

T = TypeVar("T")


def split_at_last_compaction(messages: list[Message]) -> list[Message]:
    """Return messages from the last compaction summary onward.

    Stores may keep the full log for replay; the model only sees the
    post-compaction context.

    Args:
        messages: Stored history, oldest first

    Returns:
        The suffix starting at the last ``is_compaction`` message, or all messages
    """
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].is_compaction:
            return messages[index:]
    return messages


def strip_render_data(messages: list[Message]) -> list[Message]:
    """Drop presentation-only render data from every tool result.

    Args:
        messages: History about to be sent to a model

    Returns:
        Copies of the messages whose tool results carry no render data
    """
    stripped = []
    for message in messages:
        if not message.tool_results:
            stripped.append(message)
            continue
        results = [_without_render_data(result) for result in message.tool_results]
        stripped.append(replace(message, tool_results=results))
    return stripped


def _without_render_data(result: ToolResult) -> ToolResult:
    if result.result.render_data is None:
        return result
    return replace(result, result=replace(result.result, render_data=None))


async def race_cancellation(
    awaitable: Awaitable[T],
    cancellation_token: CancellationToken | None,
) -> T:
    """Await ``awaitable`` unless the token fires first.

    When the token fires the pending work is cancelled and AbortError is raised
    immediately, without waiting for the work to finish.

    Args:
        awaitable: Coroutine or future to run
        cancellation_token: Token to race against; None awaits normally

    Returns:
        The awaitable's result

    Raises:
        AbortError: If the token fired before the awaitable completed
    """
    if cancellation_token is None:
        return await awaitable

    if cancellation_token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise AbortError(cancellation_token.reason)

    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancellation_token.wait())
    try:
        await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not work.done():
            work.cancel()

    if work.done() and not work.cancelled():
        return work.result()
    if cancellation_token.cancelled:
        raise AbortError(cancellation_token.reason)
    return work.result()
