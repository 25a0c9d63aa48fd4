"""Built-in tool letting the model maintain a session task list."""

import time
from typing import Any

from pydantic import BaseModel, Field

from glove.constants import TASK_TOOL_NAME
from glove.core.context import Context
from glove.core.executor import Tool
from glove.core.messages import Task, TaskStatus, ToolResultData
from glove.core.protocol import HandOverFunction

TASK_TOOL_DESCRIPTION = (
    "Use this tool to create and manage a structured task list for the current session. "
    "Call this tool with the FULL updated list of tasks each time. Each task has:\n"
    '- content: imperative form describing the task ("Fix the bug", "Run tests")\n'
    '- active_form: present continuous form shown during execution ("Fixing the bug", '
    '"Running tests")\n'
    '- status: "pending", "in_progress", or "completed"\n\n'
    "Only one task should be in_progress at a time. "
    "Mark tasks completed immediately after finishing them."
)


class TaskItem(BaseModel):
    """One entry of the task list as sent by the model."""

    content: str = Field(min_length=1, description="Imperative description of the task")
    active_form: str = Field(min_length=1, description="Present continuous description")
    status: TaskStatus = Field(description="Current progress of the task")


class TaskToolInput(BaseModel):
    todos: list[TaskItem] = Field(description="The full, updated task list")


def create_task_tool(context: Context) -> Tool:
    """Create the task-list tool bound to a context.

    Each call replaces the stored list wholesale. A task whose content matches
    an existing task keeps that task's id; new tasks get a fresh one.

    Args:
        context: Context whose store holds the tasks

    Returns:
        The tool, ready to register on an executor
    """

    async def run(input: TaskToolInput, hand_over: HandOverFunction | None) -> ToolResultData:
        current = {task.content: task.id for task in await context.get_tasks()}
        stamp = int(time.time() * 1000)
        updated = [
            Task(
                id=current.get(todo.content, f"task_{stamp}_{index}"),
                content=todo.content,
                active_form=todo.active_form,
                status=todo.status,
            )
            for index, todo in enumerate(input.todos)
        ]
        await context.add_tasks(updated)
        tasks: list[dict[str, Any]] = [
            {
                "id": task.id,
                "content": task.content,
                "active_form": task.active_form,
                "status": str(task.status),
            }
            for task in updated
        ]
        return ToolResultData.success(data={"tasks": tasks})

    return Tool(
        name=TASK_TOOL_NAME,
        description=TASK_TOOL_DESCRIPTION,
        input_schema=TaskToolInput,
        run=run,
    )
