"""Suspendable UI slot stack.

Tools push slots onto the stack to show something to an external actor (a
table, a form, an approval prompt). ``push_and_wait`` suspends the tool until
somebody resolves the slot; presentation of the slot is entirely up to the
listeners subscribed to the stack.
"""

import asyncio
import inspect
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeAlias

from pydantic import BaseModel

from glove.core.errors import GloveError

logger = logging.getLogger(__name__)


class SlotState(StrEnum):
    """Lifecycle of a slot. Every state except CREATED is terminal."""

    CREATED = "created"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    REMOVED = "removed"


class SlotRemovedError(GloveError):
    """Raised in a waiting caller when its slot is removed before resolution."""

    def __init__(self, slot_id: str):
        self.slot_id = slot_id
        super().__init__(f"Slot {slot_id} was removed before it was resolved")


class SlotRejectedError(GloveError):
    """Raised in a waiting caller when its slot is rejected with a non-exception reason."""

    def __init__(self, slot_id: str, reason: Any):
        self.slot_id = slot_id
        self.reason = reason
        super().__init__(f"Slot {slot_id} was rejected: {reason}")


@dataclass(frozen=True)
class Renderer:
    """A named presentation known to the display manager.

    Attributes:
        name: Tag referenced by slots
        input_schema: Optional model validating slot input on push
        output_schema: Optional model validating the resolution value
    """

    name: str
    input_schema: type[BaseModel] | None = None
    output_schema: type[BaseModel] | None = None


@dataclass(frozen=True)
class Slot:
    """A unit of externally presented content.

    Attributes:
        id: Generator-assigned identifier
        renderer: Tag naming the external presentation
        input: Payload handed to the renderer
    """

    id: str
    renderer: str
    input: Any = None


StackListener: TypeAlias = Callable[[list[Slot]], Awaitable[None] | None]
Unsubscribe: TypeAlias = Callable[[], None]


class DisplayManager:
    """Ordered slot stack with blocking and non-blocking pushes.

    All mutations happen on one event loop under a lock, and each takes its
    snapshot of the full stack before releasing it. Listeners are called after
    the lock is released, so a listener may itself push or remove slots.
    ``resolve``/``reject`` may be called from any thread; they are marshalled
    onto the loop that owns the waiting caller.

    States of slots that left the stack are kept for the most recent
    ``settled_history`` slots only.
    """

    def __init__(self, settled_history: int = 256) -> None:
        self._slot_count = 0
        self._stack: list[Slot] = []
        self._listeners: list[StackListener] = []
        self._pending: dict[str, asyncio.Future[Any]] = {}
        self._states: dict[str, SlotState] = {}
        self._settled: OrderedDict[str, SlotState] = OrderedDict()
        self._settled_history = settled_history
        self._renderers: dict[str, Renderer] = {}
        self._lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def stack(self) -> list[Slot]:
        """Snapshot of the current stack, bottom first."""
        return list(self._stack)

    @property
    def renderers(self) -> list[Renderer]:
        return list(self._renderers.values())

    @property
    def pending_slot_ids(self) -> list[str]:
        """Ids of slots with a caller waiting for resolution."""
        return list(self._pending)

    def slot_state(self, slot_id: str) -> SlotState | None:
        state = self._states.get(slot_id)
        if state is None:
            state = self._settled.get(slot_id)
        return state

    def register_renderer(self, renderer: Renderer) -> None:
        self._renderers[renderer.name] = renderer

    def subscribe(self, listener: StackListener) -> Unsubscribe:
        """Register a listener called with the full stack after every mutation.

        Args:
            listener: Sync or async callable receiving the current stack

        Returns:
            Function removing the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def push_and_forget(self, renderer: str, input: Any = None) -> str:
        """Push a slot without waiting for it.

        Returns:
            The new slot id
        """
        async with self._lock:
            slot = self._push(renderer, input)
            snapshot = self.stack
        await self._notify(snapshot)
        return slot.id

    async def push_and_wait(self, renderer: str, input: Any = None) -> Any:
        """Push a slot and suspend until it is resolved or rejected.

        The slot stays on the stack after resolution; removing it is up to the
        caller.

        Returns:
            The resolution value, validated against the renderer's output schema if any

        Raises:
            Exception: The reason the slot was rejected with, if it is an exception
            SlotRejectedError: If the slot was rejected with any other reason
            SlotRemovedError: If the slot is removed while still pending
        """
        return await self._push_and_wait(renderer, input, remove_when_settled=False)

    async def request_input(self, renderer: str, input: Any = None) -> Any:
        """Push a slot, wait for its resolution, then remove it from the stack.

        Returns:
            The resolution value, as for push_and_wait
        """
        return await self._push_and_wait(renderer, input, remove_when_settled=True)

    async def _push_and_wait(self, renderer: str, input: Any, remove_when_settled: bool) -> Any:
        loop = asyncio.get_running_loop()
        self._loop = loop
        future: asyncio.Future[Any] = loop.create_future()
        async with self._lock:
            slot = self._push(renderer, input)
            self._pending[slot.id] = future
            snapshot = self.stack

        try:
            await self._notify(snapshot)
            value = await future
        finally:
            # A cancelled waiter leaves nothing to resolve.
            if self._pending.get(slot.id) is future:
                del self._pending[slot.id]
            if remove_when_settled and any(s.id == slot.id for s in self._stack):
                await asyncio.shield(self.remove_slot(slot.id))

        registered = self._renderers.get(renderer)
        if registered and registered.output_schema is not None:
            return registered.output_schema.model_validate(value)
        return value

    def resolve(self, slot_id: str, value: Any = None) -> None:
        """Complete a pending slot with ``value``. No-op if nothing is pending."""
        self._dispatch(self._settle, slot_id, SlotState.RESOLVED, value)

    def reject(self, slot_id: str, reason: Any = None) -> None:
        """Fail a pending slot with ``reason``. No-op if nothing is pending."""
        self._dispatch(self._settle, slot_id, SlotState.REJECTED, reason)

    async def remove_slot(self, slot_id: str) -> None:
        """Drop a slot from the stack and notify listeners."""
        async with self._lock:
            self._stack = [s for s in self._stack if s.id != slot_id]
            self._drop_pending(slot_id)
            self._retire(slot_id)
            snapshot = self.stack
        await self._notify(snapshot)

    async def clear_stack(self) -> None:
        """Drop every slot and notify listeners once."""
        async with self._lock:
            for slot in self._stack:
                self._drop_pending(slot.id)
                self._retire(slot.id)
            self._stack = []
        await self._notify([])

    def _next_slot_id(self) -> str:
        self._slot_count += 1
        return f"slot_{self._slot_count}"

    def _push(self, renderer: str, input: Any) -> Slot:
        registered = self._renderers.get(renderer)
        if registered and registered.input_schema is not None:
            registered.input_schema.model_validate(input)

        slot = Slot(id=self._next_slot_id(), renderer=renderer, input=input)
        self._stack.append(slot)
        self._states[slot.id] = SlotState.CREATED
        logger.debug("Pushed slot %s (renderer=%s)", slot.id, renderer)
        return slot

    def _drop_pending(self, slot_id: str) -> None:
        if self._states.get(slot_id) == SlotState.CREATED:
            self._states[slot_id] = SlotState.REMOVED
        future = self._pending.pop(slot_id, None)
        if future is not None and not future.done():
            future.set_exception(SlotRemovedError(slot_id))

    def _retire(self, slot_id: str) -> None:
        state = self._states.pop(slot_id, None)
        if state is None:
            return
        self._settled[slot_id] = state
        while len(self._settled) > self._settled_history:
            self._settled.popitem(last=False)

    def _settle(self, slot_id: str, state: SlotState, value: Any) -> None:
        future = self._pending.pop(slot_id, None)
        if future is None:
            return
        self._states[slot_id] = state
        if future.done():
            return
        if state == SlotState.RESOLVED:
            future.set_result(value)
        else:
            error = value if isinstance(value, BaseException) else SlotRejectedError(slot_id, value)
            future.set_exception(error)
        logger.debug("Slot %s %s", slot_id, state)

    def _dispatch(self, callback: Callable[..., None], *args: Any) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if self._loop is not None and running is not self._loop and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(callback, *args)
        else:
            callback(*args)

    async def _notify(self, snapshot: list[Slot]) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(list(snapshot))
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.warning("Display listener %r failed", listener, exc_info=True)
