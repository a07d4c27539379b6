"""
Event hooks for memory lifecycle management.

Provides a pub/sub system for:
- Memory creation and reinforcement
- User edits and deletions
- Merges and bulk clears
- Ingestion runs
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable

from wing_memory.models import BaseMemory, MemoryCategory

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class HookEvent(str, Enum):
    """Types of hook events."""

    # Memory lifecycle
    MEMORY_CREATED = "memory_created"
    MEMORY_REINFORCED = "memory_reinforced"
    MEMORY_UPDATED = "memory_updated"
    MEMORY_DELETED = "memory_deleted"

    # Bulk operations
    MEMORIES_MERGED = "memories_merged"
    MEMORIES_CLEARED = "memories_cleared"
    INGEST_COMPLETED = "ingest_completed"


@dataclass
class HookContext:
    """Context passed to hook callbacks."""

    event: HookEvent
    timestamp: datetime = field(default_factory=_utcnow)
    memory: BaseMemory | None = None
    memory_id: str | None = None
    category: MemoryCategory | None = None
    data: dict = field(default_factory=dict)


# Type for hook callbacks
HookCallback = Callable[[HookContext], None]
AsyncHookCallback = Callable[[HookContext], Awaitable[None]]


class HookRegistry:
    """
    Registry for memory event hooks.

    Callbacks run after the store has committed the change they describe.
    A failing callback is logged and never affects the operation itself.
    """

    def __init__(self):
        self._sync_hooks: dict[HookEvent, list[HookCallback]] = {}
        self._async_hooks: dict[HookEvent, list[AsyncHookCallback]] = {}
        self._global_hooks: list[HookCallback] = []
        self._enabled = True

    def register(self, event: HookEvent, callback: HookCallback) -> None:
        """
        Register a synchronous hook for an event.

        Args:
            event: The event to hook
            callback: Function to call when event occurs
        """
        self._sync_hooks.setdefault(event, []).append(callback)

    def register_async(self, event: HookEvent, callback: AsyncHookCallback) -> None:
        """Register an async hook for an event."""
        self._async_hooks.setdefault(event, []).append(callback)

    def register_global(self, callback: HookCallback) -> None:
        """Register a synchronous hook that fires for all events."""
        self._global_hooks.append(callback)

    def unregister(self, event: HookEvent, callback: HookCallback | AsyncHookCallback) -> bool:
        """
        Unregister a hook.

        Returns:
            True if callback was found and removed
        """
        for hooks in (self._sync_hooks, self._async_hooks):
            if callback in hooks.get(event, []):
                hooks[event].remove(callback)
                return True
        return False

    def trigger(self, context: HookContext) -> list[Exception]:
        """
        Trigger all synchronous hooks for an event.

        Returns:
            List of any exceptions that occurred
        """
        if not self._enabled:
            return []

        errors = []
        for callback in self._global_hooks + self._sync_hooks.get(context.event, []):
            try:
                callback(context)
            except Exception as e:
                logger.warning("Hook %r failed on %s: %s", callback, context.event.value, e)
                errors.append(e)

        return errors

    async def trigger_async(self, context: HookContext) -> list[Exception]:
        """
        Trigger sync hooks, then async hooks, for an event.

        Returns:
            List of any exceptions that occurred
        """
        if not self._enabled:
            return []

        errors = self.trigger(context)

        for callback in self._async_hooks.get(context.event, []):
            try:
                await callback(context)
            except Exception as e:
                logger.warning("Async hook %r failed on %s: %s", callback, context.event.value, e)
                errors.append(e)

        return errors

    def enable(self) -> None:
        """Enable hook triggering."""
        self._enabled = True

    def disable(self) -> None:
        """Disable hook triggering (for testing/debugging)."""
        self._enabled = False

    def clear(self, event: HookEvent | None = None) -> None:
        """
        Clear registered hooks.

        Args:
            event: Specific event to clear, or None for all
        """
        if event:
            self._sync_hooks.pop(event, None)
            self._async_hooks.pop(event, None)
        else:
            self._sync_hooks.clear()
            self._async_hooks.clear()
            self._global_hooks.clear()

    def get_hook_count(self, event: HookEvent | None = None) -> int:
        """Get count of registered hooks."""
        if event:
            return len(self._sync_hooks.get(event, [])) + len(self._async_hooks.get(event, []))

        total = len(self._global_hooks)
        for hooks in self._sync_hooks.values():
            total += len(hooks)
        for hooks in self._async_hooks.values():
            total += len(hooks)
        return total


def memory_event(event: HookEvent, memory: BaseMemory, **extra_data) -> HookContext:
    """Build the context for an event about one memory."""
    return HookContext(
        event=event,
        memory=memory,
        memory_id=memory.id,
        category=memory.category,
        data=extra_data,
    )
