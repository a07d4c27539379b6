"""
API module for the Wing memory engine.

Provides:
- MemoryEngine: Main orchestrator for all memory operations
- Hooks: Event system for memory lifecycle
"""

from wing_memory.api.memory_engine import Extractor, MemoryEngine
from wing_memory.hooks import (
    AsyncHookCallback,
    HookCallback,
    HookContext,
    HookEvent,
    HookRegistry,
)

__all__ = [
    # Memory Engine
    "MemoryEngine",
    "Extractor",
    # Hooks
    "HookEvent",
    "HookContext",
    "HookRegistry",
    "HookCallback",
    "AsyncHookCallback",
]
