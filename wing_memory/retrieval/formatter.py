"""
Rendering of selected memories for the generation prompt.
"""

from wing_memory.models import BaseMemory, EpisodicMemory, ProceduralMemory, SemanticMemory

BACKGROUND_HEADER = "Background Context (Implicit Knowledge):"


def format_memory(memory: BaseMemory) -> str:
    """One memory as a single prompt line."""
    if isinstance(memory, SemanticMemory):
        return f"[Fact] {memory.key}: {memory.value}"

    if isinstance(memory, EpisodicMemory):
        details = [d for d in (memory.emotion, memory.context) if d]
        suffix = f" ({'; '.join(details)})" if details else ""
        return f"[Event {memory.date}] {memory.event}{suffix}"

    if isinstance(memory, ProceduralMemory):
        line = f"[Pattern] {memory.pattern}"
        if memory.preference:
            line += f"; preference: {memory.preference}"
        if memory.trigger:
            line += f"; trigger: {memory.trigger}"
        return line

    return memory.primary_text


def format_for_prompt(memories: list[BaseMemory]) -> list[str]:
    """Format memories as the strings handed to the generation step."""
    return [format_memory(memory) for memory in memories]


def render_background_context(memories: list[BaseMemory]) -> str:
    """
    The block appended to the generation prompt.

    Empty when there is nothing to inject, so callers can append it
    unconditionally.
    """
    if not memories:
        return ""
    return f"{BACKGROUND_HEADER}\n\n" + "\n\n".join(format_for_prompt(memories))
