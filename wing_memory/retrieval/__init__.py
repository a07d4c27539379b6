"""
Retrieval of stored memories for the journal generation prompt.

Provides:
- Budgeted, per-category selection
- Prompt formatting
"""

from wing_memory.retrieval.formatter import (
    BACKGROUND_HEADER,
    format_for_prompt,
    format_memory,
    render_background_context,
)
from wing_memory.retrieval.selector import (
    CATEGORY_ORDER,
    RetrievalSelector,
    allocate_quotas,
    rank_category,
)

__all__ = [
    # Selector
    "CATEGORY_ORDER",
    "RetrievalSelector",
    "allocate_quotas",
    "rank_category",
    # Formatter
    "BACKGROUND_HEADER",
    "format_for_prompt",
    "format_memory",
    "render_background_context",
]
