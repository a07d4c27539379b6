"""
Budgeted selection of memories for the generation prompt.

Retrieval stays off until the store is large enough to be worth it. Past
that point a fixed budget is split between the categories and each
category contributes its strongest records.
"""

import logging
import math

from wing_memory.config import RetrievalConfig
from wing_memory.models import BaseMemory, MemoryCategory
from wing_memory.store.memory_store import MemoryStore

logger = logging.getLogger(__name__)

# Output order, also the tie-break order when quotas are rounded
CATEGORY_ORDER = (
    MemoryCategory.SEMANTIC,
    MemoryCategory.EPISODIC,
    MemoryCategory.PROCEDURAL,
)


def allocate_quotas(budget: int, shares: dict[str, float]) -> dict[MemoryCategory, int]:
    """
    Split a budget between categories by share.

    Uses largest-remainder rounding, so the quotas always sum to the budget
    (as long as some share is positive).
    """
    quotas = {category: 0 for category in CATEGORY_ORDER}
    weights = {c: max(0.0, shares.get(c.value, 0.0)) for c in CATEGORY_ORDER}
    total = sum(weights.values())
    if budget <= 0 or total <= 0:
        return quotas

    exact = {c: budget * w / total for c, w in weights.items()}
    for category, value in exact.items():
        quotas[category] = math.floor(value)

    leftover = budget - sum(quotas.values())
    by_remainder = sorted(
        CATEGORY_ORDER,
        key=lambda c: (-(exact[c] - quotas[c]), CATEGORY_ORDER.index(c)),
    )
    for category in by_remainder[:leftover]:
        quotas[category] += 1

    return quotas


def rank_category(category: MemoryCategory, records: list[BaseMemory]) -> list[BaseMemory]:
    """
    Order one category's records, strongest first.

    Semantic by confidence, procedural by frequency, episodic by date (most
    recent first); ties by most recently updated, then id.
    """
    ordered = sorted(records, key=lambda r: r.id)
    ordered.sort(key=lambda r: r.updated_at, reverse=True)

    if category == MemoryCategory.SEMANTIC:
        ordered.sort(key=lambda r: r.confidence, reverse=True)
    elif category == MemoryCategory.PROCEDURAL:
        ordered.sort(key=lambda r: r.frequency, reverse=True)
    else:
        ordered.sort(key=lambda r: r.date, reverse=True)
    return ordered


class RetrievalSelector:
    """
    Picks the memories injected into one generation.

    Usage:
        selector = RetrievalSelector(store)
        memories = await selector.select()
    """

    def __init__(self, store: MemoryStore, config: RetrievalConfig | None = None):
        self.store = store
        self.config = config or RetrievalConfig()

    async def select(self, budget: int | None = None) -> list[BaseMemory]:
        """
        Select up to `budget` memories.

        Returns an empty list while the store holds fewer than
        `min_total_memories` records, and when the store cannot be read.
        Unused quota moves to other categories when `redistribute_unused` is
        set, or when the fixed quotas alone would select nothing.
        """
        if budget is None:
            budget = self.config.default_budget
        if budget <= 0:
            return []

        try:
            snapshot = await self.store.snapshot()
        except Exception as e:
            logger.warning("Memory retrieval failed, continuing without memories: %s", e)
            return []

        total = sum(len(records) for records in snapshot.values())
        if total < self.config.min_total_memories:
            logger.debug(
                "Retrieval skipped: %d memories stored, %d required",
                total,
                self.config.min_total_memories,
            )
            return []

        quotas = allocate_quotas(budget, self.config.category_shares)
        ranked = {c: rank_category(c, snapshot.get(c, [])) for c in CATEGORY_ORDER}
        taken = {c: ranked[c][: quotas[c]] for c in CATEGORY_ORDER}

        # Every fixed slot landed on an empty category
        if self.config.redistribute_unused or not any(taken.values()):
            spare = budget - sum(len(records) for records in taken.values())
            for category in CATEGORY_ORDER:
                if spare <= 0:
                    break
                extra = ranked[category][len(taken[category]) : len(taken[category]) + spare]
                taken[category] = taken[category] + extra
                spare -= len(extra)

        selected = [record for c in CATEGORY_ORDER for record in taken[c]]
        logger.debug(
            "Selected %d memories (%s)",
            len(selected),
            ", ".join(f"{c.value}={len(taken[c])}" for c in CATEGORY_ORDER),
        )
        return selected
