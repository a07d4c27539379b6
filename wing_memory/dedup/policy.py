"""
Insert-time deduplication.

Decides, for each incoming candidate, whether it is new (insert), repeats
something already stored (reinforce) or carries too little content to keep
(reject). Matching rules are per category:
- Semantic: same key, compared trimmed and case-insensitively
- Episodic: same day and similar event text
- Procedural: similar pattern, and similar trigger when both have one
"""

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel

from wing_memory.config import DeduplicationConfig
from wing_memory.dedup.similarity import similarity
from wing_memory.models import (
    BaseMemory,
    EpisodicMemory,
    MemoryCandidate,
    MemoryCategory,
    ProceduralMemory,
    SemanticMemory,
)

logger = logging.getLogger(__name__)


class DedupAction(str, Enum):
    """What to do with an incoming candidate."""

    INSERT = "insert"
    REINFORCE = "reinforce"
    REJECT = "reject"


class DedupDecision(BaseModel):
    """Outcome of checking one candidate against the stored records."""

    action: DedupAction
    match: BaseMemory | None = None
    score: float | None = None
    reason: str


def _key(text: str) -> str:
    return text.strip().casefold()


class DeduplicationPolicy:
    """
    Matching and reinforcement rules shared by ingestion and merge grouping.

    `match_score` accepts either a candidate or a stored record as its first
    argument, so the batch grouper compares stored records with exactly the
    same rules used at insert time.
    """

    def __init__(self, config: DeduplicationConfig | None = None):
        self.config = config or DeduplicationConfig()

    def content_problem(self, item: Any) -> str | None:
        """
        Explain why a candidate carries too little content to keep.

        Returns:
            A rejection reason, or None if the candidate has enough content
        """
        text = "".join(item.primary_text.split())
        if not any(ch.isalnum() for ch in text):
            return f"{item.category.value} content has no letters or digits"

        # The key names a fact, so a one-character value ("王", "O", "3") is enough
        if MemoryCategory(item.category) == MemoryCategory.SEMANTIC:
            return None

        if len(text) < self.config.min_content_chars:
            return (
                f"{item.category.value} content shorter than "
                f"{self.config.min_content_chars} characters"
            )
        return None

    def match_score(self, item: Any, record: BaseMemory) -> float | None:
        """
        Score how well `item` matches `record`.

        Returns:
            A score in [0, 1] when the two are duplicates, None otherwise
        """
        if MemoryCategory(item.category) != record.category:
            return None

        if record.category == MemoryCategory.SEMANTIC:
            return 1.0 if _key(item.key) == _key(record.key) else None

        if record.category == MemoryCategory.EPISODIC:
            if item.date != record.date:
                return None
            score = similarity(item.event, record.event)
            if score < self.config.episodic_similarity_threshold:
                return None
            return score

        score = similarity(item.pattern, record.pattern)
        if score < self.config.procedural_similarity_threshold:
            return None
        if item.trigger and record.trigger:
            trigger_score = similarity(item.trigger, record.trigger)
            if trigger_score < self.config.procedural_trigger_threshold:
                return None
        return score

    def find_match(
        self,
        item: Any,
        existing: list[BaseMemory],
    ) -> tuple[BaseMemory | None, float | None]:
        """
        Find the best matching record.

        Highest score wins; ties go to the oldest record, then the smallest id.
        """
        best: BaseMemory | None = None
        best_score: float | None = None
        best_rank: tuple | None = None

        for record in existing:
            if record.id == getattr(item, "id", None):
                continue
            score = self.match_score(item, record)
            if score is None:
                continue
            rank = (-score, record.created_at, record.id)
            if best_rank is None or rank < best_rank:
                best, best_score, best_rank = record, score, rank

        return best, best_score

    def decide(self, candidate: MemoryCandidate, existing: list[BaseMemory]) -> DedupDecision:
        """Decide whether to insert, reinforce or reject a candidate."""
        problem = self.content_problem(candidate)
        if problem is not None:
            return DedupDecision(action=DedupAction.REJECT, reason=problem)

        match, score = self.find_match(candidate, existing)
        if match is None:
            return DedupDecision(action=DedupAction.INSERT, reason="No matching memory")

        return DedupDecision(
            action=DedupAction.REINFORCE,
            match=match,
            score=score,
            reason=f"Matches {match.id} (score {score:.2f})",
        )

    def reinforce(self, record: BaseMemory, candidate: MemoryCandidate) -> BaseMemory:
        """
        Apply a matching candidate to a stored record.

        Returns an updated copy; the record passed in is left untouched.
        """
        updated = record.model_copy(deep=True)

        if isinstance(updated, SemanticMemory):
            if candidate.value != updated.value:
                logger.debug(
                    "Semantic %r value replaced: %r -> %r",
                    updated.key,
                    updated.value,
                    candidate.value,
                )
                updated.value = candidate.value
            updated.strengthen(self.config.semantic_confidence_boost, floor=candidate.confidence)

        elif isinstance(updated, EpisodicMemory):
            if updated.emotion is None and candidate.emotion:
                updated.emotion = candidate.emotion
            if updated.context is None and candidate.context:
                updated.context = candidate.context

        elif isinstance(updated, ProceduralMemory):
            updated.record_occurrence()
            if len(candidate.preference) > len(updated.preference):
                updated.preference = candidate.preference
            if updated.trigger is None and candidate.trigger:
                updated.trigger = candidate.trigger

        if not isinstance(updated, EpisodicMemory):
            # An event keeps the entry it was first written in
            updated.add_sources([candidate.source_entry_id])
        updated.touch()
        return updated

    def build_record(self, candidate: MemoryCandidate) -> BaseMemory:
        """Create a new stored record from a candidate."""
        if candidate.category == MemoryCategory.SEMANTIC:
            return SemanticMemory(
                key=candidate.key,
                value=candidate.value,
                confidence=candidate.confidence,
                source_entry_ids=[candidate.source_entry_id],
            )
        if candidate.category == MemoryCategory.EPISODIC:
            return EpisodicMemory(
                event=candidate.event,
                date=candidate.date,
                emotion=candidate.emotion,
                context=candidate.context,
                source_entry_ids=[candidate.source_entry_id],
            )
        return ProceduralMemory(
            pattern=candidate.pattern,
            preference=candidate.preference,
            trigger=candidate.trigger,
            source_entry_ids=[candidate.source_entry_id],
        )
