"""
Extraction normalizer.

Turns the loosely-shaped output of a language model into validated
candidates. Bad items are dropped one by one and reported; a payload that
cannot be read at all is reported as a whole. Nothing here raises on bad
input and nothing here touches the store.
"""

import logging
import math
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from wing_memory.exceptions import ExtractionParseError
from wing_memory.extraction.parser import parse_extraction_response
from wing_memory.models import (
    EpisodicCandidate,
    ExtractionBatch,
    MemoryCategory,
    ProceduralCandidate,
    SemanticCandidate,
    parse_day,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5


class ItemRejection(BaseModel):
    """One extracted item that was dropped, and why."""

    category: MemoryCategory
    index: int
    reason: str


class NormalizedBatch(ExtractionBatch):
    """Cleaned candidates plus a report of everything that was dropped."""

    rejections: list[ItemRejection] = Field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _clean_str(value: Any) -> str | None:
    """Trim a string field; empty or non-text values become None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            value = str(value)
        except ValueError:
            # int longer than the interpreter's digit limit
            return None
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _clean_confidence(value: Any) -> float:
    if isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return DEFAULT_CONFIDENCE
    if isinstance(value, int):
        # Clamp before converting; huge ints overflow float()
        return float(min(1, max(0, value)))
    if not isinstance(value, float) or math.isnan(value):
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, value))


def _as_day(value: date | str | None) -> str | None:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        parsed = parse_day(value)
        if parsed is not None and len(value.strip()) >= 10:
            return parsed.isoformat()
    return None


class ExtractionNormalizer:
    """
    Validates and cleans extraction payloads.

    Accepts a mapping with `semantic`, `episodic` and `procedural` arrays, a
    JSON string, or raw model text wrapped in a markdown code fence.
    """

    def normalize(
        self,
        payload: dict[str, Any] | str,
        source_entry_id: str,
        source_date: date | str | None = None,
    ) -> NormalizedBatch:
        """
        Normalize one extraction result.

        Args:
            payload: Raw extraction output
            source_entry_id: Journal entry the output was extracted from
            source_date: Entry date, used when an event's date is unusable

        Returns:
            NormalizedBatch with candidates stamped with `source_entry_id`
        """
        if isinstance(payload, str):
            try:
                payload = parse_extraction_response(payload)
            except ExtractionParseError as e:
                logger.warning("Extraction payload for entry %s rejected: %s", source_entry_id, e)
                return NormalizedBatch(error=e.message)

        if not isinstance(payload, dict):
            error = f"Extraction payload must be an object, got {type(payload).__name__}"
            logger.warning("Extraction payload for entry %s rejected: %s", source_entry_id, error)
            return NormalizedBatch(error=error)

        raw: dict[MemoryCategory, list] = {}
        for category in MemoryCategory:
            items = payload.get(category.value)
            if items is None:
                items = []
            if not isinstance(items, list):
                error = f"'{category.value}' must be a list, got {type(items).__name__}"
                logger.warning(
                    "Extraction payload for entry %s rejected: %s", source_entry_id, error
                )
                return NormalizedBatch(error=error)
            raw[category] = items

        fallback_date = _as_day(source_date)
        batch = NormalizedBatch()
        builders = {
            MemoryCategory.SEMANTIC: (self._semantic, batch.semantic),
            MemoryCategory.EPISODIC: (self._episodic, batch.episodic),
            MemoryCategory.PROCEDURAL: (self._procedural, batch.procedural),
        }

        for category, items in raw.items():
            build, accepted = builders[category]
            for index, item in enumerate(items):
                if not isinstance(item, dict):
                    reason = f"item is {type(item).__name__}, expected an object"
                else:
                    try:
                        candidate, reason = build(item, source_entry_id, fallback_date)
                    except ValidationError as e:
                        candidate, reason = None, f"invalid item: {e.errors()[0]['msg']}"
                    if candidate is not None:
                        accepted.append(candidate)
                        continue

                batch.rejections.append(
                    ItemRejection(category=category, index=index, reason=reason)
                )
                logger.warning(
                    "Dropped %s item %d from entry %s: %s",
                    category.value,
                    index,
                    source_entry_id,
                    reason,
                )

        logger.debug(
            "Normalized entry %s: %d kept, %d rejected",
            source_entry_id,
            len(batch),
            len(batch.rejections),
        )
        return batch

    def _semantic(
        self, item: dict, source_entry_id: str, fallback_date: str | None
    ) -> tuple[SemanticCandidate | None, str]:
        key = _clean_str(item.get("key"))
        value = _clean_str(item.get("value"))
        if key is None:
            return None, "missing key"
        if value is None:
            return None, "missing value"
        return SemanticCandidate(
            key=key,
            value=value,
            confidence=_clean_confidence(item.get("confidence")),
            source_entry_id=source_entry_id,
        ), ""

    def _episodic(
        self, item: dict, source_entry_id: str, fallback_date: str | None
    ) -> tuple[EpisodicCandidate | None, str]:
        event = _clean_str(item.get("event"))
        raw_date = _clean_str(item.get("date"))
        if event is None:
            return None, "missing event"
        if raw_date is None:
            return None, "missing date"

        day = _as_day(raw_date)
        if day is None:
            if fallback_date is None:
                return None, f"unparseable date {raw_date!r} and no entry date to fall back to"
            logger.debug("Event date %r replaced by entry date %s", raw_date, fallback_date)
            day = fallback_date

        return EpisodicCandidate(
            event=event,
            date=day,
            emotion=_clean_str(item.get("emotion")),
            context=_clean_str(item.get("context")),
            source_entry_id=source_entry_id,
        ), ""

    def _procedural(
        self, item: dict, source_entry_id: str, fallback_date: str | None
    ) -> tuple[ProceduralCandidate | None, str]:
        pattern = _clean_str(item.get("pattern"))
        if pattern is None:
            return None, "missing pattern"
        return ProceduralCandidate(
            pattern=pattern,
            preference=_clean_str(item.get("preference")) or "",
            trigger=_clean_str(item.get("trigger")),
            source_entry_id=source_entry_id,
        ), ""
