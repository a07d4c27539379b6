"""
Tests for the extraction normalizer.
"""

import json
from datetime import date, datetime

import pytest

from wing_memory.extraction import ExtractionNormalizer
from wing_memory.models import MemoryCategory


@pytest.fixture
def normalizer():
    return ExtractionNormalizer()


def normalize(normalizer, payload, entry_id="entry-1", entry_date="2026-02-05"):
    return normalizer.normalize(payload, entry_id, entry_date)


class TestPayloadShapes:
    """Tests for the accepted payload forms."""

    def test_mapping(self, normalizer):
        batch = normalize(normalizer, {"semantic": [{"key": "user_name", "value": "Alice"}]})
        assert batch.ok
        assert len(batch.semantic) == 1

    def test_json_string(self, normalizer):
        payload = json.dumps({"procedural": [{"pattern": "Late night writing"}]})
        batch = normalize(normalizer, payload)
        assert batch.ok
        assert batch.procedural[0].pattern == "Late night writing"

    def test_fenced_model_reply(self, normalizer):
        payload = '```json\n{"episodic": [{"event": "Hiked", "date": "2026-02-05"}]}\n```'
        batch = normalize(normalizer, payload)
        assert batch.ok
        assert batch.episodic[0].event == "Hiked"

    def test_missing_categories_are_empty(self, normalizer):
        batch = normalize(normalizer, {})
        assert batch.ok
        assert len(batch) == 0
        assert batch.rejections == []

    def test_null_category_is_empty(self, normalizer):
        batch = normalize(normalizer, {"semantic": None})
        assert batch.ok
        assert batch.semantic == []

    def test_category_not_a_list(self, normalizer):
        batch = normalize(
            normalizer,
            {"semantic": {"key": "k", "value": "v"}, "procedural": [{"pattern": "p1"}]},
        )
        assert not batch.ok
        assert "semantic" in batch.error
        assert len(batch) == 0

    def test_unparseable_text(self, normalizer):
        batch = normalize(normalizer, "Sorry, I cannot help with that.")
        assert not batch.ok
        assert len(batch) == 0

    def test_non_object_payload(self, normalizer):
        batch = normalize(normalizer, ["semantic"])
        assert not batch.ok

    def test_non_object_items_rejected_individually(self, normalizer):
        batch = normalize(normalizer, {"semantic": ["user_name=Alice", {"key": "k", "value": "v"}]})
        assert batch.ok
        assert len(batch.semantic) == 1
        assert batch.rejections[0].index == 0
        assert batch.rejections[0].category == MemoryCategory.SEMANTIC


class TestMixedBatch:
    """A bad item never takes its siblings down with it."""

    def test_empty_event_with_two_valid_items(self, normalizer):
        payload = {
            "semantic": [{"key": "user_name", "value": "Alice", "confidence": 0.9}],
            "episodic": [
                {"event": "", "date": "2026-02-05"},
                {"event": "Finished the draft", "date": "2026-02-05", "emotion": "Relieved"},
            ],
        }
        batch = normalize(normalizer, payload)

        assert batch.ok
        assert len(batch) == 2
        assert batch.semantic[0].value == "Alice"
        assert batch.episodic[0].event == "Finished the draft"
        assert len(batch.rejections) == 1
        assert batch.rejections[0].category == MemoryCategory.EPISODIC
        assert batch.rejections[0].index == 0
        assert "event" in batch.rejections[0].reason

    def test_provenance_stamped(self, normalizer):
        payload = {
            "semantic": [{"key": "k", "value": "v"}],
            "episodic": [{"event": "e", "date": "2026-02-05"}],
            "procedural": [{"pattern": "p"}],
        }
        batch = normalizer.normalize(payload, "entry-42", "2026-02-05")
        assert {c.source_entry_id for c in batch.candidates()} == {"entry-42"}


class TestSemanticItems:
    """Tests for semantic item cleaning."""

    def test_strings_trimmed(self, normalizer):
        batch = normalize(normalizer, {"semantic": [{"key": "  user_name ", "value": " Alice  "}]})
        assert batch.semantic[0].key == "user_name"
        assert batch.semantic[0].value == "Alice"

    @pytest.mark.parametrize("item", [{"value": "Alice"}, {"key": "user_name"}, {"key": " ", "value": "x"}])
    def test_required_fields(self, normalizer, item):
        batch = normalize(normalizer, {"semantic": [item]})
        assert batch.semantic == []
        assert len(batch.rejections) == 1

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, 0.5),
            ("high", 0.5),
            (True, 0.5),
            (0.9, 0.9),
            ("0.8", 0.8),
            (1.7, 1.0),
            (-3, 0.0),
            (float("nan"), 0.5),
        ],
    )
    def test_confidence(self, normalizer, raw, expected):
        item = {"key": "k", "value": "v"}
        if raw is not None:
            item["confidence"] = raw
        batch = normalize(normalizer, {"semantic": [item]})
        assert batch.semantic[0].confidence == pytest.approx(expected)

    @pytest.mark.parametrize(
        "raw, expected",
        [(10**400, 1.0), (-(10**400), 0.0), ("1e999", 1.0)],
        ids=["huge", "huge-negative", "infinite-text"],
    )
    def test_huge_confidence_is_clamped(self, normalizer, raw, expected):
        batch = normalize(normalizer, {"semantic": [{"key": "k", "value": "v", "confidence": raw}]})
        assert batch.semantic[0].confidence == expected

    def test_oversized_number_in_text_payload(self, normalizer):
        payload = '{"semantic": [{"key": "k", "value": "v", "confidence": ' + "9" * 5000 + "}]}"
        batch = normalize(normalizer, payload)
        assert not batch.ok
        assert len(batch) == 0

    def test_oversized_integer_value_rejected(self, normalizer):
        batch = normalize(normalizer, {"semantic": [{"key": "age", "value": 10**5000}]})
        assert batch.semantic == []
        assert batch.rejections[0].reason == "missing value"

    def test_numeric_value_kept_as_text(self, normalizer):
        batch = normalize(normalizer, {"semantic": [{"key": "age", "value": 31}]})
        assert batch.semantic[0].value == "31"


class TestEpisodicItems:
    """Tests for episodic item cleaning."""

    def test_optional_fields_empty_become_none(self, normalizer):
        batch = normalize(
            normalizer,
            {"episodic": [{"event": "Hiked", "date": "2026-02-05", "emotion": "  ", "context": ""}]},
        )
        event = batch.episodic[0]
        assert event.emotion is None
        assert event.context is None

    def test_unparseable_date_falls_back_to_entry_date(self, normalizer):
        batch = normalizer.normalize(
            {"episodic": [{"event": "Hiked", "date": "Today"}]}, "entry-1", "2026-02-07"
        )
        assert batch.episodic[0].date == "2026-02-07"
        assert batch.rejections == []

    @pytest.mark.parametrize("entry_date", [date(2026, 2, 7), datetime(2026, 2, 7, 23, 30)])
    def test_entry_date_objects(self, normalizer, entry_date):
        batch = normalizer.normalize({"episodic": [{"event": "Hiked", "date": "yesterday"}]}, "e1", entry_date)
        assert batch.episodic[0].date == "2026-02-07"

    def test_unparseable_date_without_entry_date(self, normalizer):
        batch = normalizer.normalize({"episodic": [{"event": "Hiked", "date": "Today"}]}, "e1")
        assert batch.episodic == []
        assert len(batch.rejections) == 1

    def test_timestamp_cut_to_day(self, normalizer):
        batch = normalize(normalizer, {"episodic": [{"event": "Hiked", "date": "2026-02-05T10:00"}]})
        assert batch.episodic[0].date == "2026-02-05"

    def test_missing_date_rejected(self, normalizer):
        batch = normalize(normalizer, {"episodic": [{"event": "Hiked"}]})
        assert batch.episodic == []
        assert "date" in batch.rejections[0].reason


class TestProceduralItems:
    """Tests for procedural item cleaning."""

    def test_defaults(self, normalizer):
        batch = normalize(normalizer, {"procedural": [{"pattern": "Short sentence style"}]})
        item = batch.procedural[0]
        assert item.preference == ""
        assert item.trigger is None

    def test_full_item(self, normalizer):
        batch = normalize(
            normalizer,
            {
                "procedural": [
                    {
                        "pattern": "Late night writing",
                        "preference": "Prefers soothing tone",
                        "trigger": "After midnight",
                    }
                ]
            },
        )
        item = batch.procedural[0]
        assert item.preference == "Prefers soothing tone"
        assert item.trigger == "After midnight"

    def test_missing_pattern(self, normalizer):
        batch = normalize(normalizer, {"procedural": [{"preference": "Likes harsh advice"}]})
        assert batch.procedural == []
        assert batch.rejections[0].reason == "missing pattern"
