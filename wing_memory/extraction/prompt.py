"""
Extraction instruction for the language model.

The host application sends this instruction, together with one journal
entry, to its model provider; the JSON the model returns is what
`ExtractionNormalizer` consumes.
"""

from enum import Enum


class JournalLanguage(str, Enum):
    """Language the extracted values should be written in."""

    AUTO = "auto"  # Follow the entry
    ZH = "zh"
    EN = "en"


_LANGUAGE_REQUIREMENTS = {
    JournalLanguage.AUTO: "Output languages matching the input content.",
    JournalLanguage.ZH: "Ensure all values (except standardized keys) are in Chinese (简体中文).",
    JournalLanguage.EN: "Ensure all values are in English.",
}


EXTRACTION_TEMPLATE = """Role: You are an expert Memory Archivist for a personal diary AI.
Task: Extract structured memories from the user's diary entry to build a long-term knowledge base.
Input: A single diary entry.
Output: A JSON object with three categories of memories:

1. semantic (Facts): Static facts about the user (e.g., names, locations, relationships, preferences).
   - key: Standardized attribute name (e.g., "user_name", "spouse_name", "current_city").
   - value: The fact value.
   - confidence: 0.8 to 1.0 (High confidence only).

2. episodic (Events): Significant life events found in the entry.
   - event: Concise description of what happened.
   - date: Date string (YYYY-MM-DD). If not explicit, interpret from context (today is the entry date).
   - emotion: Dominant emotion (e.g., "Joyful", "Anxious").
   - context: Brief context or significance.

3. procedural (Patterns): User behavioral patterns or interaction preferences inferred from the writing.
   - pattern: E.g., "Late night writing", "Short sentence style".
   - preference: E.g., "Likes harsh advice", "Prefers soothing tone".
   - trigger: What triggers this pattern (optional).

Language Requirement: {language_requirement}
Format: JSON ONLY. No markdown blocks.

Example Output:
{{
  "semantic": [
    {{"key": "user_name", "value": "Hans", "confidence": 0.9}}
  ],
  "episodic": [
    {{"event": "Completed Phase 8 development", "date": "2026-02-05", "emotion": "Accomplished", "context": "Work achievement"}}
  ],
  "procedural": []
}}"""


def build_extraction_instruction(language: JournalLanguage | str = JournalLanguage.AUTO) -> str:
    """Build the system instruction for memory extraction."""
    language = JournalLanguage(language)
    return EXTRACTION_TEMPLATE.format(language_requirement=_LANGUAGE_REQUIREMENTS[language])


def build_extraction_input(content: str, entry_date: str) -> str:
    """Build the user message: the entry text with its date as context."""
    return f"Entry date: {entry_date}\n\n{content.strip()}"
