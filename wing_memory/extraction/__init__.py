"""
Extraction-side helpers.

Builds the instruction sent to the language model and turns its reply
into clean memory candidates.
"""

from wing_memory.extraction.normalizer import (
    ExtractionNormalizer,
    ItemRejection,
    NormalizedBatch,
)
from wing_memory.extraction.parser import parse_extraction_response, strip_code_fence
from wing_memory.extraction.prompt import (
    JournalLanguage,
    build_extraction_input,
    build_extraction_instruction,
)

__all__ = [
    "ExtractionNormalizer",
    "ItemRejection",
    "NormalizedBatch",
    "parse_extraction_response",
    "strip_code_fence",
    "JournalLanguage",
    "build_extraction_input",
    "build_extraction_instruction",
]
