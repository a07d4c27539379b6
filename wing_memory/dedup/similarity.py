"""
Edit-distance similarity for memory deduplication.

Both insert-time deduplication and batch merge grouping score text with the
same function, so a threshold means the same thing in both places.
"""


def _normalize(text: str) -> str:
    return text.strip().casefold()


def levenshtein_distance(a: str, b: str) -> int:
    """
    Classic edit distance: insertions, deletions and substitutions cost 1.

    Uses two rolling rows, so memory is O(min(len(a), len(b))).
    """
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current

    return previous[-1]


def similarity(a: str, b: str) -> float:
    """
    Normalized similarity in [0, 1] between two strings.

    Formula: 1 - distance / max(len(a), len(b)), computed after trimming
    whitespace and case-folding. Two empty strings are identical (1.0);
    one empty string against a non-empty one scores 0.0.
    """
    a = _normalize(a)
    b = _normalize(b)

    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    if a == b:
        return 1.0

    return 1.0 - levenshtein_distance(a, b) / longest
