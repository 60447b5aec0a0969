"""Pull the drug-interaction section out of a label page.

DailyMed renders each SPL section under an ``<h2>`` heading, so the section
we want runs from the phrase "drug interactions" up to the next ``<h2``.
This is a string search, not an HTML parser: malformed markup just gives a
longer or shorter excerpt.
"""

from __future__ import annotations

SECTION_PHRASE = "drug interactions"
NEXT_HEADING = "<h2"
FALLBACK_CHARS = 10_000


def extract_interaction_section(document: str | None) -> str:
    """Return the interaction excerpt of a label document.

    Args:
        document: Raw label markup (may be empty).

    Returns:
        The text from the first "drug interactions" up to (not including)
        the next ``<h2`` heading, the whole tail when no heading follows,
        or the first 10,000 characters when the phrase never appears.
    """
    if not document:
        return ""

    idx = document.lower().find(SECTION_PHRASE)
    if idx < 0:
        return document[:FALLBACK_CHARS]

    tail = document[idx:]
    next_h2 = tail.lower().find(NEXT_HEADING)
    # A heading at position 0 counts as "no boundary".
    return tail[:next_h2] if next_h2 > 0 else tail
