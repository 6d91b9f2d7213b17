"""
Word Count Utilities for the Copy Revision Engine
=================================================

Counting, target resolution and tolerance checks. Every count of a content
payload goes through ``content_codec.flatten_payload`` so structured and
plain content are measured the same way.
"""

import logging
import math
from typing import List, Optional, Sequence

from content_codec import flatten_payload
from models import ContentPayload, StructureElement, WordCountBand

logger = logging.getLogger(__name__)

PRESET_MIDPOINTS = {
    WordCountBand.SHORT: 75,
    WordCountBand.MEDIUM: 150,
    WordCountBand.LONG: 300,
}
DEFAULT_TARGET_WORDS = 150


def count_words(text: str) -> int:
    """
    Count whitespace-separated words

    Args:
        text: Text to count words in

    Returns:
        Number of words (0 for empty or blank text)
    """
    if not text or not text.strip():
        return 0
    return len(text.split())


def count_payload_words(payload: ContentPayload) -> int:
    """Word count of a payload's flattened text."""
    return count_words(flatten_payload(payload))


def structure_word_sum(structure: Optional[Sequence[StructureElement]]) -> int:
    if not structure:
        return 0
    return sum(element.word_count or 0 for element in structure)


def resolve_target_word_count(
    band: Optional[WordCountBand],
    custom_word_count: Optional[int] = None,
    structure: Optional[Sequence[StructureElement]] = None,
) -> int:
    """
    Resolve the single target word count for a request.

    Priority: max(custom, structure sum) when both are set, then the custom
    count, then the structure sum, then the band midpoint. The custom count
    only counts when the band is CUSTOM.
    """
    preset_midpoint = PRESET_MIDPOINTS.get(band, DEFAULT_TARGET_WORDS) if band else DEFAULT_TARGET_WORDS

    custom_count = 0
    if band == WordCountBand.CUSTOM and custom_word_count and custom_word_count > 0:
        custom_count = int(custom_word_count)

    structure_sum = structure_word_sum(structure)

    if custom_count > 0 and structure_sum > 0:
        target = max(custom_count, structure_sum)
        if custom_count != structure_sum:
            logger.info(
                "Custom word count %d and section total %d differ; using %d",
                custom_count, structure_sum, target,
            )
    elif custom_count > 0:
        target = custom_count
    elif structure_sum > 0:
        target = structure_sum
    else:
        target = preset_midpoint

    return target


def distribute_structure_word_counts(
    structure: Sequence[StructureElement],
    target: int,
) -> List[StructureElement]:
    """
    Split the target evenly across sections when none carries a count.

    Each section gets ``target // len(structure)`` words; the remainder is
    dropped. Returns the structure unchanged (as a new list) when any
    section already has an explicit count or the structure is empty.
    """
    elements = list(structure)
    if not elements or any(element.word_count for element in elements):
        return elements

    per_section = target // len(elements)
    if per_section <= 0:
        return elements

    logger.debug("Auto-distributing %d words per section across %d sections", per_section, len(elements))
    return [element.model_copy(update={"word_count": per_section}) for element in elements]


def minimum_acceptable_word_count(target: int, tolerance_percent: float) -> int:
    """Lowest word count that still passes the tolerance check."""
    # Multiply before dividing so 200 * 95 / 100 lands exactly on 190
    return math.floor(target * (100.0 - tolerance_percent) / 100.0)


def is_within_tolerance(current: int, target: int, tolerance_percent: float) -> bool:
    """
    Accept when ``current`` is at or above the undershoot floor.

    Overshoot is never rejected: only copy that is too short triggers a
    revision.
    """
    return current >= minimum_acceptable_word_count(target, tolerance_percent)

