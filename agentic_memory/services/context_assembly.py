"""
Context assembly: render extracted entities and graph lookups into the text
block handed to the response generator.
"""

from typing import Callable, List

from ..models.core import ExtractedEntities
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

NO_CONTEXT = 'No specific context from previous conversations.'


def build_context(entities: ExtractedEntities, related_lookup: Callable[[str], List[str]]) -> str:
    """Assemble context lines in a fixed order.

    People, then topics, then one "Related to" line per topic that has
    related entities, then tasks. A lookup failure for one topic only drops
    that topic's line.

    Args:
        entities: Entities extracted from the current message
        related_lookup: Returns related entity names for a topic name

    Returns:
        Newline-joined context, or NO_CONTEXT when there is nothing to say
    """
    parts = []

    if entities.people:
        parts.append(f"People mentioned: {', '.join(entities.people)}")

    if entities.topics:
        parts.append(f"Topics discussed: {', '.join(entities.topics)}")

        for topic in entities.topics:
            try:
                related = related_lookup(topic)
            except Exception as e:
                logger.warning(f"Skipping related entities for topic '{topic}': {e}")
                continue
            if related:
                parts.append(f"Related to '{topic}': {', '.join(related)}")

    if entities.tasks:
        parts.append(f"Tasks mentioned: {', '.join(entities.tasks)}")

    if not parts:
        return NO_CONTEXT
    return '\n'.join(parts)
