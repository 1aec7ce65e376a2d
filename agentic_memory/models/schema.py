"""
Node labels, natural keys and resolution policy for mentioned entities.

Each mention kind is a small frozen dataclass. The methods are pure: they only
read the mention's own fields, and every value they return is already escaped
for embedding in a single-quoted statement literal.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, Optional

from ..utils.query_safety import escape_string
from ..utils.timestamp_utils import new_id, now, to_iso_str
from .core import ExtractedEntities


class EntityMention:
    """Base class for the closed set of linkable entity kinds."""

    LABEL = ''
    KEY = ''

    def label(self) -> str:
        return self.LABEL

    def natural_key_name(self) -> str:
        return self.KEY

    def natural_key_value(self) -> str:
        return escape_string(getattr(self, self.KEY))

    def should_deduplicate(self) -> bool:
        return True

    def extra_properties(self) -> Dict[str, str]:
        return {}

    def match_properties(self) -> Dict[str, str]:
        """Properties that address exactly this mention's node."""
        return {self.natural_key_name(): self.natural_key_value()}

    def display_name(self) -> str:
        return getattr(self, self.KEY)


@dataclass(frozen=True)
class PersonMention(EntityMention):
    """A person, unique by exact (case-sensitive) name."""
    LABEL = 'Person'
    KEY = 'name'

    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class TopicMention(EntityMention):
    """A topic, concept or technology, unique by name."""
    LABEL = 'Topic'
    KEY = 'name'

    name: str
    category: Optional[str] = None


@dataclass(frozen=True)
class TaskMention(EntityMention):
    """An action item. Never deduplicated: each mention is a new fact."""
    LABEL = 'Task'
    KEY = 'description'

    description: str
    status: str = 'pending'
    created_at: datetime = field(default_factory=now)
    id: str = field(default_factory=new_id)

    def should_deduplicate(self) -> bool:
        return False

    def extra_properties(self) -> Dict[str, str]:
        return {
            'id': escape_string(self.id),
            'status': escape_string(self.status),
            'created_at': escape_string(to_iso_str(self.created_at)),
        }

    def match_properties(self) -> Dict[str, str]:
        # Descriptions repeat across tasks, so link by the generated id
        return {'id': escape_string(self.id)}


@dataclass(frozen=True)
class DocumentMention(EntityMention):
    """A file, link or reference, unique by title."""
    LABEL = 'Document'
    KEY = 'title'

    title: str
    doc_type: str = 'reference'

    def extra_properties(self) -> Dict[str, str]:
        return {'doc_type': escape_string(self.doc_type)}


def mentions_for(entities: ExtractedEntities) -> Iterator[EntityMention]:
    """Yield linkable mentions: people, then topics, then tasks.

    Documents are extracted but not linked to messages.
    """
    for name in entities.people:
        yield PersonMention(name=name)
    for name in entities.topics:
        yield TopicMention(name=name)
    for description in entities.tasks:
        yield TaskMention(description=description)
