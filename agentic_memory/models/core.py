"""
Core data models for the conversation memory graph.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, NamedTuple, Optional

ROLE_USER = 'user'
ROLE_ASSISTANT = 'assistant'
MESSAGE_ROLES = (ROLE_USER, ROLE_ASSISTANT)


@dataclass
class Conversation:
    """A conversation session; root of a message thread."""
    id: str
    started_at: datetime
    title: Optional[str] = None


@dataclass
class Message:
    """A single user or assistant turn. Immutable once stored."""
    id: str
    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime


@dataclass
class ExtractedEntities:
    """Entities extracted from a single message."""
    people: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    tasks: List[str] = field(default_factory=list)
    documents: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.people or self.topics or self.tasks or self.documents)


class HistoryEntry(NamedTuple):
    """One row of recent conversation history."""
    role: str
    content: str
    timestamp: str


@dataclass
class ChatTurn:
    """Outcome of one user turn: stored ids, extracted entities and the reply."""
    user_message_id: str
    entities: ExtractedEntities
    reply: str
    assistant_message_id: Optional[str] = None
