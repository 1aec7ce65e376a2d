"""
Context retrieval: read-only traversals from extracted entities to related
entities and recent conversation history.
"""

from typing import Any, Dict, List

from ..models.core import HistoryEntry
from ..utils.logging_config import get_logger
from ..utils.neptune_client import NeptuneError
from . import graph_statements

logger = get_logger(__name__)


class RetrievalError(Exception):
    """Custom exception for context retrieval errors."""
    pass


def _history_rows(rows: List[Dict[str, Any]]) -> List[HistoryEntry]:
    """Convert result rows, dropping any row with a missing or non-string column."""
    entries = []
    for row in rows:
        role, content, timestamp = row.get('role'), row.get('content'), row.get('timestamp')
        if not all(isinstance(value, str) for value in (role, content, timestamp)):
            logger.debug(f'Dropping malformed history row: {row}')
            continue
        entries.append(HistoryEntry(role=role, content=content, timestamp=timestamp))
    return entries


class ContextRetriever:
    """Answer the graph queries used to build response context."""

    def __init__(self, backend):
        """
        Args:
            backend: Graph backend exposing ``query(statement)``
        """
        self.backend = backend

    def _query(self, statement: str) -> List[Dict[str, Any]]:
        try:
            return self.backend.query(statement)
        except NeptuneError as e:
            logger.error(f'Context query failed: {e}')
            raise RetrievalError(f'Context query failed: {e}') from e

    def find_related_entities(self, topic_name: str) -> List[str]:
        """
        Find people and tasks mentioned alongside a topic.

        Args:
            topic_name: Topic to start from

        Returns:
            Distinct person names and task descriptions; empty if none

        Raises:
            RetrievalError: If the backend query fails
        """
        rows = self._query(graph_statements.related_entities(topic_name))

        related = []
        for row in rows:
            value = row.get('entity')
            if isinstance(value, str) and value and value not in related:
                related.append(value)

        logger.debug(f"Found {len(related)} entities related to topic '{topic_name}'")
        return related

    def get_recent_history(self, conversation_id: str, limit: int) -> List[HistoryEntry]:
        """
        Get the most recent messages of a conversation, newest first.

        Args:
            conversation_id: Conversation to read
            limit: Maximum number of messages

        Returns:
            Up to ``limit`` history entries

        Raises:
            ValueError: If limit is not positive
            RetrievalError: If the backend query fails
        """
        if limit <= 0:
            raise ValueError(f'History limit must be positive, got {limit}')

        rows = self._query(graph_statements.recent_history(conversation_id, limit))
        return _history_rows(rows)

    def find_person_mentions(self, person_name: str, limit: int) -> List[HistoryEntry]:
        """Most recent messages that mention a person, newest first."""
        if limit <= 0:
            raise ValueError(f'Mention limit must be positive, got {limit}')

        rows = self._query(graph_statements.person_mentions(person_name, limit))
        return _history_rows(rows)

    def get_person_context(self, person_name: str, limit: int = 5) -> str:
        mentions = self.find_person_mentions(person_name, limit)
        if not mentions:
            return f"No previous context found for person '{person_name}'"

        lines = [f"Recent mentions of '{person_name}':"]
        lines.extend(f'[{entry.timestamp}] {entry.role}: {entry.content}' for entry in mentions)
        return '\n'.join(lines)

    def get_topic_context(self, topic_name: str) -> str:
        related = self.find_related_entities(topic_name)
        if not related:
            return f"No previous context found for topic '{topic_name}'"
        return f"Topic '{topic_name}' is related to: {', '.join(related)}"

    def format_recent_history(self, conversation_id: str, limit: int) -> str:
        """Render recent history as ``[timestamp] role: content`` lines."""
        history = self.get_recent_history(conversation_id, limit)
        if not history:
            return 'No recent messages found.'
        return '\n'.join(f'[{entry.timestamp}] {entry.role}: {entry.content}' for entry in history)
