"""
Conversation ingestion: persist conversations and messages, thread messages into
their conversation and link the entities they mention.
"""

from datetime import datetime
from typing import Optional

from ..models.core import MESSAGE_ROLES, Conversation, ExtractedEntities, Message
from ..utils.config import config
from ..utils.logging_config import get_logger
from ..utils.neptune_client import NeptuneError
from ..utils.timestamp_utils import new_id, now
from . import graph_statements
from .entity_linking import EntityLinker, EntityLinkingError

logger = get_logger(__name__)


class IngestionError(Exception):
    """Custom exception for conversation ingestion errors."""
    pass


class ConversationIngestion:
    """Write path of the memory graph.

    One message is fully ingested (node, PART_OF edge, entity links) before
    the call returns. Statements are issued one per step, so a failure part way
    through can leave a stored message with only some of its entity links.
    """

    def __init__(self, backend, linker: Optional[EntityLinker] = None):
        self.backend = backend
        self.linker = linker or EntityLinker(backend)

    def start_conversation(self, title: Optional[str] = None, timestamp: Optional[datetime] = None) -> str:
        """Create a conversation node.

        Args:
            title: Conversation title (uses config default if None)
            timestamp: Start time (uses current time if None)

        Returns:
            The new conversation id

        Raises:
            IngestionError: If the conversation node could not be created
        """
        conversation = Conversation(id=new_id(),
                                    started_at=timestamp or now(),
                                    title=title or config.memory.default_conversation_title)
        try:
            self.backend.execute(graph_statements.create_conversation(conversation))
        except NeptuneError as e:
            logger.error(f'Failed to create conversation: {e}')
            raise IngestionError(f'Failed to create conversation: {e}') from e

        logger.info(f'Started conversation {conversation.id} ({conversation.title})')
        return conversation.id

    def add_message(self,
                    conversation_id: str,
                    role: str,
                    content: str,
                    entities: Optional[ExtractedEntities] = None,
                    timestamp: Optional[datetime] = None) -> str:
        """Store a message in a conversation and link its entities.

        Args:
            conversation_id: Conversation the message belongs to
            role: "user" or "assistant"
            content: Message text
            entities: Entities extracted from the message
            timestamp: Message time (uses current time if None)

        Returns:
            The new message id

        Raises:
            ValueError: If the role is unknown
            IngestionError: If the message, its conversation link or any
                entity link could not be stored
        """
        if role not in MESSAGE_ROLES:
            raise ValueError(f'Unknown message role: {role!r}')

        message = Message(id=new_id(), role=role, content=content, timestamp=timestamp or now())

        try:
            self.backend.execute(graph_statements.create_message(message))
            rows = self.backend.execute(graph_statements.link_message_to_conversation(message.id, conversation_id))
        except NeptuneError as e:
            logger.error(f'Failed to store message in conversation {conversation_id}: {e}')
            raise IngestionError(f'Failed to store message: {e}') from e

        if not rows or not rows[0].get('linked'):
            logger.error(f'Message {message.id} was not linked to conversation {conversation_id}')
            raise IngestionError(f'Conversation not found: {conversation_id}')

        if entities is not None and not entities.is_empty():
            try:
                self.linker.link_all(message.id, entities)
            except (EntityLinkingError, NeptuneError) as e:
                logger.error(f'Entity linking aborted for message {message.id}: {e}')
                raise IngestionError(f'Failed to link entities for message {message.id}: {e}') from e

        logger.debug(f'Stored {role} message {message.id} in conversation {conversation_id}')
        return message.id
