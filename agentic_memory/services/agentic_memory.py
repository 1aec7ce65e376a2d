"""
Agentic Memory Service: conversation storage, entity extraction and
graph-backed reply generation.
"""

from typing import List, Optional, Tuple

from ..models.core import ROLE_ASSISTANT, ROLE_USER, ChatTurn, ExtractedEntities, HistoryEntry
from ..utils.bedrock_llm import BedrockLLM, BedrockLLMError
from ..utils.config import config
from ..utils.logging_config import get_logger
from ..utils.neptune_client import NeptuneClient
from .context_assembly import build_context
from .context_retrieval import ContextRetriever, RetrievalError
from .conversation_ingestion import ConversationIngestion, IngestionError
from .entity_extraction import EntityExtractionError, EntityExtractionService

logger = get_logger(__name__)

SYSTEM_PROMPT_TEMPLATE = """You are a helpful AI assistant with persistent memory powered by a context graph.

CONTEXT FROM YOUR MEMORY:
{context}

Use this context to provide informed, personalized responses. Reference relevant information
from your memory when appropriate. If you remember something about people, topics, or past
conversations mentioned, incorporate that knowledge naturally.

Be conversational and helpful while demonstrating that you remember and understand the
connections between different pieces of information."""


class AgenticMemoryError(Exception):
    """Custom exception for agentic memory errors."""
    pass


class AgenticMemoryService:
    """Orchestrates conversation storage, entity extraction and context building.

    The conversation id is passed explicitly to every call, so one service
    instance can serve several conversations.
    """

    def __init__(self,
                 backend=None,
                 llm: Optional[BedrockLLM] = None,
                 extractor: Optional[EntityExtractionService] = None):
        """Initialize the agentic memory service."""
        self.backend = backend or NeptuneClient(config.neptune)
        self.llm = llm or BedrockLLM(config.bedrock_llm)
        self.extractor = extractor or EntityExtractionService(self.llm)
        self.ingestion = ConversationIngestion(self.backend)
        self.retriever = ContextRetriever(self.backend)

        logger.info('Initialized AgenticMemoryService')

    def start_conversation(self, title: Optional[str] = None) -> str:
        """Start a new conversation and return its id.

        Raises:
            AgenticMemoryError: If the conversation could not be created
        """
        try:
            return self.ingestion.start_conversation(title)
        except IngestionError as e:
            raise AgenticMemoryError(f'Failed to start conversation: {e}') from e

    def process_user_message(self, conversation_id: str, message: str) -> Tuple[str, ExtractedEntities]:
        """Extract entities from a user message and store it with its entity links.

        Args:
            conversation_id: Conversation the message belongs to
            message: User message text

        Returns:
            Tuple of (message_id, entities)

        Raises:
            AgenticMemoryError: If extraction or storage fails
        """
        try:
            entities = self.extractor.extract(message)
        except EntityExtractionError as e:
            logger.error(f'Entity extraction failed for conversation {conversation_id}: {e}')
            raise AgenticMemoryError(f'Failed to extract entities: {e}') from e

        try:
            message_id = self.ingestion.add_message(conversation_id, ROLE_USER, message, entities)
        except IngestionError as e:
            logger.error(f'Failed to store user message: {e}')
            raise AgenticMemoryError(f'Failed to store user message: {e}') from e

        return message_id, entities

    def store_assistant_message(self, conversation_id: str, message: str) -> str:
        """Store an assistant reply; replies are not entity-linked.

        Raises:
            AgenticMemoryError: If storage fails
        """
        try:
            return self.ingestion.add_message(conversation_id, ROLE_ASSISTANT, message)
        except IngestionError as e:
            raise AgenticMemoryError(f'Failed to store assistant message: {e}') from e

    def build_context(self, entities: ExtractedEntities) -> str:
        """Assemble graph context for the entities.

        Topics whose related-entity lookup fails are rendered without a
        "Related to" line instead of failing the turn.
        """
        return build_context(entities, self.retriever.find_related_entities)

    def generate_response(self, user_message: str, entities: ExtractedEntities) -> str:
        """Generate a reply using context from the graph.

        Raises:
            AgenticMemoryError: If the LLM call fails
        """
        context = self.build_context(entities)
        system_prompt = SYSTEM_PROMPT_TEMPLATE.format(context=context)

        try:
            return self.llm.complete(system_prompt, user_message)
        except BedrockLLMError as e:
            logger.error(f'Response generation failed: {e}')
            raise AgenticMemoryError(f'Failed to generate response: {e}') from e

    def chat(self, conversation_id: str, message: str) -> ChatTurn:
        """Run one full turn: store the user message, reply, store the reply.

        A reply that cannot be stored is still returned.

        Raises:
            AgenticMemoryError: If the user message cannot be processed or no
                reply can be generated
        """
        message_id, entities = self.process_user_message(conversation_id, message)
        reply = self.generate_response(message, entities)

        turn = ChatTurn(user_message_id=message_id, entities=entities, reply=reply)
        try:
            turn.assistant_message_id = self.store_assistant_message(conversation_id, reply)
        except AgenticMemoryError as e:
            logger.warning(f'Failed to store assistant message: {e}')

        return turn

    def recent_history(self, conversation_id: str, limit: Optional[int] = None) -> List[HistoryEntry]:
        """Recent messages of a conversation, newest first.

        Raises:
            AgenticMemoryError: If retrieval fails
        """
        try:
            return self.retriever.get_recent_history(conversation_id, limit or config.memory.history_limit)
        except RetrievalError as e:
            raise AgenticMemoryError(f'Failed to read history: {e}') from e

    def related_entities(self, topic_name: str) -> List[str]:
        """People and tasks related to a topic.

        Raises:
            AgenticMemoryError: If retrieval fails
        """
        try:
            return self.retriever.find_related_entities(topic_name)
        except RetrievalError as e:
            raise AgenticMemoryError(f'Failed to find related entities: {e}') from e
