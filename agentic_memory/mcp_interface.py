"""
MCP Interface Layer using fastmcp for agent orchestration.
"""
from typing import Any, Dict, List, Optional, Tuple

from fastmcp import FastMCP

from agentic_memory.services.agentic_memory import AgenticMemoryError, AgenticMemoryService
from agentic_memory.utils.config import config
from agentic_memory.utils.health_check import get_health_status
from agentic_memory.utils.logging_config import get_logger

logger = get_logger(__name__)

# Initialize FastMCP application
mcp = FastMCP('Agentic Memory')
memory_service = AgenticMemoryService()


def _require(value: str, name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f'{name} is required')
    return value


@mcp.tool()
def start_conversation(title: Optional[str] = None) -> str:
    """Start a new conversation.

    Args:
        title: Optional conversation title

    Returns:
        The conversation id to pass to the other tools
    """
    try:
        return memory_service.start_conversation(title)
    except AgenticMemoryError as e:
        logger.error(f'MCP start_conversation failed: {e}')
        raise Exception(f'Starting conversation failed: {e}')


@mcp.tool()
def chat(conversation_id: str, message: str) -> Dict[str, Any]:
    """Send a user message and get a reply informed by graph memory.

    Args:
        conversation_id: Id returned by start_conversation
        message: User message

    Returns:
        Reply text and the entities extracted from the message
    """
    _require(conversation_id, 'Conversation ID')
    _require(message, 'Message')

    try:
        turn = memory_service.chat(conversation_id, message)
    except AgenticMemoryError as e:
        logger.error(f'MCP chat failed: {e}')
        raise Exception(f'Chat failed: {e}')

    logger.debug(f'MCP chat stored message {turn.user_message_id} in conversation {conversation_id}')
    return {
        'reply': turn.reply,
        'people': turn.entities.people,
        'topics': turn.entities.topics,
        'tasks': turn.entities.tasks,
        'documents': turn.entities.documents,
    }


@mcp.tool()
def recent_history(conversation_id: str, limit: int = 10) -> List[Tuple[str, str, str]]:
    """Recent messages of a conversation, newest first.

    Returns:
        List of tuples (role, content, timestamp)
    """
    _require(conversation_id, 'Conversation ID')

    try:
        return [tuple(entry) for entry in memory_service.recent_history(conversation_id, limit)]
    except AgenticMemoryError as e:
        logger.error(f'MCP recent_history failed: {e}')
        raise Exception(f'History lookup failed: {e}')


@mcp.tool()
def related_entities(topic: str) -> List[str]:
    """People and tasks mentioned alongside a topic."""
    if not topic or not topic.strip():
        return []

    try:
        return memory_service.related_entities(topic)
    except AgenticMemoryError as e:
        logger.error(f'MCP related_entities failed: {e}')
        raise Exception(f'Related entity lookup failed: {e}')


@mcp.tool()
def health() -> Dict[str, Any]:
    """Health of the graph backend and the LLM."""
    return get_health_status(memory_service.backend, memory_service.llm)


if __name__ == '__main__':
    mcp.run(transport=config.mcp.transport, host=config.mcp.host, port=config.mcp.port)
