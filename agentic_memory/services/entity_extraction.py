"""
Entity Extraction Service: people, topics, tasks and documents from free text.
"""

import json
from typing import Any, Dict, List, Optional

from ..models.core import ExtractedEntities
from ..utils.bedrock_llm import BedrockLLM, BedrockLLMError
from ..utils.config import config
from ..utils.json_utils import extract_json_object
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

EXTRACTION_PROMPT = """You are an expert entity extractor for an AI agent's memory system.
Extract the following types of entities from the user's message:

1. PEOPLE: Names of individuals mentioned
2. TOPICS: Subjects, concepts, technologies, projects, or areas of interest
3. TASKS: Action items, todos, or work that needs to be done
4. DOCUMENTS: Files, links, resources, or references mentioned

Return your response as a JSON object with this exact structure:
```json
{
  "people": ["name1", "name2"],
  "topics": ["topic1", "topic2"],
  "tasks": ["task1", "task2"],
  "documents": ["doc1", "doc2"]
}
```

Guidelines:
- Only extract entities that are explicitly mentioned or clearly implied
- For topics, include both specific technologies and general concepts
- For tasks, extract actionable items in imperative form
- If a category has no entities, use an empty array []
- Be precise and avoid over-extraction

Return ONLY the JSON object, no additional text."""


class EntityExtractionError(Exception):
    """Custom exception for entity extraction errors."""
    pass


def _string_list(data: Dict[str, Any], field_name: str) -> List[str]:
    """Read a list field keeping only string items; anything else is empty."""
    value = data.get(field_name)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def parse_extraction_response(response: str) -> ExtractedEntities:
    """Parse the LLM's JSON answer into ExtractedEntities.

    Args:
        response: Raw LLM response, possibly with prose or code fences around the object

    Returns:
        ExtractedEntities; missing or malformed fields are empty

    Raises:
        EntityExtractionError: If no JSON object can be parsed
    """
    try:
        data = json.loads(extract_json_object(response))
    except json.JSONDecodeError as e:
        logger.error(f'Failed to parse entity extraction JSON: {e}')
        raise EntityExtractionError(f'Failed to parse entity extraction JSON: {e}') from e

    if not isinstance(data, dict):
        logger.error(f'Expected JSON object, got {type(data).__name__}')
        raise EntityExtractionError(f'Expected JSON object, got {type(data).__name__}')

    return ExtractedEntities(people=_string_list(data, 'people'),
                             topics=_string_list(data, 'topics'),
                             tasks=_string_list(data, 'tasks'),
                             documents=_string_list(data, 'documents'))


class EntityExtractionService:
    """Extract entities from user messages using a Bedrock LLM."""

    def __init__(self, llm: Optional[BedrockLLM] = None):
        """Initialize the entity extraction service."""
        self.llm = llm or BedrockLLM(config.bedrock_llm)

        logger.info('Initialized EntityExtractionService')

    def extract(self, message: str) -> ExtractedEntities:
        """Extract entities from a single message.

        Args:
            message: Free-text user message

        Returns:
            ExtractedEntities (all empty for blank input)

        Raises:
            EntityExtractionError: If the LLM call fails or its output cannot be parsed
        """
        if not message or not message.strip():
            logger.debug('Empty message provided for entity extraction')
            return ExtractedEntities()

        try:
            response = self.llm.complete(EXTRACTION_PROMPT, message)
        except BedrockLLMError as e:
            logger.error(f'LLM error during entity extraction: {e}')
            raise EntityExtractionError(f'Entity extraction failed: {e}') from e

        entities = parse_extraction_response(response)
        logger.debug(f'Extracted {len(entities.people)} people, {len(entities.topics)} topics, '
                     f'{len(entities.tasks)} tasks, {len(entities.documents)} documents')
        return entities
