"""
Health check utilities for the graph backend and the LLM.
"""

from typing import Any, Dict, Optional

from .bedrock_llm import BedrockLLM
from .config import config
from .logging_config import get_logger
from .neptune_client import NeptuneClient

logger = get_logger(__name__)


def get_health_status(neptune: Optional[NeptuneClient] = None, llm: Optional[BedrockLLM] = None) -> Dict[str, Any]:
    """Get detailed health status of all components.

    Args:
        neptune: Client to check (created from config if None)
        llm: LLM client to check (created from config if None)

    Returns:
        Dictionary with health status of each component
    """
    health_status = {}

    try:
        neptune = neptune or NeptuneClient(config.neptune)
        health_status['neptune'] = {
            'healthy': neptune.health_check(),
            'service': 'Amazon Neptune',
            'endpoint': config.neptune.endpoint
        }
    except Exception as e:
        health_status['neptune'] = {'healthy': False, 'service': 'Amazon Neptune', 'error': str(e)}

    try:
        llm = llm or BedrockLLM(config.bedrock_llm)
        health_status['bedrock_llm'] = {
            'healthy': llm.health_check(),
            'service': 'Amazon Bedrock LLM',
            'model': config.bedrock_llm.model_id
        }
    except Exception as e:
        health_status['bedrock_llm'] = {'healthy': False, 'service': 'Amazon Bedrock LLM', 'error': str(e)}

    return health_status


def check_health(neptune: Optional[NeptuneClient] = None, llm: Optional[BedrockLLM] = None) -> bool:
    """Check the health of all system components.

    Returns:
        True if all components are healthy, False otherwise
    """
    health_status = get_health_status(neptune, llm)
    all_healthy = all(status.get('healthy', False) for status in health_status.values())

    if all_healthy:
        logger.info('All system components are healthy')
    else:
        unhealthy = [name for name, status in health_status.items() if not status.get('healthy', False)]
        logger.warning(f"Unhealthy components: {', '.join(unhealthy)}")

    return all_healthy
