"""
Amazon Bedrock LLM client used for entity extraction and reply generation.
"""

import random
import time
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import BedrockLLMConfig
from .logging_config import get_logger

logger = get_logger(__name__)


class BedrockLLMError(Exception):
    """Custom exception for Bedrock LLM errors."""
    pass


class BedrockLLM:
    """Amazon Bedrock Converse client with retry logic and error handling."""

    def __init__(self, config: BedrockLLMConfig):
        """
        Initialize Bedrock LLM client.

        Args:
            config: BedrockLLMConfig instance with connection parameters
        """
        self.config = config
        self.model_id = config.model_id

        self.bedrock_runtime = boto3.client(
            'bedrock-runtime',
            region_name=config.region,
            config=BotoConfig(
                connect_timeout=60,
                read_timeout=300,
                retries={'max_attempts': 0}  # We handle retries manually
            ))

        logger.info(f'Initialized Bedrock LLM client with model: {self.model_id}')

    def _converse(self, messages: List[Dict[str, Any]], system_prompt: str,
                  inference_config: Dict[str, Any]) -> Tuple[str, Optional[Dict[str, Any]]]:
        """Run one streamed Converse call and collect the text deltas."""
        stream = self.bedrock_runtime.converse_stream(modelId=self.model_id,
                                                      messages=messages,
                                                      system=[{'text': system_prompt}],
                                                      inferenceConfig=inference_config).get('stream')

        text = ''
        usage = None
        for event in stream or []:
            if 'contentBlockDelta' in event:
                text += event['contentBlockDelta']['delta'].get('text', '')
            if 'metadata' in event:
                usage = {**event['metadata'].get('usage', {}), **event['metadata'].get('metrics', {})}
        return text, usage

    def generate_response(self,
                          messages: List[Dict[str, Any]],
                          system_prompt: str,
                          max_tokens: Optional[int] = None,
                          temperature: Optional[float] = None,
                          stop_sequences: Optional[List[str]] = None) -> Tuple[str, Optional[Dict[str, Any]]]:
        """
        Generate a response, retrying throttling and transport failures.

        Args:
            messages: List of message dictionaries in Bedrock format
            system_prompt: System prompt for the conversation
            max_tokens: Maximum tokens to generate (uses config default if None)
            temperature: Temperature for generation (uses config default if None)
            stop_sequences: Stop sequences for generation

        Returns:
            Tuple of (response_text, usage_metrics)

        Raises:
            BedrockLLMError: If all retry attempts fail
        """
        inference_config = {
            'maxTokens': max_tokens or self.config.max_tokens,
            'temperature': self.config.temperature if temperature is None else temperature,
            'stopSequences': stop_sequences or [],
        }

        attempts = max(1, self.config.retry_attempts)
        for attempt in range(attempts):
            try:
                logger.debug(f'Bedrock LLM request attempt {attempt + 1}/{attempts}')
                text, usage = self._converse(messages, system_prompt, inference_config)
                logger.debug(f'Bedrock LLM response generated (length: {len(text)})')
                return text, usage

            except (ClientError, BotoCoreError) as e:
                logger.warning(f'Bedrock LLM attempt {attempt + 1}/{attempts} failed: {e}')
                if attempt == attempts - 1:
                    raise BedrockLLMError(f'Bedrock LLM failed after {attempts} attempts: {e}') from e
                # Exponential backoff with jitter
                time.sleep(self.config.retry_delay * (2**attempt) + random.uniform(0, 1))

        raise BedrockLLMError(f'Bedrock LLM failed after {attempts} attempts')

    def complete(self, system_prompt: str, user_message: str) -> str:
        """
        Single-turn completion of a user message under a system prompt.

        Raises:
            BedrockLLMError: If generation fails
        """
        messages = [{'role': 'user', 'content': [{'text': user_message}]}]
        response, _ = self.generate_response(messages=messages, system_prompt=system_prompt)
        return response.strip()

    def health_check(self) -> bool:
        """
        Perform a health check on the Bedrock LLM service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            response, _ = self.generate_response(messages=[{'role': 'user', 'content': [{'text': 'Hi'}]}],
                                                 system_prompt="You are a helpful assistant. Respond with just 'OK'.",
                                                 max_tokens=10,
                                                 temperature=0.0)
            return bool(response.strip())
        except BedrockLLMError as e:
            logger.error(f'Bedrock LLM health check failed: {e}')
            return False
