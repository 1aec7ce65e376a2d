"""
Amazon Neptune graph database client issuing openCypher statements through the
boto3 ``neptunedata`` API with AWS SigV4 authentication.
"""

from functools import wraps
from typing import Any, Dict, List

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import NeptuneConfig
from .logging_config import get_logger

logger = get_logger(__name__)

# Neptune error codes raised when a write collides with an existing node
CONFLICT_ERROR_CODES = ('ConstraintViolationException', )


class NeptuneError(Exception):
    """Custom exception for Neptune errors."""
    pass


class NodeAlreadyExistsError(NeptuneError):
    """Raised when the backend rejects a node whose natural key is taken."""
    pass


def translate_backend_errors(func):
    """Decorator turning driver failures into NeptuneError subclasses."""

    @wraps(func)
    def wrapper(self, statement: str, *args, **kwargs):
        try:
            return func(self, statement, *args, **kwargs)
        except ClientError as e:
            code = e.response.get('Error', {}).get('Code', '')
            if code in CONFLICT_ERROR_CODES:
                logger.debug(f'Conflict in {func.__name__}: {code}')
                raise NodeAlreadyExistsError(f'Node already exists: {e}') from e
            logger.error(f'Error in {func.__name__}: {e}')
            raise NeptuneError(f'Failed to {func.__name__}: {e}') from e
        except BotoCoreError as e:
            # Connection failures and timeouts
            logger.error(f'Error in {func.__name__}: {e}')
            raise NeptuneError(f'Failed to {func.__name__}: {e}') from e

    return wrapper


class NeptuneClient:
    """Amazon Neptune client running openCypher statements."""

    def __init__(self, config: NeptuneConfig):
        """
        Initialize Neptune data API client.

        Args:
            config: NeptuneConfig instance with connection parameters
        """
        self.config = config

        endpoint = config.endpoint
        if '://' in endpoint:
            endpoint = endpoint.split('://', 1)[1]
        self.endpoint_url = f'https://{endpoint}:{config.port}'

        self.client = boto3.client(
            'neptunedata',
            endpoint_url=self.endpoint_url,
            region_name=boto3.Session().region_name or config.region,
            config=BotoConfig(
                connect_timeout=config.connect_timeout,
                read_timeout=config.read_timeout,
                retries={'max_attempts': 0}  # Callers own retries
            ))

        logger.info(f'Initialized Neptune client for endpoint: {self.endpoint_url}')

    def _run(self, statement: str) -> List[Dict[str, Any]]:
        logger.debug(f'openCypher: {statement}')
        response = self.client.execute_open_cypher_query(openCypherQuery=statement)
        results = response.get('results') or []
        return [row for row in results if isinstance(row, dict)]

    @translate_backend_errors
    def execute(self, statement: str) -> List[Dict[str, Any]]:
        """
        Run a write statement.

        Args:
            statement: openCypher statement

        Returns:
            Result rows produced by the statement's RETURN clause, if any

        Raises:
            NodeAlreadyExistsError: If the write collides with an existing node
            NeptuneError: On any other backend failure
        """
        return self._run(statement)

    @translate_backend_errors
    def query(self, statement: str) -> List[Dict[str, Any]]:
        """
        Run a read statement.

        Args:
            statement: openCypher statement

        Returns:
            Ordered result rows keyed by column name
        """
        return self._run(statement)

    def health_check(self) -> bool:
        """
        Perform a health check on the Neptune service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            self.query('MATCH (n) RETURN count(n) AS nodes LIMIT 1')
            return True
        except NeptuneError as e:
            logger.error(f'Neptune health check failed: {e}')
            return False
