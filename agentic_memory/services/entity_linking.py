"""
Entity resolution and linking: create-or-reuse entity nodes and record their
mention in a message.
"""

from enum import Enum
from typing import List

from ..models.core import ExtractedEntities
from ..models.schema import EntityMention, mentions_for
from ..utils.logging_config import get_logger
from ..utils.neptune_client import NeptuneError, NodeAlreadyExistsError
from . import graph_statements

logger = get_logger(__name__)


class EntityLinkingError(Exception):
    """Custom exception for entity linking errors."""
    pass


class LinkOutcome(Enum):
    """How the entity node for a mention was resolved."""
    CREATED = 'created'
    ALREADY_EXISTS = 'already_exists'


def _first_count(rows: List[dict], column: str) -> int:
    """Read an integer count column from the first result row, 0 if absent."""
    if not rows:
        return 0
    value = rows[0].get(column, 0)
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class EntityLinker:
    """Upsert entity nodes and link them to the message that mentions them."""

    def __init__(self, backend):
        """
        Args:
            backend: Graph backend exposing ``execute(statement)``
        """
        self.backend = backend

    def resolve(self, mention: EntityMention) -> LinkOutcome:
        """Ensure a node exists for the mention.

        Raises:
            EntityLinkingError: If an unconditional create fails
            NeptuneError: If a conditional create fails for any reason other
                than the node already existing
        """
        if mention.should_deduplicate():
            try:
                rows = self.backend.execute(graph_statements.create_entity_if_absent(mention))
            except NodeAlreadyExistsError:
                logger.debug(f'{mention.label()} already exists: {mention.display_name()}')
                return LinkOutcome.ALREADY_EXISTS

            if _first_count(rows, 'created') > 0:
                logger.debug(f'Created {mention.label()}: {mention.display_name()}')
                return LinkOutcome.CREATED
            logger.debug(f'Reusing {mention.label()}: {mention.display_name()}')
            return LinkOutcome.ALREADY_EXISTS

        try:
            self.backend.execute(graph_statements.create_entity(mention))
        except NeptuneError as e:
            logger.error(f'Failed to create {mention.label()} {mention.display_name()!r}: {e}')
            raise EntityLinkingError(f'Failed to create {mention.label()}: {e}') from e

        logger.debug(f'Created {mention.label()}: {mention.display_name()}')
        return LinkOutcome.CREATED

    def link(self, mention: EntityMention, message_id: str) -> LinkOutcome:
        """Resolve the mention's node and add its MENTIONED_IN edge.

        Args:
            mention: Entity mention to resolve
            message_id: Id of the message the entity was mentioned in

        Returns:
            Whether the entity node was created or reused

        Raises:
            EntityLinkingError: If the node could not be created or the
                mention edge could not be recorded
        """
        outcome = self.resolve(mention)

        try:
            rows = self.backend.execute(graph_statements.link_mention(mention, message_id))
        except NeptuneError as e:
            logger.error(f'Failed to link {mention.label()} {mention.display_name()!r} to message {message_id}: {e}')
            raise EntityLinkingError(f'Failed to record mention of {mention.label()}: {e}') from e

        if _first_count(rows, 'linked') == 0:
            logger.error(f'No mention edge created for {mention.label()} {mention.display_name()!r} '
                         f'in message {message_id}')
            raise EntityLinkingError(f'Mention of {mention.label()} {mention.display_name()!r} was not recorded')

        return outcome

    def link_all(self, message_id: str, entities: ExtractedEntities) -> List[LinkOutcome]:
        """Link every person, topic and task in order; stop at the first failure."""
        outcomes = [self.link(mention, message_id) for mention in mentions_for(entities)]
        logger.debug(f'Linked {len(outcomes)} entities to message {message_id}')
        return outcomes
