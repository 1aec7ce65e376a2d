"""
Pure openCypher statement builders for the conversation memory graph.

Builders only produce text; executing it is the backend's job. Raw values are
escaped here, while values coming from an EntityMention are already escaped.
"""

from typing import Dict

from ..models.core import Conversation, Message
from ..models.schema import EntityMention
from ..utils.query_safety import quote
from ..utils.timestamp_utils import to_iso_str

PART_OF = 'PART_OF'
MENTIONED_IN = 'MENTIONED_IN'


def _escaped_map(properties: Dict[str, str]) -> str:
    """Render already-escaped values as an inline property map."""
    return '{' + ', '.join(f"{key}: '{value}'" for key, value in properties.items()) + '}'


def _raw_map(properties: Dict[str, str]) -> str:
    return '{' + ', '.join(f'{key}: {quote(value)}' for key, value in properties.items()) + '}'


def create_conversation(conversation: Conversation) -> str:
    props = _raw_map({
        'id': conversation.id,
        'started_at': to_iso_str(conversation.started_at),
        'title': conversation.title or '',
    })
    return f'CREATE (c:Conversation {props})'


def create_message(message: Message) -> str:
    props = _raw_map({
        'id': message.id,
        'role': message.role,
        'content': message.content,
        'timestamp': to_iso_str(message.timestamp),
    })
    return f'CREATE (m:Message {props})'


def link_message_to_conversation(message_id: str, conversation_id: str) -> str:
    """Create the PART_OF edge; the result row reports how many edges were made."""
    return (f"MATCH (c:Conversation {_raw_map({'id': conversation_id})}), "
            f"(m:Message {_raw_map({'id': message_id})}) "
            f'CREATE (m)-[r:{PART_OF}]->(c) RETURN count(r) AS linked')


def create_entity_if_absent(mention: EntityMention) -> str:
    """Insert the entity only when no node with its natural key exists.

    The single result row carries ``created``: 1 for a new node, 0 when the
    node was already present.
    """
    key = _escaped_map({mention.natural_key_name(): mention.natural_key_value()})
    props = _escaped_map({mention.natural_key_name(): mention.natural_key_value(), **mention.extra_properties()})
    return (f'OPTIONAL MATCH (n:{mention.label()} {key}) WITH n WHERE n IS NULL '
            f'CREATE (c:{mention.label()} {props}) RETURN count(c) AS created')


def create_entity(mention: EntityMention) -> str:
    props = _escaped_map({mention.natural_key_name(): mention.natural_key_value(), **mention.extra_properties()})
    return f'CREATE (n:{mention.label()} {props})'


def link_mention(mention: EntityMention, message_id: str) -> str:
    """Create the MENTIONED_IN edge from the entity node to the message."""
    return (f'MATCH (e:{mention.label()} {_escaped_map(mention.match_properties())}), '
            f"(m:Message {_raw_map({'id': message_id})}) "
            f'CREATE (e)-[r:{MENTIONED_IN}]->(m) RETURN count(r) AS linked')


def related_entities(topic_name: str) -> str:
    """People and tasks mentioned in any message that also mentions the topic."""
    return (f"MATCH (t:Topic {_raw_map({'name': topic_name})})-[:{MENTIONED_IN}]->(m:Message)"
            f'<-[:{MENTIONED_IN}]-(e) WHERE e:Person OR e:Task '
            'RETURN DISTINCT coalesce(e.name, e.description) AS entity')


def recent_history(conversation_id: str, limit: int) -> str:
    return (f"MATCH (m:Message)-[:{PART_OF}]->(c:Conversation {_raw_map({'id': conversation_id})}) "
            'RETURN m.role AS role, m.content AS content, m.timestamp AS timestamp '
            f'ORDER BY m.timestamp DESC LIMIT {int(limit)}')


def person_mentions(person_name: str, limit: int) -> str:
    """Most recent messages that mention a person."""
    return (f"MATCH (p:Person {_raw_map({'name': person_name})})-[:{MENTIONED_IN}]->(m:Message) "
            'RETURN m.role AS role, m.content AS content, m.timestamp AS timestamp '
            f'ORDER BY m.timestamp DESC LIMIT {int(limit)}')
