"""
Unit tests for the context retrieval engine.
"""

from unittest.mock import MagicMock

import pytest

from agentic_memory.models.core import ExtractedEntities, HistoryEntry
from agentic_memory.services.context_retrieval import ContextRetriever, RetrievalError
from agentic_memory.services.conversation_ingestion import ConversationIngestion
from agentic_memory.utils.neptune_client import NeptuneError


@pytest.fixture
def ingestion(fake_graph):
    return ConversationIngestion(fake_graph)


@pytest.fixture
def retriever(fake_graph):
    return ContextRetriever(fake_graph)


class TestRelatedEntities:
    """Tests for find_related_entities."""

    def test_two_hop_traversal(self, ingestion, retriever):
        conversation_id = ingestion.start_conversation()
        ingestion.add_message(conversation_id, 'user', 'Alice will ship v1 in rust',
                              ExtractedEntities(people=['Alice'], topics=['rust'], tasks=['ship v1']))
        ingestion.add_message(conversation_id, 'user', 'Bob likes go',
                              ExtractedEntities(people=['Bob'], topics=['go'], tasks=['learn generics']))

        assert set(retriever.find_related_entities('rust')) == {'Alice', 'ship v1'}

    def test_distinct_results(self, ingestion, retriever):
        conversation_id = ingestion.start_conversation()
        for _ in range(2):
            ingestion.add_message(conversation_id, 'user', 'Alice on rust',
                                  ExtractedEntities(people=['Alice'], topics=['rust']))

        assert retriever.find_related_entities('rust') == ['Alice']

    def test_excludes_other_topics(self, ingestion, retriever):
        conversation_id = ingestion.start_conversation()
        ingestion.add_message(conversation_id, 'user', 'rust and go',
                              ExtractedEntities(topics=['rust', 'go']))

        assert retriever.find_related_entities('rust') == []

    def test_unknown_topic(self, retriever):
        assert retriever.find_related_entities('cobol') == []

    def test_backend_failure(self, fake_graph, retriever):
        fake_graph.fail_when('MATCH (t:Topic')

        with pytest.raises(RetrievalError):
            retriever.find_related_entities('rust')

    def test_ignores_non_string_values(self):
        backend = MagicMock()
        backend.query.return_value = [{'entity': 'Alice'}, {'entity': None}, {'entity': 3}, {}]

        assert ContextRetriever(backend).find_related_entities('rust') == ['Alice']


class TestRecentHistory:
    """Tests for get_recent_history."""

    def test_newest_first_with_limit(self, ingestion, retriever, clock):
        conversation_id = ingestion.start_conversation()
        for content in ('A', 'B', 'C'):
            ingestion.add_message(conversation_id, 'user', content, timestamp=clock())

        history = retriever.get_recent_history(conversation_id, 2)

        assert [entry.content for entry in history] == ['C', 'B']
        assert history[0] == HistoryEntry(role='user', content='C', timestamp='2026-01-01T12:00:02.000000+00:00')

    def test_only_requested_conversation(self, ingestion, retriever, clock):
        first = ingestion.start_conversation()
        second = ingestion.start_conversation()
        ingestion.add_message(first, 'user', 'first', timestamp=clock())
        ingestion.add_message(second, 'user', 'second', timestamp=clock())

        assert [entry.content for entry in retriever.get_recent_history(first, 10)] == ['first']

    def test_drops_malformed_rows(self):
        backend = MagicMock()
        backend.query.return_value = [
            {'role': 'user', 'content': 'ok', 'timestamp': '2026-01-01T00:00:01.000000+00:00'},
            {'role': 'user', 'content': None, 'timestamp': '2026-01-01T00:00:00.000000+00:00'},
            {'role': 'assistant', 'content': 'no timestamp'},
            {'role': 7, 'content': 'bad role', 'timestamp': 'x'},
        ]

        history = ContextRetriever(backend).get_recent_history('c1', 10)

        assert [entry.content for entry in history] == ['ok']

    def test_invalid_limit(self, retriever):
        with pytest.raises(ValueError):
            retriever.get_recent_history('c1', 0)

    def test_backend_failure(self):
        backend = MagicMock()
        backend.query.side_effect = NeptuneError('timeout')

        with pytest.raises(RetrievalError, match='timeout'):
            ContextRetriever(backend).get_recent_history('c1', 5)


class TestFormattedContext:
    """Tests for the text renderings of retrieval results."""

    def test_format_recent_history(self, ingestion, retriever, clock):
        conversation_id = ingestion.start_conversation()
        ingestion.add_message(conversation_id, 'user', 'hi', timestamp=clock())
        ingestion.add_message(conversation_id, 'assistant', 'hello', timestamp=clock())

        assert retriever.format_recent_history(conversation_id, 5) == (
            '[2026-01-01T12:00:01.000000+00:00] assistant: hello\n'
            '[2026-01-01T12:00:00.000000+00:00] user: hi')

    def test_format_empty_history(self, ingestion, retriever):
        conversation_id = ingestion.start_conversation()

        assert retriever.format_recent_history(conversation_id, 5) == 'No recent messages found.'

    def test_topic_context(self, ingestion, retriever):
        conversation_id = ingestion.start_conversation()
        ingestion.add_message(conversation_id, 'user', 'Alice on rust',
                              ExtractedEntities(people=['Alice'], topics=['rust']))

        assert retriever.get_topic_context('rust') == "Topic 'rust' is related to: Alice"
        assert retriever.get_topic_context('go') == "No previous context found for topic 'go'"

    def test_person_context(self, ingestion, retriever, clock):
        conversation_id = ingestion.start_conversation()
        ingestion.add_message(conversation_id, 'user', 'Ask Alice about Rust',
                              ExtractedEntities(people=['Alice']), timestamp=clock())
        ingestion.add_message(conversation_id, 'user', 'Bob is away',
                              ExtractedEntities(people=['Bob']), timestamp=clock())

        context = retriever.get_person_context('Alice')

        assert context == ("Recent mentions of 'Alice':\n"
                           '[2026-01-01T12:00:00.000000+00:00] user: Ask Alice about Rust')
        assert retriever.get_person_context('Carol') == "No previous context found for person 'Carol'"
