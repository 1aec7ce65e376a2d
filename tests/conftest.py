"""
Shared fixtures: an in-memory graph backend that understands the openCypher
statements emitted by agentic_memory.services.graph_statements.
"""

import os
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

os.environ.setdefault('ENVIRONMENT', 'test')
os.environ.setdefault('LOG_LEVEL', 'WARNING')
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')

from agentic_memory.utils.neptune_client import NeptuneError, NodeAlreadyExistsError  # noqa: E402

STR = r"'(?:[^'\\]|\\.)*'"
PROPS = rf'\{{((?:\w+: {STR}(?:, )?)*)\}}'
NODE = rf'\((\w+):(\w+) {PROPS}\)'
PAIR = re.compile(rf"(\w+): '((?:[^'\\]|\\.)*)'")
ESCAPE = re.compile(r'\\(u[0-9a-fA-F]{4}|.)', re.DOTALL)
UNESCAPES = {'n': '\n', 'r': '\r', 't': '\t', 'b': '\b', 'f': '\f', '\\': '\\', "'": "'", '"': '"'}

HISTORY_COLUMNS = r'RETURN m\.role AS role, m\.content AS content, m\.timestamp AS timestamp ' \
                  r'ORDER BY m\.timestamp DESC LIMIT (\d+)'

CREATE_NODE = re.compile(rf'^CREATE {NODE}$')
CREATE_IF_ABSENT = re.compile(rf'^OPTIONAL MATCH {NODE} WITH \w+ WHERE \w+ IS NULL CREATE {NODE} '
                              r'RETURN count\(\w+\) AS created$')
LINK = re.compile(rf'^MATCH {NODE}, {NODE} CREATE \((\w+)\)-\[\w+:(\w+)\]->\((\w+)\) '
                  r'RETURN count\(\w+\) AS linked$')
RELATED = re.compile(rf'^MATCH \(t:Topic {PROPS}\)-\[:MENTIONED_IN\]->\(m:Message\)<-\[:MENTIONED_IN\]-\(e\) '
                     r'WHERE e:Person OR e:Task RETURN DISTINCT coalesce\(e\.name, e\.description\) AS entity$')
HISTORY = re.compile(rf'^MATCH \(m:Message\)-\[:PART_OF\]->\(c:Conversation {PROPS}\) {HISTORY_COLUMNS}$')
PERSON_MENTIONS = re.compile(rf'^MATCH \(p:Person {PROPS}\)-\[:MENTIONED_IN\]->\(m:Message\) {HISTORY_COLUMNS}$')

UNIQUE_KEYS = {'Person': 'name', 'Topic': 'name', 'Document': 'title'}


def unescape(text: str) -> str:
    """Invert agentic_memory.utils.query_safety.escape_string."""

    def replace(match):
        token = match.group(1)
        if token.startswith('u') and len(token) == 5:
            return chr(int(token[1:], 16))
        return UNESCAPES[token]

    return ESCAPE.sub(replace, text)


def parse_props(text: str) -> Dict[str, str]:
    return {key: unescape(value) for key, value in PAIR.findall(text)}


class FakeGraph:
    """Minimal property graph honoring the statement shapes the builders emit.

    Person, Topic and Document names are unique, as a backend constraint
    would enforce.
    """

    def __init__(self):
        self.nodes: List[Dict[str, Any]] = []
        self.edges: List[tuple] = []
        self.statements: List[str] = []
        self._failures: List[tuple] = []

    # Test helpers

    def fail_when(self, fragment: str, error: Optional[Exception] = None):
        """Raise ``error`` for statements containing ``fragment``."""
        self._failures.append((fragment, error or NeptuneError('backend unavailable')))

    def nodes_with(self, label: str, **props) -> List[Dict[str, Any]]:
        return [node for node in self.nodes if node['label'] == label
                and all(node['props'].get(k) == v for k, v in props.items())]

    def edges_from(self, node: Dict[str, Any], rel_type: str) -> List[Dict[str, Any]]:
        index = self._index(node)
        return [self.nodes[dst] for src, kind, dst in self.edges if src == index and kind == rel_type]

    # Backend contract

    def execute(self, statement: str) -> List[Dict[str, Any]]:
        return self._run(statement)

    def query(self, statement: str) -> List[Dict[str, Any]]:
        return self._run(statement)

    # Interpretation

    def _index(self, node: Dict[str, Any]) -> int:
        return next(i for i, candidate in enumerate(self.nodes) if candidate is node)

    def _match(self, label: str, props_text: str) -> List[int]:
        props = parse_props(props_text)
        return [i for i, node in enumerate(self.nodes) if node['label'] == label
                and all(node['props'].get(k) == v for k, v in props.items())]

    def _create(self, label: str, props_text: str):
        props = parse_props(props_text)
        key = UNIQUE_KEYS.get(label)
        if key and self.nodes_with(label, **{key: props.get(key)}):
            raise NodeAlreadyExistsError(f'{label} {props.get(key)!r} already exists')
        self.nodes.append({'label': label, 'props': props})

    def _run(self, statement: str) -> List[Dict[str, Any]]:
        self.statements.append(statement)
        for fragment, error in self._failures:
            if fragment in statement:
                raise error

        match = CREATE_NODE.match(statement)
        if match:
            self._create(match.group(2), match.group(3))
            return []

        match = CREATE_IF_ABSENT.match(statement)
        if match:
            if self._match(match.group(2), match.group(3)):
                return [{'created': 0}]
            self._create(match.group(5), match.group(6))
            return [{'created': 1}]

        match = LINK.match(statement)
        if match:
            first_var, first = match.group(1), self._match(match.group(2), match.group(3))
            second = self._match(match.group(5), match.group(6))
            src_var, rel_type = match.group(7), match.group(8)
            linked = 0
            for a in first:
                for b in second:
                    src, dst = (a, b) if src_var == first_var else (b, a)
                    self.edges.append((src, rel_type, dst))
                    linked += 1
            return [{'linked': linked}]

        match = RELATED.match(statement)
        if match:
            topics = set(self._match('Topic', match.group(1)))
            messages = {dst for src, kind, dst in self.edges if src in topics and kind == 'MENTIONED_IN'}
            related = []
            for src, kind, dst in self.edges:
                node = self.nodes[src]
                if kind != 'MENTIONED_IN' or dst not in messages or node['label'] not in ('Person', 'Task'):
                    continue
                value = node['props'].get('name') or node['props'].get('description')
                if value not in related:
                    related.append(value)
            return [{'entity': value} for value in related]

        match = HISTORY.match(statement)
        if match:
            conversations = set(self._match('Conversation', match.group(1)))
            messages = [src for src, kind, dst in self.edges if kind == 'PART_OF' and dst in conversations]
            return self._message_rows(messages, int(match.group(2)))

        match = PERSON_MENTIONS.match(statement)
        if match:
            people = set(self._match('Person', match.group(1)))
            messages = [dst for src, kind, dst in self.edges if kind == 'MENTIONED_IN' and src in people]
            return self._message_rows(messages, int(match.group(2)))

        raise AssertionError(f'FakeGraph cannot interpret statement: {statement}')

    def _message_rows(self, indexes: List[int], limit: int) -> List[Dict[str, Any]]:
        messages = [self.nodes[i]['props'] for i in dict.fromkeys(indexes)]
        messages.sort(key=lambda props: props.get('timestamp', ''), reverse=True)
        return [{
            'role': props.get('role'),
            'content': props.get('content'),
            'timestamp': props.get('timestamp')
        } for props in messages[:limit]]


@pytest.fixture
def fake_graph():
    """Empty in-memory graph backend."""
    return FakeGraph()


@pytest.fixture
def clock():
    """Strictly increasing timestamps, one second apart."""
    start = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    ticks = (start + timedelta(seconds=i) for i in range(10_000))
    return lambda: next(ticks)
