# pgxport/encoders.py
"""
Order-preserving row encoders.

Rows are always walked as (column, value) pairs in projection order; neither
encoder relies on a mapping to remember column order.
"""

import json
import logging
from typing import Any, Iterable, List, Tuple

import yaml
from yaml.nodes import MappingNode, ScalarNode, SequenceNode
from yaml.representer import SafeRepresenter

logger = logging.getLogger(__name__)

STR_TAG = 'tag:yaml.org,2002:str'
MAP_TAG = 'tag:yaml.org,2002:map'
SEQ_TAG = 'tag:yaml.org,2002:seq'


class JSONRowEncoder:
    """
    Hand-emits one row as an indented JSON object.

    Output for a two column row, as it appears inside the top-level array::

        {
            "id": 1,
            "name": "Aang"
          }

    Nested objects and arrays are indented relative to their key. Nothing is
    HTML- or ASCII-escaped, so ``<``, ``>`` and ``&`` are written as is.
    """

    def __init__(self, prefix: str = '    ', indent: str = '  '):
        self.prefix = prefix
        self.indent = indent

    def _encode_value(self, value: Any) -> str:
        if isinstance(value, (dict, list)) and value:
            text = json.dumps(value, ensure_ascii=False, indent=len(self.indent), allow_nan=False)
            return text.replace('\n', '\n' + self.prefix)
        return json.dumps(value, ensure_ascii=False, allow_nan=False)

    def encode(self, pairs: Iterable[Tuple[str, Any]]) -> str:
        """
        Encode (column, value) pairs.

        Raises
        ------
        ValueError
            If a value cannot be represented in JSON (NaN, unsupported type).
        """
        lines = []
        for key, value in pairs:
            try:
                encoded = self._encode_value(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"cannot encode column '{key}' as JSON: {e}") from e
            lines.append(f"{self.prefix}{json.dumps(str(key), ensure_ascii=False)}: {encoded}")
        if not lines:
            return '{}'
        return '{\n' + ',\n'.join(lines) + '\n' + self.indent + '}'


class _NodeRepresenter(SafeRepresenter):
    """Safe representer that never emits anchors or aliases."""

    def ignore_aliases(self, data) -> bool:
        return True


class YAMLRowEncoder:
    """
    Builds YAML nodes for rows and serializes them as one sequence.

    Each row becomes an explicit ``MappingNode`` whose key/value pairs are
    appended in projection order; values are represented with PyYAML's safe
    representer.
    """

    def __init__(self, indent: int = 2):
        self.indent = indent
        self._representer = _NodeRepresenter(default_flow_style=False, sort_keys=False)
        self.nodes: List[MappingNode] = []

    def row_node(self, pairs: Iterable[Tuple[str, Any]]) -> MappingNode:
        items = []
        for key, value in pairs:
            try:
                value_node = self._representer.represent_data(value)
            except yaml.YAMLError as e:
                raise ValueError(f"cannot encode column '{key}' as YAML: {e}") from e
            items.append((ScalarNode(STR_TAG, str(key)), value_node))
        return MappingNode(MAP_TAG, items, flow_style=False)

    def append(self, pairs: Iterable[Tuple[str, Any]]) -> None:
        self.nodes.append(self.row_node(pairs))

    def serialize(self) -> str:
        """Serialize every appended row as a single YAML sequence document."""
        document = SequenceNode(SEQ_TAG, self.nodes, flow_style=False)
        return yaml.serialize(document, Dumper=yaml.SafeDumper, indent=self.indent,
                              allow_unicode=True)
