"""
Dot-path querier for nested dicts and lists.

Supports:
- `a.b.c` nested keys
- Numeric segments and bracket indices: `items.0.name`, `items[0].name`
- Escaped dots in keys: `dcterms\\.title`
"""

from collections.abc import Mapping, Sequence
from typing import Any, List, Union
import re

from datamapper.exceptions import InvalidQueryExpressionError
from datamapper.query.base import Querier

Segment = Union[str, int]


class JsdotQuerier(Querier):
    """Evaluates `.`-separated paths against key/value structures."""

    name = "jsdot"

    SPLIT_PATTERN = re.compile(r"(?<!\\)\.")
    BRACKET_PATTERN = re.compile(r"^(?P<key>[^\[\]]*)(?P<indices>(?:\[\d+\])+)$")
    INDEX_PATTERN = re.compile(r"\[(\d+)\]")

    def _query(self, path: str, node: Any) -> List[Any]:
        current = node
        for segment in self.parse(path):
            found, current = self._step(current, segment)
            if not found:
                return []

        if current is None:
            return []
        if isinstance(current, (list, tuple)):
            return list(current)
        return [current]

    def parse(self, path: str) -> List[Segment]:
        """Split a dot path into keys and list indices."""
        if path is None or not str(path).strip():
            raise InvalidQueryExpressionError("Empty jsdot path", querier=self.name, expression=path)

        segments: List[Segment] = []
        for part in self.SPLIT_PATTERN.split(str(path).strip()):
            key = part.replace("\\.", ".")
            if "[" in key or "]" in key:
                match = self.BRACKET_PATTERN.match(key)
                if not match:
                    raise InvalidQueryExpressionError(
                        f"Malformed bracket index in '{path}'", querier=self.name, expression=path
                    )
                if match.group("key"):
                    segments.append(match.group("key"))
                segments.extend(int(i) for i in self.INDEX_PATTERN.findall(match.group("indices")))
                continue
            if key == "":
                raise InvalidQueryExpressionError(
                    f"Empty segment in '{path}'", querier=self.name, expression=path
                )
            segments.append(key)
        return segments

    @staticmethod
    def _step(current: Any, segment: Segment):
        """Move one level down. Returns (found, value)."""
        if isinstance(current, Mapping):
            if segment in current:
                return True, current[segment]
            key = str(segment)
            if key in current:
                return True, current[key]
            if key.isdigit() and int(key) in current:
                return True, current[int(key)]
            return False, None

        if isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if isinstance(segment, int):
                index = segment
            elif segment.isdigit():
                index = int(segment)
            else:
                return False, None
            if index < len(current):
                return True, current[index]
            return False, None

        return False, None
