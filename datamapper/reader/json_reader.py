"""JSON source reader."""
from typing import Any, List
import json

from datamapper.exceptions import SourceReadError
from datamapper.reader.base_reader import Content, SourceReader, to_text


class JsonReader(SourceReader):
    """Read JSON documents; a top-level array is a list of records."""

    format = "json"

    def read(self, content: Content) -> Any:
        try:
            return json.loads(to_text(content))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise SourceReadError(f"Invalid JSON source: {exc}") from exc

    def read_records(self, content: Content) -> List[Any]:
        document = self.read(content)
        if isinstance(document, list):
            return document
        return [document]
