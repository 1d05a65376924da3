"""Abstract base classes for source readers."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Union

Content = Union[bytes, str]


def to_text(content: Content) -> str:
    """Decode bytes as utf-8, dropping a byte order mark."""
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig")
    return content.lstrip("\ufeff")


class SourceReader(ABC):
    """Abstract base class for source readers."""

    format: str = ""

    @abstractmethod
    def read(self, content: Content) -> Any:
        """
        Read raw content into a source document.

        Args:
            content: Raw source content

        Returns:
            Any: Parsed document (dict/list, or lxml element)

        Raises:
            SourceReadError: If the content cannot be read
        """
        pass

    def read_records(self, content: Content) -> List[Any]:
        """Read content as a list of documents, converted one by one."""
        return [self.read(content)]


class TabularReader(SourceReader):
    """Readers of row-based sources (csv, spreadsheets)."""

    @abstractmethod
    def read_rows(self, content: Content) -> List[List[Any]]:
        """Read all rows, header included."""
        pass

    def read(self, content: Content) -> List[Dict[str, Any]]:
        return self.read_records(content)

    def read_records(self, content: Content, header: bool = True) -> List[Any]:
        """
        Read data rows.

        Args:
            content: Raw source content
            header: First row holds column names; rows become dicts

        Returns:
            List[Any]: One dict (or list without header) per non-empty row
        """
        rows = [row for row in self.read_rows(content) if any(_filled(v) for v in row)]
        if not header:
            return rows
        if not rows:
            return []

        names = []
        for position, name in enumerate(rows[0]):
            name = str(name).strip() if _filled(name) else ""
            if not name or name in names:
                name = f"column_{position}"
            names.append(name)

        return [
            {name: (row[i] if i < len(row) else None) for i, name in enumerate(names)}
            for row in rows[1:]
        ]


def _filled(value: Any) -> bool:
    return value is not None and str(value).strip() != ""
