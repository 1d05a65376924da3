"""CSV source reader with auto-delimiter detection."""
from io import StringIO
from typing import Any, List, Optional
import csv

from datamapper.exceptions import SourceReadError
from datamapper.reader.base_reader import Content, TabularReader, to_text


class CsvReader(TabularReader):
    """Read CSV content into rows."""

    format = "csv"

    # Common delimiters
    DELIMITERS = [',', ';', '|', '\t']

    def __init__(self, delimiter: Optional[str] = None):
        """
        Initialize CsvReader

        Args:
            delimiter: Field delimiter; detected from the content when omitted
        """
        self.delimiter = delimiter

    def read_rows(self, content: Content) -> List[List[Any]]:
        try:
            text = to_text(content)
        except UnicodeDecodeError as exc:
            raise SourceReadError(f"CSV source is not utf-8: {exc}") from exc

        delimiter = self.delimiter or self._detect_delimiter(text)
        try:
            return list(csv.reader(StringIO(text), delimiter=delimiter))
        except csv.Error as exc:
            raise SourceReadError(f"Invalid CSV source: {exc}") from exc

    def _detect_delimiter(self, content: str) -> str:
        """
        Auto-detect CSV delimiter from the header line.

        Returns:
            str: Most likely delimiter
        """
        sample = content.split('\n', 1)[0]

        counts = {delimiter: sample.count(delimiter) for delimiter in self.DELIMITERS}
        best_delimiter = max(counts, key=counts.get)

        # Fallback to comma if no clear winner
        if counts[best_delimiter] == 0:
            return ','

        return best_delimiter
