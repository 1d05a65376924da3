"""Factory for creating the reader of a source format."""
from pathlib import Path
from typing import Any, List, Optional, Tuple
import logging

import requests

from datamapper.config import app_config
from datamapper.exceptions import SourceReadError
from datamapper.reader.base_reader import Content, SourceReader, TabularReader
from datamapper.reader.csv_reader import CsvReader
from datamapper.reader.excel_reader import ExcelReader
from datamapper.reader.json_reader import JsonReader
from datamapper.reader.xml_reader import XmlReader

logger = logging.getLogger(__name__)


class ReaderFactory:
    """Factory for creating source readers."""

    # Map formats and extensions to reader types
    READERS = {
        'json': 'json',
        'xml': 'xml',
        'csv': 'csv',
        'tsv': 'csv',
        'txt': 'csv',
        'xlsx': 'excel',
        'xlsm': 'excel',
    }

    @staticmethod
    def detect_format(content: Content, filename: Optional[str] = None) -> str:
        """
        Detect source format from a file name, else from the content.

        Returns:
            str: 'json', 'xml', 'csv' or 'xlsx'
        """
        if filename:
            ext = str(filename).lower().rsplit('.', 1)[-1] if '.' in str(filename) else ''
            if ext in ReaderFactory.READERS:
                return 'xlsx' if ReaderFactory.READERS[ext] == 'excel' else ext

        if isinstance(content, bytes):
            if content.startswith(b'PK'):
                # Zip container: xlsx workbook
                return 'xlsx'
            head = content[:64].lstrip(b'\xef\xbb\xbf').lstrip()
            first = head[:1].decode('ascii', errors='ignore')
        else:
            first = content.lstrip('\ufeff').lstrip()[:1]

        if first == '<':
            return 'xml'
        if first in ('{', '['):
            return 'json'
        return 'csv'

    @staticmethod
    def create_reader(source_format: str) -> SourceReader:
        """
        Create reader for a source format.

        Args:
            source_format: Format name or file extension

        Returns:
            SourceReader: Appropriate reader instance

        Raises:
            SourceReadError: If the format is not supported
        """
        reader_type = ReaderFactory.READERS.get(str(source_format).lower())
        if reader_type == 'json':
            return JsonReader()
        elif reader_type == 'xml':
            return XmlReader()
        elif reader_type == 'csv':
            return CsvReader('\t' if source_format == 'tsv' else None)
        elif reader_type == 'excel':
            return ExcelReader()

        raise SourceReadError(f"Unsupported source format: {source_format}")

    @staticmethod
    def read(content: Content, source_format: Optional[str] = None) -> Any:
        """Read content into one source document."""
        source_format = source_format or ReaderFactory.detect_format(content)
        return ReaderFactory.create_reader(source_format).read(content)

    @staticmethod
    def read_records(content: Content, source_format: Optional[str] = None) -> List[Any]:
        """Read content into documents converted one by one (rows, array items)."""
        source_format = source_format or ReaderFactory.detect_format(content)
        return ReaderFactory.create_reader(source_format).read_records(content)

    @staticmethod
    def read_rows(content: Content, source_format: Optional[str] = None) -> List[List[Any]]:
        """Read a tabular source as rows, header included."""
        source_format = source_format or ReaderFactory.detect_format(content)
        reader = ReaderFactory.create_reader(source_format)
        if not isinstance(reader, TabularReader):
            raise SourceReadError(f"Source format '{source_format}' has no rows")
        return reader.read_rows(content)


def load_source(location: str, timeout: Optional[int] = None) -> Tuple[bytes, str]:
    """
    Load raw source bytes from a file path or an http(s) URL.

    Returns:
        Tuple[bytes, str]: Content and the name used for format detection

    Raises:
        SourceReadError: If the file is missing or the URL cannot be fetched
    """
    if location.startswith(('http://', 'https://')):
        try:
            response = requests.get(location, timeout=timeout or app_config.http_timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise SourceReadError(f"Cannot fetch source {location}: {exc}") from exc
        logger.info(f"Fetched {len(response.content)} bytes from {location}")
        return response.content, location.split('?', 1)[0]

    path = Path(location)
    if not path.is_file():
        raise SourceReadError(f"Source file not found: {location}")
    return path.read_bytes(), path.name
