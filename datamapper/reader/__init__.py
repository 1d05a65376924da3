"""
Source readers - raw content to source documents.

Supports:
- json: dicts and lists
- xml: lxml elements
- csv: rows, with delimiter detection
- xlsx: rows of a sheet (openpyxl)
"""

from .base_reader import SourceReader, TabularReader
from .csv_reader import CsvReader
from .excel_reader import ExcelReader
from .json_reader import JsonReader
from .reader_factory import ReaderFactory, load_source
from .xml_reader import XmlReader

__all__ = [
    "CsvReader",
    "ExcelReader",
    "JsonReader",
    "ReaderFactory",
    "SourceReader",
    "TabularReader",
    "XmlReader",
    "load_source",
]
