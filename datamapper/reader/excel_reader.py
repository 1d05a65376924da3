"""Excel spreadsheet reader."""
from io import BytesIO
from typing import Any, List, Optional
import zipfile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from datamapper.exceptions import SourceReadError
from datamapper.reader.base_reader import Content, TabularReader


class ExcelReader(TabularReader):
    """Read the rows of one sheet of an xlsx workbook."""

    format = "xlsx"

    def __init__(self, sheet: Optional[str] = None):
        """
        Initialize ExcelReader

        Args:
            sheet: Sheet name (default: the active sheet)
        """
        self.sheet = sheet

    def read_rows(self, content: Content) -> List[List[Any]]:
        if isinstance(content, str):
            raise SourceReadError("Excel sources must be given as bytes")

        try:
            wb = load_workbook(BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
            raise SourceReadError(f"Failed to read Excel file: {exc}") from exc

        try:
            if self.sheet is not None:
                if self.sheet not in wb.sheetnames:
                    raise SourceReadError(f"Sheet not found: {self.sheet}")
                ws = wb[self.sheet]
            else:
                ws = wb.active
            return [list(row) for row in ws.iter_rows(values_only=True)]
        finally:
            wb.close()
