"""Tests for source readers and format detection."""
from io import BytesIO

import pytest
from lxml import etree
from openpyxl import Workbook

from datamapper.exceptions import SourceReadError
from datamapper.reader import CsvReader, ExcelReader, JsonReader, ReaderFactory, XmlReader, load_source


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def xlsx_content():
    """Small workbook with a header row and an empty row"""
    wb = Workbook()
    ws = wb.active
    ws.title = "Records"
    ws.append(["id", "title", "year"])
    ws.append(["1", "Le Horla", 1887])
    ws.append([None, None, None])
    ws.append(["2", "Bel-Ami", 1885])
    other = wb.create_sheet("Other")
    other.append(["name"])
    other.append(["x"])
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


# ============================================================================
# CSV
# ============================================================================


class TestCsvReader:
    """Test CSV reading."""

    def test_detect_delimiter(self):
        """The most frequent delimiter of the header line wins."""
        reader = CsvReader()
        assert reader._detect_delimiter("a;b;c\n1;2;3") == ";"
        assert reader._detect_delimiter("a\tb\n1\t2") == "\t"
        assert reader._detect_delimiter("single") == ","

    def test_rows(self):
        """Rows include the header."""
        rows = CsvReader().read_rows(b"id;title\n1;Le Horla\n")
        assert rows == [["id", "title"], ["1", "Le Horla"]]

    def test_records(self):
        """Records are keyed by header; empty rows are dropped."""
        content = "id,title,\n1,Le Horla,x\n,,\n2,\"Bel-Ami, roman\",\n"
        records = CsvReader().read(content)
        assert records == [
            {"id": "1", "title": "Le Horla", "column_2": "x"},
            {"id": "2", "title": "Bel-Ami, roman", "column_2": ""},
        ]

    def test_records_without_header(self):
        """Without header, rows stay lists."""
        assert CsvReader(",").read_records("a,b\nc,d\n", header=False) == [["a", "b"], ["c", "d"]]

    def test_bom(self):
        """Byte order marks are dropped."""
        records = CsvReader().read("\ufeffid,title\n1,x\n".encode("utf-8"))
        assert list(records[0]) == ["id", "title"]

    def test_not_utf8(self):
        """Undecodable content is an error."""
        with pytest.raises(SourceReadError):
            CsvReader().read_rows(b"id,title\n1,\xff\xfe\n")


# ============================================================================
# EXCEL
# ============================================================================


class TestExcelReader:
    """Test spreadsheet reading."""

    def test_active_sheet(self, xlsx_content):
        """Rows of the active sheet, empty rows dropped from records."""
        records = ExcelReader().read(xlsx_content)
        assert records == [
            {"id": "1", "title": "Le Horla", "year": 1887},
            {"id": "2", "title": "Bel-Ami", "year": 1885},
        ]

    def test_named_sheet(self, xlsx_content):
        """A sheet can be chosen by name."""
        assert ExcelReader("Other").read_rows(xlsx_content) == [["name"], ["x"]]
        with pytest.raises(SourceReadError):
            ExcelReader("Missing").read_rows(xlsx_content)

    def test_invalid(self):
        """Non-workbook content is an error."""
        with pytest.raises(SourceReadError):
            ExcelReader().read_rows(b"PK not really a zip")
        with pytest.raises(SourceReadError):
            ExcelReader().read_rows("text")


# ============================================================================
# JSON / XML
# ============================================================================


class TestJsonReader:
    """Test JSON reading."""

    def test_object(self):
        """Objects are one record."""
        assert JsonReader().read_records(b'{"title": "x"}') == [{"title": "x"}]

    def test_array(self):
        """Top-level arrays are records."""
        assert JsonReader().read_records('[{"a": 1}, {"a": 2}]') == [{"a": 1}, {"a": 2}]

    def test_invalid(self):
        """Invalid JSON is an error."""
        with pytest.raises(SourceReadError):
            JsonReader().read("{'single': 'quotes'}")


class TestXmlReader:
    """Test XML reading."""

    def test_read(self):
        """Documents become lxml elements."""
        root = XmlReader().read('<?xml version="1.0"?>\n<record><title>x</title></record>')
        assert isinstance(root, etree._Element)
        assert root.findtext("title") == "x"

    def test_invalid(self):
        """Malformed or empty XML is an error."""
        with pytest.raises(SourceReadError):
            XmlReader().read(b"<record>")
        with pytest.raises(SourceReadError):
            XmlReader().read(b"")


# ============================================================================
# FACTORY
# ============================================================================


class TestReaderFactory:
    """Test format detection and reader creation."""

    def test_detect_by_name(self):
        """File extensions come first."""
        assert ReaderFactory.detect_format(b"{}", "data.csv") == "csv"
        assert ReaderFactory.detect_format(b"", "book.XLSM") == "xlsx"
        assert ReaderFactory.detect_format(b"a\tb", "data.tsv") == "tsv"

    def test_detect_by_content(self, xlsx_content):
        """Content is sniffed otherwise."""
        assert ReaderFactory.detect_format(xlsx_content) == "xlsx"
        assert ReaderFactory.detect_format(b"  <record/>") == "xml"
        assert ReaderFactory.detect_format("\ufeff[1, 2]") == "json"
        assert ReaderFactory.detect_format(b"id,title") == "csv"

    def test_create_reader(self):
        """Formats map to readers."""
        assert isinstance(ReaderFactory.create_reader("xlsx"), ExcelReader)
        assert ReaderFactory.create_reader("tsv").delimiter == "\t"
        with pytest.raises(SourceReadError):
            ReaderFactory.create_reader("pdf")

    def test_read_rows(self):
        """Only tabular formats have rows."""
        assert ReaderFactory.read_rows(b"a,b\n1,2\n") == [["a", "b"], ["1", "2"]]
        with pytest.raises(SourceReadError):
            ReaderFactory.read_rows(b'{"a": 1}')

    def test_load_source(self, tmp_path):
        """Files are read as bytes with their name."""
        path = tmp_path / "record.json"
        path.write_bytes(b'{"title": "x"}')
        assert load_source(str(path)) == (b'{"title": "x"}', "record.json")
        with pytest.raises(SourceReadError):
            load_source(str(tmp_path / "missing.json"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
