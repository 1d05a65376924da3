"""Tests for the conversion pipeline."""
import copy

import pytest
from lxml import etree

from datamapper import convert
from datamapper.builder import ConversionResult, EntryStatus, MappingConverter
from datamapper.config import XsltConfig
from datamapper.exceptions import ParseError, SourceReadError
from datamapper.mapper import MappingNormalizer, MappingResolver
from datamapper.preprocess import Preprocessor, XsltProcessor
from datamapper.query import Querier, QuerierRegistry
from datamapper.transformer import FilterRegistry, ValueTransformer


RENAME_XSL = """<xsl:stylesheet version="1.0" xmlns:xsl="http://www.w3.org/1999/XSL/Transform">
  <xsl:param name="prefix" select="''"/>
  <xsl:template match="/record">
    <record><title><xsl:value-of select="concat($prefix, name)"/></title></record>
  </xsl:template>
</xsl:stylesheet>
"""


class BrokenQuerier(Querier):
    """Querier failing with a non-query error."""

    name = "broken"

    def _query(self, path, node):
        raise RuntimeError("connection lost")


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def record():
    """Parsed JSON record"""
    return {
        "id": "7",
        "title": "Le Horla",
        "subjects": ["Fantastic", "Madness"],
        "status": "1",
        "url": "https://example.org/horla",
        "location": {"lat": 48.85, "lng": 2.35},
    }


@pytest.fixture
def converter(tmp_path):
    """Converter with an in-process XSLT processor and a private resolver"""
    resolver = MappingResolver(module_dir=str(tmp_path), user_dir=str(tmp_path))
    resolver.register("rename.xsl", RENAME_XSL)
    normalizer = MappingNormalizer(resolver)
    preprocessor = Preprocessor(resolver, XsltProcessor(XsltConfig(command="")))
    return MappingConverter(normalizer=normalizer, preprocessor=preprocessor)


def values(result):
    """Values of a result or of a list of assignments"""
    return [assignment.value for assignment in result]


# ============================================================================
# SCENARIOS
# ============================================================================


class TestBasicScenarios:
    """Test the reference behaviors of a conversion."""

    def test_single_value(self, converter):
        """One entry, one value."""
        result = converter.convert({"title": "Hello"}, {"maps": [{"from": "title", "to": "title"}]})
        assert result.as_tuples() == [("title", None, None, None, "Hello")]

    def test_empty_value_dropped(self, converter):
        """Empty values produce nothing."""
        result = converter.convert({"title": ""}, {"maps": [{"from": "title", "to": "title"}]})
        assert result.fields == []
        assert result.entries[0].status == EntryStatus.SKIPPED
        assert result.entries[0].reason == "empty"

    def test_pattern(self, converter):
        """Patterns wrap the extracted value."""
        mapping = {"maps": [{"from": "name", "to": "foaf:name", "mod": {"pattern": "Mr. {value}"}}]}
        assert values(converter.convert({"name": "Smith"}, mapping)) == ["Mr. Smith"]

    def test_table(self, converter):
        """Tables translate codes and pass unknown codes through."""
        mapping = {
            "maps": [{"from": "status", "to": "dcterms:accessRights", "mod": {"table": "status"}}],
            "tables": {"status": {"1": "Active"}},
        }
        assert values(converter.convert({"status": "1"}, mapping)) == ["Active"]
        assert values(converter.convert({"status": "9"}, mapping)) == ["9"]

    def test_no_entries(self, converter, record):
        """A mapping without maps converts to nothing."""
        assert converter.convert(record, {"info": {"label": "Draft"}}).fields == []
        assert convert(record, "[maps]\n") == []


# ============================================================================
# PIPELINE
# ============================================================================


class TestConversionPipeline:
    """Test entry processing and results."""

    def test_entry_order_and_multiple_values(self, converter, record):
        """Assignments follow entry order, then value order."""
        mapping = "[maps]\ntitle = dcterms:title @fr\nsubjects = dcterms:subject\nid = dcterms:identifier\n"
        result = converter.convert(record, mapping)
        assert [a.field for a in result] == [
            "dcterms:title", "dcterms:subject", "dcterms:subject", "dcterms:identifier",
        ]
        assert values(result) == ["Le Horla", "Fantastic", "Madness", "7"]
        assert result.fields[0].language == "fr"
        assert len(result) == 4

    def test_raw_value(self, converter, record):
        """raw is emitted without reading the source."""
        mapping = {"maps": [{"to": "dcterms:type ^^uri", "mod": {"raw": "http://purl.org/dc/dcmitype/Text"}}]}
        result = converter.convert(record, mapping)
        assert result.as_tuples() == [("dcterms:type", "uri", None, None, "http://purl.org/dc/dcmitype/Text")]

    def test_query_error_skips_entry(self, converter, record):
        """A failing query only skips its own entry."""
        mapping = {
            "maps": [
                {"from": {"xpath": "//title"}, "to": "dcterms:title"},
                {"from": "id", "to": "dcterms:identifier"},
            ]
        }
        result = converter.convert(record, mapping)
        assert values(result) == ["7"]
        assert result.entries[0].status == EntryStatus.SKIPPED
        assert "xpath" in result.entries[0].reason
        assert result.emitted_count == 1
        assert [entry.index for entry in result.skipped] == [0]

    def test_computed_pattern(self, converter, record):
        """Entries without source run their pattern once."""
        mapping = {"maps": [{"to": "dcterms:spatial", "mod": {"pattern": "{location.lat}, {location.lng}"}}]}
        assert values(converter.convert(record, mapping)) == ["48.85, 2.35"]

    def test_variables_layered_over_params(self, converter, record):
        """Caller variables override mapping params without being changed."""
        mapping = {
            "params": {"base": "http://a.org/", "suffix": "#it"},
            "maps": [{"to": "dcterms:identifier", "mod": {"pattern": "{base}{id}{suffix}"}}],
        }
        assert values(converter.convert(record, mapping)) == ["http://a.org/7#it"]

        variables = {"base": "http://b.org/"}
        assert values(converter.convert(record, mapping, variables)) == ["http://b.org/7#it"]
        assert variables == {"base": "http://b.org/"}

    def test_value_variable(self, converter):
        """Source-less entries read the `value` variable."""
        mapping = {"maps": [{"to": "dcterms:source", "mod": {"prepend": "From "}}]}
        assert values(converter.convert({}, mapping, {"value": "catalog"})) == ["From catalog"]

    def test_source_is_not_mutated(self, converter, record):
        """Conversion leaves the document unchanged."""
        before = copy.deepcopy(record)
        converter.convert(record, {"maps": ["title = dcterms:title", "subjects = dcterms:subject"]})
        assert record == before

    def test_unresolved_placeholder_warning(self, converter, record):
        """Unresolved placeholders are reported on the entry."""
        mapping = {"maps": [{"from": "title", "to": "dcterms:title", "mod": {"pattern": "{missing}"}}]}
        result = converter.convert(record, mapping)
        assert result.fields == []
        assert len(result.warnings) == 1
        assert result.warnings[0].placeholder == "missing"

    def test_external_tables(self, record):
        """Codes missing from the mapping tables go to the external lookup."""
        converter = MappingConverter(external_tables={"status": {"1": "Open"}})
        mapping = {"maps": [{"from": "status", "to": "dcterms:accessRights", "mod": {"table": "status"}}]}
        assert values(converter.convert(record, mapping)) == ["Open"]

    def test_definition_is_reused(self, converter, record):
        """Normalized definitions can be converted directly."""
        definition = converter.normalizer.normalize({"maps": ["title = dcterms:title"]})
        assert values(converter.convert(record, definition)) == ["Le Horla"]
        assert values(converter.convert({"title": "Bel-Ami"}, definition)) == ["Bel-Ami"]

    def test_invalid_mapping(self, converter, record):
        """Malformed mappings fail before any entry runs."""
        with pytest.raises(ParseError):
            converter.convert(record, "<mapping><unknown/></mapping>")

    def test_failing_filter_keeps_value(self, record):
        """A filter that raises leaves the value as it was."""
        def broken(value, *args, **context):
            raise ValueError("year 0 is out of range")

        filters = FilterRegistry()
        filters.register("broken", broken)
        converter = MappingConverter(transformer=ValueTransformer(filters))
        mapping = {
            "maps": [
                {"from": "title", "to": "dcterms:alternative", "mod": {"pattern": "{{ value|broken }}"}},
                {"from": "id", "to": "dcterms:identifier"},
            ]
        }
        assert values(converter.convert(record, mapping)) == ["Le Horla", "7"]

    def test_date_filter_does_not_stop_conversion(self, converter):
        """Out of range dates do not abort the other entries."""
        mapping = {
            "maps": [
                {"from": "d", "to": "dcterms:date", "mod": {"pattern": "{{ value|date }}"}},
                {"from": "title", "to": "dcterms:title"},
            ]
        }
        result = converter.convert({"d": "0001-01-01", "title": "Hello"}, mapping)
        assert result.fields[-1].value == "Hello"

    def test_unexpected_error_skips_entry(self, record):
        """Any failure of an entry skips it; later entries still run."""
        queriers = QuerierRegistry()
        queriers.register("broken", BrokenQuerier())
        converter = MappingConverter(queriers=queriers)
        mapping = {
            "maps": [
                {"from": {"querier": "broken", "path": "title"}, "to": "dcterms:title"},
                {"from": "id", "to": "dcterms:identifier"},
            ]
        }
        result = converter.convert(record, mapping)
        assert values(result) == ["7"]
        assert result.entries[0].status == EntryStatus.SKIPPED
        assert result.entries[0].reason == "RuntimeError: connection lost"

    def test_value_literal(self, converter, record):
        """val is emitted once per value found, and not for missing sources."""
        mapping = {
            "maps": [
                {"from": "subjects", "to": "dcterms:subject", "mod": {"val": "Indexed"}},
                {"from": "missing", "to": "dcterms:audience", "mod": {"val": "Public"}},
                {"from": "url", "to": "dcterms:hasFormat", "mod": {"val": "Online", "prepend": "x"}},
            ]
        }
        result = converter.convert(record, mapping)
        assert result.as_tuples() == [
            ("dcterms:subject", None, None, None, "Indexed"),
            ("dcterms:subject", None, None, None, "Indexed"),
            ("dcterms:hasFormat", None, None, None, "Online"),
        ]
        assert result.entries[1].reason == "empty"


# ============================================================================
# FIELD LISTS
# ============================================================================


class TestFieldLists:
    """Test key/value field records addressed as fields[].name."""

    @pytest.fixture
    def contentdm_record(self):
        """Item as returned by a CONTENTdm API"""
        return {
            "id": "359",
            "collectionAlias": "coll3",
            "fields": [
                {"key": "title", "label": "Title", "value": "Acer pseudoplatanus"},
                {"key": "creato", "label": "Creator", "value": "Kirschleger, Frédéric"},
                {"key": "subjec", "label": "Subject", "value": ["Botany", "Trees"]},
                {"key": "date", "label": "Date", "value": None},
                {"key": "creato", "label": "Creator", "value": "Buchinger, Jean-Daniel"},
            ],
        }

    def test_key_and_value(self, converter, contentdm_record):
        """Records are filed under their key; lists and repeats add values."""
        mapping = (
            "[params]\nfields = fields\nfields.key = key\nfields.value = value\n"
            "[maps]\n"
            "id = dcterms:identifier\n"
            "fields[].title = dcterms:title\n"
            "fields[].creato = dcterms:creator\n"
            "fields[].subjec = dcterms:subject\n"
            "fields[].date = dcterms:date\n"
            "~ = dcterms:description ~ {fields[].title} ({collectionAlias})\n"
        )
        assert converter.convert(contentdm_record, mapping).as_tuples() == [
            ("dcterms:identifier", None, None, None, "359"),
            ("dcterms:title", None, None, None, "Acer pseudoplatanus"),
            ("dcterms:creator", None, None, None, "Kirschleger, Frédéric"),
            ("dcterms:creator", None, None, None, "Buchinger, Jean-Daniel"),
            ("dcterms:subject", None, None, None, "Botany"),
            ("dcterms:subject", None, None, None, "Trees"),
            ("dcterms:description", None, None, None, "Acer pseudoplatanus (coll3)"),
        ]

    def test_value_only(self, converter, contentdm_record):
        """With only fields.value, every value is filed under that name."""
        mapping = {
            "params": {"fields": "fields", "fields.value": "label"},
            "maps": ["fields[].label = dcterms:alternative"],
        }
        assert values(converter.convert(contentdm_record, mapping)) == [
            "Title", "Creator", "Subject", "Date", "Creator",
        ]

    def test_without_params(self, converter, contentdm_record):
        """Without params.fields the path is an ordinary, invalid jsdot path."""
        result = converter.convert(contentdm_record, {"maps": ["fields[].title = dcterms:title"]})
        assert result.fields == []
        assert result.entries[0].status == EntryStatus.SKIPPED


# ============================================================================
# RESULTS
# ============================================================================


class TestConversionResult:
    """Test result shapes."""

    def test_to_resource(self, converter, record):
        """Values are grouped by field and typed."""
        mapping = {
            "maps": [
                {"from": "title", "to": "dcterms:title @fr"},
                {"from": "url", "to": "dcterms:identifier"},
                {"from": "id", "to": "dcterms:identifier ^^literal §private"},
            ]
        }
        resource = converter.convert(record, mapping).to_resource()
        assert list(resource) == ["dcterms:title", "dcterms:identifier"]
        assert resource["dcterms:title"] == [{"type": "literal", "@value": "Le Horla", "@language": "fr"}]
        assert resource["dcterms:identifier"] == [
            {"type": "uri", "@id": "https://example.org/horla"},
            {"type": "literal", "@value": "7", "is_public": False},
        ]

    def test_to_dict(self, converter, record):
        """Dictionary form lists fields and entry outcomes."""
        data = converter.convert(record, {"maps": ["title = dcterms:title", "missing = dcterms:date"]}).to_dict()
        assert data["fields"][0]["value"] == "Le Horla"
        assert [entry["status"] for entry in data["entries"]] == ["emitted", "skipped"]

    def test_empty_result(self):
        """Empty results are falsy and iterable."""
        result = ConversionResult()
        assert len(result) == 0
        assert list(result) == []
        assert result.to_resource() == {}


# ============================================================================
# RAW SOURCES
# ============================================================================


class TestRawSources:
    """Test sources given as bytes or text."""

    def test_json_text(self, converter):
        """JSON text is read before conversion."""
        result = converter.convert('{"title": "Hello"}', {"maps": ["title = dcterms:title"]})
        assert values(result) == ["Hello"]

    def test_xml_bytes_default_to_xpath(self, converter):
        """XML documents use xpath unless the entry names a querier."""
        source = b"<record><title>Le Horla</title><title>The Horla</title></record>"
        result = converter.convert(source, {"maps": ["/record/title = dcterms:title"]})
        assert values(result) == ["Le Horla", "The Horla"]

    def test_xml_placeholders_are_relative(self, converter):
        """Placeholders are queried from the current element."""
        source = (
            b"<record>"
            b"<creator><name>Maupassant</name><role>aut</role></creator>"
            b"<creator><name>Flaubert</name><role>edt</role></creator>"
            b"</record>"
        )
        mapping = {"maps": [{"from": "/record/creator", "to": "dcterms:creator", "mod": {"pattern": "{name} ({role})"}}]}
        assert values(converter.convert(source, mapping)) == ["Maupassant (aut)", "Flaubert (edt)"]

    def test_xml_datatype_keeps_markup(self, converter):
        """Entries typed xml keep the serialized element."""
        source = b"<record><note><p>One</p></note></record>"
        mapping = {"maps": [{"from": "/record/note/p", "to": {"field": "bibo:content", "datatype": "xml"}}]}
        assert values(converter.convert(source, mapping)) == ["<p>One</p>"]

    def test_parsed_tree(self, converter):
        """Parsed lxml trees are used as is."""
        tree = etree.fromstring("<record><title>Le Horla</title></record>")
        assert values(converter.convert(tree, {"maps": ["//title = dcterms:title"]})) == ["Le Horla"]

    def test_unreadable_source(self, converter):
        """Unreadable sources fail the whole conversion."""
        with pytest.raises(SourceReadError):
            converter.convert(b"{not json", {"maps": ["title = dcterms:title"]})
        with pytest.raises(SourceReadError):
            converter.convert(b"<record><title>", {"maps": ["//title = dcterms:title"]})

    def test_preprocess_param(self, converter):
        """Transforms named in the mapping params run before reading."""
        mapping = {"params": {"preprocess": "rename.xsl"}, "maps": ["/record/title = dcterms:title"]}
        result = converter.convert(b"<record><name>Le Horla</name></record>", mapping)
        assert values(result) == ["Le Horla"]

    def test_preprocess_argument(self, converter):
        """Transforms can also be given by the caller."""
        result = converter.convert(
            b"<record><name>Le Horla</name></record>",
            {"maps": ["/record/title = dcterms:title"]},
            preprocess=["rename.xsl"],
        )
        assert values(result) == ["Le Horla"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
