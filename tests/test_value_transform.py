"""Tests for filters, code tables, the pattern engine and value transformation."""
import pytest

from datamapper.builder import convert_value
from datamapper.exceptions import PatternResolutionWarning
from datamapper.schema.models import Modifier, Table
from datamapper.transformer import FilterRegistry, TableRegistry, TemplateEngine, ValueTransformer, transform


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def tables():
    """Mapping tables with a language variant and an external fallback"""
    return TableRegistry(
        [
            Table(name="status", lang="fr", entries={"1": "Ouvert"}),
            Table(name="status", entries={"1": "Open", "0": "Closed"}),
        ],
        external={"languages": {"fre": "French"}},
    )


@pytest.fixture
def transformer():
    """Default transformer"""
    return ValueTransformer()


# ============================================================================
# FILTERS
# ============================================================================


class TestFilterRegistry:
    """Test individual filters."""

    @pytest.fixture
    def filters(self):
        return FilterRegistry()

    def test_text_filters(self, filters):
        """Case, trimming and escaping."""
        assert filters.apply("le horla", "title") == "Le Horla"
        assert filters.apply("xxaxx", "trim", ["x"]) == "a"
        assert filters.apply("  a  ", "trim", ["", "left"]) == "a  "
        assert filters.apply('<a & "b">', "escape") == "&lt;a &amp; &quot;b&quot;&gt;"
        assert filters.apply("<p>Hi <b>there</b></p>", "striptags") == "Hi there"
        assert filters.apply("a b/c", "url_encode") == "a%20b%2Fc"
        assert filters.apply("/data/files/scan.tif", "basename") == "scan.tif"

    def test_numbers_and_lengths(self, filters):
        """abs and length."""
        assert filters.apply("-3", "abs") == "3"
        assert filters.apply("-2.5", "abs") == "2.5"
        assert filters.apply("n/a", "abs") == "n/a"
        assert filters.apply("abc", "length") == "3"

    def test_split_join_slice(self, filters):
        """Lists can be built, sliced and joined."""
        parts = filters.apply("a,b,c", "split", [","])
        assert parts == ["a", "b", "c"]
        assert filters.apply(parts, "join", [" / "]) == "a / b / c"
        assert filters.apply(parts, "slice", ["1"]) == ["b", "c"]
        assert filters.apply("1887-05-01", "slice", ["0", "4"]) == "1887"
        assert filters.apply(parts, "first") == "a"
        assert filters.apply(parts, "last") == "c"

    def test_replace_longest_first(self, filters):
        """Longer keys win over their prefixes."""
        assert filters.apply("abc", "replace", [{"a": "x", "ab": "y"}]) == "yc"
        assert filters.apply("abc", "replace") == "abc"

    def test_dates(self, filters):
        """Date conversions."""
        assert filters.apply("d1605110512", "dateIso") == "1605-11-05T12"
        assert filters.apply("19850901", "dateIso") == "1985-09-01"
        assert filters.apply("uu85", "dateIso") == "uu85"
        assert filters.apply("19850901141236.0", "dateSql") == "1985-09-01 14:12:36"
        assert filters.apply("05/01/20", "dateRevert") == "2020-01-05"
        assert filters.apply("05012020", "dateRevert") == "2020-01-05"
        assert filters.apply("2020-01-05", "date", ["%d/%m/%Y"]) == "05/01/2020"
        assert filters.apply("not a date", "date", ["%Y"]) == "not a date"

    def test_table_filter(self, filters, tables):
        """Inline dicts and named tables."""
        assert filters.apply("1", "table", [{"1": "One"}]) == "One"
        assert filters.apply("1", "table", ["status"], tables=tables) == "Open"
        assert filters.apply("1", "table", ["status"], tables=tables, lang="fr") == "Ouvert"
        assert filters.apply("9", "table", ["status"], tables=tables) == "9"

    def test_unknown_filter(self, filters):
        """Unknown filters leave the value unchanged."""
        assert filters.apply("abc", "rot13") == "abc"

    def test_register(self, filters):
        """Custom filters."""
        filters.register("reverse", lambda value, *args, **context: str(value)[::-1])
        assert filters.apply("abc", "reverse") == "cba"

    def test_failing_filter(self, filters):
        """A filter that raises leaves the value unchanged."""
        def broken(value, *args, **context):
            raise RuntimeError("broken filter")

        filters.register("broken", broken)
        assert filters.apply("abc", "broken") == "abc"

    def test_date_out_of_range(self, filters):
        """Dates that cannot be converted are returned as given."""
        assert filters.apply("0001-01-01", "date", ["%Y"]) in ("0001", "1", "0001-01-01")
        assert isinstance(filters.apply("0001-01-01", "date"), str)


# ============================================================================
# TABLES
# ============================================================================


class TestTableRegistry:
    """Test table lookups with fallback."""

    def test_language_variant(self, tables):
        """Tables tagged with the target language are preferred."""
        assert tables.lookup("status", "1", "fr") == "Ouvert"
        assert tables.lookup("status", "1", "de") == "Open"

    def test_external_fallback(self, tables):
        """Codes missing from the mapping go to the external lookup."""
        assert tables.lookup("languages", "fre") == "French"
        assert tables.lookup("languages", "xxx") is None

    def test_miss(self):
        """Misses are None."""
        assert TableRegistry().lookup("status", "1") is None


# ============================================================================
# PATTERN ENGINE
# ============================================================================


class TestTemplateEngine:
    """Test placeholder substitution."""

    def test_value_and_variables(self):
        """Local names come before variables."""
        engine = TemplateEngine(context={"value": "Le Horla"}, variables={"value": "x", "base": "http://e.org"})
        assert engine.evaluate("{base}/{value}") == "http://e.org/Le Horla"

    def test_source_paths(self):
        """Unknown names are resolved in the source."""
        engine = TemplateEngine(resolve_path=lambda path: {"creator.name": "Maupassant"}.get(path))
        assert engine.evaluate("by {creator.name}") == "by Maupassant"

    def test_all_unresolved_is_empty(self):
        """Static text alone never becomes a value."""
        engine = TemplateEngine()
        assert engine.evaluate("Title: {missing}") == ""
        assert len(engine.warnings) == 1
        assert isinstance(engine.warnings[0], PatternResolutionWarning)
        assert engine.warnings[0].placeholder == "missing"

    def test_partial_resolution(self):
        """Resolved placeholders keep the text."""
        engine = TemplateEngine(context={"value": "a"})
        assert engine.evaluate("{value} ({missing})") == "a ()"

    def test_literal_pattern(self):
        """Patterns without placeholders are literals."""
        assert TemplateEngine().evaluate("Text") == "Text"

    def test_single_pass(self):
        """Inserted text is not scanned again."""
        engine = TemplateEngine(context={"value": "{secret}"}, variables={"secret": "leak"})
        assert engine.evaluate("{value}") == "{secret}"

    def test_filter_chain(self):
        """Expressions run their filters in order."""
        engine = TemplateEngine(context={"value": "  Le Horla "})
        assert engine.evaluate("{{ value|trim|upper }}") == "LE HORLA"
        assert engine.evaluate("{{ value|trim|split(' ')|join('-') }}") == "Le-Horla"

    def test_quoted_head(self):
        """Quoted heads are patterns themselves."""
        engine = TemplateEngine(resolve_path=lambda path: "le horla" if path == "title" else None)
        assert engine.evaluate("{{ '{title}'|title }}") == "Le Horla"

    def test_inline_dict_argument(self):
        """Filter arguments can be inline dicts."""
        engine = TemplateEngine(context={"value": "1"})
        assert engine.evaluate("{{ value|table({'1': 'Open', '0': 'Closed'}) }}") == "Open"

    def test_named_table(self, tables):
        """The table filter uses the engine's tables and language."""
        engine = TemplateEngine(context={"value": "1"}, tables=tables, lang="fr")
        assert engine.evaluate("{{ value|table('status') }}") == "Ouvert"


# ============================================================================
# VALUE TRANSFORM
# ============================================================================


class TestValueTransformer:
    """Test modifier application."""

    def test_no_modifier(self, transformer):
        """Values are stringified, empties dropped."""
        assert transformer.transform(["a", 2, 2.0, "", True], None) == ["a", "2", "2", "true"]

    def test_raw_wins(self, transformer):
        """raw ignores extracted values and prepend/append."""
        modifier = Modifier(raw="Fixed", prepend="X ", pattern="{value}")
        assert transformer.transform(["a", "b"], modifier) == ["Fixed"]
        assert transformer.transform([], modifier) == ["Fixed"]

    def test_prepend_append(self, transformer):
        """Affixes wrap each non-empty value."""
        modifier = Modifier(prepend="[", append="]")
        assert transformer.transform(["a", "", "b"], modifier) == ["[a]", "[b]"]

    def test_value_literal(self, transformer):
        """val replaces each non-empty value, ignoring prepend/append."""
        modifier = Modifier(val="Yes", prepend="[")
        assert transformer.transform(["a", "", "b"], modifier) == ["Yes", "Yes"]

    def test_value_literal_without_value(self, transformer):
        """val emits nothing when no value was found."""
        assert transformer.transform([], Modifier(val="Yes")) == []
        assert transformer.transform([""], Modifier(val="Yes")) == []

    def test_value_literal_after_pattern(self, transformer):
        """val is only emitted when the pattern yields something."""
        modifier = Modifier(val="Yes", pattern="{missing}")
        assert transformer.transform(["a"], modifier) == []

    def test_table_then_pattern(self, transformer, tables):
        """Tables run before the pattern, which sees key and label."""
        modifier = Modifier(table="status", pattern="{key}: {label}")
        assert transformer.transform(["1", "7"], modifier, tables=tables) == ["1: Open", "7: 7"]

    def test_table_without_registry(self, transformer):
        """Codes pass through when no tables are available."""
        assert transformer.transform(["1"], Modifier(table="status")) == ["1"]

    def test_pattern_per_value(self, transformer):
        """Patterns run once per value, keeping order."""
        modifier = Modifier(pattern="Mr. {value}")
        assert transformer.transform(["Smith", "Jones"], modifier) == ["Mr. Smith", "Mr. Jones"]

    def test_computed_value(self, transformer):
        """A None value runs the pattern once against the source."""
        values = transformer.transform(
            [None],
            Modifier(pattern="{lat}, {lng}"),
            resolve_path=lambda path, raw: {"lat": "48.8", "lng": "2.3"}.get(path),
        )
        assert values == ["48.8, 2.3"]

    def test_unresolved_pattern_dropped(self, transformer):
        """Unresolved patterns drop the value and record a warning."""
        warnings = []
        values = transformer.transform(["a"], Modifier(pattern="{missing}"), warnings=warnings)
        assert values == []
        assert warnings[0].placeholder == "missing"

    def test_variables_are_read(self, transformer):
        """Patterns see the variable scope."""
        modifier = Modifier(pattern="{base}{value}")
        assert transformer.transform(["42"], modifier, {"base": "ark:/"}) == ["ark:/42"]

    def test_containers_skipped(self, transformer):
        """Non-scalar values produce nothing."""
        assert transformer.transform([{"a": 1}, "b"], None) == ["b"]

    def test_module_function(self):
        """transform() uses a default transformer."""
        assert transform(["a"], Modifier(append="!")) == ["a!"]


class TestConvertValue:
    """Test single value conversion."""

    def test_pattern_string(self):
        """A string modifier is a pattern."""
        assert convert_value("  x ", "{{ value|trim }}") == "x"

    def test_dict_modifier_with_tables(self):
        """Dict modifiers and dict tables."""
        assert convert_value("1", {"table": "status"}, tables={"status": {"1": "Open"}}) == "Open"
        assert convert_value("2", {"table": "status", "prepend": "#"}, tables={"status": {}}) == "#2"

    def test_empty(self):
        """Empty results are None."""
        assert convert_value("", "Mr {value}") is None
        assert convert_value("", None) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
