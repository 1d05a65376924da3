"""
Conversion pipeline - source document + mapping -> ordered field assignments.

Raw sources are preprocessed (when the mapping or the caller asks for it)
and read before any entry runs, so unreadable input fails the whole
conversion. Entries then run in definition order; a query failure only
skips its own entry.
"""

from types import MappingProxyType
from typing import Any, Dict, List, Optional, Sequence, Union
import logging

from datamapper.builder.field_builder import ConversionContext, FieldBuilder, build_fields_index
from datamapper.builder.results import ConversionResult, FieldAssignment
from datamapper.config import app_config
from datamapper.mapper.normalizer import MappingNormalizer
from datamapper.preprocess.preprocessor import Preprocessor
from datamapper.query.base import is_tree
from datamapper.query.registry import QuerierRegistry
from datamapper.reader.reader_factory import ReaderFactory
from datamapper.schema.models import MappingDefinition, Modifier
from datamapper.transformer.tables import TableLookup, TableRegistry
from datamapper.transformer.value_transform import ValueTransformer

logger = logging.getLogger(__name__)

PREPROCESS_PARAM = "preprocess"


def split_references(value: Optional[str]) -> List[str]:
    """Split references separated by whitespace or commas."""
    if not value:
        return []
    return value.replace(",", " ").split()


class MappingConverter:
    """Converts source documents with normalized mappings."""

    def __init__(
        self,
        queriers: Optional[QuerierRegistry] = None,
        transformer: Optional[ValueTransformer] = None,
        normalizer: Optional[MappingNormalizer] = None,
        preprocessor: Optional[Preprocessor] = None,
        external_tables: Optional[Union[TableLookup, Dict[str, Dict[str, str]]]] = None,
    ):
        """
        Initialize converter

        Args:
            queriers: Querier registry
            transformer: Value transformer
            normalizer: Normalizer for mappings given as text or structures
            preprocessor: Preprocessor for raw sources
            external_tables: Lookup queried when a mapping table misses a code
        """
        self.field_builder = FieldBuilder(queriers, transformer)
        self.normalizer = normalizer or MappingNormalizer()
        self.preprocessor = preprocessor or Preprocessor(resolver=self.normalizer.resolver)
        self.external_tables = external_tables

    def convert(
        self,
        source: Any,
        mapping: Any,
        variables: Optional[Dict[str, Any]] = None,
        preprocess: Optional[Sequence[str]] = None,
        source_format: Optional[str] = None,
    ) -> ConversionResult:
        """
        Convert one source document.

        Args:
            source: Parsed document (dict/list, lxml element) or raw bytes/str
            mapping: MappingDefinition, or mapping content to normalize
            variables: Caller variables, layered over the mapping params
            preprocess: Extra transform references for raw sources
            source_format: Reader format of raw sources (detected when omitted)

        Returns:
            ConversionResult: Field assignments in entry order

        Raises:
            MappingError: If the mapping cannot be normalized
            SourceReadError: If a raw source cannot be read
            PreprocessError: If a transform fails
        """
        if not isinstance(mapping, MappingDefinition):
            mapping = self.normalizer.normalize(mapping)

        document = self.prepare(source, mapping, preprocess, source_format)

        scope: Dict[str, Any] = dict(mapping.params)
        scope.update(variables or {})

        context = ConversionContext(
            document=document,
            variables=MappingProxyType(scope),
            tables=TableRegistry(mapping.tables, self.external_tables),
            default_querier=self.default_querier(mapping, document),
            fields=build_fields_index(document, scope),
        )

        result = ConversionResult()
        for entry in mapping.entries:
            result.add(self.field_builder.build(entry, context))

        logger.info(
            f"Converted with {mapping.name or 'inline mapping'}: {len(result.fields)} values, "
            f"{len(result.skipped)} of {len(result.entries)} maps skipped"
        )
        return result

    def prepare(
        self,
        source: Any,
        mapping: MappingDefinition,
        preprocess: Optional[Sequence[str]] = None,
        source_format: Optional[str] = None,
    ) -> Any:
        """Preprocess and read raw sources; parsed documents pass through."""
        if not isinstance(source, (bytes, str)):
            return source

        refs = split_references(mapping.params.get(PREPROCESS_PARAM)) + list(preprocess or [])
        if refs:
            content = source.encode("utf-8") if isinstance(source, str) else source
            source = self.preprocessor.process(content, refs)
            source_format = None
        return ReaderFactory.read(source, source_format)

    @staticmethod
    def default_querier(mapping: MappingDefinition, document: Any) -> str:
        if mapping.info.querier:
            return mapping.info.querier
        if is_tree(document):
            return "xpath"
        return app_config.default_querier


def convert(
    source: Any,
    mapping: Any,
    variables: Optional[Dict[str, Any]] = None,
    **options,
) -> List[FieldAssignment]:
    """
    Convert one source document with a default converter.

    Returns:
        List[FieldAssignment]: Ordered assignments; empty when nothing matched
    """
    return MappingConverter().convert(source, mapping, variables, **options).fields


def convert_value(
    value: Any,
    modifier: Union[Modifier, Dict[str, Any], str, None],
    variables: Optional[Dict[str, Any]] = None,
    tables: Optional[Union[TableLookup, Dict[str, Dict[str, str]]]] = None,
    lang: Optional[str] = None,
) -> Optional[str]:
    """
    Transform a single value with a modifier.

    Args:
        value: Value to transform
        modifier: Modifier, dict of modifier parts, or a pattern string
        variables: Variable scope
        tables: Table lookup or {table: {code: label}}
        lang: Language used to pick tables

    Returns:
        Optional[str]: Transformed value, None when it is empty
    """
    if isinstance(modifier, str):
        modifier = Modifier(pattern=modifier)
    elif isinstance(modifier, dict):
        modifier = Modifier(**{key: (part or None) for key, part in modifier.items()})
    if isinstance(tables, dict):
        tables = TableRegistry(external=tables)

    values = ValueTransformer().transform([value], modifier, variables, tables, lang=lang)
    return values[0] if values else None
