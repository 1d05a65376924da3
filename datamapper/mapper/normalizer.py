"""
Mapping normalizer - surface text to canonical MappingDefinition.

Includes are expanded depth-first. The base mapping of `info.mapper` is
spliced before the maps of the mapping that names it.
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple
import logging

from datamapper.exceptions import IncludeCycleError, IncludeNotFoundError, ParseError
from datamapper.mapper.resolver import MappingResolver, ResolvedReference
from datamapper.parser import IncludeDirective, MappingParserFactory, ParsedMapping
from datamapper.schema.models import MapEntry, MappingDefinition, Table

logger = logging.getLogger(__name__)

Expansion = Tuple[List[MapEntry], List[Table], List[str]]


class MappingNormalizer:
    """Parses mappings of any syntax and expands their includes."""

    def __init__(self, resolver: Optional[MappingResolver] = None, use_cache: bool = True, cache_size: int = 128):
        """
        Initialize normalizer

        Args:
            resolver: Resolver for include references (default: bundled and user dirs)
            use_cache: Keep definitions loaded by reference
            cache_size: Most definitions kept; the oldest is dropped first
        """
        self.resolver = resolver or MappingResolver()
        self.use_cache = use_cache
        self.cache_size = cache_size
        self._cache: Dict[str, MappingDefinition] = {}

    def normalize(
        self, content: Any, syntax: Optional[str] = None, reference: Optional[str] = None
    ) -> MappingDefinition:
        """
        Normalize a mapping into its canonical form.

        Args:
            content: Mapping text, bytes, or a dict/list
            syntax: Optional syntax hint ('xml', 'array', 'json', 'ini')
            reference: Name of the mapping, used to detect self inclusion

        Returns:
            MappingDefinition: Canonical mapping

        Raises:
            ParseError: If the mapping or one of its includes is malformed
            IncludeCycleError: If a mapping includes itself
            IncludeNotFoundError: If an include cannot be resolved
        """
        key = reference
        context = None
        if reference:
            located = self.resolver.locate(reference)
            if located is not None:
                key = located.key
                context = located.directory
        return self._normalize(content, syntax, reference, key, context)

    def load(self, reference: str, syntax: Optional[str] = None) -> MappingDefinition:
        """
        Resolve a reference and normalize the mapping it names.

        Raises:
            IncludeNotFoundError: If the reference cannot be resolved
        """
        if self.use_cache and reference in self._cache:
            logger.debug(f"Mapping {reference} served from cache")
            return self._cache[reference]

        located = self.resolver.locate(reference)
        if located is None:
            raise IncludeNotFoundError(reference)

        definition = self._normalize(
            located.content, syntax or _syntax_hint(located), reference, located.key, located.directory
        )
        if self.use_cache:
            if len(self._cache) >= self.cache_size:
                self._cache.pop(next(iter(self._cache)))
            self._cache[reference] = definition
        return definition

    def clear_cache(self) -> None:
        self._cache.clear()

    def _normalize(
        self,
        content: Any,
        syntax: Optional[str],
        name: Optional[str],
        key: Optional[str],
        context: Optional[str],
    ) -> MappingDefinition:
        parsed = MappingParserFactory.parse(content, syntax)
        stack = [key] if key else []
        entries, tables, includes = self._expand(parsed, stack, context)

        definition = MappingDefinition(
            name=name,
            info=parsed.info,
            params=dict(parsed.params),
            entries=tuple(replace(entry, index=index) for index, entry in enumerate(entries)),
            tables=tuple(tables),
            includes=tuple(includes),
        )
        logger.info(
            f"Mapping {name or '(inline)'} normalized: {len(definition.entries)} maps, "
            f"{len(definition.tables)} tables, {len(definition.includes)} includes"
        )
        return definition

    def _expand(self, parsed: ParsedMapping, stack: List[str], context: Optional[str]) -> Expansion:
        """Splice included entries at their position; own tables come first."""
        items = list(parsed.items)
        if parsed.info.mapper:
            items.insert(0, IncludeDirective(parsed.info.mapper))

        entries: List[MapEntry] = []
        tables: List[Table] = list(parsed.tables)
        includes: List[str] = []

        for item in items:
            if not isinstance(item, IncludeDirective):
                entries.append(item)
                continue
            child_entries, child_tables, child_includes = self._include(item, stack, context)
            entries.extend(child_entries)
            tables.extend(child_tables)
            includes.extend(child_includes)

        return entries, tables, includes

    def _include(self, directive: IncludeDirective, stack: List[str], context: Optional[str]) -> Expansion:
        parent = stack[-1] if stack else None
        if directive.reference in stack:
            raise IncludeCycleError(stack + [directive.reference])

        located = self.resolver.locate(directive.reference, context)
        if located is None:
            raise IncludeNotFoundError(directive.reference, parent)

        if located.key in stack:
            raise IncludeCycleError(stack + [located.key])

        try:
            parsed = MappingParserFactory.parse(located.content, _syntax_hint(located))
        except ParseError:
            logger.error(f"Included mapping {directive.reference} is malformed")
            raise

        logger.debug(f"Including {located.key}")
        stack.append(located.key)
        try:
            entries, tables, includes = self._expand(parsed, stack, located.directory)
        finally:
            stack.pop()
        return entries, tables, [located.key] + includes


def _syntax_hint(located: ResolvedReference) -> Optional[str]:
    extension = located.extension
    return extension if extension in MappingParserFactory.PARSERS else None


def normalize(
    content: Any,
    syntax: Optional[str] = None,
    reference: Optional[str] = None,
    resolver: Optional[MappingResolver] = None,
) -> MappingDefinition:
    """Normalize a mapping with a one-off normalizer."""
    return MappingNormalizer(resolver, use_cache=False).normalize(content, syntax, reference)
