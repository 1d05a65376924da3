"""
Custom exceptions for the mapping engine.

Document-level errors (mapping parse, includes, unreadable source,
preprocessing) abort a conversion. Entry-level errors (queries) are caught
per map entry by the pipeline and turned into a skipped entry.
"""

from typing import List, Optional


class DataMapperError(Exception):
    """Base exception for all mapping engine errors."""
    pass


class MappingError(DataMapperError):
    """
    Raised when a mapping definition cannot be turned into its canonical form.

    This includes:
    - Malformed surface syntax
    - Closed schema violations
    - Include resolution failures
    """
    pass


class ParseError(MappingError):
    """
    Raised when a mapping text is malformed or violates the vocabulary.

    This includes:
    - XML or JSON syntax errors
    - Unknown elements, misplaced elements or unknown attributes
    - Map entries with neither source nor target
    - Unknown querier names
    """

    def __init__(self, message: str, position: Optional[int] = None, line: Optional[int] = None):
        self.position = position
        self.line = line
        prefix = ""
        if position is not None:
            prefix = f"map #{position}: "
        suffix = f" (line {line})" if line else ""
        super().__init__(f"{prefix}{message}{suffix}")


class IncludeCycleError(MappingError):
    """Raised when a mapping includes itself, directly or transitively."""

    def __init__(self, chain: List[str]):
        self.chain = list(chain)
        super().__init__("Include cycle detected: " + " -> ".join(self.chain))


class IncludeNotFoundError(MappingError):
    """Raised when an included mapping reference cannot be resolved."""

    def __init__(self, reference: str, parent: Optional[str] = None):
        self.reference = reference
        self.parent = parent
        where = f" (included from {parent})" if parent else ""
        super().__init__(f"Mapping reference not found: {reference}{where}")


class QueryError(DataMapperError):
    """Base class for errors raised while evaluating a path query."""

    def __init__(self, message: str, querier: Optional[str] = None, expression: Optional[str] = None):
        self.querier = querier
        self.expression = expression
        super().__init__(message)


class QueryTypeMismatchError(QueryError):
    """Raised when a querier is invoked on a node shape it does not accept."""
    pass


class InvalidQueryExpressionError(QueryError):
    """Raised when a path expression is malformed for its query language."""
    pass


class SourceReadError(DataMapperError):
    """
    Raised when a source document cannot be read.

    This includes:
    - Invalid JSON or XML content
    - Unreadable spreadsheets
    - Unsupported source formats
    - Remote sources that cannot be fetched
    """
    pass


class PreprocessError(DataMapperError):
    """
    Raised when preprocessing a source document fails.

    This includes:
    - Transform references that cannot be resolved or are not stylesheets
    - Non-zero exit code or timeout of the external processor
    - Empty or missing output
    - In-process XSLT parse or apply errors
    """

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class PatternResolutionWarning(UserWarning):
    """Emitted when a pattern placeholder resolves to nothing."""

    def __init__(self, placeholder: str, pattern: str = ""):
        self.placeholder = placeholder
        self.pattern = pattern
        super().__init__(f"Placeholder '{placeholder}' could not be resolved in pattern '{pattern}'")
