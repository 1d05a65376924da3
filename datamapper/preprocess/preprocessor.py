"""
Source preprocessing with XSLT stylesheets.

Transform references resolve like mapping references (module:, user:,
mapping:, absolute paths, http URLs). Only XSLT is supported.
"""

from typing import Dict, Iterable, Optional
import logging

from lxml import etree

from datamapper.exceptions import PreprocessError
from datamapper.mapper.resolver import MappingResolver, ResolvedReference
from datamapper.preprocess.xslt import XsltProcessor

logger = logging.getLogger(__name__)

XSLT_EXTENSIONS = ("xsl", "xslt")
XSLT_NAMESPACE = "http://www.w3.org/1999/XSL/Transform"


def is_stylesheet(resolved: ResolvedReference) -> bool:
    """Check extension, else the root element of the content."""
    if resolved.extension in XSLT_EXTENSIONS:
        return True
    try:
        root = etree.fromstring(
            resolved.content.encode("utf-8"), etree.XMLParser(resolve_entities=False, no_network=True)
        )
    except (etree.XMLSyntaxError, ValueError):
        return False
    return root is not None and root.tag in (
        f"{{{XSLT_NAMESPACE}}}stylesheet",
        f"{{{XSLT_NAMESPACE}}}transform",
    )


class Preprocessor:
    """Runs transform references over raw source content."""

    def __init__(self, resolver: Optional[MappingResolver] = None, processor: Optional[XsltProcessor] = None):
        """
        Initialize Preprocessor

        Args:
            resolver: Resolver for transform references
            processor: XSLT processor (external command or lxml)
        """
        self.resolver = resolver or MappingResolver()
        self.processor = processor or XsltProcessor()

    def preprocess(self, content: bytes, transform_ref: str, params: Optional[Dict[str, str]] = None) -> bytes:
        """
        Apply one transform to raw source content.

        Args:
            content: Raw source
            transform_ref: Reference of the stylesheet
            params: Stylesheet parameters

        Returns:
            bytes: Transformed content

        Raises:
            PreprocessError: If the reference is unknown or not XSLT, or the transform fails
        """
        resolved = self.resolver.locate(transform_ref)
        if resolved is None:
            raise PreprocessError(f"Transform not found: {transform_ref}")
        if not is_stylesheet(resolved):
            raise PreprocessError(f"Unsupported transform type (only XSLT): {transform_ref}")

        output = self.processor.transform(content, resolved.content, params)
        logger.info(f"Preprocessed source with {transform_ref} ({len(content)} -> {len(output)} bytes)")
        return output

    def process(self, content: bytes, refs: Iterable[str], params: Optional[Dict[str, str]] = None) -> bytes:
        """Apply transforms in order, each on the output of the previous one."""
        for ref in refs:
            content = self.preprocess(content, ref, params)
        return content


def preprocess(content: bytes, transform_ref: str, params: Optional[Dict[str, str]] = None) -> bytes:
    """Apply one transform with a default Preprocessor."""
    return Preprocessor().preprocess(content, transform_ref, params)
