"""
XPath querier for XML trees (lxml).

Supports:
- Node sets, returned as nodes in document order
- Scalar results of XPath functions (string, number, boolean)
- Common metadata namespaces registered by default
- Namespace prefixes declared by the document itself
"""

from typing import Any, Dict, List, Optional
import logging

from lxml import etree

from datamapper.exceptions import InvalidQueryExpressionError
from datamapper.query.base import Querier, is_tree

logger = logging.getLogger(__name__)

COMMON_NAMESPACES: Dict[str, str] = {
    "bio": "http://purl.org/vocab/bio/0.1/",
    "bnf-onto": "http://data.bnf.fr/ontology/bnf-onto/",
    "dbpedia-owl": "http://dbpedia.org/ontology/",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
    "ead": "urn:isbn:1-931666-22-9",
    "foaf": "http://xmlns.com/foaf/0.1/",
    "gml": "http://www.opengis.net/gml",
    "idref": "http://www.idref.fr/",
    "isni": "http://isni.org/ontology#",
    "lido": "http://www.lido-schema.org",
    "mods": "http://www.loc.gov/mods/v3",
    "oai_dc": "http://www.openarchives.org/OAI/2.0/oai_dc/",
    "owl": "http://www.w3.org/2002/07/owl#",
    "rdaGr2": "http://rdvocab.info/ElementsGr2/",
    "rdaGr3": "http://rdvocab.info/ElementsGr3/",
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "rdfs": "http://www.w3.org/2000/01/rdf-schema#",
    "skos": "http://www.w3.org/2004/02/skos/core#",
    "xsd": "http://www.w3.org/2001/XMLSchema#",
}


class XpathQuerier(Querier):
    """Evaluates XPath 1.0 expressions against lxml elements."""

    name = "xpath"

    def __init__(self, namespaces: Optional[Dict[str, str]] = None):
        """
        Initialize querier.

        Args:
            namespaces: Extra prefix -> uri bindings, merged over the defaults
        """
        self.namespaces = dict(COMMON_NAMESPACES)
        if namespaces:
            self.namespaces.update(namespaces)

    def accepts(self, node: Any) -> bool:
        return is_tree(node)

    def _query(self, path: str, node: Any) -> List[Any]:
        element = node.getroot() if isinstance(node, etree._ElementTree) else node
        namespaces = self.namespaces_for(element)

        try:
            result = element.xpath(path, namespaces=namespaces)
        except etree.XPathError as exc:
            raise InvalidQueryExpressionError(
                f"Invalid xpath expression '{path}': {exc}", querier=self.name, expression=path
            ) from exc

        if isinstance(result, list):
            return result
        if isinstance(result, str) and result == "":
            return []
        return [result]

    def namespaces_for(self, element: etree._Element) -> Dict[str, str]:
        """Default namespaces plus the prefixes declared in the document."""
        namespaces = dict(self.namespaces)
        root = element.getroottree().getroot()
        for source in (root.nsmap, element.nsmap):
            for prefix, uri in source.items():
                if prefix:
                    namespaces[prefix] = uri
        return namespaces
