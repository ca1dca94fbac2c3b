"""Namespace-aware document tree over lxml.

Wraps lxml elements in a small typed API so the response validator never deals
with raw prefixes. Names are matched on namespace URI plus local name, so an
IdP is free to choose its own prefixes (``saml:``, ``saml2:``, default
namespace, ...).
"""

import logging
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from lxml import etree

logger = logging.getLogger(__name__)

# SAML 2.0 and XML Signature namespaces
SAMLP_NS = "urn:oasis:names:tc:SAML:2.0:protocol"
SAML_NS = "urn:oasis:names:tc:SAML:2.0:assertion"
DS_NS = "http://www.w3.org/2000/09/xmldsig#"

# (namespace URI, local name)
QName = Tuple[str, str]


def _clark(name: QName) -> str:
    namespace, local = name
    return f"{{{namespace}}}{local}" if namespace else local


def create_secure_parser() -> etree.XMLParser:
    """Create an XML parser hardened against XXE and entity expansion.

    A new parser is created per call, so parsing is safe across threads.
    Whitespace is kept because it takes part in canonicalization. Comments
    are dropped, so element text reads the same as the exc-c14n bytes that
    were signed.

    Returns:
        Configured lxml XMLParser
    """
    return etree.XMLParser(
        resolve_entities=False,
        dtd_validation=False,
        load_dtd=False,
        no_network=True,
        remove_comments=True,
        huge_tree=False,
    )


class XMLNode:
    """A single element in a parsed SAML document.

    Attributes:
        element: Underlying lxml element
    """

    def __init__(self, element: etree._Element) -> None:
        self.element = element

    def __repr__(self) -> str:
        return f"XMLNode({self.element.tag!r})"

    @property
    def name(self) -> QName:
        """Namespace URI and local name of this element."""
        qname = etree.QName(self.element)
        return (qname.namespace or "", qname.localname)

    def is_named(self, namespace: str, local: str) -> bool:
        return self.name == (namespace, local)

    @property
    def text(self) -> str:
        """All text content of the element, stripped; empty string when absent."""
        return "".join(self.element.itertext()).strip()

    def attribute(self, name: str, namespace: Optional[str] = None) -> Optional[str]:
        """Get attribute value by name.

        Args:
            name: Attribute local name
            namespace: Attribute namespace URI (unqualified when None)

        Returns:
            Attribute value or None when absent
        """
        key = _clark((namespace, name)) if namespace else name
        return self.element.get(key)

    def children(self, namespace: str, local: str) -> List["XMLNode"]:
        """All direct children with the given qualified name, in document order."""
        return [XMLNode(child) for child in self.element.iterchildren(_clark((namespace, local)))]

    def child(self, namespace: str, local: str) -> Optional["XMLNode"]:
        """First direct child with the given qualified name, or None."""
        found = self.element.find(_clark((namespace, local)))
        return XMLNode(found) if found is not None else None

    def descendant(self, path: Sequence[QName]) -> Optional["XMLNode"]:
        """Follow a path of qualified child names from this node.

        Args:
            path: Sequence of (namespace, local) pairs, one per level

        Returns:
            First node matching the full path, or None

        Example:
            >>> node.descendant([(SAML_NS, "Subject"), (SAML_NS, "NameID")])
        """
        nodes = self.descendants(path)
        return next(nodes, None)

    def descendants(self, path: Sequence[QName]) -> Iterator["XMLNode"]:
        """All nodes reached by following a path of qualified child names."""
        current: List[XMLNode] = [self]
        for namespace, local in path:
            current = [child for node in current for child in node.children(namespace, local)]
            if not current:
                break
        return iter(current)


class XMLDocument:
    """A parsed SAML document.

    Attributes:
        root: Root element node
    """

    def __init__(self, root: etree._Element) -> None:
        self.root = XMLNode(root)

    @classmethod
    def parse(cls, xml: Union[str, bytes]) -> "XMLDocument":
        """Parse XML text into a document.

        Args:
            xml: XML as text or bytes

        Returns:
            Parsed document

        Raises:
            etree.XMLSyntaxError: If XML is malformed
            ValueError: If input is empty or has an unsupported encoding declaration
        """
        data = xml.encode("utf-8") if isinstance(xml, str) else xml
        if not data.strip():
            raise ValueError("Empty XML document")
        root = etree.fromstring(data, parser=create_secure_parser())
        logger.debug(f"Parsed XML document with root {root.tag}")
        return cls(root)
