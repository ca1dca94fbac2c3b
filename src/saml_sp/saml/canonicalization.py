"""Exclusive XML canonicalization of signed SAML content.

The signature is computed over the exclusive canonical form (exc-c14n, without
comments) of the Assertion subtree, with the Assertion's own enveloped
``ds:Signature`` removed. Canonicalizing a detached copy keeps the input
document untouched, and exclusive c14n only renders namespaces the subtree
actually uses, so the bytes do not depend on where the Assertion is embedded.
"""

import copy
import logging
from typing import Optional

from lxml import etree

from ..utils.exceptions import CanonicalizationError
from .xml_tree import DS_NS, XMLNode

logger = logging.getLogger(__name__)

# Algorithm URI of exclusive canonicalization without comments
EXC_C14N_ALGORITHM = "http://www.w3.org/2001/10/xml-exc-c14n#"


def _remove_preserving_tail(element: etree._Element) -> None:
    """Remove element from its parent, keeping its tail text in place."""
    parent = element.getparent()
    if element.tail:
        previous = element.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + element.tail
        else:
            parent.text = (parent.text or "") + element.tail
    parent.remove(element)


def check_canonicalization_method(signature: Optional[XMLNode]) -> None:
    """Reject a declared CanonicalizationMethod other than exc-c14n.

    Args:
        signature: ds:Signature node whose SignedInfo is inspected, or None

    Raises:
        CanonicalizationError: If another method (inclusive c14n, or
            exc-c14n with comments) is declared
    """
    if signature is None:
        return
    method = signature.descendant([(DS_NS, "SignedInfo"), (DS_NS, "CanonicalizationMethod")])
    declared = method.attribute("Algorithm") if method is not None else None
    if declared is not None and declared != EXC_C14N_ALGORITHM:
        raise CanonicalizationError(
            f"Unsupported CanonicalizationMethod {declared!r}; expected {EXC_C14N_ALGORITHM}"
        )


def strip_enveloped_signature(element: etree._Element) -> etree._Element:
    """Return a detached copy of element without its direct ds:Signature children.

    Args:
        element: Signed element (e.g., saml:Assertion)

    Returns:
        Copy of the element with enveloped signatures removed
    """
    detached = copy.deepcopy(element)
    for signature in detached.findall(f"{{{DS_NS}}}Signature"):
        _remove_preserving_tail(signature)
    return detached


def canonicalize_element(node: XMLNode) -> bytes:
    """Produce the exclusive canonical bytes of a signed element.

    Args:
        node: Signed element node

    Returns:
        Canonical UTF-8 bytes, enveloped signature excluded

    Raises:
        CanonicalizationError: If canonical form cannot be produced

    Example:
        >>> signed_bytes = canonicalize_element(assertion_node)
    """
    try:
        detached = strip_enveloped_signature(node.element)
        canonical = etree.tostring(
            detached, method="c14n", exclusive=True, with_comments=False
        )
    except (etree.C14NError, etree.SerialisationError, ValueError, TypeError) as e:
        logger.error(f"Canonicalization failed for {node.element.tag}: {e}")
        raise CanonicalizationError(
            f"Cannot produce exclusive canonical form of {node.element.tag}: {e}"
        ) from e

    logger.debug(f"Canonicalized {node.element.tag}: {len(canonical)} bytes")
    return canonical
