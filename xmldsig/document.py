import logging
import re
from typing import Optional
from xml.etree import ElementTree as stdlibElementTree

from lxml import etree

from .exceptions import InvalidInput, MalformedDocumentError
from .util import ensure_str

logger = logging.getLogger(__name__)

_xml_declaration_encoding = re.compile(r"""^\s*<\?xml[^>]*?encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")


class XMLDocument:
    """
    A parsed XML document with the operations needed to sign it: loading, serialization, canonicalization (optionally
    re-encoded to a single-byte legacy encoding), element lookup and element creation.

    Documents are always parsed with ``resolve_entities=False`` and any entity reference left in the tree is rejected.
    See https://lxml.de/FAQ.html#how-do-i-use-lxml-safely-as-a-web-service-endpoint.
    """

    _default_parser = None
    default_encoding = "UTF-8"

    def __init__(self, tree: Optional[etree._ElementTree] = None, parser=None):
        self.tree = tree
        self._parser = parser

    @property
    def parser(self):
        if self._parser is None:
            if XMLDocument._default_parser is None:
                XMLDocument._default_parser = etree.XMLParser(resolve_entities=False)
            return XMLDocument._default_parser
        return self._parser

    @classmethod
    def load(cls, data, parser=None) -> "XMLDocument":
        """
        Parse **data** (``str`` or ``bytes``) into a new document. A ``str`` carrying an XML declaration is encoded
        with the encoding it declares before parsing, so that declaration and content agree.
        """
        doc = cls(parser=parser)
        doc.set_root(doc._fromstring(data))
        return doc

    @classmethod
    def from_element(cls, node) -> "XMLDocument":
        """
        Build a new, independent document from an lxml element or tree, or a standard library ElementTree element.
        """
        if isinstance(node, stdlibElementTree.Element):
            return cls.load(stdlibElementTree.tostring(node, encoding="utf-8"))
        if isinstance(node, etree._ElementTree):
            encoding = node.docinfo.encoding or cls.default_encoding
            return cls.load(etree.tostring(node, xml_declaration=True, encoding=encoding))
        # Serialize and reparse instead of copy.deepcopy, which doesn't carry namespace declarations inherited from
        # ancestors of the node.
        return cls.load(etree.tostring(node))

    def _fromstring(self, data):
        if isinstance(data, str):
            match = _xml_declaration_encoding.match(data)
            encoding = match.group(1) if match else "utf-8"
            data = data.encode(encoding, errors="xmlcharrefreplace")
        if not data or not data.strip():
            raise MalformedDocumentError("The XML document is empty")
        try:
            xml_node = etree.fromstring(data, parser=self.parser)
        except etree.XMLSyntaxError as e:
            raise MalformedDocumentError(f"Could not parse the XML document (possible malformed XML): {e}") from e
        if xml_node is None:
            raise MalformedDocumentError("The XML document has no root element (possible malformed XML)")
        for entity in xml_node.iter(etree.Entity):
            raise InvalidInput("Entities are not supported in XML input")
        return xml_node

    @property
    def root(self) -> Optional[etree._Element]:
        if self.tree is None:
            return None
        return self.tree.getroot()

    @property
    def encoding(self) -> str:
        if self.tree is None:
            return self.default_encoding
        return self.tree.docinfo.encoding or self.default_encoding

    def set_root(self, element: etree._Element) -> "XMLDocument":
        self.tree = element.getroottree()
        return self

    def copy(self) -> "XMLDocument":
        return type(self).load(self.tostring(), parser=self._parser)

    def tostring(self) -> bytes:
        if self.tree is None:
            raise MalformedDocumentError("The XML document has no root element")
        return etree.tostring(self.tree, xml_declaration=True, encoding=self.encoding)

    def serialize(self) -> str:
        return self.tostring().decode(self.encoding)

    def xpath(self, query, **variables):
        if self.tree is None:
            return []
        return self.tree.xpath(query, **variables)

    def find_elements_by_tag_name(self, name, namespace=None):
        """
        Return every element below the root element whose local name is **name**, in document order. Only elements in
        **namespace** are returned when it is given, otherwise the namespace is ignored.
        """
        if self.root is None:
            return []
        return list(self.root.iterdescendants(f"{{{namespace or '*'}}}{name}"))

    def create_element(self, name, content=None, nsmap=None) -> etree._Element:
        """
        Create a detached element. When the document is still empty, the element becomes its root.
        """
        element = etree.Element(name, nsmap=nsmap)
        if content:
            element.text = content
        if self.tree is None:
            self.set_root(element)
        return element

    def canonicalize(self, xpath=None, **variables) -> bytes:
        """
        Return the Canonical XML 1.0 form (without comments) of the whole document, or of the first node selected by
        **xpath**. Canonicalization of a subtree keeps the namespace declarations the node inherits from its ancestors.
        """
        if xpath is None:
            node = self.tree
            if node is None:
                raise MalformedDocumentError("The XML document has no root element")
        else:
            results = self.xpath(xpath, **variables)
            if len(results) == 0:
                raise InvalidInput(f"XPath query {xpath} did not match any element")
            node = results[0]
        return canonicalize_node(node)

    def canonicalize_with_legacy_encoding(self, xpath=None, encoding="ISO-8859-1", **variables) -> bytes:
        """
        Canonicalize like :meth:`canonicalize` and re-encode the resulting UTF-8 bytes into the single-byte
        **encoding**. Characters the encoding can't represent are replaced with ``?``.
        """
        return to_legacy_encoding(self.canonicalize(xpath, **variables), encoding)


def canonicalize_node(node) -> bytes:
    """
    Inclusive Canonical XML 1.0, without comments, of an lxml tree or element.
    """
    c14n = etree.tostring(node, method="c14n", exclusive=False, with_comments=False)
    # libxml2 emits xmlns="" on descendants of a subtree whose default namespace is declared above it. See also:
    # - https://github.com/XML-Security/signxml/issues/193
    # - http://www.w3.org/TR/xml-c14n, "namespace axis"
    c14n = c14n.replace(b' xmlns=""', b"")
    logger.debug("Canonicalized string: %s", c14n)
    return c14n


def to_legacy_encoding(c14n: bytes, encoding: str = "ISO-8859-1") -> bytes:
    """
    Re-encode UTF-8 canonical bytes into a single-byte **encoding**, replacing unrepresentable characters with ``?``.
    """
    return ensure_str(c14n).encode(encoding, errors="replace")
