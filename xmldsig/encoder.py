"""
Conversion between XML documents and the nested dictionaries used to describe a ``ds:Signature`` element.

The tree format is:

* keys are element local names, values are ``str`` for text-only elements, ``dict`` for elements with attributes or
  children and ``list`` for repeated elements;
* the ``@attributes`` key holds the element attributes, with namespace declarations spelled ``xmlns`` and
  ``xmlns:prefix``;
* the ``@value`` key holds the text of an element that also has attributes.

Elements without an ``xmlns`` declaration inherit the default namespace of their parent.
"""

import logging
from typing import Any, Dict, Optional

from lxml import etree

from .document import XMLDocument
from .exceptions import InvalidInput

logger = logging.getLogger(__name__)

ATTRIBUTES = "@attributes"
VALUE = "@value"


class XMLService:
    def encode(self, data: Dict[str, Any], doc: Optional[XMLDocument] = None) -> XMLDocument:
        """
        Build the XML document described by **data**, which must have exactly one top-level key (the root element).
        When **doc** is given the root element is created in it, otherwise a new document is returned.
        """
        if len(data) != 1:
            raise InvalidInput(f"Expected exactly one root element, got {len(data)}")
        if doc is None:
            doc = XMLDocument()
        ((tag, content),) = data.items()
        namespace, nsmap, attributes = self._split_attributes(content, parent_namespace=None)
        root = doc.create_element(etree.QName(namespace, tag) if namespace else tag, nsmap=nsmap)
        self._fill(root, content, namespace, attributes)
        doc.set_root(root)
        return doc

    def decode(self, doc: XMLDocument) -> Dict[str, Any]:
        root = doc.root
        if root is None:
            raise InvalidInput("Cannot decode an XML document without a root element")
        return {etree.QName(root).localname: self._decode_element(root, parent_nsmap={})}

    def _split_attributes(self, content, parent_namespace):
        namespace, nsmap, attributes = parent_namespace, {}, {}
        if isinstance(content, dict):
            for name, value in content.get(ATTRIBUTES, {}).items():
                if name == "xmlns":
                    namespace = value
                    nsmap[None] = value
                elif name.startswith("xmlns:"):
                    nsmap[name[len("xmlns:") :]] = value
                else:
                    attributes[name] = value
        return namespace, nsmap or None, attributes

    def _fill(self, element, content, namespace, attributes):
        for name, value in attributes.items():
            if ":" in name:
                prefix, _, localname = name.partition(":")
                if prefix not in element.nsmap:
                    raise InvalidInput(f"Undeclared namespace prefix in attribute {name}")
                name = etree.QName(element.nsmap[prefix], localname).text
            element.set(name, value)
        if content is None or isinstance(content, str):
            if content:
                element.text = content
            return
        if not isinstance(content, dict):
            raise InvalidInput(f"Unsupported value for element {element.tag}: {content!r}")
        if content.get(VALUE):
            element.text = content[VALUE]
        for tag, child_content in content.items():
            if tag in (ATTRIBUTES, VALUE):
                continue
            for item in child_content if isinstance(child_content, list) else [child_content]:
                child_namespace, nsmap, child_attributes = self._split_attributes(item, parent_namespace=namespace)
                child = etree.SubElement(
                    element, etree.QName(child_namespace, tag) if child_namespace else tag, nsmap=nsmap
                )
                self._fill(child, item, child_namespace, child_attributes)

    def _decode_element(self, element, parent_nsmap):
        attributes = {}
        for prefix, uri in element.nsmap.items():
            if parent_nsmap.get(prefix) != uri:
                attributes["xmlns" if prefix is None else f"xmlns:{prefix}"] = uri
        for name, value in element.attrib.items():
            qname = etree.QName(name)
            attributes[name if qname.namespace is None else self._prefixed(element, qname)] = value

        children: Dict[str, Any] = {}
        for child in element.iterchildren(tag=etree.Element):
            name = etree.QName(child).localname
            decoded = self._decode_element(child, parent_nsmap=element.nsmap)
            if name not in children:
                children[name] = decoded
            elif isinstance(children[name], list):
                children[name].append(decoded)
            else:
                children[name] = [children[name], decoded]

        text = element.text if element.text and element.text.strip() else ""
        if not attributes and not children:
            return text
        content: Dict[str, Any] = {}
        if attributes:
            content[ATTRIBUTES] = attributes
        if text:
            content[VALUE] = text
        content.update(children)
        return content

    def _prefixed(self, element, qname):
        for prefix, uri in element.nsmap.items():
            if uri == qname.namespace and prefix is not None:
                return f"{prefix}:{qname.localname}"
        return qname.text
