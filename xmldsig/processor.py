import logging
from dataclasses import dataclass
from typing import Optional
from xml.etree import ElementTree as stdlibElementTree

from cryptography.hazmat.primitives.hashes import Hash
from lxml import etree

from .algorithms import DigestAlgorithm, SignatureMethod, digest_algorithm_implementations
from .document import XMLDocument
from .encoder import XMLService
from .exceptions import InvalidInput
from .node import SignatureNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureConfiguration:
    """
    A container holding the settings shared by :class:`xmldsig.SignatureGenerator` and
    :class:`xmldsig.SignatureValidator`. Signers and validators exchanging documents must use the same settings.
    """

    legacy_encoding: str = "ISO-8859-1"
    """
    Single-byte encoding the canonical (UTF-8) bytes are re-encoded into before they are digested or signed.
    """

    id_attribute: str = "ID"
    """
    Name of the attribute a reference ID is matched against.
    """

    signature_value_line_length: int = 64
    """
    Line length of the base64 text written to ``ds:SignatureValue``.
    """

    default_signature_method: SignatureMethod = SignatureMethod.RSA_SHA1
    """
    Signature method used by the raw data ``sign()``/``validate()`` operations when none is given.
    """


class XMLSignatureProcessor:
    """
    Behavior shared by the signature generator and validator.
    """

    # XML signatures are always RSA-SHA1 over C14N 1.0 with SHA1 reference digests.
    xml_signature_method = SignatureMethod.RSA_SHA1
    xml_digest_algorithm = DigestAlgorithm.SHA1
    signed_info_xpath = "//*[local-name()='Signature']/*[local-name()='SignedInfo']"

    def __init__(
        self, xml_service: Optional[XMLService] = None, config: SignatureConfiguration = SignatureConfiguration()
    ):
        self.xml_service = xml_service if xml_service is not None else XMLService()
        self.config = config

    def get_document(self, data) -> XMLDocument:
        """
        Return a new :class:`xmldsig.document.XMLDocument` for **data**. Documents and elements are serialized and
        reparsed, so the caller's object is never modified.
        """
        if isinstance(data, XMLDocument):
            return data.copy()
        elif isinstance(data, (str, bytes)):
            return XMLDocument.load(data)
        elif isinstance(data, (etree._Element, etree._ElementTree, stdlibElementTree.Element)):
            return XMLDocument.from_element(data)
        raise InvalidInput(f"Unsupported XML document type: {type(data).__name__}")

    def _resolve_signature_method(self, algorithm) -> SignatureMethod:
        if algorithm is None:
            return self.config.default_signature_method
        return SignatureMethod.resolve(algorithm)

    def _get_digest(self, data: bytes, algorithm: DigestAlgorithm) -> bytes:
        algorithm_implementation = digest_algorithm_implementations[algorithm]()
        hasher = Hash(algorithm=algorithm_implementation)
        hasher.update(data)
        return hasher.finalize()

    def _create_signature_node_xml(self, signature_node: SignatureNode) -> XMLDocument:
        """
        Rebuild the XML projection of **signature_node** from its data and assign it to the node.
        """
        xml = self.xml_service.encode(signature_node.get_data(), XMLDocument())
        signature_node.set_xml(xml)
        return signature_node.get_xml()

    def _signed_info_c14n(self, signature_node: SignatureNode) -> bytes:
        return signature_node.get_xml().canonicalize_with_legacy_encoding(
            self.signed_info_xpath, encoding=self.config.legacy_encoding
        )
