import copy
import logging
from base64 import b64encode
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.padding import PKCS1v15
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from .algorithms import SignatureMethod, digest_algorithm_implementations
from .certificate import CertificateProvider
from .document import XMLDocument, canonicalize_node, to_legacy_encoding
from .exceptions import InvalidInput, PreconditionError, ReferenceNotFoundError, SigningOperationError
from .node import SignatureNode
from .processor import XMLSignatureProcessor
from .util import _remove_sig, ds_tag, ensure_bytes, namespaces

logger = logging.getLogger(__name__)


class SignatureGenerator(XMLSignatureProcessor):
    """
    Create a new signature generator, which signs raw data and XML documents. The generator holds no per-call state
    and can be used to sign any number of documents.

    :param xml_service:
        Converter between signature data and XML. Defaults to :class:`xmldsig.encoder.XMLService`.
    :param config:
        Encoding and formatting settings. See :class:`xmldsig.SignatureConfiguration`.
    """

    def sign(
        self,
        data: Union[str, bytes],
        private_key: Union[str, bytes, rsa.RSAPrivateKey],
        algorithm: Optional[Union[SignatureMethod, str]] = None,
        passphrase: Optional[bytes] = None,
    ) -> str:
        """
        Sign **data** with RSASSA-PKCS1-v1_5 and return the base64-encoded signature.

        :param data: Data to sign. ``str`` data is signed as its UTF-8 encoding.
        :param private_key: An RSA private key object, or a PEM-encoded private key.
        :param algorithm:
            Signature method, given as a :class:`SignatureMethod`, its URI, or its URI fragment (e.g.
            ``rsa-sha256``). Defaults to the configured ``default_signature_method``.
        :param passphrase: Passphrase to use to decrypt a PEM-encoded key, if any.

        :raises: :class:`xmldsig.exceptions.SigningOperationError` if the key can't be loaded or signing fails.
        """
        sign_alg = self._resolve_signature_method(algorithm)
        hash_alg = digest_algorithm_implementations[sign_alg]()
        try:
            if isinstance(private_key, (str, bytes)):
                private_key = load_pem_private_key(ensure_bytes(private_key), password=passphrase)  # type: ignore
            if not isinstance(private_key, rsa.RSAPrivateKey):
                raise TypeError(f"Expected an RSA private key, got {type(private_key).__name__}")
            signature = private_key.sign(ensure_bytes(data), padding=PKCS1v15(), algorithm=hash_alg)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise SigningOperationError(f"Could not sign the data: {e}") from e
        return b64encode(signature).decode()

    def sign_xml(self, data, certificate: CertificateProvider, reference: Optional[str] = None) -> str:
        """
        Sign an XML document with an enveloped XML signature and return the signed document.

        :param data: Document to sign
        :type data: String, bytes, :class:`xmldsig.document.XMLDocument`, or XML ElementTree Element API compatible
            object
        :param certificate: Key and certificate of the signer.
        :param reference:
            ID of the element to sign (the element whose ``ID`` attribute has this value). If ``None``, the whole
            document is signed.

        :returns: The serialized document with the ``Signature`` element appended as the last child of the root.

        The input object is never modified: the document is reparsed and the signature is added to that copy.
        """
        doc = self.get_document(data)

        digest_value = self.generate_digest_value(doc, reference)

        signature_node = SignatureNode(self.config.signature_value_line_length).configure(
            digest_value=digest_value, certificate=certificate, reference=reference
        )

        self._sign_signature(signature_node, certificate, doc)
        return doc.serialize()

    def generate_digest_value(self, data, reference: Optional[str] = None) -> str:
        """
        Compute the base64 SHA1 digest of the data covered by a reference.

        With a **reference**, only the element carrying that ID is canonicalized. Without one, the whole document is
        canonicalized, minus any ``ds:Signature`` element that is a child of the root (the enveloped signature
        transform); the removal happens on a copy of the document.

        The canonical bytes are re-encoded into the configured ``legacy_encoding`` before hashing.

        :raises: :class:`xmldsig.exceptions.ReferenceNotFoundError` if no element carries the reference ID.
        """
        doc = data if isinstance(data, XMLDocument) else self.get_document(data)

        if reference:
            reference = reference.lstrip("#")
            xpath = f"//*[@*[local-name() = '{self.config.id_attribute}'] = $reference]"
            results = doc.xpath(xpath, reference=reference)
            if len(results) == 0:
                raise ReferenceNotFoundError(f"Unable to resolve reference URI: #{reference}")
            elif len(results) > 1:
                raise InvalidInput(f"Ambiguous reference URI #{reference} resolved to {len(results)} nodes")
            data_to_digest = doc.canonicalize_with_legacy_encoding(
                xpath, encoding=self.config.legacy_encoding, reference=reference
            )
        else:
            doc_copy = doc.copy()
            for signature in list(doc_copy.root.iterchildren(ds_tag("Signature"))):  # type: ignore
                _remove_sig(signature)
            data_to_digest = doc_copy.canonicalize_with_legacy_encoding(encoding=self.config.legacy_encoding)

        digest_value = b64encode(self._get_digest(data_to_digest, self.xml_digest_algorithm)).decode()
        logger.debug("Digest value for reference %r: %s", reference, digest_value)
        return digest_value

    def _sign_signature(
        self, signature_node: SignatureNode, certificate: CertificateProvider, doc: Optional[XMLDocument] = None
    ) -> SignatureNode:
        """
        Compute the SignatureValue of **signature_node**. When **doc** is given, the Signature element is appended to
        its root first and SignedInfo is canonicalized in place, so the namespaces the host document puts in scope are
        part of the signed bytes exactly as a validator will see them.
        """
        if signature_node.get_digest_value() is None:
            raise PreconditionError("Cannot sign the Signature node before its DigestValue is assigned")
        if signature_node.get_x509_certificate() is None:
            raise PreconditionError("Cannot sign the Signature node before its certificate is assigned")

        self._create_signature_node_xml(signature_node)
        if doc is None:
            signed_info_c14n = self._signed_info_c14n(signature_node)
        else:
            signature_element = copy.deepcopy(signature_node.get_xml().root)
            doc.root.append(signature_element)  # type: ignore
            signed_info = signature_element.find("ds:SignedInfo", namespaces=namespaces)
            signed_info_c14n = to_legacy_encoding(canonicalize_node(signed_info), self.config.legacy_encoding)

        signature = self.sign(signed_info_c14n, certificate.get_private_key(), self.xml_signature_method)
        signature_node.set_signature_value(signature)

        self._create_signature_node_xml(signature_node)
        if doc is not None:
            doc.root.replace(signature_element, copy.deepcopy(signature_node.get_xml().root))  # type: ignore
        return signature_node
