import logging
from base64 import b64decode
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import cryptography.exceptions
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.padding import PKCS1v15

from .algorithms import SignatureMethod, digest_algorithm_implementations
from .document import XMLDocument, canonicalize_node
from .encoder import XMLService
from .exceptions import (
    DigestMismatchError,
    InvalidInput,
    NoSignaturePresentError,
    SignatureMismatchError,
    VerificationOperationError,
)
from .node import SignatureNode
from .processor import SignatureConfiguration, XMLSignatureProcessor
from .signer import SignatureGenerator
from .util import ensure_bytes, namespaces, normalize_public_key

logger = logging.getLogger(__name__)


class VerificationStatus(Enum):
    """
    Outcome of running the signature verification primitive.
    """

    valid = 1
    "The signature matches the data and the key."

    invalid = 0
    "The verification ran and rejected the signature."

    error = -1
    "The verification could not run (unusable key material, undecodable signature, unsupported key type)."


@dataclass(frozen=True)
class VerifyResult:
    """
    Result of a raw signature verification. ``error`` holds the exception that prevented verification when
    ``status`` is :attr:`VerificationStatus.error`.
    """

    status: VerificationStatus
    error: Optional[Exception] = None


class SignatureValidator(XMLSignatureProcessor):
    """
    Create a new signature validator, which verifies raw data signatures and XML signatures produced by
    :class:`xmldsig.SignatureGenerator`.

    :param generator:
        Generator used to recompute reference digests, so that digests are computed exactly as they were when
        signing. Defaults to a generator sharing this validator's XML service and configuration.
    :param xml_service:
        Converter between signature data and XML. Defaults to :class:`xmldsig.encoder.XMLService`.
    :param config:
        Encoding and formatting settings. See :class:`xmldsig.SignatureConfiguration`.
    """

    def __init__(
        self,
        generator: Optional[SignatureGenerator] = None,
        xml_service: Optional[XMLService] = None,
        config: SignatureConfiguration = SignatureConfiguration(),
    ):
        super().__init__(xml_service=xml_service, config=config)
        if generator is None:
            generator = SignatureGenerator(xml_service=self.xml_service, config=config)
        self.generator = generator

    def validate(
        self,
        data: Union[str, bytes],
        signature: Union[str, bytes],
        public_key,
        algorithm: Optional[Union[SignatureMethod, str]] = None,
    ) -> bool:
        """
        Verify a base64-encoded RSASSA-PKCS1-v1_5 signature over **data**.

        :param data: The signed data. ``str`` data is verified as its UTF-8 encoding.
        :param signature: The base64-encoded signature. Line breaks are ignored.
        :param public_key:
            An RSA public or private key object, a :class:`cryptography.x509.Certificate`, a PEM-encoded certificate
            or public key, or the bare base64 body of a certificate.
        :param algorithm: Signature method, as accepted by :meth:`xmldsig.SignatureGenerator.sign`.

        :returns: ``True`` if the signature is valid, ``False`` if it was rejected.
        :raises: :class:`xmldsig.exceptions.VerificationOperationError` if the verification could not be performed.
        """
        result = self._verify(data, signature, public_key, algorithm)
        if result.status is VerificationStatus.error:
            raise VerificationOperationError(
                f"An error occurred while verifying the signature of the data: {result.error}"
            ) from result.error
        return result.status is VerificationStatus.valid

    def _verify(self, data, signature, public_key, algorithm) -> VerifyResult:
        sign_alg = self._resolve_signature_method(algorithm)
        hash_alg = digest_algorithm_implementations[sign_alg]()
        try:
            key = normalize_public_key(public_key)
            raw_signature = b64decode(ensure_bytes(signature))
        except (ValueError, TypeError, AttributeError, UnsupportedAlgorithm) as e:
            return VerifyResult(VerificationStatus.error, e)
        if not isinstance(key, rsa.RSAPublicKey):
            error = InvalidInput(f"Expected an RSA key, got {type(key).__name__}")
            return VerifyResult(VerificationStatus.error, error)
        try:
            key.verify(raw_signature, ensure_bytes(data), padding=PKCS1v15(), algorithm=hash_alg)
        except cryptography.exceptions.InvalidSignature:
            return VerifyResult(VerificationStatus.invalid)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            return VerifyResult(VerificationStatus.error, e)
        return VerifyResult(VerificationStatus.valid)

    def validate_xml(self, data) -> None:
        """
        Validate every XML signature found in a document. Each ``ds:Signature`` element below the root element
        is validated independently, and validation stops at the first failure. Elements named ``Signature`` in other
        namespaces are ordinary content.

        :param data: Signed document
        :type data: String, bytes, :class:`xmldsig.document.XMLDocument`, or XML ElementTree Element API compatible
            object

        :raises: :class:`xmldsig.exceptions.NoSignaturePresentError` if the document is not signed,
            :class:`xmldsig.exceptions.DigestMismatchError` or :class:`xmldsig.exceptions.SignatureMismatchError`
            if a signature is not valid.
        """
        doc = self.get_document(data)

        signature_elements = doc.find_elements_by_tag_name("Signature", namespaces.ds)
        if len(signature_elements) == 0:
            raise NoSignaturePresentError("No signatures were found in the XML to validate")

        for index, signature_element in enumerate(signature_elements):
            logger.debug("Validating signature %d of %d", index + 1, len(signature_elements))
            signature_node = self.create_signature_node(canonicalize_node(signature_element))
            self.validate_digest_value(doc, signature_node)
            self.validate_signature_value(signature_node)

    def create_signature_node(self, xml: Union[str, bytes]) -> SignatureNode:
        """
        Build a :class:`xmldsig.node.SignatureNode` from the XML of a ``Signature`` element.
        """
        signature_node = SignatureNode(self.config.signature_value_line_length)
        signature = XMLDocument.load(xml)
        data = self.xml_service.decode(signature)

        # set_data() discards the XML projection, so it has to come first.
        signature_node.set_data(data)
        signature_node.set_xml(signature)

        return signature_node

    def validate_digest_value(self, data, signature_node: SignatureNode) -> None:
        """
        Recompute the digest of the data referenced by **signature_node** and compare it with the recorded
        DigestValue.

        :raises: :class:`xmldsig.exceptions.DigestMismatchError` on mismatch.
        """
        doc = data if isinstance(data, XMLDocument) else self.get_document(data)

        digest_value_xml = signature_node.get_digest_value()
        digest_value_calculated = self.generator.generate_digest_value(doc, signature_node.get_reference())

        if digest_value_xml != digest_value_calculated:
            raise DigestMismatchError(
                f'Digest mismatch: the DigestValue "{digest_value_xml}" of the reference '
                f'"{signature_node.get_reference()}" does not match the calculated value "{digest_value_calculated}". '
                "The referenced data may have been modified after signing."
            )

    def validate_signature_value(self, signature_node: SignatureNode) -> None:
        """
        Verify the SignatureValue of **signature_node** over its canonicalized SignedInfo element, using the public
        key of the certificate carried in ``ds:X509Certificate``.

        :raises: :class:`xmldsig.exceptions.SignatureMismatchError` if the signature is rejected.
        """
        signed_info_c14n = self._signed_info_c14n(signature_node)

        is_valid = self.validate(
            signed_info_c14n,
            signature_node.get_signature_value(),  # type: ignore
            signature_node.get_x509_certificate(),
            self.xml_signature_method,
        )

        if not is_valid:
            raise SignatureMismatchError(
                f'Signature mismatch: the signature of the SignedInfo element for the reference "'
                f'{signature_node.get_reference()}" is not valid.'
            )
