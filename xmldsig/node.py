"""
In-memory representation of a ``ds:Signature`` element.
"""

from typing import Any, Dict, Optional

from .algorithms import CanonicalizationMethod, DigestAlgorithm, SignatureMethod, TransformAlgorithm
from .certificate import CertificateProvider
from .document import XMLDocument
from .encoder import ATTRIBUTES, VALUE
from .exceptions import PreconditionError
from .util import namespaces, wrap_text


def default_signature_data() -> Dict[str, Any]:
    return {
        "Signature": {
            ATTRIBUTES: {"xmlns": namespaces.ds},
            # DigestValue is the digest of the C14N of the referenced data; the canonical form of this element is
            # what SignatureValue signs.
            "SignedInfo": {
                ATTRIBUTES: {"xmlns:xsi": namespaces.xsi},
                "CanonicalizationMethod": {ATTRIBUTES: {"Algorithm": CanonicalizationMethod.CANONICAL_XML_1_0.value}},
                "SignatureMethod": {ATTRIBUTES: {"Algorithm": SignatureMethod.RSA_SHA1.value}},
                "Reference": {
                    # Empty URI: the whole document is signed.
                    ATTRIBUTES: {"URI": ""},
                    "Transforms": {
                        "Transform": {ATTRIBUTES: {"Algorithm": TransformAlgorithm.ENVELOPED_SIGNATURE.value}},
                    },
                    "DigestMethod": {ATTRIBUTES: {"Algorithm": DigestAlgorithm.SHA1.value}},
                    "DigestValue": "",
                },
            },
            "SignatureValue": "",
            "KeyInfo": {
                "KeyValue": {
                    "RSAKeyValue": {
                        "Modulus": "",
                        "Exponent": "",
                    },
                },
                "X509Data": {
                    "X509Certificate": "",
                },
            },
        },
    }


class SignatureNode:
    """
    The ``ds:Signature`` element of an XML document signed with the XML digital signature standard (XML DSIG).

    The node holds two views of the signature: the structured data (see :mod:`xmldsig.encoder` for the format), which
    is authoritative, and an :class:`xmldsig.document.XMLDocument` projection of it. Every mutator discards the
    projection; the generator or validator that owns the node assigns a fresh one with :meth:`set_xml`.
    """

    def __init__(self, signature_value_line_length: int = 64):
        self.signature_value_line_length = signature_value_line_length
        self._data = default_signature_data()
        self._xml: Optional[XMLDocument] = None

    def set_data(self, data: Dict[str, Any]) -> "SignatureNode":
        self._data = data
        self._invalidate_xml()
        return self

    def get_data(self) -> Dict[str, Any]:
        return self._data

    def configure(
        self, digest_value: str, certificate: CertificateProvider, reference: Optional[str] = None
    ) -> "SignatureNode":
        """
        Fill in the reference, its digest and the signer's public key information.

        :param digest_value: Base64 digest of the referenced data.
        :param certificate: Provider of the modulus, exponent and X.509 certificate written to ``ds:KeyInfo``.
        :param reference: ID of the signed element, with or without a leading ``#``. ``None`` signs the whole
            document.
        """
        return self._set_reference(reference)._set_digest_value(digest_value)._set_certificate(certificate)

    def set_xml(self, xml: XMLDocument) -> "SignatureNode":
        self._xml = xml
        return self

    def get_xml(self) -> XMLDocument:
        if self._xml is None:
            raise PreconditionError("The XML projection of the Signature node has not been built")
        return self._xml

    def has_xml(self) -> bool:
        return self._xml is not None

    def get_reference(self) -> Optional[str]:
        uri = self._get("SignedInfo", "Reference", ATTRIBUTES, "URI")
        return uri.lstrip("#") if uri else None

    def get_digest_value(self) -> Optional[str]:
        return self._get("SignedInfo", "Reference", "DigestValue") or None

    def get_x509_certificate(self) -> Optional[str]:
        return self._get("KeyInfo", "X509Data", "X509Certificate") or None

    def set_signature_value(self, signature_value: str) -> "SignatureNode":
        self._data["Signature"]["SignatureValue"] = wrap_text(signature_value, self.signature_value_line_length)
        self._invalidate_xml()
        return self

    def get_signature_value(self) -> Optional[str]:
        return self._get("SignatureValue") or None

    def _get(self, *path):
        value: Any = self._data.get("Signature")
        for key in path:
            if isinstance(value, list):
                value = value[0] if value else None
            if not isinstance(value, dict):
                return None
            value = value.get(key)
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, dict):
            # Text of an element that also carries attributes
            value = value.get(VALUE)
        return value

    def _set_reference(self, reference: Optional[str] = None) -> "SignatureNode":
        reference_node = self._data["Signature"]["SignedInfo"]["Reference"]
        reference_node[ATTRIBUTES]["URI"] = "#" + reference.lstrip("#") if reference else ""
        transform = TransformAlgorithm.CANONICAL_XML_1_0 if reference else TransformAlgorithm.ENVELOPED_SIGNATURE
        reference_node["Transforms"]["Transform"][ATTRIBUTES]["Algorithm"] = transform.value
        self._invalidate_xml()
        return self

    def _set_digest_value(self, digest_value: str) -> "SignatureNode":
        self._data["Signature"]["SignedInfo"]["Reference"]["DigestValue"] = digest_value
        self._invalidate_xml()
        return self

    def _set_certificate(self, certificate: CertificateProvider) -> "SignatureNode":
        key_info = self._data["Signature"]["KeyInfo"]
        key_info["KeyValue"]["RSAKeyValue"]["Modulus"] = certificate.get_modulus()
        key_info["KeyValue"]["RSAKeyValue"]["Exponent"] = certificate.get_exponent()
        key_info["X509Data"]["X509Certificate"] = certificate.get_certificate(raw=True)
        self._invalidate_xml()
        return self

    def _invalidate_xml(self):
        self._xml = None
