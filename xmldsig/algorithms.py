from enum import Enum
from typing import Callable, Dict, Type, Union

from cryptography.hazmat.primitives import hashes

from .exceptions import InvalidInput


class FragmentLookupMixin:
    @classmethod
    def from_fragment(cls, fragment):
        for i in cls:  # type: ignore
            if i.value.endswith("#" + fragment):
                return i
        else:
            raise InvalidInput(f"Unrecognized {cls.__name__} identifier fragment: {fragment}")

    @classmethod
    def resolve(cls, value):
        """
        Accept an enum member, a full algorithm URI or a URI fragment such as ``rsa-sha256``.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and "#" not in value:
            return cls.from_fragment(value)
        return cls(value)  # type: ignore


class InvalidInputErrorMixin:
    @classmethod
    def _missing_(cls, value):
        raise InvalidInput(f"Unrecognized {cls.__name__}: {value}")

    def __repr__(self):
        return f"{self.__class__.__name__}.{self.name}"  # type: ignore


class TransformAlgorithm(InvalidInputErrorMixin, Enum):
    """
    Reference transforms written by xmldsig. The transform is implied by the reference: whole-document references use
    the enveloped signature transform, references to an element ID use plain canonicalization.
    """

    ENVELOPED_SIGNATURE = "http://www.w3.org/2000/09/xmldsig#enveloped-signature"
    CANONICAL_XML_1_0 = "http://www.w3.org/TR/2001/REC-xml-c14n-20010315"


class DigestAlgorithm(FragmentLookupMixin, InvalidInputErrorMixin, Enum):
    """
    Digest algorithm used for reference digests. See the
    `Algorithm Identifiers and Implementation Requirements <http://www.w3.org/TR/xmldsig-core1/#sec-AlgID>`_ section of
    the XML Signature 1.1 standard for details.
    """

    SHA1 = "http://www.w3.org/2000/09/xmldsig#sha1"

    @property
    def implementation(self) -> Callable:
        """
        The cryptography callable that implements the specified algorithm.
        """
        return digest_algorithm_implementations[self]


class SignatureMethod(FragmentLookupMixin, InvalidInputErrorMixin, Enum):
    """
    An enumeration of signature methods accepted by :meth:`xmldsig.SignatureGenerator.sign` and
    :meth:`xmldsig.SignatureValidator.validate`. All of them are RSASSA-PKCS1-v1_5 (RFC 3447) with a different hash.
    XML signatures always use ``RSA_SHA1``.
    """

    RSA_SHA1 = "http://www.w3.org/2000/09/xmldsig#rsa-sha1"
    RSA_SHA224 = "http://www.w3.org/2001/04/xmldsig-more#rsa-sha224"
    RSA_SHA256 = "http://www.w3.org/2001/04/xmldsig-more#rsa-sha256"
    RSA_SHA384 = "http://www.w3.org/2001/04/xmldsig-more#rsa-sha384"
    RSA_SHA512 = "http://www.w3.org/2001/04/xmldsig-more#rsa-sha512"

    @property
    def implementation(self) -> Callable:
        return digest_algorithm_implementations[self]


class CanonicalizationMethod(InvalidInputErrorMixin, Enum):
    """
    Canonicalization method applied to SignedInfo and to referenced data (inclusive Canonical XML 1.0, comments
    omitted).
    """

    CANONICAL_XML_1_0 = "http://www.w3.org/TR/2001/REC-xml-c14n-20010315"


digest_algorithm_implementations: Dict[Union[DigestAlgorithm, SignatureMethod], Type[hashes.HashAlgorithm]] = {
    DigestAlgorithm.SHA1: hashes.SHA1,
    SignatureMethod.RSA_SHA1: hashes.SHA1,
    SignatureMethod.RSA_SHA224: hashes.SHA224,
    SignatureMethod.RSA_SHA256: hashes.SHA256,
    SignatureMethod.RSA_SHA384: hashes.SHA384,
    SignatureMethod.RSA_SHA512: hashes.SHA512,
}
