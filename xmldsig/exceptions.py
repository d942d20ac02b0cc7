"""
xmldsig exception types.
"""

import cryptography.exceptions


class SignatureException(Exception):
    pass


class InvalidInput(ValueError, SignatureException):
    pass


class MalformedDocumentError(InvalidInput):
    """
    Raised when the input cannot be parsed into an XML document with a root element.
    """


class ReferenceNotFoundError(InvalidInput):
    """
    Raised when a reference ID does not resolve to any element of the document.
    """


class NoSignaturePresentError(InvalidInput):
    """
    Raised when a document submitted for validation carries no Signature element.
    """


class InvalidSignature(cryptography.exceptions.InvalidSignature, SignatureException):
    """
    Raised when signature validation fails.
    """


class DigestMismatchError(InvalidSignature):
    """
    Raised when the DigestValue recorded in a signature does not match the digest of the referenced data.
    """


class SignatureMismatchError(InvalidSignature):
    """
    Raised when the SignatureValue does not verify against the SignedInfo element and the signer's public key.
    """


class SigningOperationError(SignatureException):
    pass


class VerificationOperationError(SignatureException):
    """
    Raised when a signature could not be checked at all (bad key material, primitive failure). This is distinct from
    :class:`InvalidSignature`, which means the check ran and the signature was rejected.
    """


class PreconditionError(RuntimeError, SignatureException):
    pass
