"""
Use :class:`xmldsig.SignatureService` (or :class:`xmldsig.SignatureGenerator` and :class:`xmldsig.SignatureValidator`
directly) to sign and validate raw data and enveloped XML signatures.
"""

from .signer import SignatureGenerator
from .verifier import SignatureValidator, VerificationStatus, VerifyResult
from .service import SignatureService
from .processor import SignatureConfiguration, XMLSignatureProcessor
from .node import SignatureNode
from .certificate import Certificate, CertificateProvider
from .document import XMLDocument
from .encoder import XMLService
from .algorithms import CanonicalizationMethod, DigestAlgorithm, SignatureMethod, TransformAlgorithm
from .exceptions import (
    DigestMismatchError,
    InvalidInput,
    InvalidSignature,
    MalformedDocumentError,
    NoSignaturePresentError,
    PreconditionError,
    ReferenceNotFoundError,
    SignatureException,
    SignatureMismatchError,
    SigningOperationError,
    VerificationOperationError,
)
from .util import namespaces
