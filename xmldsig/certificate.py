import abc
import datetime
import logging
from base64 import b64encode
from typing import Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import Encoding, load_pem_private_key, pkcs12
from cryptography.x509.oid import NameOID

from .exceptions import InvalidInput
from .util import ensure_bytes, long_to_b64

logger = logging.getLogger(__name__)


class CertificateProvider(abc.ABC):
    """
    Source of the signing key and of the public material written to ``ds:KeyInfo``. Implement this interface to sign
    with keys held elsewhere (an HSM, a key vault, a test fake).
    """

    @abc.abstractmethod
    def get_private_key(self) -> rsa.RSAPrivateKey:
        """
        The RSA private key used to sign ``ds:SignedInfo``.
        """

    @abc.abstractmethod
    def get_modulus(self) -> str:
        """
        The base64-encoded RSA modulus, as written to ``ds:Modulus``.
        """

    @abc.abstractmethod
    def get_exponent(self) -> str:
        """
        The base64-encoded RSA public exponent, as written to ``ds:Exponent``.
        """

    @abc.abstractmethod
    def get_certificate(self, raw: bool = False) -> str:
        """
        The X.509 certificate. With **raw** set, the bare base64 DER body written to ``ds:X509Certificate`` is
        returned instead of the PEM text.
        """


class Certificate(CertificateProvider):
    """
    An RSA private key and its X.509 certificate.

    :param private_key: The RSA private key.
    :param certificate: The certificate holding the public half of **private_key**.
    """

    def __init__(self, private_key: rsa.RSAPrivateKey, certificate: x509.Certificate):
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise InvalidInput(f"Only RSA keys are supported, got {type(private_key).__name__}")
        self.private_key = private_key
        self.certificate = certificate

    @classmethod
    def from_pem(
        cls, certificate: Union[str, bytes], private_key: Union[str, bytes], passphrase: Optional[bytes] = None
    ) -> "Certificate":
        return cls(
            load_pem_private_key(ensure_bytes(private_key), password=passphrase),  # type: ignore
            x509.load_pem_x509_certificate(ensure_bytes(certificate)),
        )

    @classmethod
    def from_pkcs12(cls, data: bytes, password: Optional[Union[str, bytes]] = None) -> "Certificate":
        """
        Load a PKCS#12 (``.p12``/``.pfx``) bundle, the usual format of certificates issued for electronic signatures.
        """
        private_key, certificate, _ = pkcs12.load_key_and_certificates(data, ensure_bytes(password, none_ok=True))
        if private_key is None or certificate is None:
            raise InvalidInput("The PKCS#12 bundle must contain both a private key and a certificate")
        return cls(private_key, certificate)  # type: ignore

    @classmethod
    def generate(
        cls,
        common_name: str = "Fake Signer",
        serial_number: Optional[str] = None,
        key_size: int = 2048,
        days: int = 365,
    ) -> "Certificate":
        """
        Generate a new key and a self-signed certificate for it. Intended for tests and local development.
        """
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        attributes = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
        if serial_number is not None:
            attributes.append(x509.NameAttribute(NameOID.SERIAL_NUMBER, serial_number))
        name = x509.Name(attributes)
        now = datetime.datetime.now(datetime.timezone.utc)
        certificate = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(private_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(minutes=5))
            .not_valid_after(now + datetime.timedelta(days=days))
            .sign(private_key, hashes.SHA256())
        )
        logger.debug("Generated self-signed certificate for %s", common_name)
        return cls(private_key, certificate)

    def get_private_key(self) -> rsa.RSAPrivateKey:
        return self.private_key

    def get_public_key(self) -> rsa.RSAPublicKey:
        return self.certificate.public_key()  # type: ignore

    def get_modulus(self) -> str:
        return long_to_b64(self.private_key.public_key().public_numbers().n)

    def get_exponent(self) -> str:
        return long_to_b64(self.private_key.public_key().public_numbers().e)

    def get_certificate(self, raw: bool = False) -> str:
        if raw:
            return b64encode(self.certificate.public_bytes(Encoding.DER)).decode()
        return self.certificate.public_bytes(Encoding.PEM).decode()

    def get_id(self) -> str:
        """
        The holder identifier: the subject serialNumber when present, otherwise its common name.
        """
        for oid in NameOID.SERIAL_NUMBER, NameOID.COMMON_NAME:
            attributes = self.certificate.subject.get_attributes_for_oid(oid)
            if attributes:
                return str(attributes[0].value)
        raise InvalidInput("The certificate subject has neither a serialNumber nor a common name")
