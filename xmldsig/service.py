from typing import Optional, Union

from .algorithms import SignatureMethod
from .certificate import CertificateProvider
from .node import SignatureNode
from .signer import SignatureGenerator
from .verifier import SignatureValidator


class SignatureService:
    """
    Single entry point for signing and validating, delegating to a :class:`xmldsig.SignatureGenerator` and a
    :class:`xmldsig.SignatureValidator`. Example usage::

        service = SignatureService()
        signed_xml = service.sign_xml(xml, Certificate.from_pkcs12(pfx_data, password))
        service.validate_xml(signed_xml)

    When no collaborators are given, a default generator is created and shared with a default validator.
    """

    def __init__(self, generator: Optional[SignatureGenerator] = None, validator: Optional[SignatureValidator] = None):
        if generator is None:
            generator = validator.generator if validator is not None else SignatureGenerator()
        if validator is None:
            validator = SignatureValidator(
                generator=generator, xml_service=generator.xml_service, config=generator.config
            )
        self.generator = generator
        self.validator = validator

    def sign(
        self,
        data,
        private_key,
        algorithm: Optional[Union[SignatureMethod, str]] = None,
        passphrase: Optional[bytes] = None,
    ) -> str:
        return self.generator.sign(data, private_key, algorithm, passphrase)

    def sign_xml(self, data, certificate: CertificateProvider, reference: Optional[str] = None) -> str:
        return self.generator.sign_xml(data, certificate, reference)

    def generate_digest_value(self, data, reference: Optional[str] = None) -> str:
        return self.generator.generate_digest_value(data, reference)

    def validate(self, data, signature, public_key, algorithm: Optional[Union[SignatureMethod, str]] = None) -> bool:
        return self.validator.validate(data, signature, public_key, algorithm)

    def validate_xml(self, data) -> None:
        self.validator.validate_xml(data)

    def create_signature_node(self, xml) -> SignatureNode:
        return self.validator.create_signature_node(xml)

    def validate_digest_value(self, data, signature_node: SignatureNode) -> None:
        self.validator.validate_digest_value(data, signature_node)

    def validate_signature_value(self, signature_node: SignatureNode) -> None:
        self.validator.validate_signature_value(signature_node)
