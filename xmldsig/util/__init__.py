"""
xmldsig utility functions
"""

import re
from base64 import b64encode
from typing import Union

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import load_pem_public_key
from lxml.etree import QName

from ..exceptions import InvalidInput

PEM_HEADER = "-----BEGIN CERTIFICATE-----"
PEM_FOOTER = "-----END CERTIFICATE-----"
PUBLIC_KEY_PEM_HEADER = "-----BEGIN PUBLIC KEY-----"


class Namespace(dict):
    def __getattr__(self, a):
        return dict.__getitem__(self, a)


namespaces = Namespace(
    ds="http://www.w3.org/2000/09/xmldsig#",
    xsi="http://www.w3.org/2001/XMLSchema-instance",
)


def ds_tag(tag):
    return QName(namespaces.ds, tag).text


def ensure_bytes(x, encoding="utf-8", none_ok=False):
    if none_ok is True and x is None:
        return x
    if not isinstance(x, bytes):
        x = x.encode(encoding)
    return x


def ensure_str(x, encoding="utf-8", none_ok=False):
    if none_ok is True and x is None:
        return x
    if not isinstance(x, str):
        x = x.decode(encoding)
    return x


def long_to_b64(n):
    """
    Base64 of the minimal big-endian encoding of a non-negative integer, as used by ``ds:Modulus`` and ``ds:Exponent``.
    """
    return b64encode(n.to_bytes(max(1, (n.bit_length() + 7) // 8), "big")).decode()


def wrap_text(text, width=64):
    """
    Hard-wrap text into lines of at most ``width`` characters joined by ``\\n``. Existing whitespace is dropped first,
    so wrapping already wrapped base64 is idempotent.
    """
    text = re.sub(r"\s+", "", text)
    return "\n".join(text[i : i + width] for i in range(0, len(text), width))


def add_pem_header(bare_base64_cert):
    bare_base64_cert = ensure_str(bare_base64_cert)
    if bare_base64_cert.startswith(PEM_HEADER):
        return bare_base64_cert
    return PEM_HEADER + "\n" + wrap_text(bare_base64_cert, 64) + "\n" + PEM_FOOTER


def normalize_public_key(key: Union[str, bytes, x509.Certificate, rsa.RSAPublicKey, rsa.RSAPrivateKey]):
    """
    Turn any of the public key representations accepted by :meth:`xmldsig.SignatureValidator.validate` into a
    cryptography public key object.

    Accepted forms are public key objects, private key objects (their public half is used),
    :class:`cryptography.x509.Certificate` objects, PEM-encoded certificates or public keys, and bare base64
    certificate bodies as found in ``ds:X509Certificate``.
    """
    if isinstance(key, rsa.RSAPublicKey):
        return key
    if isinstance(key, rsa.RSAPrivateKey):
        return key.public_key()
    if isinstance(key, x509.Certificate):
        return key.public_key()
    if not isinstance(key, (str, bytes)):
        raise InvalidInput(f"Unsupported public key type: {type(key).__name__}")
    key = ensure_str(key).strip()
    if key.startswith(PUBLIC_KEY_PEM_HEADER):
        return load_pem_public_key(ensure_bytes(key))
    return x509.load_pem_x509_certificate(ensure_bytes(add_pem_header(key))).public_key()


def _remove_sig(signature):
    """
    Detach an enveloped Signature element from its parent. The whitespace that followed the element is moved to the
    preceding sibling (or to the parent text), so the remaining document canonicalizes as if the signature had never
    been inserted.
    """
    parent = signature.getparent()
    if parent is None:
        raise InvalidInput("Cannot remove a Signature element that is the document root")
    if signature.tail is not None:
        previous = signature.getprevious()
        if previous is None:
            parent.text = (parent.text or "") + signature.tail
        else:
            previous.tail = (previous.tail or "") + signature.tail
    parent.remove(signature)
