# pyright: reportUnknownMemberType=false
"""
Signing identities and the signer capability.

The engine never touches key material directly.  It asks a ``Signer`` to
sign a pre-computed digest, so keys can live in a platform key store, an
HSM, or a remote service.  ``LocalSigner`` covers in-process keys loaded
with ``cryptography``.
"""

from __future__ import annotations

__all__ = [
    "LocalSigner",
    "Signer",
    "SigningIdentity",
    "signer_for_key",
]

import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from cryptography import x509 as crypto_x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa, utils
from cryptography.hazmat.primitives.serialization import pkcs12

from ..errors import CryptoError

_logger = logging.getLogger(__name__)

# Curves up to this order size sign with SHA-256; larger ones with SHA-512
_EC_SHA256_MAX_BITS = 384

_HASHES: dict[str, hashes.HashAlgorithm] = {
    "sha256": hashes.SHA256(),
    "sha512": hashes.SHA512(),
}


@runtime_checkable
class Signer(Protocol):
    """Anything that can produce a raw signature over a digest.

    Attributes:
        algorithm: asn1crypto signed-digest algorithm name written into
            SignerInfo.signatureAlgorithm (``sha256_rsa``, ``sha256_ecdsa``,
            ``sha512_ecdsa``).
        hash_algorithm: hashlib name of the digest passed to sign_digest.
    """

    algorithm: str
    hash_algorithm: str

    def sign_digest(self, digest: bytes) -> bytes: ...


class LocalSigner:
    """Signer backed by an in-process ``cryptography`` private key."""

    def __init__(self, private_key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey) -> None:
        if isinstance(private_key, rsa.RSAPrivateKey):
            self.algorithm = "sha256_rsa"
            self.hash_algorithm = "sha256"
        elif isinstance(private_key, ec.EllipticCurvePrivateKey):
            if private_key.curve.key_size <= _EC_SHA256_MAX_BITS:
                self.algorithm = "sha256_ecdsa"
                self.hash_algorithm = "sha256"
            else:
                self.algorithm = "sha512_ecdsa"
                self.hash_algorithm = "sha512"
        else:
            raise CryptoError(f"Unsupported key algorithm: {type(private_key).__name__}")
        self._key = private_key

    def __repr__(self) -> str:
        return f"LocalSigner(algorithm={self.algorithm!r})"

    def sign_digest(self, digest: bytes) -> bytes:
        """Sign a pre-computed digest; ECDSA signatures come back DER-encoded."""
        prehashed = utils.Prehashed(_HASHES[self.hash_algorithm])
        try:
            if isinstance(self._key, rsa.RSAPrivateKey):
                return self._key.sign(digest, padding.PKCS1v15(), prehashed)
            return self._key.sign(digest, ec.ECDSA(prehashed))
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoError(f"Signing failed: {e}") from e


def signer_for_key(private_key: object) -> LocalSigner:
    """Wrap a private key, choosing the signature algorithm from its type.

    Raises:
        CryptoError: If the key is neither RSA nor EC.
    """
    if not isinstance(private_key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        raise CryptoError(f"Unsupported key algorithm: {type(private_key).__name__}")
    return LocalSigner(private_key)


def _cert_der(cert: crypto_x509.Certificate | bytes) -> bytes:
    if isinstance(cert, bytes):
        return cert
    return cert.public_bytes(serialization.Encoding.DER)


@dataclass(frozen=True)
class SigningIdentity:
    """A signer plus its certificate and chain (DER, leaf first).

    Read-only for the engine; the private key stays behind ``signer``.
    """

    signer: Signer
    certificate: bytes
    certificate_chain: list[bytes] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.certificate_chain:
            object.__setattr__(self, "certificate_chain", [self.certificate])

    @classmethod
    def from_key_and_certificates(
        cls,
        private_key: object,
        certificate: crypto_x509.Certificate | bytes,
        chain: list[crypto_x509.Certificate | bytes] | None = None,
    ) -> SigningIdentity:
        """Build an identity from a ``cryptography`` key and certificates.

        chain holds the issuing certificates; the leaf is prepended when
        it is not already first.
        """
        leaf = _cert_der(certificate)
        ders = [_cert_der(c) for c in chain or []]
        if not ders or ders[0] != leaf:
            ders.insert(0, leaf)
        return cls(signer=signer_for_key(private_key), certificate=leaf, certificate_chain=ders)

    @classmethod
    def from_pkcs12(cls, data: bytes, password: str | bytes | None = None) -> SigningIdentity:
        """Load an identity from a PKCS#12 (.p12/.pfx) blob.

        Raises:
            CryptoError: If the blob cannot be decrypted or holds no key
                and certificate.
        """
        if isinstance(password, str):
            password = password.encode("utf-8")
        try:
            key, cert, additional = pkcs12.load_key_and_certificates(data, password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoError(f"Cannot load PKCS#12 identity: {e}") from e
        if key is None or cert is None:
            raise CryptoError("PKCS#12 file does not contain a private key and certificate.")
        _logger.debug("Loaded PKCS#12 identity with %d extra certificate(s)", len(additional))
        return cls.from_key_and_certificates(key, cert, list(additional))
