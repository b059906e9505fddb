# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""CMS/PKCS#7 SignedData construction for PAdES-B-B signatures.

Builds a detached ``ContentInfo(SignedData)`` with one SignerInfo whose
messageDigest is the ByteRange hash computed by the caller.  The signed
attributes are limited to contentType, messageDigest and
signing-certificate-v2; signingTime and CMSAlgorithmProtection are kept
out so the PAdES-B-B profile holds.
"""

from __future__ import annotations

__all__ = [
    "EXCLUDED_ATTRIBUTE_OIDS",
    "build_cms_container",
    "build_signed_attributes",
    "extract_digest_algorithm",
    "extract_message_digest",
    "normalize_sha256_algorithm_ids",
    "strip_excluded_attributes",
]

import hashlib
import logging
from collections.abc import Iterable

from asn1crypto import algos, cms, core, tsp, x509

from ...errors import CryptoError
from ..identity import SigningIdentity

_logger = logging.getLogger(__name__)

_OID_MESSAGE_DIGEST = "1.2.840.113549.1.9.4"
_OID_SIGNING_TIME = "1.2.840.113549.1.9.5"
_OID_CMS_ALGORITHM_PROTECTION = "1.2.840.113549.1.9.52"

EXCLUDED_ATTRIBUTE_OIDS = frozenset({_OID_CMS_ALGORITHM_PROTECTION, _OID_SIGNING_TIME})

_SUPPORTED_SIGNATURE_ALGORITHMS = {"sha256_rsa", "sha256_ecdsa", "sha512_ecdsa"}

_SIGNER_INFO_FIELDS = (
    "version",
    "sid",
    "digest_algorithm",
    "signed_attrs",
    "signature_algorithm",
    "signature",
    "unsigned_attrs",
)
_SIGNED_DATA_FIELDS = (
    "version",
    "digest_algorithms",
    "encap_content_info",
    "certificates",
    "crls",
    "signer_infos",
)


# ── Signed attributes ────────────────────────────────────────────────


def _signing_certificate_v2(cert: x509.Certificate) -> cms.CMSAttribute:
    """ESS signing-certificate-v2 binding the signer certificate by SHA-256 hash."""
    return cms.CMSAttribute(
        {
            "type": cms.CMSAttributeType("signing_certificate_v2"),
            "values": [
                tsp.SigningCertificateV2(
                    {
                        "certs": [
                            tsp.ESSCertIDv2(
                                {
                                    "hash_algorithm": algos.DigestAlgorithm({"algorithm": "sha256"}),
                                    "cert_hash": hashlib.sha256(cert.dump()).digest(),
                                    "issuer_serial": tsp.IssuerSerial(
                                        {
                                            "issuer": [x509.GeneralName({"directory_name": cert.issuer})],
                                            "serial_number": cert.serial_number,
                                        }
                                    ),
                                }
                            )
                        ]
                    }
                )
            ],
        }
    )


def strip_excluded_attributes(attrs: Iterable[cms.CMSAttribute]) -> list[cms.CMSAttribute]:
    """Drop signingTime and CMSAlgorithmProtection from an attribute list."""
    kept = []
    for attr in attrs:
        oid = attr["type"].dotted
        if oid in EXCLUDED_ATTRIBUTE_OIDS:
            _logger.debug("Dropping signed attribute %s", oid)
            continue
        kept.append(attr)
    return kept


def build_signed_attributes(
    digest: bytes,
    cert: x509.Certificate,
    extra_signed_attrs: Iterable[cms.CMSAttribute] | None = None,
) -> cms.CMSAttributes:
    """Return contentType, messageDigest, signing-certificate-v2 and any extras.

    The digest is used as given; nothing is re-hashed.
    """
    attrs = [
        cms.CMSAttribute({"type": cms.CMSAttributeType("content_type"), "values": ("data",)}),
        cms.CMSAttribute({"type": cms.CMSAttributeType("message_digest"), "values": (digest,)}),
        _signing_certificate_v2(cert),
    ]
    if extra_signed_attrs:
        attrs.extend(extra_signed_attrs)
    return cms.CMSAttributes(strip_excluded_attributes(attrs))


# ── Container ────────────────────────────────────────────────────────


def _load_certificate(der: bytes) -> x509.Certificate:
    try:
        cert = x509.Certificate.load(der)
        _ = cert.issuer  # force parsing of the TBS fields
    except (ValueError, TypeError) as e:
        raise CryptoError(f"Cannot parse signer certificate: {e}") from e
    return cert


def build_cms_container(
    digest: bytes,
    identity: SigningIdentity,
    extra_signed_attrs: Iterable[cms.CMSAttribute] | None = None,
) -> bytes:
    """Build a detached CMS SignedData over a pre-computed ByteRange digest.

    The digest algorithm is the signer's ``hash_algorithm`` (SHA-256, or
    SHA-512 for EC curves above 384 bits).  It is declared in
    digestAlgorithms and SignerInfo.digestAlgorithm and also hashes the
    signed attributes, so messageDigest and the signature agree.

    Args:
        digest: ByteRange hash computed with the signer's hash algorithm.
        identity: Signer capability plus certificate chain.
        extra_signed_attrs: Additional signed attributes; excluded types
            are still removed.

    Returns:
        DER-encoded ContentInfo with explicit NULL SHA-256 parameters.

    Raises:
        CryptoError: If the signer's algorithm is unsupported, the digest
            length does not match its hash algorithm, or signing fails.
    """
    signer = identity.signer
    if signer.algorithm not in _SUPPORTED_SIGNATURE_ALGORITHMS:
        raise CryptoError(f"Unsupported signature algorithm: {signer.algorithm}")
    digest_name = signer.hash_algorithm
    expected_size = hashlib.new(digest_name).digest_size
    if len(digest) != expected_size:
        raise CryptoError(
            f"Digest is {len(digest)} bytes; {signer.algorithm} needs a "
            f"{expected_size}-byte {digest_name} digest"
        )

    cert = _load_certificate(identity.certificate)
    chain = [_load_certificate(der) for der in identity.certificate_chain or [identity.certificate]]

    signed_attrs = build_signed_attributes(digest, cert, extra_signed_attrs)

    # Signature input is the DER SET OF, not the [0] IMPLICIT field encoding
    to_sign = b"\x31" + signed_attrs.dump()[1:]
    signed_hash = hashlib.new(digest_name, to_sign).digest()
    try:
        signature = signer.sign_digest(signed_hash)
    except CryptoError:
        raise
    except Exception as e:
        raise CryptoError(f"Signer failed: {e}") from e

    if signer.algorithm.endswith("_rsa"):
        signature_algorithm = algos.SignedDigestAlgorithm(
            {"algorithm": signer.algorithm, "parameters": core.Null()}
        )
    else:
        signature_algorithm = algos.SignedDigestAlgorithm({"algorithm": signer.algorithm})

    signer_info = cms.SignerInfo(
        {
            "version": "v1",
            "sid": cms.SignerIdentifier(
                {
                    "issuer_and_serial_number": cms.IssuerAndSerialNumber(
                        {"issuer": cert.issuer, "serial_number": cert.serial_number}
                    )
                }
            ),
            "digest_algorithm": algos.DigestAlgorithm({"algorithm": digest_name}),
            "signed_attrs": signed_attrs,
            "signature_algorithm": signature_algorithm,
            "signature": signature,
        }
    )
    signed_data = cms.SignedData(
        {
            "version": "v1",
            "digest_algorithms": cms.DigestAlgorithms(
                [algos.DigestAlgorithm({"algorithm": digest_name})]
            ),
            "encap_content_info": {"content_type": "data"},
            "certificates": chain,
            "signer_infos": [signer_info],
        }
    )
    content_info = cms.ContentInfo(
        {"content_type": cms.ContentType("signed_data"), "content": signed_data}
    )
    cms_der = normalize_sha256_algorithm_ids(content_info.dump())
    _logger.debug(
        "Built CMS container: %d bytes, %s, %d certificate(s)",
        len(cms_der),
        signer.algorithm,
        len(chain),
    )
    return cms_der


# ── Post-processing ──────────────────────────────────────────────────


def _with_null_parameters(alg: algos.DigestAlgorithm) -> algos.DigestAlgorithm:
    if alg["algorithm"].native == "sha256":
        return algos.DigestAlgorithm({"algorithm": "sha256", "parameters": core.Null()})
    return alg


def _present_fields(value: core.Sequence, names: tuple[str, ...]) -> dict[str, object]:
    return {name: value[name] for name in names if not isinstance(value[name], core.Void)}


def normalize_sha256_algorithm_ids(cms_der: bytes) -> bytes:
    """Give every SHA-256 digest AlgorithmIdentifier an explicit NULL parameter.

    Rewrites SignedData.digestAlgorithms and each SignerInfo.digestAlgorithm.
    Signed attributes and signatures are carried over byte-for-byte, so the
    signature stays valid.

    Raises:
        CryptoError: If cms_der is not a SignedData ContentInfo.
    """
    try:
        content_info = cms.ContentInfo.load(cms_der)
        if content_info["content_type"].native != "signed_data":
            raise CryptoError("CMS content is not SignedData.")
        signed_data = content_info["content"]

        signer_infos = []
        for signer_info in signed_data["signer_infos"]:
            fields = _present_fields(signer_info, _SIGNER_INFO_FIELDS)
            fields["digest_algorithm"] = _with_null_parameters(signer_info["digest_algorithm"])
            signer_infos.append(cms.SignerInfo(fields))

        sd_fields = _present_fields(signed_data, _SIGNED_DATA_FIELDS)
        sd_fields["digest_algorithms"] = cms.DigestAlgorithms(
            [_with_null_parameters(alg) for alg in signed_data["digest_algorithms"]]
        )
        sd_fields["signer_infos"] = cms.SignerInfos(signer_infos)

        return cms.ContentInfo(
            {"content_type": cms.ContentType("signed_data"), "content": cms.SignedData(sd_fields)}
        ).dump()
    except (ValueError, TypeError, KeyError) as e:
        raise CryptoError(f"Cannot normalize CMS container: {e}") from e


def extract_message_digest(cms_der: bytes) -> bytes | None:
    """Return the messageDigest signed attribute of the first SignerInfo, or None."""
    try:
        signed_data = cms.ContentInfo.load(cms_der)["content"]
        signer_infos = signed_data["signer_infos"]
        if not signer_infos:
            return None
        signed_attrs = signer_infos[0]["signed_attrs"]
        if isinstance(signed_attrs, core.Void):
            return None
        for attr in signed_attrs:
            if attr["type"].dotted == _OID_MESSAGE_DIGEST and attr["values"]:
                return attr["values"][0].native
    except (ValueError, TypeError, KeyError, AttributeError, IndexError):
        _logger.debug("Could not extract messageDigest from CMS", exc_info=True)
    return None


def extract_digest_algorithm(cms_der: bytes) -> str | None:
    """Return the hashlib name of the first SignerInfo's digestAlgorithm, or None."""
    try:
        signer_infos = cms.ContentInfo.load(cms_der)["content"]["signer_infos"]
        if not signer_infos:
            return None
        name = signer_infos[0]["digest_algorithm"]["algorithm"].native
    except (ValueError, TypeError, KeyError, AttributeError, IndexError):
        _logger.debug("Could not extract digestAlgorithm from CMS", exc_info=True)
        return None
    return name if name in hashlib.algorithms_available else None
