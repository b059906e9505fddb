# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""
Certificate subject extraction from X.509 certificates and CMS blobs.

Used for the ``/Name`` entry written at signing time and for the signer
name shown by the verifier when a signature has no ``/Name``.
"""

from __future__ import annotations

__all__ = [
    "extract_cert_info_from_cms",
    "extract_cert_info_from_x509",
    "signer_name_from_certificate",
]

import datetime
import logging

from asn1crypto import cms as asn1_cms
from asn1crypto import x509 as asn1_x509

from ..errors import CryptoError

_logger = logging.getLogger(__name__)

# OIDs for common subject fields
_OID_CN = "2.5.4.3"
_OID_EMAIL = "1.2.840.113549.1.9.1"
_OID_ORG = "2.5.4.10"


def _extract_info_from_cert_object(cert: asn1_x509.Certificate) -> dict[str, str | None]:
    """Extract CN, email, org, dn from an asn1crypto certificate object.

    Logs a warning for expired or not-yet-valid certificates; the
    signature is still produced.
    """
    try:
        not_before = cert.not_valid_before
        not_after = cert.not_valid_after
        now = datetime.datetime.now(datetime.timezone.utc)
        if not_before and now < not_before:
            _logger.warning("Certificate is not yet valid (notBefore: %s)", not_before)
        elif not_after and now > not_after:
            _logger.warning("Certificate has expired (notAfter: %s)", not_after)
    except (KeyError, TypeError, ValueError) as e:
        _logger.debug("Cannot check certificate validity dates: %s", e)

    fields: dict[str, str | None] = {"name": None, "email": None, "organization": None}
    oid_map = {_OID_CN: "name", _OID_EMAIL: "email", _OID_ORG: "organization"}
    for rdn in cert.subject.chosen:
        for attr in rdn:
            oid = attr["type"].dotted
            if oid in oid_map:
                fields[oid_map[oid]] = attr["value"].native

    fields["dn"] = cert.subject.human_friendly
    return fields


def extract_cert_info_from_x509(cert_der: bytes) -> dict[str, str | None]:
    """
    Extract subject info from a DER-encoded X.509 certificate.

    Returns:
        dict with keys: name (CN), email, organization, dn (full subject).

    Raises:
        CryptoError: If the certificate cannot be parsed.
    """
    try:
        cert = asn1_x509.Certificate.load(cert_der)
        return _extract_info_from_cert_object(cert)
    except (ValueError, TypeError, KeyError, AttributeError, IndexError, OSError) as e:
        raise CryptoError(f"Failed to parse X.509 certificate: {e}") from e


def _signer_certificate(signed_data: asn1_cms.SignedData) -> asn1_x509.Certificate | None:
    """Return the certificate named by the first SignerInfo's sid, else the first one."""
    certs = [c.chosen for c in signed_data["certificates"] if c.name == "certificate"]
    if not certs:
        return None
    signer_infos = signed_data["signer_infos"]
    if signer_infos:
        sid = signer_infos[0]["sid"]
        if sid.name == "issuer_and_serial_number":
            issuer = sid.chosen["issuer"]
            serial = sid.chosen["serial_number"].native
            for cert in certs:
                if cert.serial_number == serial and cert.issuer == issuer:
                    return cert
    return certs[0]


def extract_cert_info_from_cms(cms_der: bytes) -> dict[str, str | None]:
    """
    Extract signer certificate info from a CMS/PKCS#7 DER blob.

    Returns:
        dict with keys: name (CN), email, organization, dn (full subject).

    Raises:
        CryptoError: If parsing fails or the blob carries no certificate.
    """
    try:
        signed_data = asn1_cms.ContentInfo.load(cms_der)["content"]
        cert = _signer_certificate(signed_data)
        if cert is None:
            raise CryptoError("No certificate found in CMS blob.")
        return _extract_info_from_cert_object(cert)
    except (ValueError, TypeError, KeyError, AttributeError, IndexError, OSError) as e:
        raise CryptoError(f"Failed to parse CMS/PKCS#7 blob: {e}") from e


def signer_name_from_certificate(cert_der: bytes) -> str | None:
    """Return the subject CN of a certificate, or None if it has none."""
    return extract_cert_info_from_x509(cert_der).get("name")
