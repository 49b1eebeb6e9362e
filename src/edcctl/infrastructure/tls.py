"""Read the validity window of a server certificate over TLS.

The handshake does not verify the chain or the hostname, so dates are
reported for whatever the ingress serves (a staging-issuer certificate or
the controller's self-signed fallback included).
"""

from __future__ import annotations

import socket
import ssl
from dataclasses import dataclass
from datetime import datetime

from cryptography import x509


@dataclass(frozen=True)
class CertificateDates:
    host: str
    not_before: str
    not_after: str

    def to_dict(self) -> dict[str, str]:
        return {"host": self.host, "not_before": self.not_before, "not_after": self.not_after}


def _openssl_date(moment: datetime) -> str:
    # same layout as ``openssl x509 -dates``: "Jan  5 09:30:00 2026 GMT"
    return f"{moment:%b} {moment.day:2d} {moment:%H:%M:%S %Y} GMT"


def dates_from_der(host: str, der: bytes) -> CertificateDates:
    """Decode a DER certificate and return its validity window.

    Raises ``ValueError`` when *der* is not a certificate.
    """
    cert = x509.load_der_x509_certificate(der)
    return CertificateDates(
        host=host,
        not_before=_openssl_date(cert.not_valid_before_utc),
        not_after=_openssl_date(cert.not_valid_after_utc),
    )


def peer_certificate(host: str, *, port: int = 443, timeout: float = 30.0) -> bytes:
    """Connect with SNI and return the peer certificate in DER form."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    with socket.create_connection((host, port), timeout=timeout) as sock:
        with context.wrap_socket(sock, server_hostname=host) as tls:
            der = tls.getpeercert(binary_form=True)
    if not der:
        raise ssl.SSLError(f"{host} presented no certificate")
    return der


def certificate_dates(host: str, *, port: int = 443, timeout: float = 30.0) -> CertificateDates:
    """``notBefore``/``notAfter`` of the certificate *host* serves.

    Raises ``OSError`` (including ``ssl.SSLError``) when the connection or
    handshake fails, and ``ValueError`` when the certificate cannot be decoded.
    """
    return dates_from_der(host, peer_certificate(host, port=port, timeout=timeout))
