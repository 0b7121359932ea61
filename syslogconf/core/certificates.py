"""Compare a locally held certificate against the one a TLS endpoint presents."""

from __future__ import annotations

from pathlib import Path
import socket
import ssl
from typing import Callable
from urllib.parse import urlsplit

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat, pkcs12

from syslogconf.core.logging import get_logger


PeerCertificateFetcher = Callable[[str, int, float], bytes]


class CertificateLoadError(RuntimeError):
    pass


def load_certificate(path: Path, password: str = "") -> x509.Certificate:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise CertificateLoadError(f"failed to load certificate from {path}: {exc}") from exc

    if b"-----BEGIN CERTIFICATE-----" in data:
        try:
            return x509.load_pem_x509_certificate(data)
        except ValueError as exc:
            raise CertificateLoadError(f"failed to load certificate from {path}: {exc}") from exc
    try:
        return x509.load_der_x509_certificate(data)
    except ValueError:
        pass
    try:
        _key, certificate, _extra = pkcs12.load_key_and_certificates(
            data,
            password.encode("utf-8") if password else None,
        )
    except ValueError as exc:
        raise CertificateLoadError(f"failed to load certificate from {path}: {exc}") from exc
    if certificate is None:
        raise CertificateLoadError(f"failed to load certificate from {path}: no certificate in PKCS#12 bundle")
    return certificate


def thumbprint(certificate: x509.Certificate) -> str:
    return certificate.fingerprint(hashes.SHA1()).hex().upper()


def public_key_bytes(certificate: x509.Certificate) -> bytes:
    return certificate.public_key().public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)


def fetch_peer_certificate(host: str, port: int, timeout_seconds: float) -> bytes:
    # Self-signed certificates are expected; identity is checked by comparison instead.
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    with socket.create_connection((host, port), timeout=timeout_seconds) as sock:
        with context.wrap_socket(sock, server_hostname=host) as tls_sock:
            der = tls_sock.getpeercert(binary_form=True)
    if not der:
        raise ssl.SSLError("server presented no certificate")
    return der


class CertificateMatcher:
    def __init__(
        self,
        local_cert_path: Path,
        *,
        password: str = "",
        timeout_seconds: float = 10.0,
        fetcher: PeerCertificateFetcher | None = None,
    ) -> None:
        self.local_cert_path = Path(local_cert_path)
        self.timeout_seconds = timeout_seconds
        self._fetch = fetcher or fetch_peer_certificate
        self._logger = get_logger("syslogconf.certificates")
        self.local_certificate = load_certificate(self.local_cert_path, password)
        self._local_thumbprint = thumbprint(self.local_certificate)
        self._local_public_key = public_key_bytes(self.local_certificate)

    def matches(self, remote_url: str) -> bool:
        url = remote_url.strip()
        if "://" not in url:
            url = f"https://{url}"
        try:
            parsed = urlsplit(url)
            host = parsed.hostname or ""
            port = parsed.port or 443
            if not host:
                raise ValueError(f"no host in '{remote_url}'")
            der = self._fetch(host, port, self.timeout_seconds)
            remote = x509.load_der_x509_certificate(der)
        except (OSError, ValueError) as exc:
            self._logger.info(
                f"certificate check against {remote_url} failed: {exc}",
                extra={"event_action": "certificate_match", "event_outcome": "failure"},
            )
            return False

        thumbprint_match = thumbprint(remote).lower() == self._local_thumbprint.lower()
        public_key_match = public_key_bytes(remote) == self._local_public_key
        subject_match = remote.subject == self.local_certificate.subject
        self._logger.info(
            f"certificate comparison for {remote_url}",
            extra={
                "event_action": "certificate_match",
                "event_outcome": "success" if thumbprint_match and public_key_match else "failure",
                "payload": {
                    "thumbprint_match": thumbprint_match,
                    "public_key_match": public_key_match,
                    "subject_match": subject_match,
                },
            },
        )
        return thumbprint_match and public_key_match
