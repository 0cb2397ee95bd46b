"""SSL certificate prompts, chain parsing, verification and system trust."""

from __future__ import annotations

import base64
import binascii
import os
import re
import socket
import ssl
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.x509.oid import NameOID

from wbi.console import PromptError, ask_text, confirm, print_and_log_info
from wbi.osinfo import OperatingSystem
from wbi.system import CommandError, run_command, run_command_and_capture_output, write_strings

UBUNTU_CA_PATH = "/usr/local/share/ca-certificates/workbenchCA.crt"
REDHAT_CA_PATH = "/etc/pki/ca-trust/source/anchors/workbenchCA.crt"

_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([^\r\n-]+)-----\r?\n(.*?)-----END \1-----", re.DOTALL
)
_MAX_CHAIN_DEPTH = 10


class CertificateError(Exception):
    """Raised when a certificate or key cannot be read, matched or trusted."""


@dataclass
class CertificateChain:
    """A certificate file split into server, intermediate and root certificates."""

    server: x509.Certificate
    intermediates: list[x509.Certificate] = field(default_factory=list)
    root: x509.Certificate | None = None


def _confirm(message: str, default: bool, failure: str) -> bool:
    try:
        return confirm(message, default)
    except PromptError as exc:
        raise PromptError(failure) from exc


def _ask(message: str, failure: str) -> str:
    try:
        return ask_text(message)
    except PromptError as exc:
        raise PromptError(failure) from exc


def prompt_ssl() -> bool:
    """Ask whether to use SSL."""
    return _confirm("Would you like to use SSL?", False, "there was an issue with the SSL prompt")


def prompt_ssl_file_path() -> str:
    """Ask for the path of the SSL certificate."""
    return _ask(
        "Filepath to SSL certificate:", "there was an issue with the SSL cert path prompt"
    )


def prompt_server_url() -> str:
    """Ask for the URL end users use to reach Workbench."""
    return _ask(
        "Server URL that end users will use to access the Workbench web interface "
        "(for example, https://workbench.mydomainname.com):",
        "there was an issue with the server URL prompt",
    )


def prompt_ssl_key_file_path() -> str:
    """Ask for the path of the SSL certificate key."""
    return _ask(
        "Filepath to SSL certificate key:",
        "there was an issue with the SSL cert key path prompt",
    )


def prompt_mismatched_host_name() -> bool:
    """Ask whether to proceed although the host name and certificate differ."""
    return _confirm(
        "The hostname of your server and the subject name in the certificate "
        "don't match.\n This is common in configurations that include a load balancer "
        "or a proxy.\n If you would like to exit the installer, resolve the certificate mismatch\n"
        ' and restart the installer at this step, you can run "wbi setup --step ssl" \n'
        "Please confirm that you want to proceed with mismatched names above?",
        False,
        "there was an issue with the SSL prompt",
    )


def prompt_add_root_ca_to_trust_store() -> bool:
    """Ask whether to add the root certificate to the system trust store."""
    return _confirm(
        "The certificate provided is not trusted by the system, this system level trust is "
        "usually required\n to support connectivity between systems. Would you like to add "
        "this untrusted root certificate \n to the system trust store?",
        True,
        "there was an issue with the CA Trust prompt",
    )


def prompt_root_ca_missing() -> bool:
    """Ask whether browsers trust the server certificate without a root certificate."""
    return _confirm(
        "The certificate provided does not include a root Certificate Authority,"
        " otherwise known as a Root CA Certificate. Generally, Posit products require a "
        "chain of certificates from server to your domains root certificate authority in "
        "order to present a valid HTTPS connection. In rare circumstances this is not "
        "required. Does your corporate browser trust the server certificate that you're "
        "using without the presence of a root certificate? If you are not sure, please "
        "select No.",
        True,
        "there was an issue with the missing Root Cert prompt",
    )


def trust_root_certificate(root_ca: x509.Certificate, os_type: OperatingSystem) -> None:
    """Add ``root_ca`` to the operating system trust store."""
    pem = root_ca.public_bytes(Encoding.PEM).decode("ascii")
    if os_type.is_ubuntu:
        path, command = UBUNTU_CA_PATH, "update-ca-certificates"
    elif os_type.is_redhat:
        path, command = REDHAT_CA_PATH, "update-ca-trust"
    else:
        return
    try:
        write_strings([pem], path, 0o755, True, True)
    except OSError as exc:
        raise CertificateError(f"writing certificate to disk failed: {exc}") from exc
    try:
        run_command(command, True, 1, True)
    except CommandError as exc:
        raise CertificateError(f"running command to trust root certificate: {exc}") from exc


def verify_ssl_cert_and_key_md5_match(cert_location: str, key_location: str) -> None:
    """Check with openssl that the certificate and key share the same modulus."""
    cert_command = f"openssl x509 -noout -modulus -in {cert_location} 2> /dev/null | openssl md5"
    key_command = f"openssl rsa -noout -modulus -in {key_location} 2> /dev/null | openssl md5"
    try:
        cert_md5 = run_command_and_capture_output(cert_command, False, 0, False)
    except CommandError as exc:
        raise CertificateError(f"error checking md5 hash for certificate: {exc}") from exc
    try:
        key_md5 = run_command_and_capture_output(key_command, False, 0, False)
    except CommandError as exc:
        raise CertificateError(f"error checking md5 hash for key: {exc}") from exc

    if cert_md5 != key_md5:
        raise CertificateError(
            "Certificate and Key do not cryptographically match, please check that your "
            "certificates are correct. You can run these commands to verify the certificates:\n"
            f"openssl x509 -noout -modulus -in {cert_location} 2> /dev/null | openssl md5\n"
            f"openssl rsa -noout -modulus -in {key_location}  2> /dev/null | openssl md5 \n\n"
            "The returned MD5 hashes must match"
        )


def _dns_names(cert: x509.Certificate) -> list[str]:
    try:
        extension = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    return extension.value.get_values_for_type(x509.DNSName)


def verify_ssl_host_match(server_cert: x509.Certificate, hostname: str | None = None) -> bool:
    """Return True when ``hostname`` is not part of the certificate's primary DNS name."""
    if hostname is None:
        try:
            hostname = socket.gethostname()
        except OSError as exc:
            raise CertificateError(f"failed to retrieve hostname: {exc}") from exc
    names = _dns_names(server_cert)
    if not names:
        raise CertificateError("the server certificate does not contain any DNS names")
    print("Detected Server Name: " + hostname)
    print("Detected Certificate Primary DNS Name: " + names[0])
    return hostname not in names[0]


def _load_pem_certificates(data: bytes) -> list[x509.Certificate]:
    certs = []
    for der in decode_pem_files(data):
        try:
            certs.append(x509.load_der_x509_certificate(der))
        except ValueError:
            continue
    return certs


def _system_roots() -> list[x509.Certificate]:
    paths = ssl.get_default_verify_paths()
    roots: list[x509.Certificate] = []
    if paths.cafile and os.path.isfile(paths.cafile):
        try:
            roots.extend(_load_pem_certificates(Path(paths.cafile).read_bytes()))
        except OSError:
            pass
    if paths.capath and os.path.isdir(paths.capath):
        for entry in sorted(Path(paths.capath).iterdir()):
            try:
                if entry.is_file():
                    roots.extend(_load_pem_certificates(entry.read_bytes()))
            except OSError:
                continue
    return roots


def _validity(cert: x509.Certificate) -> tuple[datetime, datetime]:
    before = getattr(cert, "not_valid_before_utc", None)
    after = getattr(cert, "not_valid_after_utc", None)
    if before is None or after is None:
        before = cert.not_valid_before.replace(tzinfo=timezone.utc)
        after = cert.not_valid_after.replace(tzinfo=timezone.utc)
    return before, after


def _valid_at(cert: x509.Certificate, now: datetime) -> bool:
    before, after = _validity(cert)
    return before <= now <= after


def _issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    if cert.issuer != issuer.subject:
        return False
    try:
        cert.verify_directly_issued_by(issuer)
    except (ValueError, TypeError, InvalidSignature):
        return False
    return True


def _der(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(Encoding.DER)


def _reaches_root(
    cert: x509.Certificate,
    intermediates: list[x509.Certificate],
    roots: list[x509.Certificate],
    now: datetime,
    visited: frozenset[bytes],
) -> bool:
    if not _valid_at(cert, now):
        return False
    if any(_der(root) == _der(cert) for root in roots):
        return True
    for root in roots:
        if _issued_by(cert, root) and _valid_at(root, now):
            return True
    if len(visited) >= _MAX_CHAIN_DEPTH:
        return False
    for issuer in intermediates:
        key = _der(issuer)
        if key in visited or not _issued_by(cert, issuer):
            continue
        if _reaches_root(issuer, intermediates, roots, now, visited | {key}):
            return True
    return False


def verify_trusted_certificate(
    server_cert: x509.Certificate, intermediates: list[x509.Certificate]
) -> bool:
    """Return whether the server certificate chains to a root the system trusts."""
    roots = _system_roots()
    now = datetime.now(timezone.utc)
    pool = list(intermediates or [])
    if _reaches_root(server_cert, pool, roots, now, frozenset({_der(server_cert)})):
        print("This certificate is trusted by system")
        return True
    print(
        "The server certificate is not trusted by the system:"
        "x509: certificate signed by unknown authority"
    )
    return False


def _block_body(body: bytes) -> bytes | None:
    lines = body.decode("ascii", errors="replace").splitlines()
    if lines and ":" in lines[0]:
        try:
            lines = lines[lines.index("") + 1:]
        except ValueError:
            return None
    try:
        return base64.b64decode("".join(line.strip() for line in lines), validate=True)
    except (binascii.Error, ValueError):
        return None


def decode_pem_files(cert_input: bytes) -> list[bytes]:
    """DER contents of every CERTIFICATE block in PEM data, in order."""
    certificates = []
    for match in _PEM_BLOCK.finditer(cert_input):
        if match.group(1) != b"CERTIFICATE":
            continue
        der = _block_body(match.group(2))
        if der is not None:
            certificates.append(der)
    return certificates


def _is_ca(cert: x509.Certificate) -> bool:
    try:
        return cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca
    except x509.ExtensionNotFound:
        return False


def _common_name(name: x509.Name) -> str:
    attributes = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    return str(attributes[0].value) if attributes else ""


def parse_certificate_chain(cert_location: str | Path) -> CertificateChain:
    """Read a PEM file and sort its certificates into server, intermediates and root."""
    try:
        data = Path(cert_location).read_bytes()
    except OSError as exc:
        raise CertificateError(
            "failed to read the certificate from\n"
            f"the provided path when verifying it's subject: {exc}"
        ) from exc

    server = None
    root = None
    intermediates: list[x509.Certificate] = []
    for der in decode_pem_files(data):
        try:
            cert = x509.load_der_x509_certificate(der)
        except ValueError as exc:
            raise CertificateError(f"error parsing certificates: {exc}") from exc
        if not _is_ca(cert):
            server = cert
            print_and_log_info("This is the Server Certificate:" + cert.subject.rfc4514_string())
        elif _common_name(cert.subject) != _common_name(cert.issuer):
            intermediates.append(cert)
            print_and_log_info("This is an Intermediate Certificate:" + _common_name(cert.subject))
        else:
            root = cert
            print_and_log_info("This is the Root Certificate:" + cert.subject.rfc4514_string())

    if server is None:
        raise CertificateError(
            "The server portion of your certificate is empty, or not in pem format"
        )
    if root is None:
        print_and_log_info(
            "The root portion of your certificate is empty,"
            " this is an odd, but not impossible configuration"
        )
    return CertificateChain(server=server, intermediates=intermediates, root=root)


def prompt_and_verify_ssl(os_type: OperatingSystem) -> tuple[str, str]:
    """Ask for the certificate and key, verify them and offer to trust the root.

    Returns the certificate path and the key path.
    """
    cert_path = prompt_ssl_file_path()
    key_path = prompt_ssl_key_file_path()
    verify_ssl_cert_and_key_md5_match(cert_path, key_path)
    chain = parse_certificate_chain(cert_path)

    if chain.root is None:
        if not prompt_root_ca_missing():
            raise CertificateError(
                "no root CA Certificate in the certificate chain, acquire the root and any "
                "necessary intermediate certificates and append them to the certificate file "
                "in this order from top to bottom, server -> intermediate -> root. To restart "
                "the installer from this step please use this command: 'wbi setup --step ssl'"
            )
        print_and_log_info(
            "Because your organization does not require intermediate and root"
            " certificates to be presented to your corporate browsers, you will need to work "
            "with your SSL team to get a copy of your organizations root and any intermediate "
            "certificates and add them to this Linux machines trust store. These certificates "
            "are required to facilitate inter-server communication between Workbench, Connect "
            "and Package Manager. An article on this topic can be found here:"
            "https://support.posit.co/hc/en-us/articles/4416056988567-RStudio-Team-SSL-Considerations"
        )

    try:
        mismatch = verify_ssl_host_match(chain.server)
    except CertificateError:
        mismatch = False
    if mismatch and not prompt_mismatched_host_name():
        raise CertificateError("hostname mismatch error, exit without proceeding")

    if verify_trusted_certificate(chain.server, chain.intermediates):
        print_and_log_info("SSL successfully verified")
        return cert_path, key_path

    if prompt_add_root_ca_to_trust_store():
        if chain.root is None:
            raise CertificateError(
                "failure while trying to trust the SSL cert: no root certificate to trust"
            )
        trust_root_certificate(chain.root, os_type)
        try:
            output = run_command_and_capture_output("openssl verify " + cert_path, True, 1, False)
        except CommandError as exc:
            raise CertificateError(
                f"failure while trying to re-verify server trust of the SSL cert: {exc}"
            ) from exc
        if "verification failed" in output:
            raise CertificateError(
                "failure while trying to re-verify server trust of the SSL cert"
            )
        print_and_log_info("SSL certificate successfully trusted")
    return cert_path, key_path