from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
)
from cryptography.x509.oid import NameOID

from wbi import certs
from wbi.console import PromptError


def _name(cn):
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])


def _make_cert(cn, key, issuer_cn, issuer_key, ca, dns=None, expired=False):
    now = datetime.now(timezone.utc)
    if expired:
        start, end = now - timedelta(days=30), now - timedelta(days=1)
    else:
        start, end = now - timedelta(days=1), now + timedelta(days=30)
    builder = (
        x509.CertificateBuilder()
        .subject_name(_name(cn))
        .issuer_name(_name(issuer_cn))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(start)
        .not_valid_after(end)
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
    )
    if dns:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(name) for name in dns]),
            critical=False,
        )
    return builder.sign(issuer_key, hashes.SHA256())


@pytest.fixture(scope="module")
def pki():
    root_key = ec.generate_private_key(ec.SECP256R1())
    inter_key = ec.generate_private_key(ec.SECP256R1())
    server_key = ec.generate_private_key(ec.SECP256R1())
    root = _make_cert("Test Root", root_key, "Test Root", root_key, True)
    inter = _make_cert("Test Intermediate", inter_key, "Test Root", root_key, True)
    server = _make_cert(
        "wb.example.com", server_key, "Test Intermediate", inter_key, False,
        dns=["wb.example.com"],
    )
    expired = _make_cert(
        "old.example.com", server_key, "Test Root", root_key, False,
        dns=["old.example.com"], expired=True,
    )
    return {
        "root": root,
        "inter": inter,
        "server": server,
        "expired": expired,
        "server_key": server_key,
    }


def _pem(*items):
    return b"".join(item.public_bytes(Encoding.PEM) for item in items)


def _trust_only(monkeypatch, tmp_path, *roots):
    ca_file = tmp_path / "roots.pem"
    ca_file.write_bytes(_pem(*roots))
    ca_dir = tmp_path / "empty_ca_dir"
    ca_dir.mkdir()
    monkeypatch.setenv("SSL_CERT_FILE", str(ca_file))
    monkeypatch.setenv("SSL_CERT_DIR", str(ca_dir))


def test_decode_pem_files_keeps_only_certificates(pki):
    key_pem = pki["server_key"].private_bytes(
        Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()
    )
    data = _pem(pki["server"]) + key_pem + _pem(pki["root"])
    result = certs.decode_pem_files(data)
    assert result == [
        pki["server"].public_bytes(Encoding.DER),
        pki["root"].public_bytes(Encoding.DER),
    ]


def test_decode_pem_files_without_blocks_is_empty():
    assert certs.decode_pem_files(b"no pem data here") == []


def test_parse_certificate_chain_classifies_certificates(tmp_path, pki):
    path = tmp_path / "chain.pem"
    path.write_bytes(_pem(pki["server"], pki["inter"], pki["root"]))
    chain = certs.parse_certificate_chain(path)
    assert chain.server == pki["server"]
    assert chain.intermediates == [pki["inter"]]
    assert chain.root == pki["root"]


def test_parse_certificate_chain_without_root(tmp_path, pki):
    path = tmp_path / "chain.pem"
    path.write_bytes(_pem(pki["server"], pki["inter"]))
    chain = certs.parse_certificate_chain(path)
    assert chain.root is None
    assert chain.server == pki["server"]


def test_parse_certificate_chain_requires_server(tmp_path, pki):
    path = tmp_path / "chain.pem"
    path.write_bytes(_pem(pki["inter"], pki["root"]))
    with pytest.raises(certs.CertificateError, match="server portion"):
        certs.parse_certificate_chain(path)


def test_parse_certificate_chain_missing_file(tmp_path):
    with pytest.raises(certs.CertificateError, match="failed to read the certificate"):
        certs.parse_certificate_chain(tmp_path / "missing.pem")


def test_parse_certificate_chain_rejects_bad_der(tmp_path):
    path = tmp_path / "bad.pem"
    path.write_bytes(b"-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n")
    with pytest.raises(certs.CertificateError, match="error parsing certificates"):
        certs.parse_certificate_chain(path)


def test_verify_ssl_host_match_contained_hostname(pki):
    assert certs.verify_ssl_host_match(pki["server"], "wb") is False


def test_verify_ssl_host_match_mismatch(pki):
    assert certs.verify_ssl_host_match(pki["server"], "elsewhere") is True


def test_verify_ssl_host_match_needs_dns_names(pki):
    with pytest.raises(certs.CertificateError):
        certs.verify_ssl_host_match(pki["root"], "wb")


def test_verify_trusted_certificate_with_trusted_root(monkeypatch, tmp_path, pki):
    _trust_only(monkeypatch, tmp_path, pki["root"])
    assert certs.verify_trusted_certificate(pki["server"], [pki["inter"]]) is True


def test_verify_trusted_certificate_missing_intermediate(monkeypatch, tmp_path, pki):
    _trust_only(monkeypatch, tmp_path, pki["root"])
    assert certs.verify_trusted_certificate(pki["server"], []) is False


def test_verify_trusted_certificate_unknown_root(monkeypatch, tmp_path, pki):
    other_key = ec.generate_private_key(ec.SECP256R1())
    other_root = _make_cert("Other Root", other_key, "Other Root", other_key, True)
    _trust_only(monkeypatch, tmp_path, other_root)
    assert certs.verify_trusted_certificate(pki["server"], [pki["inter"]]) is False


def test_verify_trusted_certificate_expired(monkeypatch, tmp_path, pki):
    _trust_only(monkeypatch, tmp_path, pki["root"])
    assert certs.verify_trusted_certificate(pki["expired"], []) is False


def test_prompt_ssl_defaults_to_no(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "")
    assert certs.prompt_ssl() is False


def test_prompt_add_root_defaults_to_yes(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "")
    assert certs.prompt_add_root_ca_to_trust_store() is True


def test_prompt_ssl_file_path_returns_answer(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "/srv/certs/server.pem")
    assert certs.prompt_ssl_file_path() == "/srv/certs/server.pem"


def test_prompt_ssl_key_file_path_interrupted(monkeypatch):
    def _eof(prompt):
        raise EOFError

    monkeypatch.setattr("builtins.input", _eof)
    with pytest.raises(PromptError, match="SSL cert key path"):
        certs.prompt_ssl_key_file_path()


def test_certificate_chain_defaults(pki):
    chain = certs.CertificateChain(server=pki["server"])
    assert chain.intermediates == []
    assert chain.root is None