import pytest

from wbi.osinfo import (
    OperatingSystem,
    UnsupportedOSError,
    detect_os,
    os_from_code,
    user_lookup,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Red Hat Enterprise Linux Server release 7.9 (Maipo)", OperatingSystem.REDHAT7),
        ("Red Hat Enterprise Linux release 8.7 (Ootpa)", OperatingSystem.REDHAT8),
        ("Rocky Linux release 9.1 (Blue Onyx)", OperatingSystem.REDHAT9),
    ],
)
def test_detect_redhat(tmp_path, text, expected):
    (tmp_path / "redhat-release").write_text(text)
    assert detect_os("linux", tmp_path) is expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Ubuntu 22.04.1 LTS \\n \\l", OperatingSystem.UBUNTU22),
        ("Ubuntu 20.04.5 LTS \\n \\l", OperatingSystem.UBUNTU20),
    ],
)
def test_detect_ubuntu(tmp_path, text, expected):
    (tmp_path / "issue").write_text(text)
    assert detect_os("linux", tmp_path) is expected


def test_redhat_release_takes_precedence(tmp_path):
    (tmp_path / "redhat-release").write_text("release 9")
    (tmp_path / "issue").write_text("Ubuntu 22")
    assert detect_os("linux", tmp_path) is OperatingSystem.REDHAT9


def test_unsupported_redhat_release(tmp_path):
    (tmp_path / "redhat-release").write_text("Fedora release 38")
    with pytest.raises(UnsupportedOSError):
        detect_os("linux", tmp_path)


def test_unsupported_ubuntu_release(tmp_path):
    (tmp_path / "issue").write_text("Ubuntu 18.04 LTS")
    with pytest.raises(UnsupportedOSError):
        detect_os("linux", tmp_path)


def test_no_release_files(tmp_path):
    with pytest.raises(UnsupportedOSError):
        detect_os("linux", tmp_path)


def test_non_linux_platform(tmp_path):
    (tmp_path / "issue").write_text("Ubuntu 22")
    with pytest.raises(UnsupportedOSError):
        detect_os("darwin", tmp_path)


@pytest.mark.parametrize(
    "code, expected",
    [
        ("U20", OperatingSystem.UBUNTU20),
        ("U22", OperatingSystem.UBUNTU22),
        ("RH7", OperatingSystem.REDHAT7),
        ("RH8", OperatingSystem.REDHAT8),
        ("RH9", OperatingSystem.REDHAT9),
        ("anything", OperatingSystem.REDHAT8),
    ],
)
def test_os_from_code(code, expected):
    assert os_from_code(code) is expected


@pytest.mark.parametrize(
    "code, ubuntu, redhat",
    [
        ("U22", True, False),
        ("U20", True, False),
        ("RH7", False, True),
        ("RH9", False, True),
    ],
)
def test_os_families(code, ubuntu, redhat):
    os_type = os_from_code(code)
    assert os_type.is_ubuntu is ubuntu
    assert os_type.is_redhat is redhat


def test_unknown_os_has_no_family(tmp_path):
    with pytest.raises(UnsupportedOSError):
        detect_os("linux", tmp_path)
    assert OperatingSystem.UNKNOWN.is_redhat is False
    assert OperatingSystem.UNKNOWN.is_ubuntu is False


def test_user_lookup_root():
    entry = user_lookup("root")
    assert entry.pw_name == "root"
    assert entry.pw_uid == 0


def test_user_lookup_missing():
    with pytest.raises(LookupError):
        user_lookup("no-such-account-for-wbi-tests")