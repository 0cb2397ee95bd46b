import pytest

from wbi import cmdlog
from wbi.wbconfig import (
    ConfigLineExistsError,
    clean_server_url,
    write_connect_url_config,
    write_jupyter_config,
    write_repo_config,
    write_ssl_config,
)


@pytest.fixture(autouse=True)
def command_log(tmp_path):
    log = cmdlog.CommandLog(tmp_path / "commands.sh")
    cmdlog.set_command_log(log)
    yield log
    cmdlog.set_command_log(None)


def test_cran_repo_written_to_new_file(tmp_path, command_log):
    conf = tmp_path / "repos.conf"
    write_repo_config("https://pm.example.com/cran", "cran", conf)
    assert conf.read_text() == "CRAN=https://pm.example.com/cran\n"
    assert f'echo "CRAN=https://pm.example.com/cran" >> {conf}' in command_log.path.read_text()


def test_cran_repo_refuses_second_entry(tmp_path):
    conf = tmp_path / "repos.conf"
    conf.write_text("CRAN=https://cran.example.com\n")
    with pytest.raises(ConfigLineExistsError, match="repos.conf"):
        write_repo_config("https://pm.example.com/cran", "cran", conf)
    assert conf.read_text() == "CRAN=https://cran.example.com\n"


def test_pypi_repo_written_and_duplicate_refused(tmp_path):
    conf = tmp_path / "pip.conf"
    url = "https://pm.example.com/pypi/latest/simple"
    write_repo_config(url, "pypi", conf)
    assert conf.read_text().splitlines() == ["[global]", "index-url=" + url]
    with pytest.raises(ConfigLineExistsError, match="pip.conf"):
        write_repo_config(url, "pypi", conf)


def test_unknown_source_writes_nothing(tmp_path):
    conf = tmp_path / "other.conf"
    write_repo_config("https://pm.example.com", "conda", conf)
    assert not conf.exists()


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("https://workbench.example.com/", "workbench.example.com"),
        ("http://workbench.example.com", "workbench.example.com"),
        ("workbench.example.com/", "workbench.example.com"),
        ("workbench.example.com", "workbench.example.com"),
    ],
)
def test_clean_server_url(raw, expected):
    assert clean_server_url(raw) == expected


def test_clean_server_url_rejects_empty():
    with pytest.raises(ValueError):
        clean_server_url("")


def test_ssl_config_replaces_callback_address(tmp_path):
    conf = tmp_path / "rserver.conf"
    conf.write_text("www-port=80\nlauncher-sessions-callback-address=http://old.example.com\n")
    write_ssl_config("/etc/ssl/cert.pem", "/etc/ssl/key.pem", "https://wb.example.com/", conf)
    assert conf.read_text().splitlines() == [
        "www-port=80",
        "",
        "launcher-sessions-callback-address=https://wb.example.com",
        "",
        "ssl-enabled=1",
        "ssl-certificate=/etc/ssl/cert.pem",
        "ssl-certificate-key=/etc/ssl/key.pem",
    ]


def test_ssl_config_refused_when_ssl_present(tmp_path):
    conf = tmp_path / "rserver.conf"
    conf.write_text("ssl-enabled=0\n")
    with pytest.raises(ConfigLineExistsError, match="rserver.conf"):
        write_ssl_config("c.pem", "k.pem", "wb.example.com", conf)
    assert conf.read_text() == "ssl-enabled=0\n"


def test_ssl_config_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        write_ssl_config("c.pem", "k.pem", "wb.example.com", tmp_path / "absent.conf")


def test_connect_url_config(tmp_path):
    conf = tmp_path / "rsession.conf"
    write_connect_url_config("https://connect.example.com", conf)
    assert conf.read_text() == "default-rsconnect-server=https://connect.example.com\n"
    with pytest.raises(ConfigLineExistsError, match="rsession.conf"):
        write_connect_url_config("https://other.example.com", conf)


def test_jupyter_config_replaces_commented_default(tmp_path):
    conf = tmp_path / "jupyter.conf"
    conf.write_text("jupyter-exe-args=none\n# jupyter-exe=/usr/local/bin/jupyter\n")
    write_jupyter_config("/opt/python/bin/jupyter", conf)
    assert conf.read_text().splitlines() == [
        "jupyter-exe-args=none",
        "jupyter-exe=/opt/python/bin/jupyter",
    ]