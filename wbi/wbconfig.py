"""Writers for the Workbench configuration files."""

from __future__ import annotations

from pathlib import Path

from wbi.system import check_string_exists, delete_strings, write_strings

REPOS_CONF = "/etc/rstudio/repos.conf"
PIP_CONF = "/etc/pip.conf"
RSERVER_CONF = "/etc/rstudio/rserver.conf"
RSESSION_CONF = "/etc/rstudio/rsession.conf"
JUPYTER_CONF = "/etc/rstudio/jupyter.conf"

_SSL_KEYS = ("ssl-enabled=", "ssl-certificate=", "ssl-certificate-key=")


class ConfigLineExistsError(Exception):
    """Raised when a setting is already present in a configuration file."""


def write_repo_config(url: str, source: str, filepath: str | Path | None = None) -> None:
    """Add a default package repository for ``source`` ("cran" or "pypi")."""
    if source == "cran":
        path = filepath or REPOS_CONF
        if check_string_exists("CRAN=", path):
            raise ConfigLineExistsError("line already exists in repos.conf")
        write_strings(["CRAN=" + url], path, 0o644, True, True)
    elif source == "pypi":
        path = filepath or PIP_CONF
        if check_string_exists("index-url=" + url, path):
            raise ConfigLineExistsError("line already exists in pip.conf")
        write_strings(["[global]", "index-url=" + url], path, 0o644, True, True)


def clean_server_url(server_url: str) -> str:
    """Drop a trailing slash and a leading http:// or https:// from a URL."""
    if not server_url:
        raise ValueError("the server URL is empty")
    if server_url.endswith("/"):
        server_url = server_url[:-1]
    for scheme in ("http://", "https://"):
        if server_url.startswith(scheme):
            return server_url[len(scheme):]
    return server_url


def _any_line_exists(keys, filepath) -> bool:
    found = False
    for key in keys:
        try:
            if check_string_exists(key, filepath):
                found = True
        except OSError:
            continue
    return found


def write_ssl_config(
    cert_path: str,
    key_path: str,
    server_url: str,
    filepath: str | Path = RSERVER_CONF,
) -> None:
    """Enable SSL in rserver.conf and point the session callback at the HTTPS URL."""
    final_server_url = "https://" + clean_server_url(server_url)

    if _any_line_exists(_SSL_KEYS, filepath):
        raise ConfigLineExistsError("at least one line already exists in rserver.conf")

    delete_strings(["launcher-sessions-callback-address"], filepath, 0o644)
    write_strings(
        [
            "",
            "launcher-sessions-callback-address=" + final_server_url,
            "",
            "ssl-enabled=1",
            "ssl-certificate=" + cert_path,
            "ssl-certificate-key=" + key_path,
        ],
        filepath,
        0o644,
        True,
        True,
    )


def write_connect_url_config(url: str, filepath: str | Path = RSESSION_CONF) -> None:
    """Set the default Posit Connect server for sessions."""
    if check_string_exists("default-rsconnect-server=", filepath):
        raise ConfigLineExistsError("line already exists in rsession.conf")
    write_strings(["default-rsconnect-server=" + url], filepath, 0o644, True, True)


def write_jupyter_config(jupyter_path: str, filepath: str | Path = JUPYTER_CONF) -> None:
    """Replace the commented default jupyter-exe with ``jupyter_path``."""
    delete_strings(["# jupyter-exe=/usr/local/bin/jupyter"], filepath, 0o644)
    write_strings(["jupyter-exe=" + jupyter_path], filepath, 0o644, True, True)