"""Posit Pro Drivers release information and installation steps."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import requests

from wbi.console import PromptError, confirm, print_and_log_info
from wbi.osinfo import OperatingSystem, UnsupportedOSError
from wbi.system import run_command, run_command_and_capture_output

DOWNLOADS_URL = "https://www.rstudio.com/wp-content/downloads.json"
ODBCINST_PATH = "/etc/odbcinst.ini"
_PRO_DRIVERS_MARKER = "Installer = RStudio Pro Drivers"


def _field(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key, "")
    if not isinstance(value, str):
        raise ValueError("error unmarshalling JSON data")
    return value


def _section(data: Any, key: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError("error unmarshalling JSON data")
    value = data.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError("error unmarshalling JSON data")
    return value


@dataclass(frozen=True)
class InstallerInfo:
    """Download details of one installer."""

    basename: str = ""
    url: str = ""
    version: str = ""
    label: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InstallerInfo":
        return cls(
            basename=_field(data, "basename"),
            url=_field(data, "url"),
            version=_field(data, "version"),
            label=_field(data, "label"),
        )


@dataclass(frozen=True)
class ProDrivers:
    """Pro Drivers installers per supported platform."""

    focal: InstallerInfo = field(default_factory=InstallerInfo)
    redhat7: InstallerInfo = field(default_factory=InstallerInfo)
    redhat8: InstallerInfo = field(default_factory=InstallerInfo)

    def installer_info(self, os_type: OperatingSystem) -> InstallerInfo:
        """Installer for ``os_type``; all Ubuntu releases share one, as do RHEL 8 and 9."""
        if os_type in (OperatingSystem.UBUNTU20, OperatingSystem.UBUNTU22):
            return self.focal
        if os_type is OperatingSystem.REDHAT7:
            return self.redhat7
        if os_type in (OperatingSystem.REDHAT8, OperatingSystem.REDHAT9):
            return self.redhat8
        raise UnsupportedOSError("operating system not supported")


def parse_pro_drivers(data: Any) -> ProDrivers:
    """Build ProDrivers from the downloads JSON document (text or decoded)."""
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except ValueError as exc:
            raise ValueError("error unmarshalling JSON data") from exc
    installers = _section(_section(data, "pro_drivers"), "installer")
    return ProDrivers(
        focal=InstallerInfo.from_dict(_section(installers, "focal")),
        redhat7=InstallerInfo.from_dict(_section(installers, "redhat7_64")),
        redhat8=InstallerInfo.from_dict(_section(installers, "rhel8")),
    )


def retrieve_pro_drivers_installer_info(url: str = DOWNLOADS_URL) -> ProDrivers:
    """Download and parse the Pro Drivers release information."""
    try:
        response = requests.get(url, timeout=30)
    except requests.RequestException as exc:
        raise ConnectionError("error retrieving JSON data") from exc
    if response.status_code != 200:
        raise ConnectionError("error retrieving JSON data")
    return parse_pro_drivers(response.content)


def install_unix_odbc(os_type: OperatingSystem) -> None:
    """Install unixODBC and its development headers."""
    if os_type.is_ubuntu:
        command = "apt-get -y install unixodbc unixodbc-dev"
    elif os_type.is_redhat:
        command = "yum -y install unixODBC unixODBC-devel"
    else:
        raise UnsupportedOSError("operating system not supported")
    run_command(command, True, 1, True)
    print_and_log_info("\nunixodbc and unixodbc-dev has been successfully installed!")


def backup_and_append_odbc_configuration(odbcinst_path: str | Path = ODBCINST_PATH) -> None:
    """Back up odbcinst.ini and append the sample driver configuration to it."""
    if Path(odbcinst_path).exists():
        print_and_log_info(f"Backing up {odbcinst_path} to {odbcinst_path}.bak")
        run_command(f"cp {odbcinst_path} {odbcinst_path}.bak", True, 1, True)
    run_command_and_capture_output(
        f"cat /opt/rstudio-drivers/odbcinst.ini.sample | tee -a {odbcinst_path} >/dev/null",
        True,
        1,
        True,
    )
    print_and_log_info(
        f"\nThe sample preconfigured odbcinst.ini has been appended to {odbcinst_path}"
    )


def check_existing_pro_drivers(odbcinst_path: str | Path = ODBCINST_PATH) -> bool:
    """Return whether odbcinst.ini already lists the Pro Drivers."""
    path = Path(odbcinst_path)
    if not path.exists():
        return False
    if _PRO_DRIVERS_MARKER in path.read_text(errors="replace"):
        print_and_log_info(
            f"\nExisting installation of Posit Pro Drivers detected in {odbcinst_path}."
            "\nSkipping installation of Pro Drivers."
        )
        return True
    return False


def pro_drivers_install_prompt() -> bool:
    """Ask whether to install the Pro Drivers."""
    try:
        return confirm("Would you like to install Post Pro Drivers?", True)
    except PromptError as exc:
        raise PromptError("there was an issue with the Pro Drivers install prompt") from exc