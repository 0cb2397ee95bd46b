"""Workbench release information, installation and service control."""

from __future__ import annotations

import json
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import requests

from wbi.console import PromptError, confirm, print_and_log_info
from wbi.osinfo import OperatingSystem, UnsupportedOSError
from wbi.system import run_command, run_command_and_capture_output

DOWNLOADS_URL = "https://www.rstudio.com/wp-content/downloads.json"

__all__ = [
    "InstallerInfo",
    "WorkbenchRelease",
    "parse_workbench_release",
    "retrieve_workbench_installer_info",
    "install_command_for_workbench",
    "install_workbench",
    "workbench_install_prompt",
    "prompt_install_verify",
    "restart_rstudio_server_and_launcher",
    "restart_rstudio_server",
    "restart_rstudio_launcher",
    "stop_rstudio_server",
    "start_rstudio_server",
    "status_rstudio_server_and_launcher",
    "status_rstudio_server",
    "status_rstudio_launcher",
    "verify_workbench",
    "verify_installation",
]


@dataclass(frozen=True)
class InstallerInfo:
    """What is needed to download and install one Workbench package."""

    basename: str = ""
    url: str = ""
    version: str = ""
    label: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InstallerInfo:
        """Build from one installer entry of the downloads document."""
        values = {}
        for key in ("basename", "url", "version", "label"):
            value = data.get(key)
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise ValueError("error unmarshalling JSON data")
            values[key] = value
        return cls(**values)


def _section(data: Any, key: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError("error unmarshalling JSON data")
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError("error unmarshalling JSON data")
    return value


@dataclass(frozen=True)
class WorkbenchRelease:
    """Stable Workbench server installers per supported platform."""

    focal: InstallerInfo = field(default_factory=InstallerInfo)
    jammy: InstallerInfo = field(default_factory=InstallerInfo)
    redhat7: InstallerInfo = field(default_factory=InstallerInfo)
    redhat8: InstallerInfo = field(default_factory=InstallerInfo)
    redhat9: InstallerInfo = field(default_factory=InstallerInfo)

    def installer_info(self, os_type: OperatingSystem) -> InstallerInfo:
        """Installer for ``os_type``."""
        table = {
            OperatingSystem.UBUNTU20: self.focal,
            OperatingSystem.UBUNTU22: self.jammy,
            OperatingSystem.REDHAT7: self.redhat7,
            OperatingSystem.REDHAT8: self.redhat8,
            OperatingSystem.REDHAT9: self.redhat9,
        }
        try:
            return table[os_type]
        except KeyError:
            raise UnsupportedOSError("operating system not supported") from None


def parse_workbench_release(data: Any) -> WorkbenchRelease:
    """Build a WorkbenchRelease from the downloads JSON document (text or decoded)."""
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except ValueError as exc:
            raise ValueError("error unmarshalling JSON data") from exc
    node = data
    for key in ("rstudio", "pro", "stable", "server", "installer"):
        node = _section(node, key)

    def info(key: str) -> InstallerInfo:
        return InstallerInfo.from_dict(_section(node, key))

    return WorkbenchRelease(
        focal=info("focal"),
        jammy=info("jammy"),
        redhat7=info("redhat7_64"),
        redhat8=info("rhel8"),
        redhat9=info("rhel9"),
    )


def retrieve_workbench_installer_info(url: str = DOWNLOADS_URL) -> WorkbenchRelease:
    """Download and parse the Workbench release information."""
    try:
        response = requests.get(url, timeout=30)
    except requests.RequestException as exc:
        raise ConnectionError("error retrieving JSON data") from exc
    if response.status_code != 200:
        raise ConnectionError("error retrieving JSON data")
    return parse_workbench_release(response.content)


def install_command_for_workbench(filepath: str, os_type: OperatingSystem) -> str:
    """Shell command that installs the Workbench package at ``filepath``."""
    if os_type.is_ubuntu:
        return "DEBIAN_FRONTEND=noninteractive gdebi -n " + filepath
    if os_type.is_redhat:
        return "yum install -y " + filepath
    raise UnsupportedOSError("operating system not supported")


def install_workbench(filepath: str, os_type: OperatingSystem) -> None:
    """Install the Workbench package at ``filepath``."""
    run_command(install_command_for_workbench(filepath, os_type), False, 0, False)
    print_and_log_info("\nWorkbench has been successfully installed!")


def workbench_install_prompt() -> bool:
    """Ask whether to install Workbench."""
    try:
        return confirm(
            "Workbench is required to be installed to continue. "
            "Would you like to install Workbench?",
            True,
        )
    except PromptError as exc:
        raise PromptError("there was an issue with the Workbench install prompt") from exc


def prompt_install_verify() -> bool:
    """Ask whether to verify the Workbench installation."""
    try:
        return confirm("Would you like to verify the installation of Workbench?", False)
    except PromptError as exc:
        raise PromptError("there was an issue with verify Workbench install prompt") from exc


def restart_rstudio_server_and_launcher() -> None:
    """Restart rstudio-server, then rstudio-launcher."""
    restart_rstudio_server()
    restart_rstudio_launcher()


def restart_rstudio_server() -> None:
    run_command("rstudio-server restart", True, 1, True)


def restart_rstudio_launcher() -> None:
    run_command("rstudio-launcher restart", True, 1, True)


def stop_rstudio_server() -> None:
    run_command("rstudio-server stop", True, 1, False)


def start_rstudio_server() -> None:
    run_command("rstudio-server start", True, 1, False)


def status_rstudio_server_and_launcher() -> None:
    """Report the status of rstudio-server, then rstudio-launcher."""
    status_rstudio_server()
    status_rstudio_launcher()


def _report_status(service: str) -> None:
    status = run_command_and_capture_output(f"{service} status | cat", True, 1, False)
    print_and_log_info(status)
    if "active (running)" in status:
        print_and_log_info(f"\n{service} status is active (running)!")
    else:
        print_and_log_info(f"\n{service} status is not active!")


def status_rstudio_server() -> None:
    _report_status("rstudio-server")


def status_rstudio_launcher() -> None:
    _report_status("rstudio-launcher")


def verify_workbench() -> bool:
    """Return whether Workbench is installed, reporting its version if so."""
    try:
        completed = subprocess.run(
            ["/bin/sh", "-c", "rstudio-server version"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError:
        return False
    if completed.returncode != 0:
        return False
    print_and_log_info("\nWorkbench installation detected: " + completed.stdout)
    return True


def verify_installation(username: str) -> None:
    """Stop the server, run verify-installation as ``username``, then start it again."""
    stop_rstudio_server()
    run_command(
        "rstudio-server verify-installation  --verify-user=" + username, True, 1, False
    )
    start_rstudio_server()