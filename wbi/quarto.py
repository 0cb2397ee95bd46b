"""Quarto release discovery, installation and PATH symlinking."""

from __future__ import annotations

import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import requests

from wbi import cmdlog
from wbi.console import PromptError, confirm, print_and_log_info, select_many, select_one
from wbi.osinfo import OperatingSystem
from wbi.system import (
    CommandError,
    run_command,
    run_command_and_capture_output,
    verify_file_exists,
)

QUARTO_RELEASES_URL = "https://api.github.com/repos/quarto-dev/quarto-cli/releases"
QUARTO_DOWNLOAD_URL = "https://github.com/quarto-dev/quarto-cli/releases/download"
BUNDLED_QUARTO_PATH = "/usr/lib/rstudio-server/bin/quarto/bin/quarto"
QUARTO_SYMLINK_PATH = "/usr/local/bin/quarto"
QUARTO_BASE_DIR = "/opt/quarto"

_RELEASE_PAGES = range(1, 5)
_TIMEOUT = 30


class QuartoError(Exception):
    """Raised when Quarto versions cannot be retrieved, installed or linked."""


def scan_for_bundled_quarto_version() -> str:
    """Return the output of ``quarto --version`` for the Workbench bundled Quarto."""
    try:
        return run_command_and_capture_output(
            BUNDLED_QUARTO_PATH + " --version", False, 0, False
        )
    except CommandError as exc:
        raise QuartoError(f"issue finding Quarto version: {exc}") from exc


def _bundled_quarto_exists() -> bool:
    try:
        os.stat(BUNDLED_QUARTO_PATH)
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise QuartoError(f"issue checking for bundled Quarto version: {exc}") from exc
    return True


def _quarto_symlink_exists() -> bool:
    if not verify_file_exists(QUARTO_SYMLINK_PATH):
        return False
    print_and_log_info(
        f"\nAn existing Quarto symlink has been detected ({QUARTO_SYMLINK_PATH})"
    )
    return True


def _set_quarto_symlink(quarto_path: str, display: bool) -> None:
    command = f"ln -s {quarto_path} {QUARTO_SYMLINK_PATH}"
    try:
        run_command(command, display, 0, True)
    except CommandError as exc:
        raise QuartoError(
            f"error setting Quarto symlink with the command '{command}': {exc}"
        ) from exc


def check_and_set_quarto_symlink(quarto_path: str) -> None:
    """Symlink ``quarto_path`` onto PATH unless a Quarto symlink already exists."""
    if _quarto_symlink_exists():
        print_and_log_info("Quarto symlink already exist, skipping symlink creation")
        return
    _set_quarto_symlink(quarto_path, True)


def _fetch_release_page(page: int) -> list[Any]:
    try:
        response = requests.get(
            QUARTO_RELEASES_URL,
            params={"per_page": 100, "page": page},
            timeout=_TIMEOUT,
        )
    except requests.RequestException as exc:
        raise QuartoError(f"error retrieving Quarto releases page {page}") from exc
    try:
        releases = response.json()
    except ValueError as exc:
        raise QuartoError(f"error decoding Quarto releases page {page}") from exc
    if not isinstance(releases, list):
        raise QuartoError(f"error decoding Quarto releases page {page}")
    return releases


def retrieve_valid_quarto_versions() -> list[str]:
    """Names of all non-prerelease Quarto releases, newest first."""
    with ThreadPoolExecutor(max_workers=len(_RELEASE_PAGES)) as pool:
        pages = list(pool.map(_fetch_release_page, _RELEASE_PAGES))

    versions = []
    for releases in pages:
        for release in releases:
            if not isinstance(release, dict):
                raise QuartoError("error decoding Quarto release information")
            if not release.get("prerelease", False):
                versions.append(release.get("name") or "")
    return versions


def validate_quarto_versions(quarto_versions: list[str]) -> None:
    """Raise QuartoError if any requested version is not a released Quarto version."""
    available = set(retrieve_valid_quarto_versions())
    for version in quarto_versions:
        if version not in available:
            raise QuartoError(f"version {version} is not a valid Quarto version")


def generate_quarto_install_url(quarto_version: str, os_type: OperatingSystem) -> str:
    """Download URL of the Quarto tarball for ``quarto_version``."""
    bare = quarto_version.replace("v", "")
    platform = "linux-rhel7-amd64" if os_type is OperatingSystem.REDHAT7 else "linux-amd64"
    return f"{QUARTO_DOWNLOAD_URL}/{quarto_version}/quarto-{bare}-{platform}.tar.gz"


def _download_quarto(url: str, version: str) -> Path:
    print_and_log_info(f"Downloading Quarto Version: {version} installer from: {url}")
    filename = f"quarto-{version}-linux-amd64.tar.gz"
    try:
        response = requests.get(url, timeout=_TIMEOUT, stream=True)
    except requests.RequestException as exc:
        raise QuartoError(f"error downloading {filename} installer") from exc
    with response:
        if response.status_code != 200:
            raise QuartoError(f"error retrieving {filename} installer")
        with tempfile.NamedTemporaryFile(suffix="_" + filename, delete=False) as handle:
            try:
                for chunk in response.iter_content(chunk_size=65536):
                    handle.write(chunk)
            except (requests.RequestException, OSError) as exc:
                handle.close()
                os.unlink(handle.name)
                raise QuartoError(f"error downloading {filename} installer") from exc
            return Path(handle.name)


def _install_quarto(archive: Path, version: str) -> None:
    target = Path(QUARTO_BASE_DIR) / version
    try:
        target.mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError as exc:
        raise QuartoError(f"error creating directory: {exc}") from exc

    command = f'tar -zxvf "{archive}" -C "{target}" --strip-components=1'
    try:
        run_command(command, False, 0, False)
    except CommandError as exc:
        raise QuartoError(f"the command '{command}' failed to run: {exc}") from exc
    print_and_log_info(f"\nQuarto version {version} successfully installed!\n")


def download_and_install_quarto(quarto_version: str, os_type: OperatingSystem) -> None:
    """Download one Quarto release and unpack it under the Quarto base directory."""
    url = generate_quarto_install_url(quarto_version, os_type)
    archive = _download_quarto(url, quarto_version)
    try:
        _install_quarto(archive, quarto_version)
    finally:
        archive.unlink(missing_ok=True)

    quarto_path = f"{QUARTO_BASE_DIR}/{quarto_version}"
    cmdlog.info("curl -o quarto.tar.gz -L " + url)
    cmdlog.info("mkdir -p " + quarto_path)
    cmdlog.info(f'tar -zxvf quarto.tar.gz -C "{quarto_path}" --strip-components=1')
    cmdlog.info("rm quarto.tar.gz")


def download_and_install_quarto_versions(
    quarto_versions: list[str], os_type: OperatingSystem
) -> None:
    """Install each of ``quarto_versions`` in turn."""
    for version in quarto_versions:
        try:
            download_and_install_quarto(version, os_type)
        except QuartoError as exc:
            raise QuartoError(f"issue installing Quarto version: {exc}") from exc


def quarto_versions_to_paths(quarto_versions: list[str]) -> list[str]:
    """Paths of the quarto binaries installed for ``quarto_versions``."""
    return [f"{QUARTO_BASE_DIR}/{version}/bin/quarto" for version in quarto_versions]


def _quarto_symlink_prompt() -> bool:
    try:
        return confirm(
            "Would you like to symlink a Quarto version to make it available on PATH? "
            "This is recommended so Workbench can default to this version of Quarto in "
            'each of the IDEs and users can type "quarto" in the terminal.',
            True,
        )
    except PromptError as exc:
        raise PromptError("there was an issue with the symlink Quarto prompt") from exc


def _quarto_location_symlink_prompt(quarto_paths: list[str]) -> str:
    try:
        target = select_one("Select a Quarto binary to symlink:", quarto_paths)
    except PromptError as exc:
        raise PromptError(
            "there was an issue with the Quarto selection prompt for symlink"
        ) from exc
    if not target:
        raise QuartoError("no Quarto binary selected to be symlinked")
    return target


def _prompt_and_set_quarto_symlink(quarto_paths: list[str]) -> None:
    if not _quarto_symlink_prompt():
        return
    choice = _quarto_location_symlink_prompt(quarto_paths)
    _set_quarto_symlink(choice, True)
    print_and_log_info(
        f"\n {choice} has been successfully symlinked and will be available "
        "on the default system PATH.\n"
    )


def _check_prompt_and_set_quarto_symlinks(quarto_paths: list[str]) -> None:
    already_linked = _quarto_symlink_exists()
    if quarto_paths and not already_linked:
        _prompt_and_set_quarto_symlink(quarto_paths)


def prompt_quarto_install(bundled_version: str) -> bool:
    """Ask whether to install Quarto, mentioning the bundled version if there is one."""
    if bundled_version == "":
        message = "Would you like to install Quarto?"
    else:
        message = (
            f"Workbench bundles Quarto version {bundled_version} "
            "Would you like to install any different version(s)?"
        )
    try:
        return confirm(message, False)
    except PromptError as exc:
        raise PromptError(
            "there was an issue with Quarto install prompt question"
        ) from exc


def quarto_select_versions_prompt(available_quarto_versions: list[str]) -> list[str]:
    """Ask which Quarto versions to install; the newest is preselected."""
    versions = list(available_quarto_versions)
    try:
        return select_many(
            "Which version(s) of Quarto would you like to install?",
            versions,
            versions[0] if versions else None,
        )
    except PromptError as exc:
        raise PromptError(
            "there was an issue with the Quarto versions selection prompt"
        ) from exc


def scan_and_handle_quarto_versions(os_type: OperatingSystem) -> None:
    """Offer to install extra Quarto versions and symlink one onto PATH."""
    bundled = _bundled_quarto_exists()
    bundled_version = scan_for_bundled_quarto_version() if bundled else ""

    if not prompt_quarto_install(bundled_version):
        _set_quarto_symlink(BUNDLED_QUARTO_PATH, False)
        return

    print("Retrieving available Quarto versions...", end="", flush=True)
    valid_versions = retrieve_valid_quarto_versions()
    chosen = quarto_select_versions_prompt(valid_versions)
    if not chosen:
        _set_quarto_symlink(BUNDLED_QUARTO_PATH, True)
        return

    download_and_install_quarto_versions(chosen, os_type)
    quarto_paths = quarto_versions_to_paths(chosen)
    if bundled:
        quarto_paths.append(BUNDLED_QUARTO_PATH)
    _check_prompt_and_set_quarto_symlinks(quarto_paths)