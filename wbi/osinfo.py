"""Operating system identification and local user lookup."""

from __future__ import annotations

import sys
from enum import Enum
from pathlib import Path


class UnsupportedOSError(Exception):
    """Raised when the running or requested operating system is not supported."""


class OperatingSystem(Enum):
    """Operating systems the installer knows about."""

    UNKNOWN = "Unknown"
    UBUNTU20 = "Ubuntu 20"
    UBUNTU22 = "Ubuntu 22"
    REDHAT7 = "RHEL 7"
    REDHAT8 = "RHEL 8"
    REDHAT9 = "RHEL 9"

    def __str__(self) -> str:
        return self.value

    @property
    def is_ubuntu(self) -> bool:
        return self in (OperatingSystem.UBUNTU20, OperatingSystem.UBUNTU22)

    @property
    def is_redhat(self) -> bool:
        return self in (
            OperatingSystem.REDHAT7,
            OperatingSystem.REDHAT8,
            OperatingSystem.REDHAT9,
        )


_REDHAT_RELEASES = (
    ("release 7", OperatingSystem.REDHAT7),
    ("release 8", OperatingSystem.REDHAT8),
    ("release 9", OperatingSystem.REDHAT9),
)

_UBUNTU_RELEASES = (
    ("Ubuntu 22", OperatingSystem.UBUNTU22),
    ("Ubuntu 20", OperatingSystem.UBUNTU20),
)

_CODES = {
    "U20": OperatingSystem.UBUNTU20,
    "U22": OperatingSystem.UBUNTU22,
    "RH7": OperatingSystem.REDHAT7,
    "RH8": OperatingSystem.REDHAT8,
    "RH9": OperatingSystem.REDHAT9,
}


def _match_release(text: str, releases) -> OperatingSystem:
    for marker, os_type in releases:
        if marker in text:
            return os_type
    raise UnsupportedOSError("unsupported operating system")


def detect_os(platform: str | None = None, etc_dir: str | Path = "/etc") -> OperatingSystem:
    """Detect the Linux distribution from the release files under ``etc_dir``."""
    platform = sys.platform if platform is None else platform
    if not platform.startswith("linux"):
        raise UnsupportedOSError("unsupported operating system")

    etc = Path(etc_dir)
    redhat_release = etc / "redhat-release"
    issue = etc / "issue"
    if redhat_release.exists():
        return _match_release(redhat_release.read_text(errors="replace"), _REDHAT_RELEASES)
    if issue.exists():
        return _match_release(issue.read_text(errors="replace"), _UBUNTU_RELEASES)
    raise UnsupportedOSError("unsupported operating system")


def user_lookup(username: str):
    """Return the password database entry for ``username``.

    Raises LookupError when the account does not exist.
    """
    import pwd

    try:
        return pwd.getpwnam(username)
    except KeyError as exc:
        raise LookupError(f"user: unknown user {username}") from exc


def os_from_code(code: str) -> OperatingSystem:
    """Map a short code such as ``U22`` or ``RH9`` to an operating system.

    Unrecognised codes fall back to RHEL 8.
    """
    return _CODES.get(code, OperatingSystem.REDHAT8)