"""Shell script log of the commands the installer runs."""

from __future__ import annotations

import os
import socket
import threading
from datetime import datetime
from pathlib import Path

from wbi.osinfo import OperatingSystem, UnsupportedOSError, detect_os


class CommandLog:
    """Appends lines to a generated shell script."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _write(self, message: str) -> None:
        with self._lock, open(self.path, "a", encoding="utf-8") as handle:
            handle.write(message + "\n")

    def info(self, message: str) -> None:
        self._write(message)

    def warn(self, message: str) -> None:
        self._write(message)

    def error(self, message: str) -> None:
        self._write(message)


def _timestamp(now: datetime) -> str:
    return now.strftime("%Y%m%dT%H%M%S")


def default_log_name(now: datetime | None = None) -> str:
    """Name of the command log file for the given moment."""
    return "wbi-command-" + _timestamp(now or datetime.now()) + ".sh"


def create_command_log(
    directory: str | Path = ".",
    now: datetime | None = None,
    hostname: str | None = None,
    os_type: OperatingSystem | None = None,
) -> CommandLog:
    """Create a new command log script and write its header."""
    now = now or datetime.now()
    path = Path(directory) / default_log_name(now)
    fd = os.open(path, os.O_RDWR | os.O_CREAT | os.O_APPEND, 0o700)
    os.close(fd)

    if os_type is None:
        try:
            os_type = detect_os()
        except (UnsupportedOSError, OSError):
            os_type = OperatingSystem.UNKNOWN
    if hostname is None:
        hostname = socket.gethostname()

    comment = (
        "# This file was generated by the Workbench Installer (WBI) command line tool.\n"
        f"# Host: {hostname}, OS: {os_type}, Timestamp: {_timestamp(now)}\n"
        "# This script may contain out of date or non-functional commands if sufficient "
        "time has elapsed or if run on a different operating system/server setup."
    )
    log = CommandLog(path)
    log.info("#!/bin/bash")
    log.info(comment + "\n")
    return log


_active: CommandLog | None = None
_active_lock = threading.Lock()


def set_command_log(log: CommandLog | None) -> None:
    """Make ``log`` the log used by the module level functions."""
    global _active
    with _active_lock:
        _active = log


def _current() -> CommandLog:
    global _active
    with _active_lock:
        if _active is None:
            _active = create_command_log()
        return _active


def info(message: str) -> None:
    _current().info(message)


def warn(message: str) -> None:
    _current().warn(message)


def error(message: str) -> None:
    _current().error(message)