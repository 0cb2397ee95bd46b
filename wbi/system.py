"""File helpers and shell command execution."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import threading
import time
from collections.abc import Iterable
from pathlib import Path

from wbi import cmdlog
from wbi.console import print_and_log_info

log = logging.getLogger("wbi")


class CommandError(Exception):
    """Raised when a shell command exits with a non-zero status."""

    def __init__(self, command: str, returncode: int, output: str = "") -> None:
        super().__init__(f"issue running the command '{command}': exit status {returncode}")
        self.command = command
        self.returncode = returncode
        self.output = output


def check_string_exists(text: str, filepath: str | Path) -> bool:
    """Return whether ``text`` occurs in the file; a missing file gives False."""
    path = Path(filepath)
    if not path.exists():
        return False
    try:
        content = path.read_text(errors="replace")
    except OSError as exc:
        raise OSError("failed to read file") from exc
    return text in content


def verify_file_exists(path: str | Path) -> bool:
    """Return whether something exists at ``path``."""
    try:
        os.stat(path)
    except OSError:
        return False
    return True


def _tee(source, sink, collected: list[str]) -> None:
    for line in source:
        collected.append(line)
        sink.write(line)
        sink.flush()
    source.close()


def run_command(
    command: str,
    display_command: bool = False,
    delay: float = 0,
    save: bool = False,
) -> None:
    """Run a shell command, streaming its output to the terminal."""
    if display_command:
        print_and_log_info("Running command: " + command)
    time.sleep(delay)

    process = subprocess.Popen(
        ["/bin/sh", "-c", command],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        errors="replace",
    )
    out: list[str] = []
    err: list[str] = []
    pumps = [
        threading.Thread(target=_tee, args=(process.stdout, sys.stdout, out)),
        threading.Thread(target=_tee, args=(process.stderr, sys.stderr, err)),
    ]
    for pump in pumps:
        pump.start()
    for pump in pumps:
        pump.join()
    returncode = process.wait()

    stdout_text, stderr_text = "".join(out), "".join(err)
    if returncode != 0:
        raise CommandError(command, returncode, stdout_text + stderr_text)
    if save:
        cmdlog.info(command)
    if stdout_text:
        log.info(stdout_text)
    if stderr_text:
        log.error(stderr_text)


def run_command_and_capture_output(
    command: str,
    display_command: bool = False,
    delay: float = 0,
    save: bool = False,
) -> str:
    """Run a shell command and return its combined stdout and stderr."""
    if display_command:
        print_and_log_info("Running command: " + command)
    time.sleep(delay)

    completed = subprocess.run(
        ["/bin/sh", "-c", command],
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
        check=False,
    )
    if completed.returncode != 0:
        raise CommandError(command, completed.returncode, completed.stdout)
    if save:
        cmdlog.info(command)
    log.info(completed.stdout)
    return completed.stdout


def _scan_lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def delete_strings(lines: Iterable[str], filepath: str | Path, perm: int = 0o644) -> None:
    """Remove every line of the file that contains any of ``lines``."""
    patterns = list(lines)
    path = Path(filepath)
    try:
        text = path.read_text(errors="replace")
    except OSError as exc:
        raise OSError(f"failed to open file: {exc}") from exc

    kept = [line for line in _scan_lines(text) if not any(p in line for p in patterns)]
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, perm)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.writelines(line + "\n" for line in kept)


def write_strings(
    lines: Iterable[str],
    filepath: str | Path,
    perm: int = 0o644,
    print_header: bool = False,
    save: bool = False,
) -> None:
    """Append lines to a file, creating it with ``perm`` if needed."""
    if print_header:
        print_and_log_info(f"\n=== Writing to the file {filepath} ===")
    try:
        fd = os.open(filepath, os.O_APPEND | os.O_CREAT | os.O_WRONLY, perm)
    except OSError as exc:
        raise OSError(f"failed to open file: {exc}") from exc
    with os.fdopen(fd, "a", encoding="utf-8") as handle:
        for data in lines:
            handle.write(data + "\n")
            if save:
                cmdlog.info(f'echo "{data}" >> {filepath}')


def add_to_path(path: str, filename: str, profile_dir: str | Path = "/etc/profile.d") -> None:
    """Prepend ``path`` to PATH through a profile.d script."""
    full_name = Path(profile_dir) / f"wbi_{filename}.sh"
    write_strings([f"PATH={path}:$PATH"], full_name, 0o644, True, True)