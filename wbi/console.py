"""Console output and interactive prompts."""

from __future__ import annotations

import logging
from collections.abc import Sequence

log = logging.getLogger("wbi")


class PromptError(Exception):
    """Raised when an interactive prompt cannot obtain an answer."""


def print_and_log_info(message: str) -> None:
    """Print a message and record it in the log."""
    print(message)
    log.info(message)


def _ask(prompt: str) -> str:
    try:
        return input(prompt)
    except (EOFError, KeyboardInterrupt) as exc:
        raise PromptError("the prompt was interrupted") from exc


def _record(message: str, answer: str) -> None:
    log.info(message)
    log.info(answer)


def confirm(message: str, default: bool = False) -> bool:
    """Ask a yes/no question; an empty answer takes the default."""
    hint = "[Y/n]" if default else "[y/N]"
    while True:
        answer = _ask(f"? {message} {hint} ").strip().lower()
        if not answer:
            result = default
        elif answer in ("y", "yes"):
            result = True
        elif answer in ("n", "no"):
            result = False
        else:
            print("Please answer yes or no.")
            continue
        _record(message, str(result).lower())
        return result


def ask_text(message: str) -> str:
    """Ask for a line of free text."""
    answer = _ask(f"? {message} ").strip()
    _record(message, answer)
    return answer


def _resolve(token: str, options: Sequence[str]) -> str | None:
    if token.isdigit() and 1 <= int(token) <= len(options):
        return options[int(token) - 1]
    if token in options:
        return token
    return None


def _show_options(message: str, options: Sequence[str], chosen: Sequence[str]) -> None:
    print(f"? {message}")
    for number, option in enumerate(options, 1):
        marker = "*" if option in chosen else " "
        print(f" {marker} {number}) {option}")


def select_one(message: str, options: Sequence[str], default: str | None = None) -> str:
    """Ask the user to pick one option by number or by name."""
    options = list(options)
    if not options:
        raise PromptError("there are no options to choose from")
    if default is not None and default not in options:
        raise ValueError(f"default {default!r} is not one of the options")
    _show_options(message, options, [default] if default is not None else [])
    while True:
        answer = _ask("Choice: ").strip()
        choice = _resolve(answer, options) if answer else default
        if choice is None:
            print("Please choose one of the listed options.")
            continue
        _record(message, choice)
        return choice


def select_many(
    message: str,
    options: Sequence[str],
    default: str | Sequence[str] | None = None,
) -> list[str]:
    """Ask the user to pick options as a comma separated list of numbers or names."""
    options = list(options)
    if not options:
        raise PromptError("there are no options to choose from")
    if default is None:
        defaults: list[str] = []
    elif isinstance(default, str):
        defaults = [default]
    else:
        defaults = list(default)
    unknown = [item for item in defaults if item not in options]
    if unknown:
        raise ValueError(f"defaults {unknown!r} are not among the options")
    _show_options(message, options, defaults)
    while True:
        answer = _ask("Choices (comma separated): ").strip()
        if not answer:
            chosen = defaults
        else:
            tokens = [token.strip() for token in answer.split(",") if token.strip()]
            resolved = [_resolve(token, options) for token in tokens]
            if None in resolved:
                print("Please choose only from the listed options.")
                continue
            chosen = resolved
        result = [option for option in options if option in chosen]
        _record(message, ", ".join(result))
        return result