"""Interactive questions about the server and the test user account."""

from __future__ import annotations

from wbi.console import PromptError, ask_text, confirm, print_and_log_info
from wbi.osinfo import OperatingSystem, user_lookup

_FIREWALL_MESSAGE = (
    "Posit products are often blocked by local server firewalls, most organizations\n "
    "do not rely on local firewalls for server security. If your organization controls access\n "
    "to this server with an external firewall, we recommend disabling the local firewall.\n"
    " Would you like to disable the local firewall?"
)

_SELINUX_MESSAGE = (
    "SELinux is often enabled by default on Redhat Linux distributions. \n"
    "We recommend that SELinux be disabled, unless you and your organization have \n"
    "specific security requirements that require its use.\n"
    "Would you like to disable SELinux on this server?"
)

_PREREQS_MESSAGE = (
    "In order to install Workbench from start to finish, you will need the following things\n"
    "1. Internet access for this server\n"
    "2. At least one non-root local Linux user account with a home directory\n"
    "3. The versions of R, Python and Quarto you would like to install\n"
    "4. The version of R, Python and Quarto you would like to set as defaults\n"
    "5. Your Workbench license key string in this form: XXXX-XXXX-XXXX-XXXX-XXXX-XXXX-XXXX\n"
    "6. The location on this server of your SSL key and certificate files (optional)\n"
    "7. The URL and repo name for your instance of Posit Package Manager (optional)\n"
    "8. The URL for your instance of Posit Connect (optional)\n\n"
    "Please confirm that you're ready to install Workbench"
)


def _confirm(message: str, default: bool, failure: str) -> bool:
    try:
        return confirm(message, default)
    except PromptError as exc:
        raise PromptError(failure) from exc


def prompt_cloud() -> bool:
    """Ask whether Workbench runs in a public cloud."""
    return _confirm(
        "Is your instance of Workbench running in a public cloud(AWS, Azure, GCP, etc)?",
        False,
        "there was an issue with determining workbench server location",
    )


def firewall_prompt() -> bool:
    """Ask whether to disable the local firewall."""
    return _confirm(
        _FIREWALL_MESSAGE, True, "there was an issue with the disable local firewall prompt"
    )


def linux_security_prompt(os_type: OperatingSystem) -> bool:
    """Ask whether to disable SELinux; only Red Hat systems are asked."""
    if not os_type.is_redhat:
        return False
    return _confirm(
        _SELINUX_MESSAGE, True, "there was an issue with the disable local firewall prompt"
    )


def prompt_install_prereqs() -> bool:
    """Ask the user to confirm the installation prerequisites are at hand."""
    return _confirm(
        _PREREQS_MESSAGE, False, "there was an issue with the installation confirmation"
    )


def prompt_user_account() -> str:
    """Ask for a non-root local account to test the installation with."""
    try:
        return ask_text(
            "Enter a non-root local Linux account username to use for testing "
            "the Workbench installation:"
        )
    except PromptError as exc:
        raise PromptError(f"issue prompting for a local user account: {exc}") from exc


def prompt_and_verify_user() -> tuple[str, bool]:
    """Ask until a valid non-root user with a home directory is given.

    Returns the account name and whether the user chose to skip.
    """
    while True:
        account = prompt_user_account()
        if "skip" in account:
            return account, True
        try:
            entry = user_lookup(account)
        except LookupError:
            print_and_log_info(
                f'The user account "{account}" you entered cannot be found. '
                'Please try again. To skip this section type "skip".'
            )
            continue
        if entry.pw_uid == 0:
            print_and_log_info(
                f'The user account "{account}" is root. A non-root user is required. '
                'Please try again. To skip this section type "skip".'
            )
        elif not entry.pw_dir:
            print_and_log_info(
                f'The user account "{account}" does not have a home directory. '
                'A home directory is required. Please try again. '
                'To skip this section type "skip".'
            )
        else:
            print_and_log_info(f"user {account} account found and validated")
            return account, False