"""Operating system preparation: repositories, firewall, SELinux and root checks."""

from __future__ import annotations

from wbi import cmdlog
from wbi.console import print_and_log_info
from wbi.osinfo import OperatingSystem, UnsupportedOSError
from wbi.system import run_command, run_command_and_capture_output


class NotRootError(PermissionError):
    """Raised when the installer is not running as root."""


_CLOUD_CODE_READY_COMMANDS = {
    OperatingSystem.REDHAT9: (
        "dnf install -y dnf-plugins-core",
        'dnf config-manager --set-enabled "*codeready-builder-for-rhel-9-*-rpms"',
    ),
    OperatingSystem.REDHAT8: (
        "dnf install -y dnf-plugins-core",
        'dnf config-manager --set-enabled "*codeready-builder-for-rhel-8-*-rpms"',
    ),
    OperatingSystem.REDHAT7: (
        "sudo yum install -y yum-utils",
        'sudo yum-config-manager --enable "rhel-*-optional-rpms"',
    ),
}

_ON_PREM_CODE_READY_COMMANDS = {
    OperatingSystem.REDHAT9: (
        "sudo subscription-manager repos --enable codeready-builder-for-rhel-9-$(arch)-rpms\n",
    ),
    OperatingSystem.REDHAT8: (
        "sudo subscription-manager repos --enable codeready-builder-for-rhel-8-x86_64-rpms\n",
    ),
    OperatingSystem.REDHAT7: (
        'sudo subscription-manager repos --enable "rhel-*-optional-rpms"',
    ),
}


def install_gdebi_core() -> None:
    """Install gdebi-core with apt."""
    run_command("apt-get install -y gdebi-core", True, 1, True)
    print_and_log_info("\ngdebi-core has been successfully installed!")


def upgrade_apt() -> None:
    """Refresh the apt package index."""
    run_command("apt-get update", True, 1, True)
    print_and_log_info("\napt has been successfully upgraded!")


def enable_code_ready_repo(os_type: OperatingSystem, cloud_install: bool) -> None:
    """Enable the CodeReady Linux Builder (or RHEL 7 optional) repository."""
    table = _CLOUD_CODE_READY_COMMANDS if cloud_install else _ON_PREM_CODE_READY_COMMANDS
    for command in table.get(os_type, ()):
        run_command(command, True, 1, True)
    print_and_log_info(
        "\nThe CodeReady Linux Builder repository has been successfully enabled!"
    )


def enable_extra_repo() -> None:
    """Enable the RHEL 7 extras repository."""
    run_command_and_capture_output(
        "yum-config-manager --enable rhel-7-server-rhui-extras-rpms", True, 1, True
    )
    print_and_log_info("\nThe Extra Repository has been successfully enabled!")


def disable_firewall(os_type: OperatingSystem) -> None:
    """Stop and disable the local firewall."""
    if os_type.is_ubuntu:
        command = "ufw disable"
    elif os_type.is_redhat:
        command = "systemctl stop firewalld && systemctl disable firewalld"
    else:
        raise UnsupportedOSError("Unsupported OS, setting FWCommand failed")
    run_command(command, True, 1, True)
    print_and_log_info("\nThe system firewall has been successfully disabled!")


def disable_linux_security() -> None:
    """Put SELinux in permissive mode now and disable it from the next boot."""
    run_command("setenforce 0", True, 1, True)
    run_command(
        "sed -i s/^SELINUX=.*$/SELINUX=disabled/ /etc/selinux/config", True, 1, True
    )
    print_and_log_info(
        "\nThe SELinux has been successfully changed to permissive mode, "
        "and will be disabled on next reboot!"
    )


def check_firewall_status(os_type: OperatingSystem) -> bool:
    """Return whether firewalld is installed and either active or enabled."""
    if not os_type.is_redhat:
        return False
    rpm_output = run_command_and_capture_output("rpm -q firewalld || true", False, 0, False)
    if "not installed" in rpm_output:
        return False
    active = run_command_and_capture_output(
        "systemctl is-active firewalld || true", False, 0, False
    )
    if "inactive" not in active:
        return True
    enabled = run_command_and_capture_output(
        "systemctl is-enabled firewalld || true", False, 0, False
    )
    return "enabled" in enabled


def check_linux_security_status(os_type: OperatingSystem) -> bool:
    """Return whether SELinux is enforcing on a Red Hat system."""
    if not os_type.is_redhat:
        return False
    print_and_log_info("Checking to see if SELinux is active on this server")
    status = run_command_and_capture_output("getenforce", False, 0, False)
    print_and_log_info("SELinux Status: " + status)
    return "Enforcing" in status


def check_if_running_as_root() -> None:
    """Raise NotRootError unless ``id -u`` reports 0."""
    id_output = run_command_and_capture_output("id -u", False, 0, False)

    cmdlog.info('if [ "$(id -u)" -ne 0 ]; then')
    cmdlog.info('  echo "This script must be run as root" 1>&2')
    cmdlog.info("  exit 1")
    cmdlog.info("fi")

    if id_output.strip() != "0":
        raise NotRootError(
            "wbi must be as root, the command 'id -u' did not return 0. "
            "Please run wbi with sudo and try again"
        )