# wbi

`wbi` is a library of steps for installing and configuring Posit Workbench
on a supported Linux server, together with the tools that usually go with
it. It detects the operating system and runs the shell commands each step
needs. Commands that change the system are also appended to a shell script,
so a setup can be reviewed or repeated later.

## Supported systems

- Ubuntu 20.04 and 22.04
- Red Hat Enterprise Linux 7, 8 and 9

Most steps change system state. They install packages, edit files under
`/etc` and restart services, so they must run as root.

## Modules

| Module | Purpose |
| --- | --- |
| `wbi.osinfo` | `OperatingSystem`, `detect_os` (reads `/etc/redhat-release` or `/etc/issue`), `os_from_code` (`U20`, `U22`, `RH7`, `RH8`, `RH9`; anything else gives RHEL 8) and `user_lookup`. |
| `wbi.console` | `print_and_log_info` and the terminal prompts `confirm`, `ask_text`, `select_one` and `select_many`. |
| `wbi.cmdlog` | `CommandLog` and `create_command_log`, which write a `wbi-command-<timestamp>.sh` script with a header; `info`, `warn` and `error` append to the active log, created on first use unless one was set with `set_command_log`. |
| `wbi.system` | `run_command` (streams output), `run_command_and_capture_output` (returns combined output), and the file helpers `write_strings`, `delete_strings`, `check_string_exists`, `verify_file_exists` and `add_to_path`. |
| `wbi.ossetup` | Upgrades apt, installs gdebi-core, enables the CodeReady and RHEL 7 extras repositories, disables the firewall and SELinux, checks firewall and SELinux status, and checks that it runs as root. |
| `wbi.osprompt` | Questions about cloud hosting, the firewall, SELinux and prerequisites, and `prompt_and_verify_user` for a non-root test account with a home directory. |
| `wbi.workbench` | Reads the Workbench release information, installs the package, restarts, stops, starts and reports on `rstudio-server` and `rstudio-launcher`, and runs `verify-installation`. |
| `wbi.wbconfig` | Writes CRAN and PyPI repository, SSL, Posit Connect and Jupyter settings into the Workbench configuration files. |
| `wbi.quarto` | Lists released Quarto versions, downloads and unpacks them under `/opt/quarto`, and manages the `/usr/local/bin/quarto` symlink. |
| `wbi.prodrivers` | Reads the Pro Drivers release information, installs unixODBC, and backs up and extends `/etc/odbcinst.ini`. |
| `wbi.certs` | Parses a PEM certificate chain (`parse_certificate_chain`, `CertificateChain`), checks that the key matches, that the host name matches and that the system trusts the chain, and can add a root CA to the system trust store. |

## Examples

Work out the Quarto download for a release:

```python
from wbi.osinfo import OperatingSystem
from wbi.quarto import generate_quarto_install_url

print(generate_quarto_install_url("v1.3.340", OperatingSystem.REDHAT7))
# https://github.com/quarto-dev/quarto-cli/releases/download/v1.3.340/quarto-1.3.340-linux-rhel7-amd64.tar.gz
```

Find the current Workbench installer for this server:

```python
from wbi.osinfo import detect_os
from wbi.workbench import retrieve_workbench_installer_info

os_type = detect_os()
release = retrieve_workbench_installer_info()
info = release.installer_info(os_type)
print(info.version, info.url)
```

Inspect a certificate chain before enabling SSL:

```python
from wbi.certs import parse_certificate_chain

chain = parse_certificate_chain("/etc/ssl/workbench.pem")
print(chain.server.subject)
print(len(chain.intermediates), "intermediate certificate(s)")
print("root present:", chain.root is not None)
```

## Errors

Failures raise exceptions rather than returning status values:

- `UnsupportedOSError` for a platform that is not supported
- `CommandError` when a shell command exits with a non-zero status
- `ConfigLineExistsError` when a setting is already present
- `QuartoError` when a Quarto step fails
- `CertificateError` when a certificate check fails
- `NotRootError` when the installer is not running as root
- `PromptError` when an interactive question cannot be answered
- `ConnectionError` when release information cannot be downloaded

## What it does not do

- There is no command-line program; the steps are functions to be called
  from your own code.
- It does not check or configure a Posit Package Manager server, although
  `wbi.wbconfig.write_repo_config` can write a repository URL you already have.
- It does not install R or Python, nor set up Workbench licensing.

## Running the tests

Install the `test` extra and run `pytest`. The tests use `responses` in
place of network access.