import pwd

import pytest

from wbi.console import PromptError
from wbi.osinfo import OperatingSystem
from wbi.osprompt import (
    firewall_prompt,
    linux_security_prompt,
    prompt_and_verify_user,
    prompt_cloud,
    prompt_install_prereqs,
    prompt_user_account,
)


def feed(monkeypatch, *answers):
    replies = iter(answers)
    asked = []

    def fake_input(prompt=""):
        asked.append(prompt)
        return next(replies)

    monkeypatch.setattr("builtins.input", fake_input)
    return asked


def interrupt(monkeypatch):
    def fake_input(prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", fake_input)


def test_prompt_cloud_default_is_no(monkeypatch):
    asked = feed(monkeypatch, "")
    assert prompt_cloud() is False
    assert "public cloud" in asked[0]


def test_prompt_cloud_yes(monkeypatch):
    feed(monkeypatch, "y")
    assert prompt_cloud() is True


def test_prompt_cloud_interrupted(monkeypatch):
    interrupt(monkeypatch)
    with pytest.raises(PromptError, match="determining workbench server location"):
        prompt_cloud()


def test_firewall_prompt_default_is_yes(monkeypatch):
    feed(monkeypatch, "")
    assert firewall_prompt() is True


def test_firewall_prompt_no(monkeypatch):
    feed(monkeypatch, "no")
    assert firewall_prompt() is False


def test_linux_security_prompt_ubuntu_not_asked(monkeypatch):
    asked = feed(monkeypatch)
    assert linux_security_prompt(OperatingSystem.UBUNTU22) is False
    assert asked == []


def test_linux_security_prompt_redhat_default(monkeypatch):
    asked = feed(monkeypatch, "")
    assert linux_security_prompt(OperatingSystem.REDHAT8) is True
    assert "SELinux" in asked[0]


def test_linux_security_prompt_interrupted(monkeypatch):
    interrupt(monkeypatch)
    with pytest.raises(PromptError):
        linux_security_prompt(OperatingSystem.REDHAT9)


def test_prompt_install_prereqs(monkeypatch):
    feed(monkeypatch, "")
    assert prompt_install_prereqs() is False
    feed(monkeypatch, "yes")
    assert prompt_install_prereqs() is True


def test_prompt_user_account_returns_text(monkeypatch):
    feed(monkeypatch, "  analyst  ")
    assert prompt_user_account() == "analyst"


def test_prompt_user_account_interrupted(monkeypatch):
    interrupt(monkeypatch)
    with pytest.raises(PromptError, match="issue prompting for a local user account"):
        prompt_user_account()


def test_prompt_and_verify_user_skip(monkeypatch):
    feed(monkeypatch, "skip")
    assert prompt_and_verify_user() == ("skip", True)


def test_prompt_and_verify_user_rejects_unknown_and_root(monkeypatch, capsys):
    asked = feed(monkeypatch, "no-such-account-for-wbi", "root", "skip")
    assert prompt_and_verify_user() == ("skip", True)
    out = capsys.readouterr().out
    assert "cannot be found" in out
    assert 'The user account "root" is root' in out
    assert len(asked) == 3


def test_prompt_and_verify_user_accepts_regular_user(monkeypatch, capsys):
    candidates = [entry.pw_name for entry in pwd.getpwall() if entry.pw_uid != 0 and entry.pw_dir]
    name = candidates[0]
    feed(monkeypatch, name)
    assert prompt_and_verify_user() == (name, False)
    assert f"user {name} account found and validated" in capsys.readouterr().out