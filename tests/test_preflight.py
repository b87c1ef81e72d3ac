import pytest

from locobuild.artifacts.store import ArtifactStore
from locobuild.config import BuildConfig
from locobuild.errors import ToolchainError
from locobuild.steps import preflight as preflight_mod
from locobuild.steps.preflight import Preflight, install_commands


@pytest.fixture
def store(cfg):
    s = ArtifactStore(cfg.run_dir())
    s.ensure()
    return s


@pytest.fixture
def as_root(monkeypatch):
    monkeypatch.setattr(preflight_mod, "_is_root", lambda: True)


@pytest.fixture
def as_user(monkeypatch):
    monkeypatch.setattr(preflight_mod, "_is_root", lambda: False)


def test_toolchain_present_is_noop(store, cfg, cargo, apt_get, apt_calls):
    res = Preflight().run(store, cfg)

    assert res.installed is False
    assert res.toolchain_path == str(cargo)
    assert res.commands == []
    assert apt_calls() == []


def test_toolchain_absent_installs_and_reverifies(store, cfg, apt_get, apt_calls, fake_bin, as_root):
    assert not (fake_bin / "cargo").exists()

    res = Preflight().run(store, cfg)

    assert res.installed is True
    assert res.toolchain_path == str(fake_bin / "cargo")
    assert apt_calls() == ["update", "install -y cargo"]
    assert store.path("logs", "preflight.0.stdout.log").exists()
    assert store.path("logs", "preflight.1.stdout.log").exists()


def test_install_runs_through_escalation(store, cfg, apt_get, sudo, apt_calls, sudo_calls, as_user):
    res = Preflight().run(store, cfg)

    assert res.installed is True
    assert len(sudo_calls()) == 2
    assert sudo_calls()[1].endswith("apt-get install -y cargo")
    assert apt_calls() == ["update", "install -y cargo"]


def test_package_manager_failure_is_fatal(store, cfg, apt_get, monkeypatch, as_root):
    monkeypatch.setenv("FAKE_APT_MODE", "fail")

    with pytest.raises(ToolchainError) as exc:
        Preflight().run(store, cfg)

    assert "exited 100" in exc.value.message
    assert "Could not open lock file" in exc.value.details


def test_missing_package_manager_is_fatal(store, cfg, fake_bin):
    with pytest.raises(ToolchainError, match="not available on this host"):
        Preflight().run(store, cfg)


def test_still_missing_after_install(store, cfg, apt_get, monkeypatch, as_root):
    monkeypatch.setenv("FAKE_APT_MODE", "noop")

    with pytest.raises(ToolchainError, match="still not found"):
        Preflight().run(store, cfg)


def test_install_commands_apt(as_user):
    cfg = BuildConfig()
    assert install_commands(cfg, "/usr/bin/apt-get") == [
        ["sudo", "/usr/bin/apt-get", "update"],
        ["sudo", "/usr/bin/apt-get", "install", "-y", "cargo"],
    ]


def test_install_commands_without_escalation(as_user):
    cfg = BuildConfig(escalation="")
    assert install_commands(cfg, "apt-get")[0] == ["apt-get", "update"]


def test_install_commands_other_managers(as_user):
    dnf = BuildConfig(package_manager="dnf", packages=["cargo", "rust"])
    assert install_commands(dnf, "/usr/bin/dnf") == [
        ["sudo", "/usr/bin/dnf", "install", "-y", "cargo", "rust"],
    ]

    brew = BuildConfig(package_manager="brew", packages=["rust"])
    assert install_commands(brew, "/opt/homebrew/bin/brew") == [
        ["/opt/homebrew/bin/brew", "install", "rust"],
    ]
