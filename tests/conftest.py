import stat
import sys
from pathlib import Path

import pytest

from locobuild.config import BuildConfig

# Fake executables are small Python scripts so tests never depend on a real
# cargo, apt-get or sudo being present on the host.

FAKE_CARGO = """#!{python}
import os, pathlib, shutil, sys

args = sys.argv[1:]
log = os.environ.get("FAKE_CARGO_LOG")
if log:
    with open(log, "a", encoding="utf-8") as f:
        f.write(" ".join(args) + "\\n")

mode = os.environ.get("FAKE_CARGO_MODE", "ok")
root = pathlib.Path.cwd()

if args[:1] == ["build"]:
    if mode == "fail":
        print("   Compiling loco v0.1.0")
        print("error[E0425]: cannot find value `lines` in this scope", file=sys.stderr)
        sys.exit(101)
    if mode == "noartifact":
        sys.exit(0)
    out = root / "target" / "release"
    out.mkdir(parents=True, exist_ok=True)
    artifact = out / "loco"
    artifact.write_bytes(b"#!/bin/sh\\necho loco\\n" + (root / "src" / "main.rs").read_bytes())
    artifact.chmod(0o755)
    print("    Finished release [optimized] target(s)", file=sys.stderr)
    sys.exit(0)

if args[:1] == ["clean"]:
    if mode == "cleanfail":
        print("error: failed to remove build artifact", file=sys.stderr)
        sys.exit(1)
    shutil.rmtree(root / "target", ignore_errors=True)
    sys.exit(0)

print("unsupported: " + " ".join(args), file=sys.stderr)
sys.exit(2)
"""

FAKE_APT = """#!{python}
import os, pathlib, shutil, sys

args = sys.argv[1:]
with open(os.environ["FAKE_APT_LOG"], "a", encoding="utf-8") as f:
    f.write(" ".join(args) + "\\n")

if os.environ.get("FAKE_APT_MODE") == "fail":
    print("E: Could not open lock file /var/lib/dpkg/lock-frontend", file=sys.stderr)
    sys.exit(100)

if args[:1] == ["install"] and os.environ.get("FAKE_APT_MODE") != "noop":
    src = pathlib.Path(os.environ["FAKE_CARGO_SRC"])
    dest = pathlib.Path(sys.argv[0]).parent / "cargo"
    shutil.copy2(src, dest)
sys.exit(0)
"""

FAKE_SUDO = """#!{python}
import os, shutil, subprocess, sys

args = sys.argv[1:]
with open(os.environ["FAKE_SUDO_LOG"], "a", encoding="utf-8") as f:
    f.write(" ".join(args) + "\\n")

if os.environ.get("FAKE_SUDO_MODE") == "deny":
    print("sudo: a password is required", file=sys.stderr)
    sys.exit(1)

if args[:1] == ["cp"]:
    shutil.copy2(args[1], args[2])
    sys.exit(0)
sys.exit(subprocess.call(args))
"""


def write_script(path: Path, template: str) -> Path:
    path.write_text(template.replace("{python}", sys.executable), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_bin(tmp_path, monkeypatch):
    """Isolated PATH containing only the fake executables tests add."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", str(bin_dir))
    monkeypatch.setenv("FAKE_CARGO_LOG", str(tmp_path / "cargo.log"))
    monkeypatch.setenv("FAKE_APT_LOG", str(tmp_path / "apt.log"))
    monkeypatch.setenv("FAKE_SUDO_LOG", str(tmp_path / "sudo.log"))

    # Kept outside PATH; fake apt-get copies it in on "install".
    stash = tmp_path / "stash"
    stash.mkdir()
    monkeypatch.setenv("FAKE_CARGO_SRC", str(write_script(stash / "cargo", FAKE_CARGO)))
    return bin_dir


@pytest.fixture
def cargo(fake_bin):
    return write_script(fake_bin / "cargo", FAKE_CARGO)


@pytest.fixture
def apt_get(fake_bin):
    return write_script(fake_bin / "apt-get", FAKE_APT)


@pytest.fixture
def sudo(fake_bin):
    return write_script(fake_bin / "sudo", FAKE_SUDO)


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "loco"
    (root / "src").mkdir(parents=True)
    (root / "Cargo.toml").write_text('[package]\nname = "loco"\nversion = "0.1.0"\n')
    (root / "src" / "main.rs").write_text('fn main() { println!("loco"); }\n')
    return root


@pytest.fixture
def install_dir(tmp_path):
    d = tmp_path / "usr-local-bin"
    d.mkdir()
    return d


@pytest.fixture
def cfg(project, install_dir):
    return BuildConfig(project_root=project, install_dir=install_dir)


def read_log(path: Path) -> list[str]:
    if not path.exists():
        return []
    return path.read_text(encoding="utf-8").splitlines()


@pytest.fixture
def cargo_calls(tmp_path):
    return lambda: read_log(tmp_path / "cargo.log")


@pytest.fixture
def apt_calls(tmp_path):
    return lambda: read_log(tmp_path / "apt.log")


@pytest.fixture
def sudo_calls(tmp_path):
    return lambda: read_log(tmp_path / "sudo.log")
