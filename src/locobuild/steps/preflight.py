"""Toolchain preflight step.

CONTRACT
- Inputs: ArtifactStore, BuildConfig
- Outputs (required):
  - PreflightResult(toolchain_path, installed, commands)
  - logs/preflight.<n>.stdout.log / .stderr.log for each package-manager command
- Invariants:
  - Toolchain already on PATH -> no command is run (host package state untouched)
  - Package-manager commands run in order; the first failure stops the step
  - The toolchain is re-resolved after installing
- Failure:
  - Raises ToolchainError if the package manager is missing, a command fails,
    or the toolchain is still missing afterwards
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from ..artifacts.store import ArtifactStore
from ..config import BuildConfig
from ..errors import ToolchainError
from ..util.shell import run_cmd, which

# package manager -> (refresh args or None, install args, needs root)
_MANAGERS: dict[str, tuple[list[str] | None, list[str], bool]] = {
    "apt-get": (["update"], ["install", "-y"], True),
    "apt": (["update"], ["install", "-y"], True),
    "dnf": (None, ["install", "-y"], True),
    "yum": (None, ["install", "-y"], True),
    "zypper": (None, ["--non-interactive", "install"], True),
    "pacman": (None, ["-S", "--noconfirm"], True),
    "apk": (None, ["add"], True),
    "brew": (None, ["install"], False),
}


def _is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


def install_commands(cfg: BuildConfig, manager_path: str) -> list[list[str]]:
    """Package-manager argv lists that install the configured packages."""
    refresh, install, needs_root = _MANAGERS.get(
        Path(cfg.package_manager).name, (None, ["install", "-y"], True)
    )
    prefix = [cfg.escalation] if needs_root and cfg.escalation and not _is_root() else []
    cmds = []
    if refresh is not None:
        cmds.append([*prefix, manager_path, *refresh])
    cmds.append([*prefix, manager_path, *install, *cfg.packages])
    return cmds


@dataclass(frozen=True)
class PreflightResult:
    toolchain_path: str
    installed: bool
    commands: list[str] = field(default_factory=list)


@dataclass
class Preflight:
    name: str = "preflight"

    def run(self, store: ArtifactStore, cfg: BuildConfig) -> PreflightResult:
        found = which(cfg.toolchain)
        if found:
            logger.info(f"{cfg.toolchain} already installed at {found}")
            return PreflightResult(toolchain_path=found, installed=False)

        logger.warning(f"{cfg.toolchain} not found on PATH; installing with {cfg.package_manager}")
        manager = which(cfg.package_manager)
        if manager is None:
            raise ToolchainError(
                f"{cfg.toolchain} is not installed and package manager "
                f"'{cfg.package_manager}' is not available on this host"
            )

        ran: list[str] = []
        for i, argv in enumerate(install_commands(cfg, manager)):
            stdout_path, stderr_path = store.log_paths(f"{self.name}.{i}")
            res = run_cmd(
                argv,
                cwd=cfg.project_root,
                stdout_path=stdout_path,
                stderr_path=stderr_path,
                timeout_s=cfg.timeout_s,
            )
            ran.append(res.cmd)
            if not res.ok:
                raise ToolchainError(
                    f"Installing {cfg.toolchain} failed: `{res.cmd}` exited {res.returncode}",
                    details=res.stderr_tail(),
                )

        found = which(cfg.toolchain)
        if not found:
            raise ToolchainError(
                f"{cfg.toolchain} still not found on PATH after installing "
                f"{', '.join(cfg.packages)}"
            )
        logger.info(f"{cfg.toolchain} installed at {found}")
        return PreflightResult(toolchain_path=found, installed=True, commands=ran)
