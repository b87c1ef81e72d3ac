"""Install step.

CONTRACT
- Inputs: ArtifactStore, BuildConfig
- Outputs (required):
  - <install_dir>/<binary_name>, overwritten with the artifact's bytes and mode
- Invariants:
  - The artifact is checked immediately before copying; nothing is written
    at the destination if it is missing
  - Copies in-process when the destination is writable, otherwise through
    `<escalation> cp`
- Failure:
  - Raises InstallError on missing artifact, missing install dir, disabled
    escalation, or a failed copy. No rollback.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from ..artifacts.store import ArtifactStore
from ..config import BuildConfig
from ..errors import InstallError
from ..util.paths import is_writable_dir
from ..util.shell import run_cmd


def _can_write(dest: Path) -> bool:
    if not is_writable_dir(dest.parent):
        return False
    return not dest.exists() or os.access(dest, os.W_OK)


@dataclass
class Install:
    name: str = "install"

    def run(self, store: ArtifactStore, cfg: BuildConfig) -> Path:
        src = cfg.artifact_path()
        if not src.is_file():
            raise InstallError(
                f"Build artifact not found at {src}; run `locobuild build` first"
            )
        if not cfg.install_dir.is_dir():
            raise InstallError(f"Install directory does not exist: {cfg.install_dir}")

        dest = cfg.install_path()
        if _can_write(dest):
            try:
                shutil.copy2(src, dest)
            except OSError as e:
                raise InstallError(f"Copying {src} to {dest} failed: {e}") from e
        else:
            if not cfg.escalation:
                raise InstallError(
                    f"{cfg.install_dir} is not writable and privilege escalation is disabled"
                )
            logger.info(f"{cfg.install_dir} not writable; copying with {cfg.escalation}")
            stdout_path, stderr_path = store.log_paths(self.name)
            res = run_cmd(
                [cfg.escalation, "cp", str(src), str(dest)],
                cwd=cfg.project_root,
                stdout_path=stdout_path,
                stderr_path=stderr_path,
                timeout_s=cfg.timeout_s,
            )
            if not res.ok:
                raise InstallError(
                    f"Copying {src} to {dest} with {cfg.escalation} failed (exit {res.returncode})",
                    details=res.stderr_tail(),
                )

        logger.info(f"installed {dest}")
        return dest
