"""Build step.

CONTRACT
- Inputs: ArtifactStore, BuildConfig
- Outputs (required):
  - Release artifact at <project>/<target_dir>/<binary_name>
  - logs/build.stdout.log, logs/build.stderr.log
- Invariants:
  - Runs `<toolchain> <build_args>` once at the project root; no retry
- Failure:
  - ToolchainError if the toolchain is not on PATH
  - BuildError if the source tree is missing, the compiler exits non-zero
    (details carry the stderr tail), or no artifact was produced
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from ..artifacts.store import ArtifactStore
from ..config import BuildConfig
from ..errors import BuildError, ToolchainError
from ..util.shell import run_cmd, which


@dataclass
class Build:
    name: str = "build"

    def run(self, store: ArtifactStore, cfg: BuildConfig) -> Path:
        marker = cfg.project_root / cfg.source_marker
        if not marker.exists():
            raise BuildError(f"No source tree at {cfg.project_root} (missing {cfg.source_marker})")

        tool = which(cfg.toolchain)
        if tool is None:
            raise ToolchainError(
                f"{cfg.toolchain} not found on PATH; install it or rerun with --preflight"
            )

        stdout_path, stderr_path = store.log_paths(self.name)
        res = run_cmd(
            [tool, *cfg.build_args],
            cwd=cfg.project_root,
            stdout_path=stdout_path,
            stderr_path=stderr_path,
            timeout_s=cfg.timeout_s,
        )
        if not res.ok:
            raise BuildError(
                f"Compiling {cfg.binary_name} failed (exit {res.returncode})",
                details=res.stderr_tail(),
            )

        artifact = cfg.artifact_path()
        if not artifact.is_file():
            raise BuildError(
                f"{cfg.toolchain} reported success but no artifact exists at {artifact}"
            )
        logger.info(f"built {artifact} in {res.elapsed_s:.1f}s")
        return artifact
