"""Clean step.

CONTRACT
- Inputs: ArtifactStore, BuildConfig
- Outputs (required):
  - Build output removed by `<toolchain> <clean_args>`
  - logs/clean.stdout.log, logs/clean.stderr.log
- Invariants:
  - Never touches the install directory or the run record
  - Safe on an already-clean tree
- Failure:
  - Raises CleanError if the toolchain is missing or exits non-zero
"""

from __future__ import annotations

from dataclasses import dataclass

from ..artifacts.store import ArtifactStore
from ..config import BuildConfig
from ..errors import CleanError
from ..util.shell import run_cmd, which


@dataclass
class Clean:
    name: str = "clean"

    def run(self, store: ArtifactStore, cfg: BuildConfig) -> None:
        tool = which(cfg.toolchain)
        if tool is None:
            raise CleanError(f"{cfg.toolchain} not found on PATH; cannot clean")

        stdout_path, stderr_path = store.log_paths(self.name)
        res = run_cmd(
            [tool, *cfg.clean_args],
            cwd=cfg.project_root,
            stdout_path=stdout_path,
            stderr_path=stderr_path,
            timeout_s=cfg.timeout_s,
        )
        if not res.ok:
            raise CleanError(
                f"{cfg.toolchain} clean failed (exit {res.returncode})",
                details=res.stderr_tail(),
            )
