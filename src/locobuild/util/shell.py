"""Subprocess execution.

CONTRACT
- Inputs: Command (str or argv list), cwd, optional log paths, env, timeout
- Outputs (required):
  - CmdResult(cmd, returncode, stdout_path, stderr_path, elapsed_s, byte counts)
- Invariants:
  - stdout/stderr always land in files (temp files if no path given)
  - argv lists run with shell=False, strings with shell=True
- Failure:
  - Never raises for non-zero exit; caller inspects returncode
  - Timeout -> returncode 124, unlaunchable executable -> returncode 127
"""

from __future__ import annotations

import os
import subprocess
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

TIMEOUT_EXIT_CODE = 124
NOT_FOUND_EXIT_CODE = 127


def which(cmd: str) -> str | None:
    for p in os.environ.get("PATH", "").split(os.pathsep):
        if not p:
            continue
        candidate = Path(p) / cmd
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
    return None


@dataclass(frozen=True)
class CmdResult:
    cmd: str
    returncode: int
    stdout_path: Path
    stderr_path: Path
    elapsed_s: float
    stdout_bytes: int
    stderr_bytes: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def read_stdout(self) -> str:
        if not self.stdout_path.exists():
            return ""
        return self.stdout_path.read_text(encoding="utf-8", errors="replace")

    def read_stderr(self) -> str:
        if not self.stderr_path.exists():
            return ""
        return self.stderr_path.read_text(encoding="utf-8", errors="replace")

    def stderr_tail(self, lines: int = 20) -> str:
        """Last `lines` lines of stderr, falling back to stdout when stderr is empty."""
        text = self.read_stderr().strip() or self.read_stdout().strip()
        return "\n".join(text.splitlines()[-lines:])


def _temp_log(prefix: str) -> Path:
    tf = tempfile.NamedTemporaryFile(delete=False, prefix=prefix, suffix=".log")
    tf.close()
    return Path(tf.name)


def run_cmd(
    cmd: str | list[str],
    cwd: Path,
    stdout_path: Path | None = None,
    stderr_path: Path | None = None,
    env: dict[str, str] | None = None,
    timeout_s: float | None = None,
) -> CmdResult:
    """Run a command to completion and store stdout/stderr to files.

    Blocks until the process exits. With timeout_s=None there is no limit.
    """
    if stdout_path is None:
        stdout_path = _temp_log("locobuild_stdout_")
    if stderr_path is None:
        stderr_path = _temp_log("locobuild_stderr_")

    stdout_path.parent.mkdir(parents=True, exist_ok=True)
    stderr_path.parent.mkdir(parents=True, exist_ok=True)

    use_shell = isinstance(cmd, str)
    display = cmd if use_shell else " ".join(cmd)
    logger.debug(f"run: {display} (cwd={cwd})")

    start_t = time.time()
    with (
        stdout_path.open("w", encoding="utf-8") as out_f,
        stderr_path.open("w", encoding="utf-8") as err_f,
    ):
        try:
            p = subprocess.run(
                cmd,
                cwd=str(cwd),
                shell=use_shell,
                env=(os.environ | env) if env else None,
                stdout=out_f,
                stderr=err_f,
                timeout=timeout_s,
                text=True,
            )
            rc = p.returncode
        except subprocess.TimeoutExpired:
            rc = TIMEOUT_EXIT_CODE
            err_f.write("\nTimeout expired.\n")
        except OSError as e:
            rc = NOT_FOUND_EXIT_CODE
            err_f.write(f"\nCould not launch command: {e}\n")

    elapsed = time.time() - start_t
    logger.debug(f"exit {rc} after {elapsed:.2f}s: {display}")

    return CmdResult(
        cmd=display,
        returncode=rc,
        stdout_path=stdout_path,
        stderr_path=stderr_path,
        elapsed_s=elapsed,
        stdout_bytes=stdout_path.stat().st_size if stdout_path.exists() else 0,
        stderr_bytes=stderr_path.stat().st_size if stderr_path.exists() else 0,
    )


if __name__ == "__main__":
    import argparse
    import sys

    parser = argparse.ArgumentParser(description="Run a command and capture its output")
    parser.add_argument("--cmd", required=True, help="Command to run")
    parser.add_argument("--cwd", default=".", help="Working directory")
    parser.add_argument("--timeout", type=float, default=None, help="Timeout in seconds")
    args = parser.parse_args()

    res = run_cmd(cmd=args.cmd, cwd=Path(args.cwd), timeout_s=args.timeout)
    print(f"Exit code: {res.returncode}")
    print(f"Stdout: {res.read_stdout()}")
    print(f"Stderr: {res.read_stderr()}")
    sys.exit(res.returncode)
