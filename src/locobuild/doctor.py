from __future__ import annotations

"""Environment health checks.

CONTRACT
- Inputs: BuildConfig
- Outputs (required):
  - DoctorReport (ok=bool, items=[(name, status, details)])
- Invariants:
  - Checks: toolchain, package manager, source tree, build artifact,
    install dir, escalation command, installed binary
  - Does not modify system state (read-only checks)
- Failure:
  - Returns DoctorReport with ok=False if critical checks fail
    (no source tree; toolchain missing with no package manager to install it)
"""

from dataclasses import dataclass

from .config import BuildConfig
from .util.paths import is_writable_dir
from .util.shell import which


@dataclass(frozen=True)
class DoctorItem:
    name: str
    status: str
    details: str


@dataclass(frozen=True)
class DoctorReport:
    ok: bool
    items: list[DoctorItem]


def doctor_report(cfg: BuildConfig) -> DoctorReport:
    items: list[DoctorItem] = []
    ok = True

    # 1. Critical: source tree
    marker = cfg.project_root / cfg.source_marker
    if marker.exists():
        items.append(DoctorItem("source tree", "OK", str(marker)))
    else:
        ok = False
        items.append(DoctorItem("source tree", "FAIL", f"Missing {marker}"))

    # 2. Toolchain, with package manager as the fallback
    tool = which(cfg.toolchain)
    manager = which(cfg.package_manager)
    if tool:
        items.append(DoctorItem(cfg.toolchain, "OK", tool))
    elif manager:
        items.append(
            DoctorItem(cfg.toolchain, "WARN", "not found; `locobuild all --preflight` can install it")
        )
    else:
        ok = False
        items.append(DoctorItem(cfg.toolchain, "FAIL", "not found and no package manager to install it"))

    if manager:
        items.append(DoctorItem("package manager", "OK", manager))
    else:
        items.append(DoctorItem("package manager", "INFO", f"{cfg.package_manager} not found"))

    # 3. Build output
    artifact = cfg.artifact_path()
    if artifact.is_file():
        items.append(DoctorItem("build artifact", "OK", str(artifact)))
    else:
        items.append(DoctorItem("build artifact", "INFO", f"{artifact} not built yet"))

    # 4. Install destination
    if not cfg.install_dir.is_dir():
        items.append(DoctorItem("install dir", "WARN", f"{cfg.install_dir} does not exist"))
    elif is_writable_dir(cfg.install_dir):
        items.append(DoctorItem("install dir", "OK", f"{cfg.install_dir} (writable)"))
    elif cfg.escalation and which(cfg.escalation):
        items.append(
            DoctorItem("install dir", "OK", f"{cfg.install_dir} (needs {cfg.escalation})")
        )
    else:
        items.append(
            DoctorItem("install dir", "WARN", f"{cfg.install_dir} not writable and no escalation")
        )

    installed = cfg.install_path()
    if installed.is_file():
        items.append(DoctorItem("installed binary", "OK", str(installed)))
    else:
        items.append(DoctorItem("installed binary", "INFO", f"{installed} not installed"))

    return DoctorReport(ok=ok, items=items)
