from __future__ import annotations

"""Task-graph pipeline for preflight, build, install and clean.

CONTRACT
- Inputs: BuildConfig, target name, optional reporter callback
- Outputs (required):
  - PipelineResult (status, target, run_dir, tasks, error)
  - Run record in <project>/.locobuild/: STATUS.json, events.jsonl, logs/
- Invariants:
  - Prerequisites run before the task that requires them, each task at most once
  - The first failing task halts the run; later tasks are recorded as SKIPPED
  - install requires build unless build_first=False
  - all requires preflight only when cfg.preflight is set
  - Always writes STATUS.json; unexpected exceptions also write CRASH.txt
- Failure:
  - Step failures are returned in PipelineResult(status="FAIL"), never raised
  - Unknown targets and dependency cycles raise ValueError
"""

import time
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from loguru import logger

from .artifacts.schemas import RunStatus, TaskRecord
from .artifacts.store import CRASH_FILE, EVENTS_FILE, ArtifactStore
from .config import BuildConfig
from .errors import LocobuildError
from .steps.build import Build
from .steps.clean import Clean
from .steps.install import Install
from .steps.preflight import Preflight
from .util.events import EventLog

TARGETS = ("preflight", "build", "install", "clean", "all")

Action = Callable[[ArtifactStore, BuildConfig], str]
Reporter = Callable[[str, str, str], None]


@dataclass(frozen=True)
class Task:
    name: str
    action: Action | None
    requires: tuple[str, ...] = ()


@dataclass(frozen=True)
class PipelineResult:
    status: str
    target: str
    run_dir: Path
    tasks: list[TaskRecord] = field(default_factory=list)
    error: LocobuildError | None = None

    @property
    def ok(self) -> bool:
        return self.status == "OK"

    @property
    def exit_code(self) -> int:
        return self.error.exit_code if self.error else 0


def _preflight(store: ArtifactStore, cfg: BuildConfig) -> str:
    res = Preflight().run(store, cfg)
    if res.installed:
        return f"installed {cfg.toolchain} at {res.toolchain_path}"
    return f"{cfg.toolchain} already installed at {res.toolchain_path}"


def _build(store: ArtifactStore, cfg: BuildConfig) -> str:
    return str(Build().run(store, cfg))


def _install(store: ArtifactStore, cfg: BuildConfig) -> str:
    return str(Install().run(store, cfg))


def _clean(store: ArtifactStore, cfg: BuildConfig) -> str:
    Clean().run(store, cfg)
    return "build artifacts removed"


def task_graph(cfg: BuildConfig, *, build_first: bool = True) -> dict[str, Task]:
    all_requires = ("preflight", "install") if cfg.preflight else ("install",)
    tasks = [
        Task("preflight", _preflight),
        Task("build", _build),
        Task("install", _install, ("build",) if build_first else ()),
        Task("clean", _clean),
        Task("all", None, all_requires),
    ]
    return {t.name: t for t in tasks}


def plan(target: str, graph: dict[str, Task]) -> list[str]:
    """Order target and its prerequisites so every task follows what it requires."""
    if target not in graph:
        raise ValueError(f"Unknown target: {target} (expected one of {', '.join(graph)})")

    order: list[str] = []
    visiting: set[str] = set()

    def visit(name: str) -> None:
        if name in order:
            return
        if name in visiting:
            raise ValueError(f"Dependency cycle at task: {name}")
        if name not in graph:
            raise ValueError(f"Unknown prerequisite: {name}")
        visiting.add(name)
        for dep in graph[name].requires:
            visit(dep)
        visiting.discard(name)
        order.append(name)

    visit(target)
    return order


def _noop_reporter(task: str, phase: str, detail: str) -> None:
    pass


def run_target(
    cfg: BuildConfig,
    target: str,
    *,
    build_first: bool = True,
    reporter: Reporter | None = None,
) -> PipelineResult:
    """Run target with its prerequisites, halting at the first failure.

    reporter(task, phase, detail) is called with phase "start", "ok" or "fail".
    """
    report = reporter or _noop_reporter
    graph = task_graph(cfg, build_first=build_first)
    order = [name for name in plan(target, graph) if graph[name].action is not None]

    store = ArtifactStore(cfg.run_dir())
    store.ensure()
    ev = EventLog(store.path(EVENTS_FILE), target=target)

    status = RunStatus(
        target=target, status="RUNNING", message="starting", project_root=str(cfg.project_root)
    )
    store.write_status(status)
    ev.emit(action="run_start", tasks=order)
    logger.info(f"target {target}: {' -> '.join(order)}")

    records: list[TaskRecord] = []
    error: LocobuildError | None = None

    for i, name in enumerate(order):
        report(name, "start", "")
        ev.emit(task=name, action="start")
        start_t = time.time()
        try:
            detail = graph[name].action(store, cfg)
        except LocobuildError as e:
            error = e
        except Exception as e:
            tb = traceback.format_exc()
            store.write_text(CRASH_FILE, tb)
            logger.exception(f"task {name} crashed")
            error = LocobuildError(f"Unexpected error in {name}: {e}", details=tb)

        elapsed = time.time() - start_t
        if error is None:
            records.append(TaskRecord(name=name, status="OK", elapsed_s=elapsed, details=detail))
            ev.emit(task=name, action="ok", elapsed_s=round(elapsed, 3))
            report(name, "ok", detail)
            continue

        logger.error(f"task {name} failed: {error.message}")
        records.append(
            TaskRecord(
                name=name,
                status="FAIL",
                exit_code=error.exit_code,
                elapsed_s=elapsed,
                details="\n".join(filter(None, [error.message, error.details])),
            )
        )
        records.extend(TaskRecord(name=rest, status="SKIPPED") for rest in order[i + 1:])
        ev.emit(task=name, action="fail", message=error.message)
        report(name, "fail", error.message)
        break

    final = "FAIL" if error else "OK"
    store.write_status(
        RunStatus(
            target=target,
            status=final,
            message=error.message if error else "done",
            project_root=str(cfg.project_root),
            tasks=records,
        )
    )
    ev.emit(action="run_end", status=final)
    return PipelineResult(
        status=final, target=target, run_dir=store.run_dir, tasks=records, error=error
    )
