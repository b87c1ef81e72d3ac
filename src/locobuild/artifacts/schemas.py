from __future__ import annotations

"""Run record schemas.

CONTRACT
- Inputs: Pydantic models
- Outputs:
  - Validated JSON-serializable objects (STATUS.json)
- Invariants:
  - All schemas have schema_version int field
- Failure:
  - Raises ValidationError on schema mismatch
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

TaskState = Literal["OK", "FAIL", "SKIPPED"]
RunState = Literal["RUNNING", "OK", "FAIL"]


class TaskRecord(BaseModel):
    schema_version: int = 1
    name: str
    status: TaskState
    exit_code: int = 0
    elapsed_s: float = 0.0
    details: str = ""


class RunStatus(BaseModel):
    schema_version: int = 1
    target: str
    status: RunState
    message: str = ""
    project_root: str = ""
    tasks: list[TaskRecord] = Field(default_factory=list)

    def failed_task(self) -> TaskRecord | None:
        for t in self.tasks:
            if t.status == "FAIL":
                return t
        return None


def validate_run_status(data: dict[str, Any]) -> tuple[bool, RunStatus | None, str]:
    """Validate STATUS.json against schema.

    Returns: (is_valid, parsed_status, error_message)
    """
    try:
        status = RunStatus(**data)
        return True, status, ""
    except Exception as e:
        return False, None, str(e)
