from __future__ import annotations

"""Template initializer.

CONTRACT
- Inputs: Project path
- Outputs (required):
  - Writes <project>/locobuild.yaml
- Invariants:
  - Does not overwrite an existing file (by default)
- Failure:
  - Raises OSError on permission issues
"""

from pathlib import Path

from .config import CONFIG_FILENAME
from .util.paths import copy_template


def write_templates(project: Path, force: bool = False) -> bool:
    """Returns True if locobuild.yaml was written."""
    return copy_template(CONFIG_FILENAME, project / CONFIG_FILENAME, overwrite=force)
