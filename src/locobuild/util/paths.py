from __future__ import annotations

"""Path utilities.

CONTRACT
- Inputs: paths, template names
- Outputs:
  - copy_template() writes bundled resource to dest
  - is_writable_dir() answers whether the current user may create files in a dir
- Invariants:
  - copy_template never overwrites existing files (unless `overwrite=True`)
- Failure:
  - copy_template raises FileNotFoundError if resource missing
"""

import importlib.resources
import os
from pathlib import Path

from .. import templates


def read_template(template_name: str) -> str:
    return importlib.resources.files(templates).joinpath(template_name).read_text(encoding="utf-8")


def copy_template(template_name: str, dest: Path, overwrite: bool = False) -> bool:
    """Write a bundled template to dest. Returns True if the file was written."""
    if dest.exists() and not overwrite:
        return False
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(read_template(template_name), encoding="utf-8")
    return True


def is_writable_dir(path: Path) -> bool:
    return path.is_dir() and os.access(path, os.W_OK | os.X_OK)
