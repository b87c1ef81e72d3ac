from __future__ import annotations

"""Configuration models.

CONTRACT
- Inputs: Project path, optional YAML file (locobuild.yaml), CLI overrides
- Outputs (required):
  - Validated, frozen BuildConfig
- Invariants:
  - Defaults reproduce the stock build script: cargo, target/release/loco,
    /usr/local/bin, apt-get + sudo remediation, preflight disabled
  - Precedence: CLI overrides > file values > defaults
- Failure:
  - Raises ConfigError on YAML syntax errors, schema violations or unknown keys
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

CONFIG_FILENAME = "locobuild.yaml"


@dataclass(frozen=True)
class BuildConfig:
    project_root: Path = Path(".")
    binary_name: str = "loco"
    target_dir: str = "target/release"
    install_dir: Path = Path("/usr/local/bin")
    toolchain: str = "cargo"
    build_args: list[str] = field(default_factory=lambda: ["build", "--release"])
    clean_args: list[str] = field(default_factory=lambda: ["clean"])
    source_marker: str = "Cargo.toml"
    package_manager: str = "apt-get"
    packages: list[str] = field(default_factory=lambda: ["cargo"])
    escalation: str = "sudo"
    preflight: bool = False
    timeout_s: float | None = None
    state_dir: str = ".locobuild"

    def artifact_path(self) -> Path:
        return self.project_root / self.target_dir / self.binary_name

    def install_path(self) -> Path:
        return self.install_dir / self.binary_name

    def run_dir(self) -> Path:
        return self.project_root / self.state_dir

    def with_overrides(self, **overrides: Any) -> BuildConfig:
        """Return a copy with every non-None override applied. Path fields accept str."""
        return replace(
            self,
            **{
                k: Path(v) if k in _PATH_FIELDS else v
                for k, v in overrides.items()
                if v is not None
            },
        )


CONFIG_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "binary_name": {"type": "string", "pattern": "^[A-Za-z0-9][A-Za-z0-9_.-]*$"},
        "target_dir": {"type": "string", "minLength": 1},
        "install_dir": {"type": "string", "minLength": 1},
        "toolchain": {"type": "string", "minLength": 1},
        "build_args": {"type": "array", "items": {"type": "string"}},
        "clean_args": {"type": "array", "items": {"type": "string"}},
        "source_marker": {"type": "string", "minLength": 1},
        "package_manager": {"type": "string", "minLength": 1},
        "packages": {"type": "array", "items": {"type": "string"}, "minItems": 1},
        "escalation": {"type": "string"},
        "preflight": {"type": "boolean"},
        "timeout_s": {"type": ["number", "null"], "exclusiveMinimum": 0},
        "state_dir": {"type": "string", "minLength": 1},
    },
}

_PATH_FIELDS = {"project_root", "install_dir"}


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark else ""
        raise ConfigError(f"Invalid YAML in {path}{where}", details=str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config in {path}: top level must be a mapping")
    return data


def load_config(
    project_root: Path,
    config_file: Path | None = None,
    **overrides: Any,
) -> BuildConfig:
    """Build a BuildConfig for project_root.

    Reads config_file if given (it must exist), otherwise <project_root>/locobuild.yaml
    when present. Keyword overrides whose value is None are ignored.
    """
    import jsonschema  # lazy import

    if config_file is not None and not config_file.exists():
        raise ConfigError(f"Config file not found: {config_file}")
    path = config_file or project_root / CONFIG_FILENAME

    values: dict[str, Any] = {}
    if path.exists():
        data = _read_yaml(path)
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            loc = ".".join(str(p) for p in e.absolute_path) or "(root)"
            raise ConfigError(f"Invalid config in {path}: {loc}: {e.message}") from e
        for key, value in data.items():
            values[key] = Path(value) if key in _PATH_FIELDS else value

    cfg = BuildConfig(project_root=project_root.resolve(), **values)
    known = {f.name for f in fields(BuildConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise ConfigError(f"Unknown config override(s): {', '.join(sorted(unknown))}")
    return cfg.with_overrides(**overrides)


if __name__ == "__main__":
    import argparse
    import sys

    parser = argparse.ArgumentParser(description="Validate a locobuild.yaml")
    parser.add_argument("--project", default=".", help="Project root")
    parser.add_argument("--config", default=None, help="Path to locobuild.yaml")
    args = parser.parse_args()

    try:
        cfg = load_config(Path(args.project), Path(args.config) if args.config else None)
        print(f"Artifact: {cfg.artifact_path()}")
        print(f"Install:  {cfg.install_path()}")
    except ConfigError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(e.exit_code)
