"""locobuild package.

Build and install the `loco` binary from Python:

    import locobuild

    # Compile a release binary
    result = locobuild.build("/path/to/loco")

    # Compile, then copy into /usr/local/bin
    result = locobuild.install("/path/to/loco")
    if not result.ok:
        print(result.error.message)
"""

from pathlib import Path
from typing import Any, Optional

from .config import BuildConfig, load_config
from .errors import LocobuildError
from .pipeline import PipelineResult, run_target

__version__ = "0.1.0"


def _config(project: str | Path, config_file: Optional[str | Path], **overrides: Any) -> BuildConfig:
    return load_config(
        Path(project),
        Path(config_file) if config_file else None,
        **overrides,
    )


def build(project: str | Path = ".", *, config_file: Optional[str | Path] = None, **overrides: Any) -> PipelineResult:
    """Compile the release binary."""
    return run_target(_config(project, config_file, **overrides), "build")


def install(
    project: str | Path = ".",
    *,
    build_first: bool = True,
    config_file: Optional[str | Path] = None,
    **overrides: Any,
) -> PipelineResult:
    """Build (unless build_first=False), then copy the binary into the install dir."""
    return run_target(_config(project, config_file, **overrides), "install", build_first=build_first)


def clean(project: str | Path = ".", *, config_file: Optional[str | Path] = None, **overrides: Any) -> PipelineResult:
    """Remove intermediate build artifacts."""
    return run_target(_config(project, config_file, **overrides), "clean")


def run_all(
    project: str | Path = ".",
    *,
    preflight: Optional[bool] = None,
    config_file: Optional[str | Path] = None,
    **overrides: Any,
) -> PipelineResult:
    """Preflight (if enabled), build, install.

    Args:
        project: Project root containing Cargo.toml
        preflight: Force the toolchain preflight on/off (default: config value)
        config_file: Optional path to locobuild.yaml

    Returns:
        PipelineResult; step failures are reported in it, not raised.
    """
    return run_target(_config(project, config_file, preflight=preflight, **overrides), "all")


__all__ = [
    "__version__",
    "build",
    "install",
    "clean",
    "run_all",
    "BuildConfig",
    "LocobuildError",
    "PipelineResult",
    "load_config",
    "run_target",
]
