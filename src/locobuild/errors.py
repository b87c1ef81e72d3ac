"""Error taxonomy for the build pipeline.

Every step failure is a LocobuildError subclass. The pipeline records the
failing task and halts; the CLI prints the message plus any diagnostic text
and exits with the error's exit code.
"""

from __future__ import annotations

# Exit codes
EXIT_FAILURE = 1
EXIT_DOCTOR_FAILED = 2


class LocobuildError(Exception):
    """Base error with a user-facing message, exit code and optional diagnostics.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI.
        details: Diagnostic text (e.g. compiler stderr tail), may be empty.
    """

    def __init__(self, message: str, *, details: str = "", exit_code: int = EXIT_FAILURE) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.exit_code = exit_code


class ToolchainError(LocobuildError):
    """Toolchain missing and could not be installed."""


class BuildError(LocobuildError):
    """Compilation failed or produced no artifact."""


class InstallError(LocobuildError):
    """Artifact missing, destination missing, or copy not permitted."""


class CleanError(LocobuildError):
    """Toolchain clean failed."""


class ConfigError(LocobuildError):
    """Invalid locobuild.yaml."""
