from __future__ import annotations


class SetupError(RuntimeError):
    """Unrecoverable setup failure. The CLI maps it to exit status 1."""

    exit_code = 1


class PrerequisiteError(SetupError):
    """Required host tooling (sudo, apt-get, ...) is missing."""


class CommandError(SetupError):
    """A required external command failed or timed out."""

    def __init__(self, message: str, *, argv: list[str] | None = None, returncode: int | None = None):
        super().__init__(message)
        self.argv = list(argv or [])
        self.returncode = returncode


class DownloadError(SetupError):
    """A required download could not be fetched."""


class IntegrityError(SetupError):
    """Downloaded content did not match the expected digest."""
