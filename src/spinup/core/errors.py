"""
Error types for spinup target resolution, templating and builds.
"""

from collections.abc import Sequence
from pathlib import Path


class SpinupError(Exception):
    """Base exception for all spinup errors."""

    def __init__(self, message: str, target: str | None = None):
        self.message = message
        self.target = target
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with the target name if available."""
        if self.target:
            return f"[{self.target}] {self.message}"
        return self.message


class ConfigError(SpinupError):
    """
    Raised when configuration is missing, malformed or inconsistent.

    Examples:
    - Unknown target name
    - Shell requested for a target without a shell command
    - Directory target whose source path does not exist
    - YAML that does not match the config schema
    """

    pass


class UnsupportedLanguageError(ConfigError):
    """
    Raised when a target names a language that has no provider.

    The language is a recognized value of SupportedLanguage, so this is
    reported explicitly rather than as a generic lookup failure.
    """

    def __init__(self, language: str, available: Sequence[str] = (), target: str | None = None):
        self.language = language
        self.available = list(available)
        message = f"{language} is not a supported language"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message, target=target)


class RenderError(SpinupError):
    """
    Raised when a template cannot be rendered.

    Examples:
    - Template syntax errors
    - Undefined variables in the template context
    - Template name not registered
    """

    def __init__(self, template_name: str, reason: str, target: str | None = None):
        self.template_name = template_name
        self.reason = reason
        super().__init__(f"Failed to render {template_name}: {reason}", target=target)


class ProjectWriteError(SpinupError):
    """Raised when the project tree cannot be written or copied."""

    def __init__(self, message: str, path: Path | None = None, target: str | None = None):
        self.path = path
        super().__init__(message, target=target)


class ProcessError(SpinupError):
    """
    Raised when an external program cannot be spawned, or exits non-zero
    while its exit code is being checked.
    """

    def __init__(
        self,
        message: str,
        command: str,
        returncode: int | None = None,
        target: str | None = None,
    ):
        self.command = command
        self.returncode = returncode
        super().__init__(message, target=target)


class CacheError(SpinupError):
    """Raised when the build cache cannot be written or restored."""

    pass
