"""
spinup - scaffold disposable scripting-language projects for quick REPL work.

Targets are declared in a YAML config and come in three kinds: internal
language + dependency pairings, git repositories and local directories.
"""

from ._version import get_version
from .core import (
    BuildCache,
    ConfigError,
    Dependency,
    LanguageTarget,
    ProcessRunner,
    SpinupConfig,
    SpinupError,
    SupportedLanguage,
)
from .core.config import load_config
from .core.resolver import TargetResolver

__version__ = get_version()

__all__ = [
    "__version__",
    "BuildCache",
    "ConfigError",
    "Dependency",
    "LanguageTarget",
    "ProcessRunner",
    "SpinupConfig",
    "SpinupError",
    "SupportedLanguage",
    "TargetResolver",
    "load_config",
]
