"""
spinup core: target model, templating, build cache and process execution.

The resolver lives in spinup.core.resolver; it is not imported here because
it depends on the provider registry, which itself builds on this package.
"""

from .cache import BuildCache, compute_build_hash
from .errors import (
    CacheError,
    ConfigError,
    ProcessError,
    ProjectWriteError,
    RenderError,
    SpinupError,
    UnsupportedLanguageError,
)
from .language import LanguageTarget, ProjectHandle, RenderedProject, ShellSpec, Template
from .models import (
    Dependency,
    DirectoryTarget,
    InternalTarget,
    ProgramCommand,
    RepoTarget,
    SpinupConfig,
    SupportedLanguage,
    Target,
)
from .process import ProcessRunner
from .templating import TemplateRenderer

__all__ = [
    "BuildCache",
    "CacheError",
    "ConfigError",
    "Dependency",
    "DirectoryTarget",
    "InternalTarget",
    "LanguageTarget",
    "ProcessError",
    "ProcessRunner",
    "ProgramCommand",
    "ProjectHandle",
    "ProjectWriteError",
    "RenderError",
    "RenderedProject",
    "RepoTarget",
    "ShellSpec",
    "SpinupConfig",
    "SpinupError",
    "SupportedLanguage",
    "Target",
    "Template",
    "TemplateRenderer",
    "UnsupportedLanguageError",
    "compute_build_hash",
]
