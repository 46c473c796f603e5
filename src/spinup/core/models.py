"""
Configuration types for spinup.

This module contains the immutable target model: dependencies, program
commands, the three target variants and the config root that maps target
names to targets.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import ConfigError

DEFAULT_IGNORE_PREFIXES = ["node_modules", "_build", "deps", ".elixir_ls", ".git"]


def default_build_dir() -> Path:
    """Return the default cache directory (``$XDG_CACHE_HOME/spinup``)."""
    cache_home = os.environ.get("XDG_CACHE_HOME")
    base = Path(cache_home) if cache_home else Path.home() / ".cache"
    return base / "spinup"


class SupportedLanguage(str, Enum):
    """Languages an internal target may name."""

    ELIXIR = "elixir"
    NODE = "node"
    RUST = "rust"

    def __str__(self) -> str:
        return self.value


class Dependency(BaseModel):
    """
    A name/version pair passed into every template.

    Attributes:
        name: Package name as the ecosystem spells it
        version: Version string, rendered verbatim by the provider
    """

    name: str
    version: str

    model_config = ConfigDict(frozen=True)

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: Any) -> Any:
        # YAML reads `version: 1.2` as a float
        if isinstance(value, int | float):
            return str(value)
        return value


class ProgramCommand(BaseModel):
    """An external program and its arguments, spawned without a shell."""

    command: str
    args: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]

    def __str__(self) -> str:
        return " ".join(self.argv)


class InternalTarget(BaseModel):
    """A language + dependency pairing scaffolded and built locally."""

    kind: Literal["internal"] = "internal"
    language: SupportedLanguage
    deps: list[Dependency] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class RepoTarget(BaseModel):
    """A remote git repository that is cloned and then built."""

    kind: Literal["repo"] = "repo"
    source_url: str
    build_command: str
    build_args: list[str] = Field(default_factory=list)
    shell_command: ProgramCommand | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def build(self) -> ProgramCommand:
        return ProgramCommand(command=self.build_command, args=self.build_args)


class DirectoryTarget(BaseModel):
    """A local directory tree that is copied and then built."""

    kind: Literal["directory"] = "directory"
    source_path: Path
    build_command: str
    build_args: list[str] = Field(default_factory=list)
    shell_command: ProgramCommand | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("source_path")
    @classmethod
    def _expand_source(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def build(self) -> ProgramCommand:
        return ProgramCommand(command=self.build_command, args=self.build_args)


Target = Annotated[
    Union[InternalTarget, RepoTarget, DirectoryTarget],
    Field(discriminator="kind"),
]


class SpinupConfig(BaseModel):
    """
    Root of the configuration file.

    Attributes:
        default_target: Target used when none is named on the command line
        targets: Named targets
        build_dir: Directory holding hash sidecars and build snapshots
        ignore: Directory-name prefixes skipped when copying directory targets
        check_build: Treat a non-zero build exit code as a failure
        check_shell: Treat a non-zero shell exit code as a failure
    """

    default_target: str
    targets: dict[str, Target]
    build_dir: Path = Field(default_factory=default_build_dir)
    ignore: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE_PREFIXES))
    check_build: bool = True
    check_shell: bool = False

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _infer_target_kind(cls, data: Any) -> Any:
        # Older config files have no `kind`: an entry with a language is internal
        if not isinstance(data, dict):
            return data
        targets = data.get("targets")
        if not isinstance(targets, dict):
            return data
        normalized = {}
        for name, entry in targets.items():
            if isinstance(entry, dict) and "kind" not in entry and "language" in entry:
                entry = {**entry, "kind": "internal"}
            normalized[name] = entry
        return {**data, "targets": normalized}

    @field_validator("targets")
    @classmethod
    def _check_target_names(cls, value: dict[str, Any]) -> dict[str, Any]:
        # Names become file names under build_dir
        for name in value:
            if name in ("", ".", "..") or any(sep in name for sep in ("/", "\\", "\0")):
                raise ValueError(
                    f"Invalid target name {name!r}: must not be empty, '.', '..' "
                    "or contain a path separator"
                )
        return value

    @field_validator("build_dir")
    @classmethod
    def _expand_build_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @model_validator(mode="after")
    def _check_default_target(self) -> SpinupConfig:
        if self.default_target not in self.targets:
            raise ValueError(
                f"default_target '{self.default_target}' is not one of the configured targets"
            )
        return self

    def get_target(
        self, name: str | None = None
    ) -> tuple[str, InternalTarget | RepoTarget | DirectoryTarget]:
        """
        Look up a target by name.

        Args:
            name: Target name, or None for the default target

        Returns:
            Tuple of (resolved name, target)

        Raises:
            ConfigError: If no target has that name
        """
        resolved = name or self.default_target
        if resolved not in self.targets:
            available = ", ".join(sorted(self.targets))
            raise ConfigError(f"Target '{resolved}' not found. Available targets: {available}")
        return resolved, self.targets[resolved]
