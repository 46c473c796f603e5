"""
Target resolution: turn a configured target into a built project.

Three strategies, one per target kind:
- internal:  provider-built LanguageTarget, with the build cache in front
- repo:      git clone, then the configured build command
- directory: filtered copy of a local tree, then the configured build command

Every step receives the project root explicitly. The process working
directory is never changed, but callers still must not resolve two targets
into the same destination concurrently, and the build cache has no locking.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Sequence
from pathlib import Path

from ..providers import ProviderRegistry, get_registry
from .cache import BuildCache
from .errors import CacheError, ConfigError, ProjectWriteError
from .language import LanguageTarget, ProjectHandle
from .models import (
    DirectoryTarget,
    InternalTarget,
    ProgramCommand,
    RepoTarget,
    SpinupConfig,
)
from .process import ProcessRunner

logger = logging.getLogger(__name__)

GIT_COMMAND = "git"


def is_ignored(relative: Path, ignore_prefixes: Sequence[str]) -> bool:
    """Check whether any directory component of a relative path starts with an ignored prefix."""
    return any(
        part.startswith(prefix) for part in relative.parts for prefix in ignore_prefixes if prefix
    )


def _copy_link(link: Path, target: Path) -> None:
    """Recreate a symlink with the same (possibly relative) target text."""
    try:
        link_target = os.readlink(link)
        if target.is_symlink():
            target.unlink()
        os.symlink(link_target, target, target_is_directory=True)
    except OSError as e:
        raise ProjectWriteError(f"Failed to copy link {link} to {target}: {e}", path=target) from e
    logger.debug("Linked %s -> %s", target, link_target)


def copy_tree(source: Path, destination: Path, ignore_prefixes: Sequence[str]) -> list[Path]:
    """
    Copy a directory tree, skipping ignored directories at any depth.

    Directories are recreated and files copied byte-for-byte with their
    permission bits. Symlinked directories are recreated as links to the same
    target rather than followed. When destination lies inside source it is
    skipped so the copy does not recurse into itself.

    Args:
        source: Existing directory to copy from
        destination: Directory to copy into (created if missing)
        ignore_prefixes: Directory-name prefixes to skip

    Returns:
        Files copied, as destination paths

    Raises:
        ProjectWriteError: If a directory or file cannot be created
    """
    source = source.resolve()
    destination = destination.resolve()
    copied: list[Path] = []

    try:
        destination.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ProjectWriteError(
            f"Failed to create directory {destination}: {e}", path=destination
        ) from e

    for dirpath, dirnames, filenames in os.walk(source):
        current = Path(dirpath)
        kept = []
        for dirname in sorted(dirnames):
            child = current / dirname
            relative = child.relative_to(source)
            if is_ignored(relative, ignore_prefixes) or child == destination:
                logger.debug("Skipping %s", relative)
                continue
            target_dir = destination / relative
            if child.is_symlink():
                _copy_link(child, target_dir)
                continue
            kept.append(dirname)
            try:
                target_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ProjectWriteError(
                    f"Failed to create directory {target_dir}: {e}", path=target_dir
                ) from e
        # Prune in place so os.walk does not descend into skipped directories
        dirnames[:] = kept

        for filename in sorted(filenames):
            relative = (current / filename).relative_to(source)
            target_file = destination / relative
            try:
                shutil.copy(current / filename, target_file)
            except OSError as e:
                raise ProjectWriteError(
                    f"Failed to copy {relative} to {target_file}: {e}", path=target_file
                ) from e
            copied.append(target_file)

    logger.info("Copied %d files from %s to %s", len(copied), source, destination)
    return copied


class TargetResolver:
    """
    Resolves configured targets into built projects.

    Usage:
        config = load_config()
        resolver = TargetResolver(config)
        resolver.resolve_named("node", Path("scratch"), want_shell=True)
    """

    def __init__(
        self,
        config: SpinupConfig,
        runner: ProcessRunner | None = None,
        registry: ProviderRegistry | None = None,
        cache: BuildCache | None = None,
    ):
        self.config = config
        self.runner = runner or ProcessRunner()
        self.registry = registry or get_registry()
        self.cache = cache or BuildCache(config.build_dir)

    def resolve_named(
        self,
        name: str | None,
        destination: Path,
        want_shell: bool = False,
        no_cache: bool = False,
    ) -> None:
        """Look up a target by name (None for the default) and resolve it."""
        resolved_name, target = self.config.get_target(name)
        self.resolve(resolved_name, target, destination, want_shell=want_shell, no_cache=no_cache)

    def resolve(
        self,
        name: str,
        target: InternalTarget | RepoTarget | DirectoryTarget,
        destination: Path,
        want_shell: bool = False,
        no_cache: bool = False,
    ) -> None:
        """
        Scaffold and build one target into destination.

        Args:
            name: Target name, used for cache files and error messages
            target: Target to resolve
            destination: Project directory to create or fill
            want_shell: Start the target's interactive shell after building
            no_cache: Ignore any cached build of an internal target

        Raises:
            SpinupError: Any configuration, rendering, I/O, cache or process failure
        """
        destination = destination.expanduser().resolve()
        logger.info("Resolving target %s (%s) into %s", name, target.kind, destination)

        match target:
            case InternalTarget():
                self._resolve_internal(name, target, destination, want_shell, no_cache)
            case RepoTarget():
                self._resolve_repo(name, target, destination, want_shell)
            case DirectoryTarget():
                self._resolve_directory(name, target, destination, want_shell)
            case _:
                raise ConfigError(f"Unknown target type: {type(target).__name__}", target=name)

    # -------------------------------------------------------------------------
    # Internal targets
    # -------------------------------------------------------------------------

    def _resolve_internal(
        self,
        name: str,
        target: InternalTarget,
        destination: Path,
        want_shell: bool,
        no_cache: bool,
    ) -> None:
        provider = self.registry.get(target.language)
        language_target = provider.create_target(target.deps, want_shell)

        if not no_cache and self._cache_hit(name, language_target):
            self.cache.restore(name, destination)
            # Re-render on top of the snapshot so a newly requested shell.sh appears
            handle = language_target.write_project(destination)
            logger.info("Using cached build for %s, skipping %s", name, language_target.run_command)
        else:
            handle = language_target.write_project(destination)
            returncode = language_target.run(handle, self.runner, check=self.config.check_build)
            if returncode == 0:
                self._store_build(name, language_target, handle)
            else:
                logger.warning("Build of %s failed; cache not updated", name)

        if want_shell:
            language_target.run_shell(handle, self.runner, check=self.config.check_shell)

    def _cache_hit(self, name: str, language_target: LanguageTarget) -> bool:
        if not self.cache.is_cached(name, language_target.build_hash):
            return False
        if not self.cache.has_artifact(name):
            logger.warning("Hash for %s matches but the cached build is missing; rebuilding", name)
            return False
        return True

    def _store_build(self, name: str, language_target: LanguageTarget, handle: ProjectHandle) -> None:
        try:
            self.cache.snapshot(name, handle.root, language_target.cached_paths(handle))
        except CacheError as e:
            logger.warning("Not caching %s: %s", name, e)
            return
        # Hash last: a hash on disk always has a complete snapshot next to it
        self.cache.save_hash(name, language_target.build_hash)

    # -------------------------------------------------------------------------
    # Repo and directory targets
    # -------------------------------------------------------------------------

    def _resolve_repo(
        self, name: str, target: RepoTarget, destination: Path, want_shell: bool
    ) -> None:
        self._check_shell(name, target.shell_command, want_shell)
        clone = ProgramCommand(command=GIT_COMMAND, args=["clone", target.source_url, str(destination)])
        self.runner.run(clone, check=True)
        self._build_and_shell(target.build, target.shell_command, destination, want_shell)

    def _resolve_directory(
        self, name: str, target: DirectoryTarget, destination: Path, want_shell: bool
    ) -> None:
        self._check_shell(name, target.shell_command, want_shell)
        source = target.source_path
        if not source.is_dir():
            raise ConfigError(f"Source directory not found: {source}", target=name)
        copy_tree(source, destination, self.config.ignore)
        self._build_and_shell(target.build, target.shell_command, destination, want_shell)

    def _check_shell(self, name: str, shell_command: ProgramCommand | None, want_shell: bool) -> None:
        if want_shell and shell_command is None:
            raise ConfigError(
                "A shell was requested but the target has no shell_command configured",
                target=name,
            )

    def _build_and_shell(
        self,
        build: ProgramCommand,
        shell_command: ProgramCommand | None,
        root: Path,
        want_shell: bool,
    ) -> None:
        self.runner.run(build, cwd=root, check=self.config.check_build)
        if want_shell and shell_command is not None:
            self.runner.run_with_stdin(shell_command, cwd=root, check=self.config.check_shell)
