"""
Build cache for internal targets.

Tracks, per target name:
- A hash of the language and dependency list that was last built successfully
- A snapshot of the built project tree, restored instead of rebuilding

Layout inside the build directory:
    <name>.hash   raw hex digest, nothing else
    <name>/       the files spinup wrote plus the build outputs, never shell.sh
"""

import hashlib
import json
import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from .errors import CacheError
from .models import Dependency, SupportedLanguage

logger = logging.getLogger(__name__)

HASH_SUFFIX = ".hash"


def compute_build_hash(language: SupportedLanguage | str, deps: Sequence[Dependency]) -> str:
    """
    Compute the build hash for a language and dependency list.

    The language and the (name, version) pairs are hashed as a compact JSON
    array, so no choice of names or versions can make two different lists
    encode the same way. Dependencies keep their declared order, so
    reordering them counts as a change.

    Args:
        language: Language identifier
        deps: Dependencies in declared order

    Returns:
        Hex-encoded SHA256 hash
    """
    payload = json.dumps(
        [str(language), [[dep.name, dep.version] for dep in deps]],
        separators=(",", ":"),
    )
    sha256 = hashlib.sha256()
    sha256.update(payload.encode())
    return sha256.hexdigest()


class BuildCache:
    """
    Hash sidecars and project snapshots stored under one build directory.

    Reads fail open toward rebuilding: anything unexpected while reading a
    hash means "not cached". Writes raise CacheError.
    """

    def __init__(self, build_dir: Path):
        self.build_dir = build_dir

    def hash_path(self, name: str) -> Path:
        return self.build_dir / f"{self._checked(name)}{HASH_SUFFIX}"

    def artifact_path(self, name: str) -> Path:
        return self.build_dir / self._checked(name)

    def _checked(self, name: str) -> str:
        if name in ("", ".", "..") or Path(name).name != name or "\\" in name:
            raise CacheError(f"Target name {name!r} cannot be used as a cache entry")
        return name

    def read_hash(self, name: str) -> str | None:
        """Return the stored hash for a target, or None if absent or unreadable."""
        path = self.hash_path(name)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Ignoring unreadable cache file %s: %s", path, e)
            return None

    def is_cached(self, name: str, build_hash: str) -> bool:
        """Check whether the stored hash for a target exactly matches build_hash."""
        stored = self.read_hash(name)
        if stored is None:
            logger.debug("No cached hash for %s", name)
            return False
        if stored != build_hash:
            logger.debug("Cached hash for %s is stale", name)
            return False
        return True

    def save_hash(self, name: str, build_hash: str) -> None:
        """
        Persist the hash for a target.

        Raises:
            CacheError: If the hash cannot be written
        """
        path = self.hash_path(name)
        try:
            self.build_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(build_hash, encoding="utf-8")
        except OSError as e:
            raise CacheError(f"Failed to write build hash {path}: {e}", target=name) from e
        logger.info("Saved build hash for %s to %s", name, path)

    def has_artifact(self, name: str) -> bool:
        return self.artifact_path(name).is_dir()

    def snapshot(self, name: str, project_root: Path, entries: Sequence[str | Path]) -> Path:
        """
        Replace the stored snapshot for a target with selected project entries.

        Only the listed entries are copied, so unrelated files that happened
        to sit in the destination never reach the cache. Entries that do not
        exist (a build output the tool did not create) are skipped.

        Args:
            name: Target name
            project_root: Built project to copy from
            entries: Paths relative to project_root; directories are copied
                recursively with symlinks preserved

        Returns:
            Path to the snapshot

        Raises:
            CacheError: If the build directory and the project overlap, or the
                copy fails
        """
        artifact = self.artifact_path(name)
        root = project_root.resolve()
        resolved_artifact = artifact.resolve()
        if resolved_artifact.is_relative_to(root):
            raise CacheError(
                f"Build directory {self.build_dir} is inside the project {project_root}",
                target=name,
            )
        if root.is_relative_to(resolved_artifact):
            raise CacheError(
                f"Project {project_root} is inside the cached build {artifact}",
                target=name,
            )
        try:
            if artifact.exists():
                shutil.rmtree(artifact)
            artifact.mkdir(parents=True)
            for entry in entries:
                source = root / entry
                destination = artifact / entry
                if source.is_dir() and not source.is_symlink():
                    shutil.copytree(source, destination, symlinks=True)
                elif source.exists() or source.is_symlink():
                    destination.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(source, destination, follow_symlinks=False)
                else:
                    logger.debug("Nothing to cache at %s", source)
        except OSError as e:
            raise CacheError(f"Failed to snapshot {project_root}: {e}", target=name) from e
        logger.info("Snapshot of %s stored at %s", project_root, artifact)
        return artifact

    def restore(self, name: str, destination: Path) -> None:
        """
        Copy the stored snapshot for a target into destination.

        Existing files in destination are overwritten; others are left alone.

        Raises:
            CacheError: If there is no snapshot or the copy fails
        """
        artifact = self.artifact_path(name)
        if not artifact.is_dir():
            raise CacheError(f"No cached build at {artifact}", target=name)
        try:
            shutil.copytree(artifact, destination, symlinks=True, dirs_exist_ok=True)
        except OSError as e:
            raise CacheError(f"Failed to restore {artifact}: {e}", target=name) from e
        logger.info("Restored cached build of %s into %s", name, destination)

    def clear(self, name: str) -> bool:
        """
        Remove the hash and snapshot for a target.

        Returns:
            True if anything was removed
        """
        removed = False
        hash_file = self.hash_path(name)
        artifact = self.artifact_path(name)
        try:
            if hash_file.exists():
                hash_file.unlink()
                removed = True
            if artifact.exists():
                shutil.rmtree(artifact)
                removed = True
        except OSError as e:
            raise CacheError(f"Failed to clear cache for {name}: {e}", target=name) from e
        return removed
