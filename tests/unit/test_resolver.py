"""
Unit tests for TargetResolver.

Covers:
- Internal targets: scaffolding, build, shell and the build cache
- Repo targets: clone, build, shell
- Directory targets: filtered copy, build, shell
- Exit-code policy

Commands are recorded by the `runner` fixture; nothing is spawned.
"""

import json
import os
from pathlib import Path

import pytest

from spinup.core.cache import BuildCache, compute_build_hash
from spinup.core.errors import ConfigError, ProcessError, UnsupportedLanguageError
from spinup.core.models import Dependency, SpinupConfig
from spinup.core.resolver import TargetResolver, copy_tree, is_ignored

AXIOS = Dependency(name="axios", version="0.20.0")


def make_config(build_dir: Path, **overrides) -> SpinupConfig:
    data = {
        "default_target": "node",
        "build_dir": str(build_dir),
        "targets": {
            "node": {"language": "node", "deps": [{"name": "axios", "version": "0.20.0"}]},
            "elixir": {"language": "elixir", "deps": [{"name": "jason", "version": "1.2"}]},
            "rust": {"language": "rust", "deps": [{"name": "serde", "version": "1"}]},
            "app": {
                "kind": "repo",
                "source_url": "https://example.com/app.git",
                "build_command": "npm",
                "build_args": ["i"],
            },
            "app-shell": {
                "kind": "repo",
                "source_url": "https://example.com/app.git",
                "build_command": "mix",
                "build_args": ["deps.get"],
                "shell_command": {"command": "iex", "args": ["-S", "mix"]},
            },
        },
    }
    data.update(overrides)
    return SpinupConfig.model_validate(data)


def directory_config(build_dir: Path, source: Path, **overrides) -> SpinupConfig:
    target = {
        "kind": "directory",
        "source_path": str(source),
        "build_command": "npm",
        "build_args": ["i"],
        "shell_command": {"command": "node"},
    }
    return SpinupConfig.model_validate(
        {
            "default_target": "local",
            "build_dir": str(build_dir),
            "targets": {"local": target},
            **overrides,
        }
    )


def fake_npm_install(cwd: Path | None) -> None:
    assert cwd is not None
    (cwd / "node_modules" / "axios").mkdir(parents=True, exist_ok=True)
    (cwd / "node_modules" / "axios" / "index.js").write_text("module.exports = {};")


# =============================================================================
# Path filtering
# =============================================================================


class TestIgnorePrefixes:
    @pytest.mark.parametrize(
        ("relative", "ignored"),
        [
            ("node_modules", True),
            ("node_modules_backup", True),
            ("lib/deps", True),
            ("src/deps.js", True),
            ("_build/dev", True),
            ("src", False),
            ("src/my_deps", False),
        ],
    )
    def test_is_ignored(self, relative: str, ignored: bool) -> None:
        prefixes = ["node_modules", "_build", "deps"]

        assert is_ignored(Path(relative), prefixes) is ignored

    def test_copy_tree_skips_nested_ignored_directories(self, tmp_path: Path) -> None:
        source = tmp_path / "src"
        (source / "lib" / "deps" / "jason").mkdir(parents=True)
        (source / "lib" / "deps" / "jason" / "mix.exs").write_text("")
        (source / "lib" / "app.ex").write_text("defmodule App do end")
        (source / ".gitignore").write_text("_build\n")

        copied = copy_tree(source, tmp_path / "dst", ["deps", ".git"])

        dst = (tmp_path / "dst").resolve()
        assert (dst / "lib" / "app.ex").read_text() == "defmodule App do end"
        assert not (dst / "lib" / "deps").exists()
        # ".gitignore" starts with ".git" and is a file, so only directories are pruned
        assert (dst / ".gitignore").exists()
        assert sorted(copied) == [dst / ".gitignore", dst / "lib" / "app.ex"]

    @pytest.mark.skipif(os.name != "posix", reason="permission bits are POSIX only")
    def test_copy_tree_keeps_permissions(self, tmp_path: Path) -> None:
        source = tmp_path / "src"
        source.mkdir()
        script = source / "run.sh"
        script.write_text("#!/bin/sh\n")
        script.chmod(0o755)

        copy_tree(source, tmp_path / "dst", [])

        assert os.access(tmp_path / "dst" / "run.sh", os.X_OK)

    def test_copy_tree_into_own_subdirectory(self, tmp_path: Path) -> None:
        source = tmp_path / "src"
        source.mkdir()
        (source / "a.txt").write_text("a")

        copy_tree(source, source / "copy", [])

        assert (source / "copy" / "a.txt").read_text() == "a"
        assert not (source / "copy" / "copy").exists()

    @pytest.mark.skipif(os.name != "posix", reason="symlinks need POSIX permissions")
    def test_copy_tree_keeps_symlinked_directories(self, tmp_path: Path) -> None:
        source = tmp_path / "src"
        (source / "real").mkdir(parents=True)
        (source / "real" / "f.txt").write_text("linked")
        (source / "linked").symlink_to("real", target_is_directory=True)

        copy_tree(source, tmp_path / "dst", [])

        linked = tmp_path / "dst" / "linked"
        assert linked.is_symlink()
        assert (linked / "f.txt").read_text() == "linked"
        assert (tmp_path / "dst" / "real" / "f.txt").read_text() == "linked"

    @pytest.mark.skipif(os.name != "posix", reason="symlinks need POSIX permissions")
    def test_copy_tree_ignores_symlinked_dependency_directories(self, tmp_path: Path) -> None:
        source = tmp_path / "src"
        (source / "vendor").mkdir(parents=True)
        (source / "node_modules").symlink_to("vendor", target_is_directory=True)

        copy_tree(source, tmp_path / "dst", ["node_modules"])

        assert not (tmp_path / "dst" / "node_modules").is_symlink()
        assert not (tmp_path / "dst" / "node_modules").exists()


# =============================================================================
# Internal targets
# =============================================================================


class TestInternalTargets:
    def test_node_without_shell(self, tmp_path: Path, build_dir: Path, runner) -> None:
        project = tmp_path / "project"
        resolver = TargetResolver(make_config(build_dir), runner=runner)

        resolver.resolve_named("node", project)

        package = json.loads((project / "package.json").read_text())
        assert package["dependencies"] == {"axios": "^0.20.0"}
        assert (project / "src" / "index.js").exists()
        assert not (project / "shell.sh").exists()
        assert len(runner.calls) == 1
        assert runner.calls[0].argv == ["npm", "i"]
        assert runner.calls[0].cwd == project.resolve()

    def test_default_target(self, tmp_path: Path, build_dir: Path, runner) -> None:
        TargetResolver(make_config(build_dir), runner=runner).resolve_named(None, tmp_path / "p")

        assert runner.programs == ["npm"]

    @pytest.mark.skipif(os.name != "posix", reason="permission bits are POSIX only")
    def test_node_with_shell(self, tmp_path: Path, build_dir: Path, runner) -> None:
        project = tmp_path / "project"
        resolver = TargetResolver(make_config(build_dir), runner=runner)

        resolver.resolve_named("node", project, want_shell=True)

        assert os.access(project / "shell.sh", os.X_OK)
        assert runner.programs == ["npm", "node"]
        shell = runner.calls[-1]
        assert shell.argv[:3] == ["node", "-i", "--experimental-repl-await"]
        assert shell.argv[-1] == (project / "src" / "index.js").read_text()
        assert shell.interactive is True
        assert shell.cwd == project.resolve()

    def test_elixir_with_shell(self, tmp_path: Path, build_dir: Path, runner) -> None:
        project = tmp_path / "project"

        TargetResolver(make_config(build_dir), runner=runner).resolve_named(
            "elixir", project, want_shell=True
        )

        assert (project / "mix.exs").exists()
        assert (project / "lib" / "parser.ex").exists()
        assert [call.argv for call in runner.calls] == [
            ["mix", "do", "deps.get,", "deps.compile"],
            ["iex", "-S", "mix"],
        ]

    def test_unsupported_language_does_nothing(
        self, tmp_path: Path, build_dir: Path, runner
    ) -> None:
        project = tmp_path / "project"

        with pytest.raises(UnsupportedLanguageError, match="rust"):
            TargetResolver(make_config(build_dir), runner=runner).resolve_named("rust", project)

        assert runner.calls == []
        assert not project.exists()
        assert not build_dir.exists()

    def test_unknown_target(self, tmp_path: Path, build_dir: Path, runner) -> None:
        with pytest.raises(ConfigError, match="Available targets"):
            TargetResolver(make_config(build_dir), runner=runner).resolve_named(
                "python", tmp_path
            )

        assert runner.calls == []


class TestBuildCache:
    def test_successful_build_is_cached(self, tmp_path: Path, build_dir: Path, runner) -> None:
        runner.side_effects["npm"] = fake_npm_install

        TargetResolver(make_config(build_dir), runner=runner).resolve_named(
            "node", tmp_path / "first"
        )

        cache = BuildCache(build_dir)
        assert cache.read_hash("node") == compute_build_hash("node", [AXIOS])
        assert (build_dir / "node" / "node_modules" / "axios" / "index.js").exists()

    def test_cache_hit_skips_build(self, tmp_path: Path, build_dir: Path, runner) -> None:
        runner.side_effects["npm"] = fake_npm_install
        resolver = TargetResolver(make_config(build_dir), runner=runner)
        resolver.resolve_named("node", tmp_path / "first")
        runner.calls.clear()

        second = tmp_path / "second"
        resolver.resolve_named("node", second)

        assert runner.calls == []
        assert (second / "node_modules" / "axios" / "index.js").exists()
        assert (second / "package.json").exists()

    def test_cache_hit_still_starts_shell(self, tmp_path: Path, build_dir: Path, runner) -> None:
        resolver = TargetResolver(make_config(build_dir), runner=runner)
        resolver.resolve_named("node", tmp_path / "first")
        runner.calls.clear()

        second = tmp_path / "second"
        resolver.resolve_named("node", second, want_shell=True)

        assert runner.programs == ["node"]
        assert (second / "shell.sh").exists()

    def test_no_cache_forces_build(self, tmp_path: Path, build_dir: Path, runner) -> None:
        resolver = TargetResolver(make_config(build_dir), runner=runner)
        resolver.resolve_named("node", tmp_path / "first")

        resolver.resolve_named("node", tmp_path / "second", no_cache=True)

        assert runner.programs == ["npm", "npm"]

    def test_changed_deps_rebuild(self, tmp_path: Path, build_dir: Path, runner) -> None:
        TargetResolver(make_config(build_dir), runner=runner).resolve_named(
            "node", tmp_path / "first"
        )
        bumped = make_config(
            build_dir,
            targets={"node": {"language": "node", "deps": [{"name": "axios", "version": "0.21.0"}]}},
        )

        TargetResolver(bumped, runner=runner).resolve_named("node", tmp_path / "second")

        assert runner.programs == ["npm", "npm"]
        assert BuildCache(build_dir).read_hash("node") == compute_build_hash(
            "node", [Dependency(name="axios", version="0.21.0")]
        )

    def test_hash_without_snapshot_rebuilds(
        self, tmp_path: Path, build_dir: Path, runner
    ) -> None:
        BuildCache(build_dir).save_hash("node", compute_build_hash("node", [AXIOS]))

        TargetResolver(make_config(build_dir), runner=runner).resolve_named(
            "node", tmp_path / "project"
        )

        assert runner.programs == ["npm"]

    def test_failed_build_is_not_cached(self, tmp_path: Path, build_dir: Path, runner) -> None:
        runner.returncodes["npm"] = 1
        config = make_config(build_dir, check_build=False)

        TargetResolver(config, runner=runner).resolve_named("node", tmp_path / "project")

        assert BuildCache(build_dir).read_hash("node") is None
        assert not BuildCache(build_dir).has_artifact("node")

    def test_failed_build_raises_when_checked(
        self, tmp_path: Path, build_dir: Path, runner
    ) -> None:
        runner.returncodes["npm"] = 1

        with pytest.raises(ProcessError) as exc_info:
            TargetResolver(make_config(build_dir), runner=runner).resolve_named(
                "node", tmp_path / "project", want_shell=True
            )

        assert exc_info.value.returncode == 1
        assert runner.programs == ["npm"]
        assert BuildCache(build_dir).read_hash("node") is None

    def test_build_dir_inside_project_is_not_cached(self, tmp_path: Path, runner) -> None:
        project = tmp_path / "project"
        config = make_config(project / ".cache")

        TargetResolver(config, runner=runner).resolve_named("node", project)

        assert runner.programs == ["npm"]
        assert BuildCache(project / ".cache").read_hash("node") is None

    def test_project_inside_cached_build_is_not_cached(self, build_dir: Path, runner) -> None:
        project = build_dir / "node" / "work"

        TargetResolver(make_config(build_dir), runner=runner).resolve_named("node", project)

        assert (project / "package.json").exists()
        assert BuildCache(build_dir).read_hash("node") is None

    def test_unrelated_files_are_not_cached(
        self, tmp_path: Path, build_dir: Path, runner
    ) -> None:
        runner.side_effects["npm"] = fake_npm_install
        work = tmp_path / "work"
        work.mkdir()
        (work / "secrets.env").write_text("TOKEN=1")
        resolver = TargetResolver(make_config(build_dir), runner=runner)
        resolver.resolve_named("node", work)

        fresh = tmp_path / "fresh"
        resolver.resolve_named("node", fresh)

        assert (fresh / "node_modules" / "axios" / "index.js").exists()
        assert not (fresh / "secrets.env").exists()
        assert not (build_dir / "node" / "secrets.env").exists()

    def test_shell_script_is_not_restored_without_shell(
        self, tmp_path: Path, build_dir: Path, runner
    ) -> None:
        resolver = TargetResolver(make_config(build_dir), runner=runner)
        resolver.resolve_named("node", tmp_path / "first", want_shell=True)
        runner.calls.clear()

        second = tmp_path / "second"
        resolver.resolve_named("node", second)

        assert runner.calls == []
        assert (second / "package.json").exists()
        assert not (second / "shell.sh").exists()


# =============================================================================
# Repo targets
# =============================================================================


class TestRepoTargets:
    def test_clone_then_build(self, tmp_path: Path, build_dir: Path, runner) -> None:
        project = tmp_path / "app"

        TargetResolver(make_config(build_dir), runner=runner).resolve_named("app", project)

        clone, build = runner.calls
        assert clone.argv == ["git", "clone", "https://example.com/app.git", str(project.resolve())]
        assert clone.check is True
        assert build.argv == ["npm", "i"]
        assert build.cwd == project.resolve()

    def test_shell_requested_without_shell_command(
        self, tmp_path: Path, build_dir: Path, runner
    ) -> None:
        with pytest.raises(ConfigError, match="no shell_command"):
            TargetResolver(make_config(build_dir), runner=runner).resolve_named(
                "app", tmp_path / "app", want_shell=True
            )

        assert runner.calls == []

    def test_shell_runs_in_clone(self, tmp_path: Path, build_dir: Path, runner) -> None:
        project = tmp_path / "app"

        TargetResolver(make_config(build_dir), runner=runner).resolve_named(
            "app-shell", project, want_shell=True
        )

        assert runner.programs == ["git", "mix", "iex"]
        shell = runner.calls[-1]
        assert shell.interactive is True
        assert shell.cwd == project.resolve()
        assert shell.check is False

    def test_failed_clone_stops(self, tmp_path: Path, build_dir: Path, runner) -> None:
        runner.returncodes["git"] = 128

        with pytest.raises(ProcessError):
            TargetResolver(make_config(build_dir), runner=runner).resolve_named(
                "app", tmp_path / "app"
            )

        assert runner.programs == ["git"]


# =============================================================================
# Directory targets
# =============================================================================


class TestDirectoryTargets:
    @pytest.fixture
    def source(self, tmp_path: Path) -> Path:
        root = tmp_path / "source"
        (root / "node_modules" / "left-pad").mkdir(parents=True)
        (root / "node_modules" / "left-pad" / "index.js").write_text("")
        (root / "src").mkdir()
        (root / "src" / "index.js").write_text("console.log('hi')")
        (root / "package.json").write_text("{}")
        return root

    def test_copy_skips_ignored_then_builds(
        self, tmp_path: Path, build_dir: Path, source: Path, runner
    ) -> None:
        project = tmp_path / "project"

        TargetResolver(directory_config(build_dir, source), runner=runner).resolve_named(
            None, project
        )

        assert (project / "package.json").exists()
        assert (project / "src" / "index.js").read_text() == "console.log('hi')"
        assert not (project / "node_modules").exists()
        assert [call.argv for call in runner.calls] == [["npm", "i"]]
        assert runner.calls[0].cwd == project.resolve()

    def test_custom_ignore_list(
        self, tmp_path: Path, build_dir: Path, source: Path, runner
    ) -> None:
        project = tmp_path / "project"
        config = directory_config(build_dir, source, ignore=["src"])

        TargetResolver(config, runner=runner).resolve_named(None, project)

        assert (project / "node_modules" / "left-pad" / "index.js").exists()
        assert not (project / "src").exists()

    def test_shell(self, tmp_path: Path, build_dir: Path, source: Path, runner) -> None:
        TargetResolver(directory_config(build_dir, source), runner=runner).resolve_named(
            None, tmp_path / "project", want_shell=True
        )

        assert runner.programs == ["npm", "node"]
        assert runner.calls[-1].interactive is True

    def test_missing_source(self, tmp_path: Path, build_dir: Path, runner) -> None:
        config = directory_config(build_dir, tmp_path / "missing")

        with pytest.raises(ConfigError, match="Source directory not found"):
            TargetResolver(config, runner=runner).resolve_named(None, tmp_path / "project")

        assert runner.calls == []

    def test_build_failure_ignored_when_unchecked(
        self, tmp_path: Path, build_dir: Path, source: Path, runner
    ) -> None:
        runner.returncodes["npm"] = 1
        config = directory_config(build_dir, source, check_build=False)

        TargetResolver(config, runner=runner).resolve_named(
            None, tmp_path / "project", want_shell=True
        )

        assert runner.programs == ["npm", "node"]

    def test_shell_failure_raises_when_checked(
        self, tmp_path: Path, build_dir: Path, source: Path, runner
    ) -> None:
        runner.returncodes["node"] = 3
        config = directory_config(build_dir, source, check_shell=True)

        with pytest.raises(ProcessError) as exc_info:
            TargetResolver(config, runner=runner).resolve_named(
                None, tmp_path / "project", want_shell=True
            )

        assert exc_info.value.returncode == 3
