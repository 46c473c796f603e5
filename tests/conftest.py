"""Shared pytest fixtures for spinup tests."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from spinup.core.errors import ProcessError
from spinup.core.models import ProgramCommand
from spinup.core.process import ProcessRunner


@dataclass
class RecordedCall:
    """One command seen by RecordingRunner."""

    argv: list[str]
    cwd: Path | None
    check: bool
    interactive: bool


@dataclass
class RecordingRunner(ProcessRunner):
    """
    ProcessRunner that records commands instead of spawning them.

    Attributes:
        returncodes: Exit code to report per program name (default 0)
        side_effects: Callbacks run with the cwd when a program is "run",
            e.g. to fake an npm install creating node_modules
    """

    calls: list[RecordedCall] = field(default_factory=list)
    returncodes: dict[str, int] = field(default_factory=dict)
    side_effects: dict[str, Callable[[Path | None], None]] = field(default_factory=dict)

    def run(self, command: ProgramCommand, cwd: Path | None = None, check: bool = False) -> int:
        return self._record(command, cwd, check, interactive=False)

    def run_with_stdin(
        self, command: ProgramCommand, cwd: Path | None = None, check: bool = False
    ) -> int:
        return self._record(command, cwd, check, interactive=True)

    def _record(self, command: ProgramCommand, cwd: Path | None, check: bool, interactive: bool) -> int:
        self.calls.append(RecordedCall(command.argv, cwd, check, interactive))
        if effect := self.side_effects.get(command.command):
            effect(cwd)
        returncode = self.returncodes.get(command.command, 0)
        if check and returncode != 0:
            raise ProcessError(
                f"Command failed ({returncode}): {command}",
                command=command.command,
                returncode=returncode,
            )
        return returncode

    @property
    def programs(self) -> list[str]:
        return [call.argv[0] for call in self.calls]


@pytest.fixture
def runner() -> RecordingRunner:
    """Return a runner that records commands without spawning anything."""
    return RecordingRunner()


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    """Return a cache directory outside every project directory."""
    return tmp_path / "cache"


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point config and cache lookups at a temporary home."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(home / ".cache"))
    monkeypatch.delenv("SPINUP_CONFIG", raising=False)
    return home
