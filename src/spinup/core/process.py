"""
External process execution.

Spawns build tools, version-control clients and REPL shells. Both entry
points block until the child exits and impose no timeout: a child that
hangs keeps spinup waiting until the operator interrupts it.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from .errors import ProcessError
from .models import ProgramCommand

logger = logging.getLogger(__name__)


class ProcessRunner:
    """
    Runs external programs with the caller's terminal attached.

    Standard output and standard error always go straight to the caller's
    streams. Standard input is only forwarded by run_with_stdin(), which is
    what interactive shells need; plain builds get /dev/null so they cannot
    block waiting for input.
    """

    def run(self, command: ProgramCommand, cwd: Path | None = None, check: bool = False) -> int:
        """
        Run a program without forwarding stdin.

        Args:
            command: Program and arguments
            cwd: Working directory for the child (defaults to ours)
            check: Raise ProcessError on a non-zero exit code

        Returns:
            The child's exit code

        Raises:
            ProcessError: If the program cannot be spawned, or exits non-zero
                while check is set
        """
        return self._spawn(command, cwd, check, stdin=subprocess.DEVNULL)

    def run_with_stdin(
        self, command: ProgramCommand, cwd: Path | None = None, check: bool = False
    ) -> int:
        """
        Run a program with the caller's stdin attached, for interactive sessions.

        Same contract as run().
        """
        return self._spawn(command, cwd, check, stdin=None)

    def _spawn(
        self,
        command: ProgramCommand,
        cwd: Path | None,
        check: bool,
        stdin: int | None,
    ) -> int:
        logger.info("Running command: %s (cwd=%s)", command, cwd or Path.cwd())
        if cwd is not None and not cwd.is_dir():
            raise ProcessError(
                f"Failed to spawn {command.command} command: "
                f"working directory {cwd} does not exist",
                command=command.command,
            )
        try:
            proc = subprocess.run(command.argv, cwd=cwd, stdin=stdin, check=False)
        except FileNotFoundError as e:
            raise ProcessError(
                f"Failed to spawn {command.command} command: program not found ({e})",
                command=command.command,
            ) from e
        except OSError as e:
            raise ProcessError(
                f"Failed to spawn {command.command} command: {e}",
                command=command.command,
            ) from e

        if proc.returncode != 0:
            logger.warning("%s exited with %s", command.command, proc.returncode)
            if check:
                raise ProcessError(
                    f"Command failed ({proc.returncode}): {command}",
                    command=command.command,
                    returncode=proc.returncode,
                )
        return proc.returncode
