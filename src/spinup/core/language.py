"""
Generic language target: render templates, write the project, build it.

A provider describes its ecosystem as data (a build manifest template,
source templates, a run command, an optional shell) and LanguageTarget does
the rest. Writing and running are separate phases: write_project() returns a
ProjectHandle and every later step takes that handle, so nothing depends on
the process working directory.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from pydantic import BaseModel

from .errors import ConfigError, ProjectWriteError
from .models import ProgramCommand, SupportedLanguage
from .process import ProcessRunner
from .templating import TemplateRenderer

logger = logging.getLogger(__name__)

SHELL_SCRIPT_NAME = "shell.sh"
SHELL_SCRIPT_MODE = 0o755


@dataclass(frozen=True)
class Template:
    """A template body and the file name it renders to."""

    name: str
    body: str


@dataclass
class ProjectHandle:
    """
    A project written to disk.

    Attributes:
        root: Absolute project root; every later step runs relative to it
        files: Files written, in write order
    """

    root: Path
    files: list[Path] = field(default_factory=list)

    def path(self, relative: str | Path) -> Path:
        return self.root / relative


ShellCommandFactory = Callable[[ProjectHandle], ProgramCommand]


@dataclass(frozen=True)
class ShellSpec:
    """
    An interactive shell offered after the build.

    Attributes:
        template: Body of the shell.sh launcher written into the project
        command_factory: Builds the shell command once the project exists;
            may read files written by write_project() and may raise
    """

    template: str
    command_factory: ShellCommandFactory


@dataclass
class RenderedProject:
    """Every rendered template of one project, keyed by relative path."""

    build_file: tuple[str, str]
    source_files: list[tuple[str, str]] = field(default_factory=list)
    shell_script: str | None = None


class LanguageTarget:
    """
    Renders, writes and builds a project for one language.

    Example:
        target = LanguageTarget(
            language=SupportedLanguage.NODE,
            build_template=Template("package.json", PACKAGE_JSON),
            context=NodeContext(...),
            build_hash=compute_build_hash("node", deps),
            run_command=ProgramCommand(command="npm", args=["i"]),
            shell=None,
            source_directory="src",
            source_templates=[Template("index.js", INDEX_JS)],
            build_outputs=["node_modules", "package-lock.json"],
        )
        handle = target.write_project(Path("scratch"))
        target.run(handle, ProcessRunner())
    """

    def __init__(
        self,
        language: SupportedLanguage,
        build_template: Template,
        context: BaseModel | Mapping[str, Any],
        build_hash: str,
        run_command: ProgramCommand,
        shell: ShellSpec | None,
        source_directory: str,
        source_templates: list[Template],
        build_outputs: Sequence[str] = (),
    ):
        self.language = language
        self.build_template = build_template
        self.context = context
        self.build_hash = build_hash
        self.run_command = run_command
        self.shell = shell
        self.source_directory = source_directory
        self.source_templates = source_templates
        self.build_outputs = list(build_outputs)

    @property
    def wants_shell(self) -> bool:
        return self.shell is not None

    def render(self) -> RenderedProject:
        """
        Render every template in a single pass.

        Returns:
            RenderedProject with paths relative to the project root

        Raises:
            RenderError: Naming the first template that failed
        """
        renderer = TemplateRenderer()
        renderer.add_template(self.build_template.name, self.build_template.body)
        for template in self.source_templates:
            renderer.add_template(self._source_path(template.name), template.body)
        if self.shell is not None:
            renderer.add_template(SHELL_SCRIPT_NAME, self.shell.template)

        rendered = RenderedProject(
            build_file=(
                self.build_template.name,
                renderer.render(self.build_template.name, self.context),
            )
        )
        for template in self.source_templates:
            path = self._source_path(template.name)
            rendered.source_files.append((path, renderer.render(path, self.context)))
        if self.shell is not None:
            rendered.shell_script = renderer.render(SHELL_SCRIPT_NAME, self.context)
        return rendered

    def write_project(self, destination: Path) -> ProjectHandle:
        """
        Render the templates and write them under destination.

        Rendering happens before anything touches the disk. Writing is not
        transactional: an I/O error part-way through leaves the files written
        so far in place.

        Args:
            destination: Project root, created with its parents if missing

        Returns:
            ProjectHandle for the written project

        Raises:
            RenderError: If any template fails to render
            ProjectWriteError: If a directory or file cannot be written
        """
        rendered = self.render()
        root = destination.expanduser().resolve()
        handle = ProjectHandle(root=root)
        logger.info("Generating %s project in %s", self.language, root)

        self._ensure_dir(root)
        build_name, build_body = rendered.build_file
        self._write_file(handle, build_name, build_body)

        self._ensure_dir(root / self.source_directory)
        for path, body in rendered.source_files:
            self._write_file(handle, path, body)

        if rendered.shell_script is not None:
            script = self._write_file(handle, SHELL_SCRIPT_NAME, rendered.shell_script)
            if os.name == "posix":
                try:
                    script.chmod(SHELL_SCRIPT_MODE)
                except OSError as e:
                    raise ProjectWriteError(
                        f"Failed to make {script} executable: {e}", path=script
                    ) from e

        return handle

    def run(self, handle: ProjectHandle, runner: ProcessRunner, check: bool = True) -> int:
        """
        Run the build command in the project root.

        Returns:
            The build command's exit code

        Raises:
            ProcessError: If the command cannot be spawned, or fails while check is set
        """
        return runner.run(self.run_command, cwd=handle.root, check=check)

    def build_shell_command(self, handle: ProjectHandle) -> ProgramCommand:
        """
        Build the shell command for a written project.

        Raises:
            ConfigError: If this target was created without a shell
        """
        if self.shell is None:
            raise ConfigError(f"No shell configured for the {self.language} target")
        return self.shell.command_factory(handle)

    def run_shell(self, handle: ProjectHandle, runner: ProcessRunner, check: bool = False) -> int:
        """
        Start the interactive shell with stdin attached.

        Returns:
            The shell's exit code
        """
        command = self.build_shell_command(handle)
        return runner.run_with_stdin(command, cwd=handle.root, check=check)

    def cached_paths(self, handle: ProjectHandle) -> list[Path]:
        """
        List what belongs in a build snapshot, relative to the project root.

        That is every file write_project() wrote except the shell launcher,
        which is re-rendered on demand, followed by the declared build outputs.
        """
        paths = [
            path.relative_to(handle.root)
            for path in handle.files
            if path != handle.path(SHELL_SCRIPT_NAME)
        ]
        paths.extend(Path(output) for output in self.build_outputs)
        return paths

    def _source_path(self, name: str) -> str:
        return str(PurePosixPath(self.source_directory) / name)

    def _ensure_dir(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ProjectWriteError(f"Failed to create directory {path}: {e}", path=path) from e

    def _write_file(self, handle: ProjectHandle, relative: str, content: str) -> Path:
        path = handle.path(relative)
        self._ensure_dir(path.parent)
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ProjectWriteError(f"Failed to write {path}: {e}", path=path) from e
        handle.files.append(path)
        logger.debug("Wrote %s", path)
        return path
