"""
Node.js provider.

Generates:
    package.json     dependencies pinned with caret ranges
    src/index.js     one require() per dependency
    shell.sh         launches a REPL preloaded with src/index.js (if requested)
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from ..core.cache import compute_build_hash
from ..core.errors import ProjectWriteError
from ..core.language import LanguageTarget, ProjectHandle, ShellSpec, Template
from ..core.models import Dependency, ProgramCommand, SupportedLanguage
from . import LanguageProvider, ProviderCapabilities

SOURCE_DIRECTORY = "src"
ENTRY_POINT = "index.js"

PACKAGE_JSON_TEMPLATE = """{
  "name": "spinup-scratch",
  "version": "1.0.0",
  "private": true,
  "main": "src/index.js",
  "dependencies": {
{{ dep_string }}
  }
}
"""

INDEX_JS_TEMPLATE = """{% for module in requires -%}
const {{ module.binding }} = require({{ module.literal }});
{% endfor -%}
"""

SHELL_TEMPLATE = """#!/bin/sh
cd "$(dirname "$0")" || exit 1
exec node -i --experimental-repl-await -e "$(cat src/index.js)"
"""

RUN_COMMAND = ProgramCommand(command="npm", args=["i"])
BUILD_OUTPUTS = ["node_modules", "package-lock.json"]


class RequiredModule(BaseModel):
    """A dependency as it appears in index.js."""

    name: str
    literal: str
    binding: str

    model_config = ConfigDict(frozen=True)


class NodeContext(BaseModel):
    """Template context for node projects."""

    deps: list[Dependency]
    dep_string: str
    requires: list[RequiredModule]

    model_config = ConfigDict(frozen=True)


def generate_dep_string(deps: Sequence[Dependency]) -> str:
    """Format dependencies as the body of package.json "dependencies"."""
    return ",\n".join(
        f"    {json.dumps(dep.name)}: {json.dumps('^' + dep.version)}" for dep in deps
    )


def binding_name(package: str) -> str:
    """
    Turn a package name into a JavaScript identifier.

    "@scope/left-pad" -> "leftPad", "lodash.get" -> "lodashGet"
    """
    base = package.rsplit("/", 1)[-1]
    parts = [part for part in re.split(r"[^A-Za-z0-9_$]+", base) if part]
    if not parts:
        return "_module"
    name = parts[0] + "".join(part[:1].upper() + part[1:] for part in parts[1:])
    if name[0].isdigit():
        name = "_" + name
    return name


def build_context(deps: Sequence[Dependency]) -> NodeContext:
    return NodeContext(
        deps=list(deps),
        dep_string=generate_dep_string(deps),
        requires=[
            RequiredModule(
                name=dep.name, literal=json.dumps(dep.name), binding=binding_name(dep.name)
            )
            for dep in deps
        ],
    )


def repl_command(handle: ProjectHandle) -> ProgramCommand:
    """Build the node REPL command, preloading the freshly written entry point."""
    entry = handle.path(f"{SOURCE_DIRECTORY}/{ENTRY_POINT}")
    try:
        source = entry.read_text(encoding="utf-8")
    except OSError as e:
        raise ProjectWriteError(f"Failed to read {entry}: {e}", path=entry) from e
    return ProgramCommand(command="node", args=["-i", "--experimental-repl-await", "-e", source])


class NodeProvider(LanguageProvider):
    """Scaffolds an npm project with the requested dependencies."""

    language = SupportedLanguage.NODE

    def create_target(self, deps: Sequence[Dependency], want_shell: bool) -> LanguageTarget:
        return LanguageTarget(
            language=self.language,
            build_template=Template("package.json", PACKAGE_JSON_TEMPLATE),
            context=build_context(deps),
            build_hash=compute_build_hash(self.language, deps),
            run_command=RUN_COMMAND,
            shell=ShellSpec(SHELL_TEMPLATE, repl_command) if want_shell else None,
            source_directory=SOURCE_DIRECTORY,
            source_templates=[Template(ENTRY_POINT, INDEX_JS_TEMPLATE)],
            build_outputs=BUILD_OUTPUTS,
        )

    def get_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            language=self.language,
            description="npm project with a preloaded node REPL",
            build_file="package.json",
            build_command=str(RUN_COMMAND),
            shell_command="node -i --experimental-repl-await",
        )
