"""
Elixir provider.

Generates a mix project whose dependencies are fetched and compiled up
front, so `iex -S mix` starts with everything loaded.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from ..core.cache import compute_build_hash
from ..core.language import LanguageTarget, ProjectHandle, ShellSpec, Template
from ..core.models import Dependency, ProgramCommand, SupportedLanguage
from . import LanguageProvider, ProviderCapabilities

MIX_EXS_TEMPLATE = """defmodule Script.Mixfile do
  use Mix.Project

  def application do
    [extra_applications: [{{ applications | join(", ") }}]]
  end

  def project do
    [app: :script, version: "1.0.0", deps: deps()]
  end

  defp deps do
    [{{ dep_string }}]
  end
end
"""

# NimbleCSV helpers are only emitted when the project depends on nimble_csv
PARSER_EX_TEMPLATE = """{% if has_nimble_csv -%}
NimbleCSV.define(CSVParser, separator: ",", escape: "\\"")
NimbleCSV.define(TSVParser, separator: "\\t", escape: "\\"")

defmodule Parser do
  def parse_csv(file) do
    [headers | data] =
      file
      |> File.read!()
      |> CSVParser.parse_string(skip_headers: false)

    data
    |> Enum.map(&Enum.zip(headers, &1))
    |> Enum.map(&Map.new/1)
  end

  def to_csv(rows) when is_list(rows) do
    header =
      rows
      |> Enum.at(0)
      |> Map.keys()

    [header | Enum.map(rows, &Map.values/1)]
  end

  def write_csv(rows, file) when is_list(rows) do
    File.write!(file, CSVParser.dump_to_iodata(rows))
  end
end
{% else -%}
defmodule Parser do
  def read_lines(file) do
    file
    |> File.read!()
    |> String.split("\\n", trim: true)
  end
end
{% endif -%}
"""

SHELL_TEMPLATE = """#!/bin/sh
cd "$(dirname "$0")" || exit 1
exec iex -S mix
"""

RUN_COMMAND = ProgramCommand(command="mix", args=["do", "deps.get,", "deps.compile"])
SHELL_COMMAND = ProgramCommand(command="iex", args=["-S", "mix"])
BUILD_OUTPUTS = ["deps", "_build", "mix.lock"]


class ElixirContext(BaseModel):
    """Template context for mix projects."""

    applications: list[str]
    deps: list[Dependency]
    dep_string: str
    has_nimble_csv: bool

    model_config = ConfigDict(frozen=True)


def generate_dep_string(deps: Sequence[Dependency]) -> str:
    """Format dependencies as mix tuples: {:name, "~> version"}."""
    return ", ".join(f'{{:{dep.name}, "~> {dep.version}"}}' for dep in deps)


def generate_applications(deps: Sequence[Dependency]) -> list[str]:
    """List the OTP applications to start, logger first."""
    applications = [":logger"]
    for dep in deps:
        atom = f":{dep.name}"
        if atom not in applications:
            applications.append(atom)
    return applications


def iex_command(handle: ProjectHandle) -> ProgramCommand:
    return SHELL_COMMAND


class ElixirProvider(LanguageProvider):
    """Scaffolds a mix project with the requested hex dependencies."""

    language = SupportedLanguage.ELIXIR

    def create_target(self, deps: Sequence[Dependency], want_shell: bool) -> LanguageTarget:
        context = ElixirContext(
            applications=generate_applications(deps),
            deps=list(deps),
            dep_string=generate_dep_string(deps),
            has_nimble_csv=any(dep.name == "nimble_csv" for dep in deps),
        )
        return LanguageTarget(
            language=self.language,
            build_template=Template("mix.exs", MIX_EXS_TEMPLATE),
            context=context,
            build_hash=compute_build_hash(self.language, deps),
            run_command=RUN_COMMAND,
            shell=ShellSpec(SHELL_TEMPLATE, iex_command) if want_shell else None,
            source_directory="lib",
            source_templates=[Template("parser.ex", PARSER_EX_TEMPLATE)],
            build_outputs=BUILD_OUTPUTS,
        )

    def get_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            language=self.language,
            description="mix project with dependencies compiled for iex",
            build_file="mix.exs",
            build_command=str(RUN_COMMAND),
            shell_command=str(SHELL_COMMAND),
        )
