"""
Rich console output for the spinup CLI.
"""

from rich import box
from rich.console import Console
from rich.style import Style
from rich.table import Table
from rich.text import Text

from .core.models import DirectoryTarget, InternalTarget, RepoTarget, SpinupConfig
from .providers import get_registry

console = Console()
err_console = Console(stderr=True)

STYLES = {
    "success": Style(color="green", bold=True),
    "error": Style(color="red", bold=True),
    "info": Style(color="cyan"),
}


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(Text(f"✓ {message}", style=STYLES["success"]))


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(Text(f"✗ {message}", style=STYLES["error"]))


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(Text(f"ℹ {message}", style=STYLES["info"]))


def describe_target(target: InternalTarget | RepoTarget | DirectoryTarget) -> str:
    """One-line summary of what a target builds from and how."""
    match target:
        case InternalTarget():
            deps = ", ".join(f"{dep.name}@{dep.version}" for dep in target.deps)
            summary = f"{target.language}: {deps or 'no dependencies'}"
            registry = get_registry()
            if not registry.has(target.language):
                return f"{summary} (no provider)"
            capabilities = registry.get(target.language).get_capabilities()
            return f"{summary} → {capabilities.build_command}"
        case RepoTarget():
            return f"{target.source_url} → {target.build}"
        case DirectoryTarget():
            return f"{target.source_path} → {target.build}"
    return ""


def print_targets(config: SpinupConfig) -> None:
    """Print the configured targets as a table, marking the default."""
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Name", style="white bold")
    table.add_column("Kind", style="cyan")
    table.add_column("Details", style="bright_black")

    for name, target in config.targets.items():
        label = f"{name} (default)" if name == config.default_target else name
        table.add_row(label, target.kind, describe_target(target))

    console.print(table)
