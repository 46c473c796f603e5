"""
Language provider plugin system for spinup.

Providers turn a dependency list into a LanguageTarget for one ecosystem.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from ..core.errors import ConfigError, UnsupportedLanguageError
from ..core.language import LanguageTarget
from ..core.models import Dependency, SupportedLanguage


@dataclass
class ProviderCapabilities:
    """
    Describes what a provider generates.

    Used for introspection and the --list-targets table.
    """

    language: SupportedLanguage
    description: str
    build_file: str
    build_command: str
    shell_command: str | None = None


class LanguageProvider(ABC):
    """
    Abstract base class for language providers.

    A provider owns everything ecosystem-specific: the dependency string
    format, the template bodies, the build command and the REPL command.
    The core only renders whatever templates it returns.
    """

    language: SupportedLanguage

    @abstractmethod
    def create_target(self, deps: Sequence[Dependency], want_shell: bool) -> LanguageTarget:
        """
        Build a fully configured LanguageTarget.

        Args:
            deps: Dependencies in declared order
            want_shell: Whether to include the shell launcher and shell command

        Returns:
            LanguageTarget ready to write and run
        """
        pass

    def get_capabilities(self) -> ProviderCapabilities:
        """
        Get provider metadata for introspection.

        Returns:
            ProviderCapabilities describing this provider
        """
        return ProviderCapabilities(
            language=self.language,
            description="No description provided",
            build_file="unknown",
            build_command="unknown",
        )


class ProviderRegistry:
    """
    Registry of language providers, keyed by language.
    """

    def __init__(self) -> None:
        self._providers: dict[SupportedLanguage, type[LanguageProvider]] = {}

    def register(self, provider_class: type[LanguageProvider]) -> None:
        """
        Register a provider class under its language.

        Raises:
            ConfigError: If the language already has a provider or the class is invalid
        """
        if not isinstance(provider_class, type) or not issubclass(provider_class, LanguageProvider):
            raise ConfigError(f"Provider {provider_class!r} must extend LanguageProvider")

        language = getattr(provider_class, "language", None)
        if not isinstance(language, SupportedLanguage):
            raise ConfigError(f"Provider {provider_class.__name__} does not declare a language")

        if language in self._providers:
            raise ConfigError(
                f"Language '{language}' is already registered. "
                f"Cannot register {provider_class.__name__}."
            )

        self._providers[language] = provider_class

    def get(self, language: SupportedLanguage | str) -> LanguageProvider:
        """
        Get a provider instance for a language.

        Raises:
            UnsupportedLanguageError: If no provider handles the language
        """
        try:
            key = SupportedLanguage(language)
        except ValueError:
            raise UnsupportedLanguageError(str(language), self.list_languages()) from None
        if key not in self._providers:
            raise UnsupportedLanguageError(key.value, self.list_languages())
        return self._providers[key]()

    def has(self, language: SupportedLanguage | str) -> bool:
        try:
            return SupportedLanguage(language) in self._providers
        except ValueError:
            return False

    def list_languages(self) -> list[str]:
        """List registered language names."""
        return sorted(language.value for language in self._providers)


_registry: ProviderRegistry | None = None


def get_registry() -> ProviderRegistry:
    """
    Get the default registry with the built-in providers.

    Rust is a recognized language without a provider.
    """
    global _registry
    if _registry is None:
        from .elixir import ElixirProvider
        from .node import NodeProvider

        _registry = ProviderRegistry()
        _registry.register(NodeProvider)
        _registry.register(ElixirProvider)
    return _registry


def get_provider(language: SupportedLanguage | str) -> LanguageProvider:
    """Get a provider from the default registry."""
    return get_registry().get(language)


__all__ = [
    "LanguageProvider",
    "ProviderCapabilities",
    "ProviderRegistry",
    "get_provider",
    "get_registry",
]
