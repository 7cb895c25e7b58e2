"""Package ecosystems and the registry that looks them up by name."""

from __future__ import annotations

from pathlib import Path

from ..errors import ConfigError
from .base import (
    POST_WRITE_HOOK,
    PUBLISH,
    UNPUBLISH,
    Ecosystem,
    EcosystemContext,
    context_for,
    supports,
)
from .cargo import CargoEcosystem
from .composer import ComposerEcosystem
from .custom import CustomEcosystem
from .docker import DockerEcosystem
from .go import GoEcosystem
from .npm import NpmEcosystem
from .python import PythonEcosystem


class EcosystemRegistry:
    """Ecosystems by name, kept in registration order."""

    def __init__(self) -> None:
        self._ecosystems: dict[str, Ecosystem] = {}

    def register(self, ecosystem: Ecosystem) -> None:
        """Add an ecosystem, replacing any registered under the same name."""
        self._ecosystems[ecosystem.name] = ecosystem

    def get(self, name: str) -> Ecosystem:
        """Look up an ecosystem.

        Raises:
            ConfigError: If no ecosystem has that name.
        """
        try:
            return self._ecosystems[name]
        except KeyError:
            known = ", ".join(self._ecosystems)
            raise ConfigError(f"Unknown ecosystem {name!r} (known: {known})") from None

    def names(self) -> list[str]:
        return list(self._ecosystems)

    def detect(self, path: Path) -> Ecosystem | None:
        """Return the first registered ecosystem that recognizes ``path``."""
        return next((e for e in self._ecosystems.values() if e.detect(path)), None)


def create_default_registry() -> EcosystemRegistry:
    """Registry with every built-in ecosystem.

    Custom is registered last because it detects any directory.
    """
    registry = EcosystemRegistry()
    for ecosystem in (
        NpmEcosystem(),
        CargoEcosystem(),
        PythonEcosystem(),
        ComposerEcosystem(),
        GoEcosystem(),
        DockerEcosystem(),
        CustomEcosystem(),
    ):
        registry.register(ecosystem)
    return registry


__all__ = [
    "POST_WRITE_HOOK",
    "PUBLISH",
    "UNPUBLISH",
    "CargoEcosystem",
    "ComposerEcosystem",
    "CustomEcosystem",
    "DockerEcosystem",
    "Ecosystem",
    "EcosystemContext",
    "EcosystemRegistry",
    "GoEcosystem",
    "NpmEcosystem",
    "PythonEcosystem",
    "context_for",
    "create_default_registry",
    "supports",
]
