"""
Tariff repositories - where configuration snapshots come from.

``InMemoryTariffRepository`` stands in for the tariff-library service: every
write notifies subscribers synchronously before it returns, which is what
lets the resolver cache follow write-then-invalidate semantics.
``DirectoryTariffRepository`` serves tariffs stored as directories on disk.
"""
import dataclasses
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from .configuration import ConfigurationHeader, RateConfiguration
from .loader import TARIFF_DOCUMENT, load_tariff_directory, read_tariff_header

logger = logging.getLogger(__name__)

ActivationListener = Callable[[str], None]


class TariffRepository(ABC):

    @abstractmethod
    def list_headers(self) -> list[ConfigurationHeader]:
        """Metadata of every stored configuration."""

    @abstractmethod
    def load(self, configuration_id: str) -> RateConfiguration:
        """Full snapshot for one configuration id; KeyError if unknown."""


class InMemoryTariffRepository(TariffRepository):

    def __init__(self, configurations=()):
        self._lock = threading.Lock()
        self._configurations: dict[str, RateConfiguration] = {c.id: c for c in configurations}
        self._listeners: list[ActivationListener] = []

    def subscribe(self, listener: ActivationListener):
        self._listeners.append(listener)

    def list_headers(self) -> list[ConfigurationHeader]:
        with self._lock:
            return [c.header for c in self._configurations.values()]

    def load(self, configuration_id: str) -> RateConfiguration:
        with self._lock:
            try:
                return self._configurations[configuration_id]
            except KeyError:
                raise KeyError(f"Tariff configuration '{configuration_id}' not found") from None

    def save(self, configuration: RateConfiguration):
        with self._lock:
            self._configurations[configuration.id] = configuration
        logger.info("Saved tariff configuration %s v%s", configuration.id, configuration.version)
        self._notify(configuration.id)

    def activate(self, configuration_id: str):
        """Make one configuration the active one; all others are deactivated."""
        with self._lock:
            if configuration_id not in self._configurations:
                raise KeyError(f"Tariff configuration '{configuration_id}' not found")
            for config_id, config in list(self._configurations.items()):
                should_be_active = config_id == configuration_id
                if config.is_active != should_be_active:
                    self._configurations[config_id] = dataclasses.replace(config, is_active=should_be_active)
        logger.info("Activated tariff configuration %s", configuration_id)
        self._notify(configuration_id)

    def deactivate(self, configuration_id: str):
        with self._lock:
            config = self._configurations[configuration_id]
            self._configurations[configuration_id] = dataclasses.replace(config, is_active=False)
        logger.info("Deactivated tariff configuration %s", configuration_id)
        self._notify(configuration_id)

    def _notify(self, configuration_id: str):
        for listener in list(self._listeners):
            listener(configuration_id)


class DirectoryTariffRepository(TariffRepository):
    """Each subdirectory of ``root`` containing a tariff.json is one configuration."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _tariff_dirs(self) -> list[Path]:
        if not self.root.exists():
            return []
        return sorted(p for p in self.root.iterdir() if (p / TARIFF_DOCUMENT).exists())

    def list_headers(self) -> list[ConfigurationHeader]:
        return [read_tariff_header(path) for path in self._tariff_dirs()]

    def load(self, configuration_id: str) -> RateConfiguration:
        for path in self._tariff_dirs():
            if read_tariff_header(path).id == configuration_id:
                return load_tariff_directory(path)
        raise KeyError(f"Tariff configuration '{configuration_id}' not found under {self.root}")
