"""
Tariff Resolver - finds the configuration snapshot effective on a date.
"""
import logging
import time
from datetime import date, datetime
from typing import Callable, Optional

from ..config.logging_config import tariff_context
from ..config.settings import get_settings
from ..errors import NoActiveConfigurationError
from .cache import SnapshotCache
from .configuration import ConfigurationHeader, RateConfiguration
from .repository import TariffRepository

logger = logging.getLogger(__name__)

_INDEX_KEY = "index"


class TariffResolver:
    """
    Resolves the active configuration for a calculation date.

    Both the configuration index and the snapshots (keyed by configuration id)
    go through a read-through TTL cache. Wire
    ``on_configuration_activated`` to the tariff library's activation/update
    events; it clears the cache before returning.
    """

    def __init__(
        self,
        repository: TariffRepository,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.repository = repository
        if ttl_seconds is None:
            ttl_seconds = get_settings().cache_ttl_seconds
        self.cache = SnapshotCache(ttl_seconds=ttl_seconds, clock=clock)

    def resolve(self, as_of: date) -> RateConfiguration:
        if isinstance(as_of, datetime):
            as_of = as_of.date()
        headers, hit = self.cache.get_or_load(_INDEX_KEY, lambda: tuple(self.repository.list_headers()))
        logger.debug("Configuration index %s (%d entries)", "cache hit" if hit else "loaded", len(headers))

        chosen = self._choose(headers, as_of)

        configuration, hit = self.cache.get_or_load(
            f"config:{chosen.id}",
            lambda: self.repository.load(chosen.id),
        )
        logger.info(
            "Resolved tariff %s v%s for %s%s",
            configuration.id, configuration.version, as_of.isoformat(), " (cached)" if hit else "",
            extra=tariff_context(configuration),
        )
        return configuration

    def _choose(self, headers: tuple[ConfigurationHeader, ...], as_of: date) -> ConfigurationHeader:
        candidates = [h for h in headers if h.is_active and h.covers(as_of)]
        if not candidates:
            raise NoActiveConfigurationError(
                f"No active tariff configuration is effective on {as_of.isoformat()}",
                field="as_of",
                value=as_of.isoformat(),
            )
        if len(candidates) == 1:
            return candidates[0]

        chosen = max(candidates, key=lambda h: (h.effective_from, h.version))
        logger.warning(
            "Configuration integrity: %d active tariffs effective on %s (%s); using %s v%s",
            len(candidates),
            as_of.isoformat(),
            ", ".join(f"{h.id} v{h.version}" for h in candidates),
            chosen.id,
            chosen.version,
            extra=tariff_context(chosen),
        )
        return chosen

    def invalidate(self):
        self.cache.invalidate()

    def on_configuration_activated(self, configuration_id: str):
        logger.info("Tariff configuration %s changed, clearing resolver cache", configuration_id)
        self.invalidate()
