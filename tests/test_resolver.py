import logging
import threading
from datetime import date, datetime

import pytest

from tariff_engine.errors import NoActiveConfigurationError
from tariff_engine.tariffs.cache import SnapshotCache
from tariff_engine.tariffs.repository import InMemoryTariffRepository
from tariff_engine.tariffs.resolver import TariffResolver


class CountingRepository(InMemoryTariffRepository):
    """In-memory repository that counts reads."""

    def __init__(self, configurations=()):
        super().__init__(configurations)
        self.header_reads = 0
        self.loads = 0

    def list_headers(self):
        self.header_reads += 1
        return super().list_headers()

    def load(self, configuration_id):
        self.loads += 1
        return super().load(configuration_id)


@pytest.fixture
def repository(configuration):
    return CountingRepository([configuration])


@pytest.fixture
def resolver(repository, clock):
    resolver = TariffResolver(repository, ttl_seconds=300, clock=clock)
    repository.subscribe(resolver.on_configuration_activated)
    return resolver


def test_resolves_active_configuration(resolver):
    config = resolver.resolve(date(2025, 6, 11))
    assert config.id == "tariff-2025"


def test_no_configuration_before_effective_date(resolver):
    with pytest.raises(NoActiveConfigurationError) as exc:
        resolver.resolve(date(2024, 12, 31))
    assert exc.value.field == "as_of"


def test_effective_to_is_inclusive(make_configuration, clock):
    repository = InMemoryTariffRepository([make_configuration(effective_to=date(2025, 6, 30))])
    resolver = TariffResolver(repository, ttl_seconds=300, clock=clock)
    assert resolver.resolve(date(2025, 6, 30)).id == "tariff-2025"
    with pytest.raises(NoActiveConfigurationError):
        resolver.resolve(date(2025, 7, 1))


def test_inactive_configuration_is_ignored(make_configuration, clock):
    repository = InMemoryTariffRepository([make_configuration(is_active=False)])
    with pytest.raises(NoActiveConfigurationError):
        TariffResolver(repository, ttl_seconds=300, clock=clock).resolve(date(2025, 6, 11))


def test_snapshots_are_cached_until_ttl(resolver, repository, clock):
    resolver.resolve(date(2025, 6, 11))
    resolver.resolve(date(2025, 6, 12))
    assert repository.loads == 1
    assert repository.header_reads == 1

    clock.advance(301)
    resolver.resolve(date(2025, 6, 11))
    assert repository.loads == 2
    assert repository.header_reads == 2


def test_activation_invalidates_before_returning(resolver, repository, make_configuration):
    assert resolver.resolve(date(2025, 6, 11)).version == "1.0.0"

    repository.save(make_configuration(id="tariff-2025b", version="2.0.0", effective_from=date(2025, 6, 1)))
    repository.activate("tariff-2025b")

    resolved = resolver.resolve(date(2025, 6, 11))
    assert resolved.id == "tariff-2025b"
    assert resolved.version == "2.0.0"


def test_overlapping_active_configurations_pick_latest_and_warn(make_configuration, clock, caplog):
    repository = InMemoryTariffRepository([
        make_configuration(id="spring", version="1.0.0", effective_from=date(2025, 3, 1)),
        make_configuration(id="summer-a", version="1.0.0", effective_from=date(2025, 6, 1)),
        make_configuration(id="summer-b", version="1.1.0", effective_from=date(2025, 6, 1)),
    ])
    resolver = TariffResolver(repository, ttl_seconds=300, clock=clock)

    with caplog.at_level(logging.WARNING, logger="tariff_engine.tariffs.resolver"):
        config = resolver.resolve(date(2025, 6, 11))

    assert config.id == "summer-b"
    assert any("Configuration integrity" in r.getMessage() for r in caplog.records)


def test_load_started_before_invalidate_is_not_cached(clock):
    cache = SnapshotCache(ttl_seconds=300, clock=clock)
    started = threading.Event()
    release = threading.Event()

    def slow_loader():
        started.set()
        release.wait(5)
        return "stale"

    worker = threading.Thread(target=cache.get_or_load, args=("config:a", slow_loader))
    worker.start()
    started.wait(5)
    cache.invalidate()
    release.set()
    worker.join(5)

    assert cache.get("config:a") is None
    value, hit = cache.get_or_load("config:a", lambda: "fresh")
    assert (value, hit) == ("fresh", False)


def test_cache_expiry(clock):
    cache = SnapshotCache(ttl_seconds=10, clock=clock)
    assert cache.get_or_load("k", lambda: 1) == (1, False)
    assert cache.get_or_load("k", lambda: 2) == (1, True)
    clock.advance(10)
    assert cache.get("k") is None
    assert cache.size == 0


def test_datetime_as_of_uses_its_calendar_date(make_configuration, clock):
    repository = InMemoryTariffRepository([make_configuration(effective_to=date(2025, 6, 30))])
    resolver = TariffResolver(repository, ttl_seconds=300, clock=clock)
    assert resolver.resolve(datetime(2025, 6, 30, 23, 59)).id == "tariff-2025"
    with pytest.raises(NoActiveConfigurationError):
        resolver.resolve(datetime(2025, 7, 1, 0, 0))
