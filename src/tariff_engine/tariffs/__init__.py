"""Tariffs subpackage - configuration snapshots, loading and resolution."""
from .configuration import RateConfiguration, check_configuration
from .loader import load_tariff_directory, validate_tariff_directory
from .repository import DirectoryTariffRepository, InMemoryTariffRepository
from .resolver import TariffResolver

__all__ = [
    'RateConfiguration',
    'check_configuration',
    'load_tariff_directory',
    'validate_tariff_directory',
    'DirectoryTariffRepository',
    'InMemoryTariffRepository',
    'TariffResolver',
]
