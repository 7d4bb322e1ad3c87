#!/usr/bin/env python
"""
Validate tariff directories.

Usage:
    python scripts/validate_tariff.py                  # every tariff in the library
    python scripts/validate_tariff.py path/to/tariff   # one or more tariff directories
"""
import argparse
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from tariff_engine.config.settings import get_settings
from tariff_engine.tariffs import validate_tariff_directory
from tariff_engine.tariffs.loader import TARIFF_DOCUMENT


def main():
    parser = argparse.ArgumentParser(description="Validate tariff directories")
    parser.add_argument("paths", nargs="*", type=Path, help="Tariff directories (default: the tariff library)")
    args = parser.parse_args()

    paths = args.paths
    if not paths:
        library = get_settings().tariffs_dir
        paths = sorted(p for p in library.iterdir() if (p / TARIFF_DOCUMENT).exists()) if library.exists() else []
        if not paths:
            print(f"No tariffs found under {library}")
            sys.exit(1)

    failed = 0
    for path in paths:
        result = validate_tariff_directory(path)
        status = "✅ VALID" if result.valid else "❌ INVALID"
        print(f"{status}  {path}")
        for error in result.errors:
            print(f"  ERROR: {error}")
        for warning in result.warnings:
            print(f"  WARNING: {warning}")
        if not result.valid:
            failed += 1

    print()
    print(f"{len(paths) - failed}/{len(paths)} tariff(s) valid")
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
