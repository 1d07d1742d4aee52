#!/usr/bin/env python
"""
Seed pipeline - writes the demo cafe into the CSV data directory and runs the tests.

Usage:
    python scripts/seed_data.py [--skip-tests]
"""
import subprocess
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from cafe_pos.config.settings import Settings
from cafe_pos.data import CsvDataService, DemoDataService, DataServiceError


def main():
    settings = Settings.load()

    print("=" * 60)
    print("CAFE POS SEED PIPELINE")
    print("=" * 60)
    print()

    print(f"[1/2] Seeding {settings.data_dir} for {settings.default_org_id}...")
    try:
        store = CsvDataService(settings.data_dir)
        store.seed(DemoDataService(org_id=settings.default_org_id), settings.default_org_id)
    except DataServiceError as e:
        print(f"\n❌ SEED FAILED: {e}")
        sys.exit(1)

    products = store.list_products(settings.default_org_id)
    combos = store.list_combos(settings.default_org_id)
    offers = store.list_offers(settings.default_org_id)

    if '--skip-tests' not in sys.argv:
        print()
        print("[2/2] Running tests...")
        test_result = subprocess.run(
            [sys.executable, '-m', 'pytest', 'tests', '-q', '--tb=short'],
            cwd=Path(__file__).parent.parent
        )
        if test_result.returncode != 0:
            print("\n❌ TESTS FAILED")
            sys.exit(1)

    print()
    print("=" * 60)
    print("✅ SEED COMPLETE")
    print("=" * 60)
    print()
    print("Summary:")
    print(f"  Products: {len(products)}")
    print(f"  Combos: {len(combos)}")
    print(f"  Offers: {len(offers)}")
    for offer in offers:
        w = offer.window
        print(f"    {offer.name}: {offer.discount_percent}% {w.start_date}..{w.end_date} {w.start_time}-{w.end_time}")
    print()
    print("Set CAFE_POS_DATA_MODE=csv to use this data.")


if __name__ == "__main__":
    main()
